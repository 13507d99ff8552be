# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
特征集模块

包含原始输入（传感器、骨架、人工标注）、派生特征以及几何工具。
"""

from .base import FeatureSet
from .posture import Posture, PostureState, StablePosture, Transition
from .raw import ManualAnnotation, SensorReading, SkeletonSnapshot
from .derived import (
    CombinedFrame,
    LearnerFeatures,
    SensorComparisonFrame,
    SensorFeatures,
    SkeletonFeatures,
)

__all__ = [
    "FeatureSet",
    "Posture",
    "PostureState",
    "StablePosture",
    "Transition",
    "ManualAnnotation",
    "SensorReading",
    "SkeletonSnapshot",
    "CombinedFrame",
    "LearnerFeatures",
    "SensorComparisonFrame",
    "SensorFeatures",
    "SkeletonFeatures",
]
