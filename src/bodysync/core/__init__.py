# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
核心功能模块

包含环形缓冲、插值、多路复用、序列分析、监督学习和单写者工作线程。
具体的合并器（bodysync.core.combiners）和数据模拟器
（bodysync.core.data_simulator）依赖特征集模块，需单独导入。
"""

from .ring_buffer import RingBuffer
from .interpolation import InterpolationMethod, neville
from .multiplexer import BufferEntry, Multiplexable, StreamDescriptor, StreamMultiplexer
from .sequence_analyzer import AnalysisResult, SequenceAnalyzer
from .supervised_learner import SupervisedLearner
from .stream_worker import StreamWorker

__all__ = [
    "RingBuffer",
    "InterpolationMethod",
    "neville",
    "BufferEntry",
    "Multiplexable",
    "StreamDescriptor",
    "StreamMultiplexer",
    "AnalysisResult",
    "SequenceAnalyzer",
    "SupervisedLearner",
    "StreamWorker",
]
