# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""派生特征集：传感器统计特征、骨架特征、学习器预测、合并帧"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from ..core.sequence_analyzer import AnalysisResult
from .base import FeatureSet, value_property
from .geometry import ccw_angle_between_planes, normalize, plane_normal, shoulder_orientation
from .raw import ManualAnnotation, SensorReading, SkeletonSnapshot

logger = logging.getLogger(__name__)


class SensorFeatures(FeatureSet):
    """
    传感器统计特征

    15个数值：pitch/roll/yaw当前值、均值、标准差、两两相关系数、主频率。
    朝向（heading）单独保存，不参与数值向量。
    """

    num_values = 15
    value_names = (
        'rotation_x', 'rotation_y', 'rotation_z',
        'rotation_x_mean', 'rotation_y_mean', 'rotation_z_mean',
        'rotation_x_std', 'rotation_y_std', 'rotation_z_std',
        'rotation_correlation_xy', 'rotation_correlation_xz', 'rotation_correlation_yz',
        'rotation_x_energy', 'rotation_y_energy', 'rotation_z_energy',
    )

    rotation_x = value_property(0)
    rotation_y = value_property(1)
    rotation_z = value_property(2)
    rotation_correlation_xy = value_property(9)
    rotation_correlation_xz = value_property(10)
    rotation_correlation_yz = value_property(11)

    def __init__(self):
        self.heading = 0.0
        self.values = np.zeros(self.num_values)

    def read_from_analysis_result(self, result: AnalysisResult) -> None:
        """从三序列分析结果填充特征"""
        if result.current_values.shape[0] != 3:
            raise ValueError(f"需要三序列分析结果，收到{result.current_values.shape[0]}条序列")

        self.values[0:3] = result.current_values
        self.values[3:6] = result.means
        self.values[6:9] = result.std_devs
        self.values[9] = result.correlation[0, 1]
        self.values[10] = result.correlation[0, 2]
        self.values[11] = result.correlation[1, 2]
        self.values[12:15] = result.energies

    @property
    def current(self) -> np.ndarray:
        return self.values[0:3].copy()

    @property
    def means(self) -> np.ndarray:
        return self.values[3:6].copy()

    @property
    def std_devs(self) -> np.ndarray:
        return self.values[6:9].copy()

    @property
    def energies(self) -> np.ndarray:
        return self.values[12:15].copy()

    def extract_values(self) -> np.ndarray:
        return self.values.copy()

    def inject_values(self, values: np.ndarray) -> None:
        self.values = self._check_length(values).copy()

    def clone(self) -> 'SensorFeatures':
        new_obj = self._clone_by_values()
        new_obj.heading = self.heading
        return new_obj


class SkeletonFeatures(FeatureSet):
    """骨架特征：肩部朝向、左右腿与躯干的夹角"""

    num_values = 3
    value_names = ('shoulder_orientation', 'right_leg_to_torso_angle', 'left_leg_to_torso_angle')
    required_joints = (
        'ShoulderCenter', 'ShoulderLeft', 'ShoulderRight',
        'HipLeft', 'HipRight', 'KneeLeft', 'KneeRight',
    )

    shoulder_orientation = value_property(0)
    right_leg_to_torso_angle = value_property(1)
    left_leg_to_torso_angle = value_property(2)

    def __init__(self, skeleton: Optional[SkeletonSnapshot] = None):
        self.values = np.zeros(self.num_values)
        self.read_from_skeleton(skeleton)

    def read_from_skeleton(self, skeleton: Optional[SkeletonSnapshot]) -> bool:
        """由骨架计算特征

        缺少骨架或所需关节未被跟踪时保持原值不变。

        Returns:
            是否完成计算
        """
        if skeleton is None:
            return False
        if not all(skeleton.is_tracked(name) for name in self.required_joints):
            logger.debug("所需关节未全部被跟踪，跳过骨架特征计算")
            return False

        joints = {name: skeleton.joint(name) for name in self.required_joints}
        self.shoulder_orientation = shoulder_orientation(joints['ShoulderLeft'], joints['ShoulderRight'])

        hip_left = joints['HipLeft']
        hip_right = joints['HipRight']

        # 平面夹角等于法向量夹角
        torso_normal = normalize(plane_normal(joints['ShoulderCenter'], hip_left, hip_right))
        leg_left_normal = normalize(plane_normal(hip_left, joints['KneeLeft'], hip_right))
        leg_right_normal = normalize(plane_normal(hip_left, joints['KneeRight'], hip_right))

        self.right_leg_to_torso_angle = ccw_angle_between_planes(torso_normal, leg_right_normal, hip_left, hip_right)
        self.left_leg_to_torso_angle = ccw_angle_between_planes(torso_normal, leg_left_normal, hip_left, hip_right)
        return True

    def extract_values(self) -> np.ndarray:
        return self.values.copy()

    def inject_values(self, values: np.ndarray) -> None:
        self.values = self._check_length(values).copy()

    def clone(self) -> 'SkeletonFeatures':
        return self._clone_by_values()


class LearnerFeatures(FeatureSet):
    """学习器输出：预测的左右腿夹角和人体朝向"""

    num_values = 3
    value_names = ('predicted_left_leg_angle', 'predicted_right_leg_angle', 'predicted_person_heading')

    predicted_left_leg_angle = value_property(0)
    predicted_right_leg_angle = value_property(1)
    predicted_person_heading = value_property(2)

    def __init__(self):
        self.values = np.zeros(self.num_values)
        self.is_trained = False

    def read_from_learner_results(self, responses: Sequence[float], is_trained: bool) -> None:
        self.values = np.asarray(responses, dtype=np.float64)[:self.num_values].copy()
        self.is_trained = is_trained

    def extract_values(self) -> np.ndarray:
        return self.values.copy()

    def inject_values(self, values: np.ndarray) -> None:
        self.values = self._check_length(values).copy()

    def clone(self) -> 'LearnerFeatures':
        new_obj = self._clone_by_values()
        new_obj.is_trained = self.is_trained
        return new_obj


@dataclass
class CombinedFrame:
    """合并帧：三路原始数据及其派生特征"""
    raw_sensor: SensorReading = field(default_factory=SensorReading)
    raw_skeleton: SkeletonSnapshot = field(default_factory=SkeletonSnapshot)
    raw_manual: ManualAnnotation = field(default_factory=ManualAnnotation)
    sensor_features: SensorFeatures = field(default_factory=SensorFeatures)
    skeleton_features: SkeletonFeatures = field(default_factory=SkeletonFeatures)
    learner_features: LearnerFeatures = field(default_factory=LearnerFeatures)


@dataclass
class SensorComparisonFrame:
    """双传感器对比帧"""
    raw_sensor1: SensorReading = field(default_factory=SensorReading)
    raw_sensor2: SensorReading = field(default_factory=SensorReading)
    sensor_features1: SensorFeatures = field(default_factory=SensorFeatures)
    sensor_features2: SensorFeatures = field(default_factory=SensorFeatures)
