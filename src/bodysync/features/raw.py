# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""原始特征集：手机传感器读数、骨架快照、人工标注"""

from typing import Dict, Optional, Sequence

import numpy as np

from .base import FeatureSet, value_property
from .geometry import IDENTITY_QUATERNION, pitch_roll_yaw
from .posture import Posture


class SensorReading(FeatureSet):
    """
    手机姿态传感器单次读数

    数值向量布局（26个）：
        0-3   姿态四元数 x, y, z, w
        4-6   线性加速度
        7-9   角速度
        10-12 重力
        13-15 原始加速度
        16    磁航向
        17    真航向
        18    航向精度
        19-21 磁力计
        22    磁力计数据有效标志（1/0）
        23-25 pitch, roll, yaw（由四元数导出）

    设备只发送前23个数值，后3个由from_sensor_values计算。
    """

    num_values = 26
    num_sensor_values = 23
    value_names = (
        'quaternion_x', 'quaternion_y', 'quaternion_z', 'quaternion_w',
        'linear_acceleration_x', 'linear_acceleration_y', 'linear_acceleration_z',
        'rotation_rate_x', 'rotation_rate_y', 'rotation_rate_z',
        'gravity_x', 'gravity_y', 'gravity_z',
        'raw_acceleration_x', 'raw_acceleration_y', 'raw_acceleration_z',
        'magnetic_heading', 'true_heading', 'heading_accuracy',
        'magnetometer_x', 'magnetometer_y', 'magnetometer_z',
        'magnetometer_valid',
        'rotation_pitch', 'rotation_roll', 'rotation_yaw',
    )

    rotation_rate_x = value_property(7)
    rotation_rate_y = value_property(8)
    rotation_rate_z = value_property(9)
    magnetic_heading = value_property(16)
    true_heading = value_property(17)
    heading_accuracy = value_property(18)
    rotation_pitch = value_property(23)
    rotation_roll = value_property(24)
    rotation_yaw = value_property(25)

    def __init__(self, values: Optional[np.ndarray] = None):
        self.values = np.zeros(self.num_values)
        if values is not None:
            self.inject_values(values)

    @classmethod
    def from_sensor_values(cls, values: Sequence[float]) -> 'SensorReading':
        """由设备发送的23个数值构建读数，并计算pitch/roll/yaw"""
        if values is None or len(values) != cls.num_sensor_values:
            raise ValueError(
                f"传感器数值长度不匹配: 期望{cls.num_sensor_values}, "
                f"收到{None if values is None else len(values)}"
            )
        reading = cls()
        reading.values[:cls.num_sensor_values] = np.asarray(values, dtype=np.float64)
        reading.values[23:26] = pitch_roll_yaw(reading.values[0:4])
        return reading

    @property
    def quaternion(self) -> np.ndarray:
        return self.values[0:4].copy()

    @quaternion.setter
    def quaternion(self, q: np.ndarray) -> None:
        """设置四元数，同时重新计算pitch/roll/yaw"""
        q = np.asarray(q, dtype=np.float64)
        self.values[0:4] = q
        self.values[23:26] = pitch_roll_yaw(q)

    @property
    def rotation_rate(self) -> np.ndarray:
        return self.values[7:10].copy()

    @property
    def magnetometer_valid(self) -> bool:
        return self.values[22] == 1.0

    @magnetometer_valid.setter
    def magnetometer_valid(self, valid: bool) -> None:
        self.values[22] = 1.0 if valid else 0.0

    def extract_values(self) -> np.ndarray:
        return self.values.copy()

    def inject_values(self, values: np.ndarray) -> None:
        self.values = self._check_length(values).copy()

    def clone(self) -> 'SensorReading':
        return self._clone_by_values()


class SkeletonSnapshot(FeatureSet):
    """
    骨架快照：20个关节的齐次坐标位置和跟踪状态

    数值向量为各关节按JOINT_NAMES顺序排列的 (x, y, z)，已除以齐次分量w。
    """

    JOINT_NAMES = (
        'HipCenter', 'Spine', 'ShoulderCenter', 'Head',
        'ShoulderLeft', 'ElbowLeft', 'WristLeft', 'HandLeft',
        'ShoulderRight', 'ElbowRight', 'WristRight', 'HandRight',
        'HipLeft', 'KneeLeft', 'AnkleLeft', 'FootLeft',
        'HipRight', 'KneeRight', 'AnkleRight', 'FootRight',
    )
    num_joints = len(JOINT_NAMES)
    num_values = num_joints * 3
    value_names = tuple(f'{joint}_{axis}' for joint in JOINT_NAMES for axis in 'xyz')

    def __init__(
        self,
        positions: Optional[np.ndarray] = None,
        w: Optional[np.ndarray] = None,
        tracked: Optional[np.ndarray] = None
    ):
        self.positions = np.zeros((self.num_joints, 3)) if positions is None \
            else np.array(positions, dtype=np.float64).reshape(self.num_joints, 3)
        self.w = np.ones(self.num_joints) if w is None else np.array(w, dtype=np.float64)
        self.tracked = np.zeros(self.num_joints, dtype=bool) if tracked is None \
            else np.array(tracked, dtype=bool)

    @classmethod
    def joint_index(cls, name: str) -> int:
        try:
            return cls.JOINT_NAMES.index(name)
        except ValueError:
            raise ValueError(f"未知关节: {name}") from None

    def joint(self, name: str) -> np.ndarray:
        """关节的三维坐标（已除以w）"""
        i = self.joint_index(name)
        w = self.w[i]
        return self.positions[i] / w if w != 1.0 else self.positions[i].copy()

    def joints(self) -> Dict[str, np.ndarray]:
        """所有被跟踪关节的三维坐标"""
        return {name: self.joint(name) for i, name in enumerate(self.JOINT_NAMES) if self.tracked[i]}

    def is_tracked(self, name: str) -> bool:
        return bool(self.tracked[self.joint_index(name)])

    def extract_values(self) -> np.ndarray:
        return (self.positions / self.w[:, None]).reshape(-1)

    def inject_values(self, values: np.ndarray) -> None:
        values = self._check_length(values)
        self.positions = values.reshape(self.num_joints, 3).copy()
        self.w = np.ones(self.num_joints)

    def clone(self) -> 'SkeletonSnapshot':
        return SkeletonSnapshot(self.positions.copy(), self.w.copy(), self.tracked.copy())

    @classmethod
    def example(cls) -> 'SkeletonSnapshot':
        """站立姿态的示例骨架（所有关节均被跟踪）"""
        positions = [
            [0.00, 0.27, 1.95], [0.00, 0.32, 2.00], [0.00, 0.62, 2.01], [0.00, 0.87, 2.01],
            [-0.18, 0.59, 2.02], [-0.28, 0.34, 2.01], [-0.26, 0.09, 1.85], [-0.25, 0.00, 1.82],
            [0.18, 0.59, 2.02], [0.28, 0.34, 2.01], [0.26, 0.09, 1.85], [0.25, 0.00, 1.82],
            [-0.08, 0.19, 1.93], [-0.12, -0.33, 1.95], [-0.13, -0.75, 1.94], [-0.13, -0.78, 1.84],
            [0.08, 0.19, 1.93], [0.12, -0.33, 1.95], [0.13, -0.75, 1.94], [0.13, -0.78, 1.84],
        ]
        return cls(np.array(positions), tracked=np.ones(cls.num_joints, dtype=bool))


class ManualAnnotation(FeatureSet):
    """
    人工标注：当前姿态、下一个姿态和校准四元数

    不含可插值的数值（num_values = 0）。
    """

    num_values = 0

    def __init__(
        self,
        body_posture: Optional[Posture] = None,
        next_posture: Optional[Posture] = None,
        calibration_quaternion: Optional[np.ndarray] = None
    ):
        self.body_posture = body_posture or Posture()
        self.next_posture = next_posture or Posture()
        self.calibration_quaternion = IDENTITY_QUATERNION.copy() if calibration_quaternion is None \
            else np.array(calibration_quaternion, dtype=np.float64)

    def clone(self) -> 'ManualAnnotation':
        return ManualAnnotation(
            Posture.from_id(self.body_posture.id),
            Posture.from_id(self.next_posture.id),
            self.calibration_quaternion.copy(),
        )
