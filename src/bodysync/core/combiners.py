# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
具体合并器

CombinedMultiplexer：手机传感器 + 骨架 + 人工标注三路流的同步、特征提取和在线学习。
SensorComparisonMultiplexer：两部手机传感器流的同步和特征对比。
"""

import logging
from typing import Any, List, Optional

import numpy as np

from ..features.derived import (
    CombinedFrame,
    LearnerFeatures,
    SensorComparisonFrame,
    SensorFeatures,
    SkeletonFeatures,
)
from ..features.geometry import blend_heading, quaternion_multiply
from ..features.raw import ManualAnnotation, SensorReading, SkeletonSnapshot
from .interpolation import InterpolationMethod
from .multiplexer import StreamDescriptor, StreamMultiplexer
from .sequence_analyzer import SequenceAnalyzer
from .supervised_learner import SupervisedLearner

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_WINDOW_SIZE = 32

SENSOR_STREAM_ID = 0
SKELETON_STREAM_ID = 1
MANUAL_STREAM_ID = 2


def build_regressors(sensor_features: SensorFeatures, raw_sensor: SensorReading) -> np.ndarray:
    """学习器的18个回归量：15个传感器统计特征 + 3个角速度"""
    return np.concatenate([sensor_features.extract_values(), raw_sensor.rotation_rate])


class CombinedMultiplexer(StreamMultiplexer[CombinedFrame]):
    """
    三路合并器：多路复用、特征提取、在线学习

    流0为手机传感器读数（主流），流1为骨架快照，流2为人工标注。
    每个合并帧依次完成：
        1. 由未校准的设备姿态估计人体朝向
        2. 将人工标注中的校准四元数左乘到传感器姿态上
        3. pitch/roll/yaw送入序列分析器提取统计特征
        4. 由骨架计算肩部朝向和左右腿夹角
        5. 骨架特征作为响应、传感器特征作为回归量送入学习器

    注意：送入序列分析器的是同步后的序列，而非手机的原始序列，
    其中的值可能被跳过或重复。

    Args:
        analysis_window_size: 序列分析窗口长度
        sensor_time_offset_ms: 传感器流时间偏移
        skeleton_time_offset_ms: 骨架流时间偏移
        manual_time_offset_ms: 人工标注流时间偏移
        sampling_rate: 合并帧的名义频率（Hz），用于频率换算
        learner: 监督学习器，None则新建一个未训练的学习器
        num_learning_samples: 新建学习器时的学习样本数
        heading_steepness: 朝向融合的logistic陡峭程度
        heading_midpoint: 朝向融合的logistic中点
        interpolation: 插值方式
        interpolation_delay_ms: 插值目标时间的回退量（毫秒）
        clock: 毫秒时钟函数
    """

    def __init__(
        self,
        analysis_window_size: int = DEFAULT_ANALYSIS_WINDOW_SIZE,
        sensor_time_offset_ms: float = 0.0,
        skeleton_time_offset_ms: float = 0.0,
        manual_time_offset_ms: float = 0.0,
        sampling_rate: float = 30.0,
        learner: Optional[SupervisedLearner] = None,
        num_learning_samples: int = 1000,
        heading_steepness: float = 10.0,
        heading_midpoint: float = 0.5,
        interpolation: InterpolationMethod = InterpolationMethod.NONE,
        interpolation_delay_ms: float = 30.0,
        clock=None
    ):
        streams = [
            StreamDescriptor(SENSOR_STREAM_ID, "Raw sensor values", SensorReading.num_values, sensor_time_offset_ms),
            StreamDescriptor(SKELETON_STREAM_ID, "Raw skeleton values", SkeletonSnapshot.num_values, skeleton_time_offset_ms),
            StreamDescriptor(MANUAL_STREAM_ID, "Raw manual values", ManualAnnotation.num_values, manual_time_offset_ms),
        ]
        super().__init__(interpolation, streams, self._pack, interpolation_delay_ms, clock)

        self.analyzer = SequenceAnalyzer(3, analysis_window_size, sampling_rate=sampling_rate)
        self.learner = learner if learner is not None else SupervisedLearner(num_learning_samples)
        self.heading_steepness = heading_steepness
        self.heading_midpoint = heading_midpoint

    def push_raw_sensor_values(self, item: SensorReading) -> Optional[CombinedFrame]:
        return self.push(SENSOR_STREAM_ID, item)

    def push_raw_skeleton_values(self, item: SkeletonSnapshot) -> None:
        self.push(SKELETON_STREAM_ID, item)

    def push_raw_manual_values(self, item: ManualAnnotation) -> None:
        self.push(MANUAL_STREAM_ID, item)

    def _pack(self, items: List[Any]) -> CombinedFrame:
        # 缓冲区中的数据项不能被修改，校准前先克隆
        raw_sensor = items[0].clone() if items[0] is not None else SensorReading()
        raw_skeleton = items[1] if items[1] is not None else SkeletonSnapshot()
        raw_manual = items[2] if items[2] is not None else ManualAnnotation()

        sensor_features = SensorFeatures()
        sensor_features.heading = blend_heading(
            raw_sensor.quaternion, self.heading_steepness, self.heading_midpoint
        )

        # 四元数乘法不满足交换律：校准量在左
        raw_sensor.quaternion = quaternion_multiply(raw_manual.calibration_quaternion, raw_sensor.quaternion)

        analysis = self.analyzer.next_values(
            raw_sensor.rotation_pitch, raw_sensor.rotation_roll, raw_sensor.rotation_yaw
        )
        sensor_features.read_from_analysis_result(analysis)

        skeleton_features = SkeletonFeatures(raw_skeleton)

        learner_features = LearnerFeatures()
        responses = [
            skeleton_features.left_leg_to_torso_angle,
            skeleton_features.right_leg_to_torso_angle,
            skeleton_features.shoulder_orientation,
        ]
        was_trained = self.learner.is_trained
        outputs = self.learner.feed(responses, build_regressors(sensor_features, raw_sensor))
        if self.learner.is_trained and not was_trained:
            logger.info(f"学习器在第{self.frames_emitted + 1}帧完成训练，之后输出预测值")
        learner_features.read_from_learner_results(outputs, self.learner.is_trained)

        return CombinedFrame(
            raw_sensor=raw_sensor,
            raw_skeleton=raw_skeleton,
            raw_manual=raw_manual,
            sensor_features=sensor_features,
            skeleton_features=skeleton_features,
            learner_features=learner_features,
        )


class SensorComparisonMultiplexer(StreamMultiplexer[SensorComparisonFrame]):
    """
    双传感器对比合并器

    两路手机传感器流各自使用独立的序列分析器。

    Args:
        analysis_window_size: 序列分析窗口长度
        sensor1_time_offset_ms: 传感器1时间偏移
        sensor2_time_offset_ms: 传感器2时间偏移
        sampling_rate: 合并帧的名义频率（Hz）
        clock: 毫秒时钟函数
    """

    def __init__(
        self,
        analysis_window_size: int = DEFAULT_ANALYSIS_WINDOW_SIZE,
        sensor1_time_offset_ms: float = 0.0,
        sensor2_time_offset_ms: float = 0.0,
        sampling_rate: float = 30.0,
        clock=None
    ):
        streams = [
            StreamDescriptor(0, "Raw sensor values 1", SensorReading.num_values, sensor1_time_offset_ms),
            StreamDescriptor(1, "Raw sensor values 2", SensorReading.num_values, sensor2_time_offset_ms),
        ]
        super().__init__(InterpolationMethod.NONE, streams, self._pack, clock=clock)

        self.analyzer1 = SequenceAnalyzer(3, analysis_window_size, sampling_rate=sampling_rate)
        self.analyzer2 = SequenceAnalyzer(3, analysis_window_size, sampling_rate=sampling_rate)

    def push_raw_sensor1_values(self, item: SensorReading) -> Optional[SensorComparisonFrame]:
        return self.push(0, item)

    def push_raw_sensor2_values(self, item: SensorReading) -> None:
        self.push(1, item)

    def _pack(self, items: List[Any]) -> SensorComparisonFrame:
        raw_sensor1 = items[0] if items[0] is not None else SensorReading()
        raw_sensor2 = items[1] if items[1] is not None else SensorReading()

        features1 = SensorFeatures()
        features2 = SensorFeatures()
        features1.read_from_analysis_result(self.analyzer1.next_values(
            raw_sensor1.rotation_pitch, raw_sensor1.rotation_roll, raw_sensor1.rotation_yaw
        ))
        features2.read_from_analysis_result(self.analyzer2.next_values(
            raw_sensor2.rotation_pitch, raw_sensor2.rotation_roll, raw_sensor2.rotation_yaw
        ))

        return SensorComparisonFrame(
            raw_sensor1=raw_sensor1,
            raw_sensor2=raw_sensor2,
            sensor_features1=features1,
            sensor_features2=features2,
        )
