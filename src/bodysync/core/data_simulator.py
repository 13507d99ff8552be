# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
数据流模拟器

模拟手机姿态传感器、骨架跟踪和人工标注三路独立数据源。三路数据由同一个
人体运动模型生成：按固定的姿态阶段循环（坐、站起、站、走……），
手机放在左大腿口袋中随大腿转动，骨架的腿部关节随髋关节屈曲转动，
整个身体绕竖直轴缓慢转向。
"""

import logging
import math
import time
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..features.geometry import quaternion_from_axis_angle, quaternion_multiply, quaternion_to_matrix
from ..features.posture import Posture, PostureState, StablePosture, Transition
from ..features.raw import ManualAnnotation, SensorReading, SkeletonSnapshot
from .combiners import MANUAL_STREAM_ID, SENSOR_STREAM_ID, SKELETON_STREAM_ID

logger = logging.getLogger(__name__)

# 人工标注的姿态阶段循环
POSTURE_PHASES = (
    PostureState.NOT_CLASSIFIED,
    StablePosture.SITTING,
    Transition.STANDING_UP,
    StablePosture.STANDING,
    StablePosture.WALKING,
    StablePosture.STANDING,
    Transition.SITTING_DOWN,
    StablePosture.SITTING,
    Transition.STANDING_UP,
    StablePosture.STANDING,
    Transition.SITTING_DOWN,
    StablePosture.SITTING,
    PostureState.NOT_CLASSIFIED,
)

SITTING_FLEXION = math.pi / 2
GRAVITY = 9.81

# 手机竖直放入口袋：设备y轴（底部→顶部）对齐世界z轴（竖直向上）
_POCKET_BASE_QUATERNION = quaternion_from_axis_angle([1.0, 0.0, 0.0], math.pi / 2)

_LEG_JOINTS = {
    'left': ('HipLeft', ('KneeLeft', 'AnkleLeft', 'FootLeft')),
    'right': ('HipRight', ('KneeRight', 'AnkleRight', 'FootRight')),
}

Event = Tuple[float, int, Any]


class DataSimulator:
    """
    三路数据流模拟器

    Args:
        config: 模拟配置，可包含以下键：
            sensor_rate_hz: 传感器采样率
            skeleton_rate_hz: 骨架采样率
            phase_duration_s: 每个姿态阶段的时长
            gait_frequency_hz: 行走时的步频
            gait_amplitude: 行走时髋关节屈曲幅度（弧度）
            heading_amplitude: 身体转向幅度（弧度）
            heading_period_s: 身体转向周期
            noise_std: 传感器噪声标准差
            random_seed: 随机种子
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = dict(config or {})

        self.sensor_rate_hz = float(self.config.get("sensor_rate_hz", 60.0))
        self.skeleton_rate_hz = float(self.config.get("skeleton_rate_hz", 30.0))
        self.phase_duration_s = float(self.config.get("phase_duration_s", 4.0))
        self.gait_frequency_hz = float(self.config.get("gait_frequency_hz", 1.0))
        self.gait_amplitude = float(self.config.get("gait_amplitude", 0.35))
        self.heading_amplitude = float(self.config.get("heading_amplitude", 0.3))
        self.heading_period_s = float(self.config.get("heading_period_s", 20.0))
        self.noise_std = float(self.config.get("noise_std", 0.01))
        self.random_seed = int(self.config.get("random_seed", 42))

        if self.sensor_rate_hz <= 0 or self.skeleton_rate_hz <= 0:
            raise ValueError("采样率必须为正数")
        if self.phase_duration_s <= 0:
            raise ValueError(f"姿态阶段时长必须为正数，当前为: {self.phase_duration_s}")

        self._example_skeleton = SkeletonSnapshot.example()
        self.reset()

        logger.info("数据模拟器初始化完成")
        logger.info(
            f"传感器{self.sensor_rate_hz}Hz, 骨架{self.skeleton_rate_hz}Hz, "
            f"姿态阶段{self.phase_duration_s}s × {len(POSTURE_PHASES)}"
        )

    def reset(self) -> None:
        """重置模拟器状态"""
        # 每路流独立的随机数生成器，各生产者线程互不干扰
        self._rngs = {
            stream_id: np.random.default_rng(self.random_seed + stream_id)
            for stream_id in (SENSOR_STREAM_ID, SKELETON_STREAM_ID, MANUAL_STREAM_ID)
        }
        self.items_generated = {SENSOR_STREAM_ID: 0, SKELETON_STREAM_ID: 0, MANUAL_STREAM_ID: 0}
        self.simulation_start_time = None

    # ------------------------------------------------------------------
    # 人体运动模型
    # ------------------------------------------------------------------

    def phase_index(self, t: float) -> int:
        return int(t // self.phase_duration_s) % len(POSTURE_PHASES)

    def body_state(self, t: float) -> Tuple[float, float, float]:
        """t时刻的 (左髋屈曲, 右髋屈曲, 身体朝向)，单位弧度"""
        phase = POSTURE_PHASES[self.phase_index(t)]
        progress = (t % self.phase_duration_s) / self.phase_duration_s

        if phase == StablePosture.SITTING:
            left = right = SITTING_FLEXION
        elif phase == Transition.STANDING_UP:
            left = right = SITTING_FLEXION * (1.0 - progress)
        elif phase == Transition.SITTING_DOWN:
            left = right = SITTING_FLEXION * progress
        elif phase == StablePosture.WALKING:
            swing = self.gait_amplitude * math.sin(2 * math.pi * self.gait_frequency_hz * t)
            left, right = swing, -swing
        else:
            left = right = 0.0

        heading = self.heading_amplitude * math.sin(2 * math.pi * t / self.heading_period_s)
        return left, right, heading

    def _device_quaternion(self, flexion: float, heading: float) -> np.ndarray:
        q_thigh = quaternion_from_axis_angle([1.0, 0.0, 0.0], -flexion)
        q_heading = quaternion_from_axis_angle([0.0, 0.0, 1.0], heading)
        return quaternion_multiply(q_heading, quaternion_multiply(q_thigh, _POCKET_BASE_QUATERNION))

    # ------------------------------------------------------------------
    # 单个数据项生成
    # ------------------------------------------------------------------

    def sensor_reading(self, t: float) -> SensorReading:
        """生成t时刻的手机传感器读数"""
        rng = self._rngs[SENSOR_STREAM_ID]
        left, _, heading = self.body_state(t)

        q = self._device_quaternion(left, heading)
        q = q + rng.normal(0.0, self.noise_std, size=4)
        q = q / np.linalg.norm(q)

        dt = 1.0 / self.sensor_rate_hz
        left_prev, _, heading_prev = self.body_state(max(0.0, t - dt))
        rotation_rate = np.array([(left - left_prev) / dt, 0.0, (heading - heading_prev) / dt])
        rotation_rate += rng.normal(0.0, self.noise_std, size=3)

        gravity = quaternion_to_matrix(q).T @ np.array([0.0, 0.0, -GRAVITY])
        linear_acceleration = rng.normal(0.0, self.noise_std * 10, size=3)
        heading_deg = math.degrees(heading) % 360.0

        values = np.concatenate([
            q,
            linear_acceleration,
            rotation_rate,
            gravity,
            linear_acceleration + gravity,
            [heading_deg, heading_deg, 5.0],
            np.zeros(3),
            [0.0],
        ])
        self.items_generated[SENSOR_STREAM_ID] += 1
        return SensorReading.from_sensor_values(values)

    def skeleton_snapshot(self, t: float) -> SkeletonSnapshot:
        """生成t时刻的骨架快照"""
        rng = self._rngs[SKELETON_STREAM_ID]
        left, right, heading = self.body_state(t)
        skeleton = self._example_skeleton.clone()

        for side, flexion in (('left', left), ('right', right)):
            hip_name, lower_joints = _LEG_JOINTS[side]
            hip = skeleton.joint(hip_name)
            # 绕髋关节的左右轴转动，膝盖向相机方向（-z）抬起
            c, s = math.cos(flexion), math.sin(flexion)
            rotation = np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])
            for name in lower_joints:
                i = skeleton.joint_index(name)
                skeleton.positions[i] = hip + rotation @ (skeleton.positions[i] - hip)

        # 整个身体绕过HipCenter的竖直轴转向
        center = skeleton.joint('HipCenter')
        c, s = math.cos(heading), math.sin(heading)
        rotation = np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])
        skeleton.positions = (skeleton.positions - center) @ rotation.T + center
        skeleton.positions += rng.normal(0.0, self.noise_std, size=skeleton.positions.shape)

        self.items_generated[SKELETON_STREAM_ID] += 1
        return skeleton

    def manual_annotation(self, t: float) -> ManualAnnotation:
        """生成t时刻所处姿态阶段的人工标注"""
        index = self.phase_index(t)
        annotation = ManualAnnotation(
            body_posture=Posture(POSTURE_PHASES[index]),
            next_posture=Posture(POSTURE_PHASES[(index + 1) % len(POSTURE_PHASES)]),
        )
        self.items_generated[MANUAL_STREAM_ID] += 1
        return annotation

    # ------------------------------------------------------------------
    # 数据流
    # ------------------------------------------------------------------

    def _event_times(self, stream_id: int, duration_s: float) -> List[float]:
        if stream_id == SENSOR_STREAM_ID:
            rate = self.sensor_rate_hz
        elif stream_id == SKELETON_STREAM_ID:
            rate = self.skeleton_rate_hz
        elif stream_id == MANUAL_STREAM_ID:
            # 人工标注只在姿态阶段切换时发出
            rate = 1.0 / self.phase_duration_s
        else:
            raise ValueError(f"无效的流编号: {stream_id}")
        count = int(math.ceil(duration_s * rate - 1e-9))
        return [k / rate for k in range(count)]

    def _make_item(self, stream_id: int, t: float) -> Any:
        if stream_id == SENSOR_STREAM_ID:
            return self.sensor_reading(t)
        if stream_id == SKELETON_STREAM_ID:
            return self.skeleton_snapshot(t)
        return self.manual_annotation(t)

    def generate_session(
        self,
        duration_s: float,
        stream_ids: Sequence[int] = (SENSOR_STREAM_ID, SKELETON_STREAM_ID, MANUAL_STREAM_ID)
    ) -> List[Event]:
        """生成一段会话的全部数据项（不按实时节奏）

        同一时刻的数据项中，次流排在主流之前，使主流触发时能拿到它们。

        Returns:
            按时间排序的 (时间戳秒, 流编号, 数据项) 列表
        """
        if duration_s <= 0:
            raise ValueError(f"会话时长必须为正数，当前为: {duration_s}")

        schedule = sorted(
            ((t, stream_id) for stream_id in stream_ids for t in self._event_times(stream_id, duration_s)),
            key=lambda event: (event[0], -event[1])
        )
        events = [(t, stream_id, self._make_item(stream_id, t)) for t, stream_id in schedule]
        logger.info(f"生成会话数据: {duration_s}s, {len(events)}个数据项")
        return events

    def simulate_realtime_stream(
        self,
        stream_ids: Sequence[int] = (SENSOR_STREAM_ID, SKELETON_STREAM_ID, MANUAL_STREAM_ID),
        duration_s: float = 10.0
    ) -> Iterator[Tuple[int, Any]]:
        """按真实时间节奏发出数据项

        Yields:
            (流编号, 数据项)
        """
        schedule = sorted(
            ((t, stream_id) for stream_id in stream_ids for t in self._event_times(stream_id, duration_s)),
            key=lambda event: (event[0], -event[1])
        )
        logger.info(f"开始模拟实时数据流: 流{list(stream_ids)}, {duration_s}s")
        start_time = time.monotonic()
        if self.simulation_start_time is None:
            self.simulation_start_time = start_time

        try:
            for t, stream_id in schedule:
                sleep_time = start_time + t - time.monotonic()
                if sleep_time > 0:
                    time.sleep(sleep_time)
                yield stream_id, self._make_item(stream_id, t)
        except KeyboardInterrupt:
            logger.info("数据流模拟被用户中断")

    def get_statistics(self) -> Dict[str, Any]:
        """获取模拟器统计信息"""
        elapsed_time = 0.0
        if self.simulation_start_time is not None:
            elapsed_time = time.monotonic() - self.simulation_start_time
        total = sum(self.items_generated.values())

        return {
            "items_generated": dict(self.items_generated),
            "total_items": total,
            "elapsed_time": elapsed_time,
            "items_per_second": total / elapsed_time if elapsed_time > 0 else 0,
            "config": {
                "sensor_rate_hz": self.sensor_rate_hz,
                "skeleton_rate_hz": self.skeleton_rate_hz,
                "phase_duration_s": self.phase_duration_s,
                "random_seed": self.random_seed,
            }
        }
