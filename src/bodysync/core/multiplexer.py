# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
多路复用器

将多路独立时钟、独立到达的数据流合并为一路同步数据流。每路流维护一个
环形缓冲区；主流（id最小的流）每到达一个数据项，就取出所有流的最新数据项，
交给调用方提供的打包函数组装成一个合并帧，并通知所有订阅者。
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, Sequence, TypeVar, runtime_checkable

import numpy as np

from .interpolation import InterpolationMethod, neville
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)

TOut = TypeVar('TOut')


@runtime_checkable
class Multiplexable(Protocol):
    """可被多路复用的数据项：暴露定长数值向量并可克隆"""

    num_values: int

    def extract_values(self) -> np.ndarray: ...

    def inject_values(self, values: np.ndarray) -> None: ...

    def clone(self) -> 'Multiplexable': ...


@dataclass
class StreamDescriptor:
    """输入流元数据

    Args:
        stream_id: 流编号（>=0，唯一）
        name: 显示名称
        num_values: 数据项数值向量的声明长度
        time_offset_ms: 固定时间偏移（毫秒），用于补偿已知的固定延迟
        current_index: 环形缓冲区游标，由多路复用器维护
    """
    stream_id: int
    name: str
    num_values: int
    time_offset_ms: float = 0.0
    current_index: int = -1


@dataclass
class BufferEntry:
    """环形缓冲区槽位：时间戳、数据项及其（原始）数值向量"""
    timestamp: Optional[float] = None
    item: Optional[Any] = None
    values: Optional[np.ndarray] = None


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class StreamMultiplexer(Generic[TOut]):
    """
    多流多路复用器

    单写者：同一实例的所有push调用必须串行执行（参见StreamWorker）。
    主流触发输出，次流只提供触发时刻的最新值（后到覆盖先到）。

    Args:
        interpolation: 插值方式
        streams: 输入流描述列表（按声明顺序打包）
        pack: 打包函数，接收各流最新数据项列表（未收到数据的流为None），返回合并帧
        interpolation_delay_ms: 插值目标时间相对最新时间戳的回退量（毫秒）
        clock: 时钟函数，返回毫秒时间戳，None则使用单调时钟
    """

    def __init__(
        self,
        interpolation: InterpolationMethod,
        streams: Sequence[StreamDescriptor],
        pack: Callable[[List[Any]], TOut],
        interpolation_delay_ms: float = 30.0,
        clock: Optional[Callable[[], float]] = None
    ):
        if streams is None or len(streams) == 0:
            raise ValueError("至少需要声明一路输入流")

        ids = [s.stream_id for s in streams]
        if any(stream_id < 0 for stream_id in ids):
            raise ValueError(f"流编号必须大于等于0: {ids}")
        duplicates = sorted({stream_id for stream_id in ids if ids.count(stream_id) > 1})
        if duplicates:
            raise ValueError(f"流编号重复声明: {duplicates}")

        self.interpolation = interpolation
        self.streams: List[StreamDescriptor] = list(streams)
        self.pack = pack
        self.interpolation_delay_ms = interpolation_delay_ms
        self.clock = clock or _monotonic_ms

        self.window_size = interpolation.window_size
        self.primary_stream_id = min(ids)

        # 流编号 -> 缓冲区下标
        self._stream_index: Dict[int, int] = {s.stream_id: i for i, s in enumerate(self.streams)}

        self.ring_buffers: List[RingBuffer[BufferEntry]] = [
            RingBuffer(self.window_size, fill=BufferEntry) for _ in self.streams
        ]
        for descriptor in self.streams:
            descriptor.current_index = -1

        self._observers: List[Callable[[TOut], None]] = []

        # 统计信息
        self.push_counts: Dict[int, int] = {stream_id: 0 for stream_id in ids}
        self.frames_emitted = 0

        logger.info(
            f"多路复用器初始化完成: {len(self.streams)}路流, 主流id={self.primary_stream_id}, "
            f"插值方式={interpolation.name}, 缓冲深度={self.window_size}"
        )

    def subscribe(self, observer: Callable[[TOut], None]) -> None:
        """注册合并帧订阅者

        订阅者之间互不影响：某个订阅者抛出的异常只记录日志，不影响其他订阅者和push的返回值。
        """
        self._observers.append(observer)

    def unsubscribe(self, observer: Callable[[TOut], None]) -> None:
        """注销合并帧订阅者"""
        self._observers.remove(observer)

    def push(self, stream_id: int, item: Any) -> Optional[TOut]:
        """推入一个数据项

        Args:
            stream_id: 所属流编号
            item: 数据项（插值模式下需满足Multiplexable）

        Returns:
            若为主流则返回合并帧，否则None
        """
        index = self._stream_index.get(stream_id)
        if index is None:
            raise ValueError(f"无效的流编号: {stream_id}")

        descriptor = self.streams[index]
        ring = self.ring_buffers[index]
        timestamp = self.clock() + descriptor.time_offset_ms

        if self.interpolation is InterpolationMethod.NONE:
            entry = ring[ring.advance()]
            entry.timestamp = timestamp
            entry.item = item
            entry.values = None
        else:
            # 先校验再写入，校验失败时不改变流状态
            values = item.extract_values()
            if values is None:
                raise ValueError(f"无法从数据项中提取数值: 流{stream_id}")
            values = np.asarray(values, dtype=np.float64)
            if values.shape[0] != descriptor.num_values:
                raise ValueError(
                    f"数值向量长度不匹配: 流{stream_id}期望{descriptor.num_values}, 收到{values.shape[0]}"
                )

            entry = ring[ring.advance()]
            entry.timestamp = timestamp
            entry.item = item.clone()
            entry.values = values.copy()

            self._interpolate(ring, entry)

        descriptor.current_index = ring.write_ptr
        self.push_counts[stream_id] += 1

        if stream_id != self.primary_stream_id:
            return None

        to_pack = [buffer.latest().item for buffer in self.ring_buffers]
        frame = self.pack(to_pack)
        self.frames_emitted += 1

        for observer in list(self._observers):
            try:
                observer(frame)
            except Exception:
                logger.exception(f"订阅者 {observer!r} 处理第{self.frames_emitted}帧失败")

        return frame

    def _interpolate(self, ring: RingBuffer[BufferEntry], entry: BufferEntry) -> None:
        """用最近order+1个样本做Neville插值，并写回数据项

        历史样本不足order个（或时间戳重复）时保持原始数值不变。
        缓冲区中保留原始数值，插值结果只注入到对外暴露的数据项。
        """
        order = self.interpolation.order
        history = [ring.previous(k) for k in range(order, 0, -1)]

        if any(prev.timestamp is None or prev.values is None for prev in history):
            logger.debug(f"历史样本不足{order}个，跳过插值")
            return

        points = history + [entry]
        times = [p.timestamp for p in points]
        if len(set(times)) != len(times):
            logger.debug("插值采样点时间戳重复，跳过插值")
            return

        target_time = entry.timestamp - self.interpolation_delay_ms
        interpolated = neville(times, np.stack([p.values for p in points]), target_time)
        entry.item.inject_values(interpolated)

    def latest_items(self) -> List[Any]:
        """获取各流当前最新数据项（按声明顺序）"""
        return [buffer.latest().item for buffer in self.ring_buffers]

    def get_statistics(self) -> Dict[str, Any]:
        """获取多路复用器统计信息"""
        return {
            "interpolation": self.interpolation.name,
            "window_size": self.window_size,
            "primary_stream_id": self.primary_stream_id,
            "frames_emitted": self.frames_emitted,
            "push_counts": dict(self.push_counts),
            "streams": {s.stream_id: s.name for s in self.streams},
        }
