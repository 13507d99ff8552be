# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""环形缓冲器：定长、下标回绕的通用存储"""

from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar('T')


class RingBuffer(Generic[T]):
    """定长环形缓冲器

    构造时一次性分配全部槽位，之后不再扩容。写指针始终指向最新写入的槽位，
    向前移动并回绕覆盖最旧的数据。多路复用器（每路流一个）和序列分析器
    （每条序列一个）共用此结构。

    Args:
        max_samples: 缓冲区容量（槽位数）
        fill: 槽位初始值工厂，None则所有槽位初始为None
    """

    def __init__(self, max_samples: int, fill: Optional[Callable[[], T]] = None):
        if max_samples < 1:
            raise ValueError(f"缓冲区容量必须为正整数，当前为: {max_samples}")

        self.max_samples = max_samples
        self._fill = fill

        self.buffer: List[Optional[T]] = [fill() if fill else None for _ in range(max_samples)]
        self.write_ptr = -1  # 写指针，-1表示尚未写入
        self.total_samples = 0  # 总接收样本数

    def advance(self) -> int:
        """写指针前移一格（回绕）

        槽位内容保持不变，调用方可以原地改写该槽位以避免重新分配。

        Returns:
            新的写指针位置
        """
        self.write_ptr = (self.write_ptr + 1) % self.max_samples
        self.total_samples += 1
        return self.write_ptr

    def append(self, item: T) -> int:
        """追加新元素，覆盖最旧的槽位

        Args:
            item: 新元素

        Returns:
            写入位置
        """
        index = self.advance()
        self.buffer[index] = item
        return index

    def latest(self) -> Optional[T]:
        """获取最新元素（尚未写入时返回对应槽位的初始值）"""
        return self.previous(0)

    def previous(self, steps: int) -> Optional[T]:
        """获取最新元素之前第steps个元素

        Args:
            steps: 回溯步数，0表示最新元素

        Returns:
            对应槽位的元素
        """
        if not 0 <= steps < self.max_samples:
            raise ValueError(f"回溯步数超出范围: {steps} (容量{self.max_samples})")
        return self.buffer[(self.write_ptr - steps) % self.max_samples]

    def window(self, length: int) -> List[Optional[T]]:
        """按时间顺序（旧→新）读取最近length个槽位

        缓冲区未写满时，窗口前部为槽位初始值。

        Args:
            length: 窗口长度

        Returns:
            窗口内元素列表
        """
        if not 0 < length <= self.max_samples:
            raise ValueError(f"窗口长度超出范围: {length} (容量{self.max_samples})")

        start_ptr = self.start_index(length)
        return [self.buffer[(start_ptr + i) % self.max_samples] for i in range(length)]

    def start_index(self, length: int) -> int:
        """长度为length的窗口在缓冲区中的起始位置"""
        return (self.write_ptr - length + 1) % self.max_samples

    def __getitem__(self, index: int) -> Optional[T]:
        return self.buffer[index % self.max_samples]

    def __setitem__(self, index: int, item: T) -> None:
        self.buffer[index % self.max_samples] = item

    def __len__(self) -> int:
        """返回已写入的有效元素数"""
        return min(self.total_samples, self.max_samples)

    def is_full(self) -> bool:
        """检查缓冲区是否已写满一轮"""
        return self.total_samples >= self.max_samples

    def reset(self) -> None:
        """重置缓冲区状态"""
        self.buffer = [self._fill() if self._fill else None for _ in range(self.max_samples)]
        self.write_ptr = -1
        self.total_samples = 0
