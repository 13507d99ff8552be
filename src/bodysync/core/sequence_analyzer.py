# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
序列分析器

对若干条并行的数值序列维护滑动窗口，每接收一组新值，计算窗口内的
时域统计特征（均值、标准差、两两相关系数）和频域特征（主频率）。
"""

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """单次分析结果

    Attributes:
        current_values: 本次输入值 (num_sequences,)
        means: 各序列窗口均值 (num_sequences,)
        std_devs: 各序列窗口样本标准差 (num_sequences,)
        correlation: 相关系数矩阵 (num_sequences, num_sequences)，对称，对角线为1
        dominant_frequencies: 各序列能量最大的若干个频率 (num_sequences, num_peaks)，按能量降序
    """
    current_values: np.ndarray
    means: np.ndarray
    std_devs: np.ndarray
    correlation: np.ndarray
    dominant_frequencies: np.ndarray

    @property
    def energies(self) -> np.ndarray:
        """各序列的主频率（能量最大的频率桶）"""
        return self.dominant_frequencies[:, 0]


class SequenceAnalyzer:
    """
    滑动窗口序列分析器

    每条序列一个长度为 2 × window_size 的环形缓冲区，单一游标只向前移动，
    窗口起点由取模运算得到。缓冲区未写满前，窗口前部按0计算。

    Args:
        num_sequences: 序列条数
        window_size: 窗口长度（样本数）
        sampling_rate: 采样率（Hz），用于把频率桶换算为频率
        num_peaks: 每条序列报告的主频率个数
    """

    def __init__(
        self,
        num_sequences: int,
        window_size: int,
        sampling_rate: float = 30.0,
        num_peaks: int = 3
    ):
        if num_sequences < 1:
            raise ValueError(f"序列条数必须为正整数，当前为: {num_sequences}")
        if window_size < 2:
            raise ValueError(f"窗口长度至少为2，当前为: {window_size}")
        if num_peaks < 1:
            raise ValueError(f"主频率个数必须为正整数，当前为: {num_peaks}")

        self.num_sequences = num_sequences
        self.window_size = window_size
        self.sampling_rate = sampling_rate
        self.num_peaks = num_peaks
        self.ring_buffer_size = window_size * 2

        self.ring_buffers: List[RingBuffer[float]] = [
            RingBuffer(self.ring_buffer_size, fill=float) for _ in range(num_sequences)
        ]

        logger.debug(
            f"序列分析器初始化: {num_sequences}条序列, 窗口{window_size}, 采样率{sampling_rate}Hz"
        )

    @property
    def pointer(self) -> int:
        """最新样本在环形缓冲区中的位置"""
        return self.ring_buffers[0].write_ptr

    @property
    def start_pointer(self) -> int:
        """当前窗口在环形缓冲区中的起始位置"""
        return self.ring_buffers[0].start_index(self.window_size)

    def next_values(self, *values: float) -> AnalysisResult:
        """输入下一组值（每条序列一个），返回当前窗口的特征

        Args:
            *values: 新值，数量必须等于序列条数

        Returns:
            本次分析结果（调用方独占）
        """
        if len(values) != self.num_sequences:
            raise ValueError(
                f"输入值数量与序列条数不匹配: 期望{self.num_sequences}, 收到{len(values)}"
            )
        current = np.asarray(values, dtype=np.float64)
        if np.isnan(current).any():
            raise ValueError(f"输入值包含NaN: {values}")

        for ring, value in zip(self.ring_buffers, current):
            ring.append(float(value))

        windows = self.current_windows()
        means, std_devs, correlation = self._time_statistical_features(windows)
        dominant_frequencies = self._frequency_features(windows)

        return AnalysisResult(
            current_values=current,
            means=means,
            std_devs=std_devs,
            correlation=correlation,
            dominant_frequencies=dominant_frequencies,
        )

    def current_windows(self) -> np.ndarray:
        """当前窗口数据 (num_sequences, window_size)，按时间顺序"""
        return np.array([ring.window(self.window_size) for ring in self.ring_buffers], dtype=np.float64)

    def _time_statistical_features(self, windows: np.ndarray):
        n = self.window_size
        means = windows.sum(axis=1) / n

        deviations = windows - means[:, None]
        std_devs = np.sqrt((deviations * deviations).sum(axis=1) / (n - 1))

        correlation = np.eye(self.num_sequences)
        for i in range(self.num_sequences - 1):
            for j in range(i + 1, self.num_sequences):
                correlation[i, j] = correlation[j, i] = self._correlation_coefficient(
                    deviations[i], deviations[j], std_devs[i], std_devs[j]
                )

        return means, std_devs, correlation

    def _correlation_coefficient(self, dev_x: np.ndarray, dev_y: np.ndarray, sd_x: float, sd_y: float) -> float:
        """数值稳定的Pearson相关系数：Σ((x-mx)/sx · (y-my)/sy) / (N-1)

        任一序列在窗口内为常数（标准差为0）时相关系数无定义，按0处理。
        """
        if sd_x == 0.0 or sd_y == 0.0:
            return 0.0
        r = float(np.sum((dev_x / sd_x) * (dev_y / sd_y)) / (self.window_size - 1))
        # 浮点误差可能略微越界
        return min(1.0, max(-1.0, r))

    def _frequency_features(self, windows: np.ndarray) -> np.ndarray:
        """每条序列取能量最大的num_peaks个频率桶，换算为频率

        丢弃直流分量，只取正频率一半（实信号频谱对称）。
        可用频率桶少于num_peaks时，剩余位置报告0。
        """
        n = self.window_size
        num_buckets = max(0, n // 2 - 1)
        result = np.zeros((self.num_sequences, self.num_peaks))

        for i in range(self.num_sequences):
            spectrum = np.fft.fft(windows[i].astype(np.complex128))
            energy_density = np.abs(spectrum[1:1 + num_buckets]) ** 2

            for peak in range(min(self.num_peaks, num_buckets)):
                index = int(np.argmax(energy_density))
                result[i, peak] = (index + 1) / n * self.sampling_rate
                energy_density[index] = -math.inf

        return result

    def reset(self) -> None:
        """重置所有序列缓冲区"""
        for ring in self.ring_buffers:
            ring.reset()
