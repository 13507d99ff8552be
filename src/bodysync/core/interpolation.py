# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""多项式插值：Neville算法（线性/二次/三次统一实现）"""

from enum import Enum
from typing import Sequence

import numpy as np


class InterpolationMethod(Enum):
    """多路复用器的插值方式，枚举值即插值多项式阶数"""

    NONE = 0
    LINEAR = 1
    QUADRATIC = 2
    CUBIC = 3

    @property
    def order(self) -> int:
        """插值多项式阶数（需要order个历史样本加当前样本）"""
        return self.value

    @property
    def window_size(self) -> int:
        """每路流环形缓冲区的深度：阶数 + 3（留出余量）"""
        return self.value + 3

    @classmethod
    def from_name(cls, name: str) -> 'InterpolationMethod':
        """从配置字符串解析插值方式

        Args:
            name: 'none' / 'linear' / 'quadratic'('square') / 'cubic'

        Returns:
            对应的插值方式
        """
        aliases = {'square': 'quadratic'}
        key = str(name).strip().lower()
        key = aliases.get(key, key)
        for method in cls:
            if method.name.lower() == key:
                return method
        raise ValueError(f"未知的插值方式: {name}")


def neville(
    times: Sequence[float],
    values: np.ndarray,
    target_time: float
) -> np.ndarray:
    """Neville算法：在target_time处求过k个点的k-1次多项式的值

    各点不要求等距。values可以是一维 (k,) 或二维 (k, m)，二维时对每一列
    独立插值（同一组时间戳），复杂度 O(k² · m)。

    Args:
        times: k个采样时间戳，两两不同
        values: 对应的采样值 (k,) 或 (k, m)
        target_time: 目标时间

    Returns:
        插值结果，标量形状 () 或 (m,)
    """
    xi = np.asarray(times, dtype=np.float64)
    f = np.array(values, dtype=np.float64, copy=True)

    if xi.ndim != 1 or xi.shape[0] == 0:
        raise ValueError("插值至少需要一个采样点")
    if f.shape[0] != xi.shape[0]:
        raise ValueError(
            f"采样点数量不匹配: 时间戳{xi.shape[0]}个, 数值{f.shape[0]}个"
        )
    if np.unique(xi).shape[0] != xi.shape[0]:
        raise ValueError("插值采样点的时间戳必须两两不同")

    n = xi.shape[0] - 1
    for m in range(1, n + 1):
        for i in range(n - m + 1):
            f[i] = ((target_time - xi[i + m]) * f[i] + (xi[i] - target_time) * f[i + 1]) \
                / (xi[i] - xi[i + m])

    return f[0]

