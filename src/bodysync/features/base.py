# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""特征集基类"""

from abc import ABC, abstractmethod
from typing import Dict, Tuple, TypeVar

import numpy as np

F = TypeVar('F', bound='FeatureSet')


class FeatureSet(ABC):
    """特征集基类

    子类以定长数值向量表示自身，满足多路复用器的 Multiplexable 协议。
    """

    num_values: int = 0
    value_names: Tuple[str, ...] = ()

    def extract_values(self) -> np.ndarray:
        """导出数值向量 (num_values,)"""
        return np.zeros(self.num_values)

    def inject_values(self, values: np.ndarray) -> None:
        """从数值向量恢复（默认无数值可恢复）"""
        return None

    @abstractmethod
    def clone(self: F) -> F:
        pass

    def _clone_by_values(self: F) -> F:
        new_obj = type(self)()
        new_obj.inject_values(self.extract_values())
        return new_obj

    def as_dict(self) -> Dict[str, float]:
        """按名称导出数值，用于日志记录"""
        return {name: float(v) for name, v in zip(self.value_names, self.extract_values())}

    def _check_length(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.num_values,):
            raise ValueError(
                f"{type(self).__name__}数值长度不匹配: 期望{self.num_values}, 收到{values.shape}"
            )
        return values


def value_property(index: int, doc: str = ''):
    """把存放在 self.values[index] 的数值暴露为属性"""

    def getter(self) -> float:
        return float(self.values[index])

    def setter(self, value: float) -> None:
        self.values[index] = value

    return property(getter, setter, doc=doc)
