# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
监督学习器

先累积固定数量的（响应, 回归量）样本，达到数量后对每个响应拟合一个
带截距的最小二乘线性模型，之后对新的回归量输出预测值。
"""

import logging
from typing import Any, Dict, Optional, Sequence

import numpy as np
import torch

logger = logging.getLogger(__name__)


class SupervisedLearner:
    """
    线性回归学习器

    未训练状态下feed()收集样本并原样返回响应值；样本数达到
    num_learning_samples后的下一次feed()触发拟合，之后feed()返回预测值。

    Args:
        num_learning_samples: 切换到已训练状态前收集的样本数
        coefficients: 已训练模型的系数 (num_responses, 1 + num_regressors)，
            第0列为截距；给出时学习器直接处于已训练状态
    """

    def __init__(
        self,
        num_learning_samples: int = 1000,
        coefficients: Optional[torch.Tensor | np.ndarray] = None
    ):
        if num_learning_samples < 1:
            raise ValueError(f"学习样本数必须为正整数，当前为: {num_learning_samples}")

        self.num_learning_samples = num_learning_samples

        # 学习样本缓存，首次feed时按维度分配
        self.regressors: Optional[torch.Tensor] = None
        self.responses: Optional[torch.Tensor] = None
        self.count = 0

        self.coefficients: Optional[torch.Tensor] = None
        self._trained = False

        if coefficients is not None:
            self.coefficients = torch.as_tensor(coefficients, dtype=torch.float64).clone()
            if self.coefficients.ndim != 2 or self.coefficients.shape[1] < 1:
                raise ValueError(f"系数矩阵形状无效: {tuple(self.coefficients.shape)}")
            self._trained = True

        logger.info(
            f"监督学习器初始化完成，状态: {'已训练' if self._trained else '未训练'}, "
            f"学习样本数: {self.num_learning_samples}"
        )

    @classmethod
    def from_coefficients(cls, coefficients: torch.Tensor | np.ndarray) -> 'SupervisedLearner':
        """由已有系数构建已训练的学习器"""
        return cls(coefficients=coefficients)

    @property
    def is_trained(self) -> bool:
        return self._trained

    def feed(self, responses: Sequence[float], regressors: Sequence[float]) -> np.ndarray:
        """输入一组响应值和回归量

        Args:
            responses: 已知响应值（已训练状态下忽略）
            regressors: 回归量

        Returns:
            已训练时为预测值，否则为原样返回的响应值
        """
        responses_t = torch.as_tensor(np.asarray(responses, dtype=np.float64))
        regressors_t = torch.as_tensor(np.asarray(regressors, dtype=np.float64))

        if self._trained:
            return self.predict(regressors_t)

        if self.regressors is None:
            self.count = 0
            self.regressors = torch.zeros((self.num_learning_samples, regressors_t.shape[0]), dtype=torch.float64)
            self.responses = torch.zeros((self.num_learning_samples, responses_t.shape[0]), dtype=torch.float64)
            logger.debug(
                f"分配学习样本缓存: 回归量{regressors_t.shape[0]}维, 响应{responses_t.shape[0]}维"
            )

        if regressors_t.shape[0] != self.regressors.shape[1] or responses_t.shape[0] != self.responses.shape[1]:
            raise ValueError(
                f"样本维度与首个样本不一致: 回归量{regressors_t.shape[0]}/{self.regressors.shape[1]}, "
                f"响应{responses_t.shape[0]}/{self.responses.shape[1]}"
            )

        if self.count < self.num_learning_samples:
            self.regressors[self.count] = regressors_t
            self.responses[self.count] = responses_t
        else:
            self._fit()

        self.count += 1
        return responses_t.numpy().copy()

    def predict(self, regressors: Sequence[float] | torch.Tensor) -> np.ndarray:
        """用已拟合的系数计算预测值"""
        if not self._trained:
            raise RuntimeError("学习器尚未训练，无法预测")

        regressors_t = torch.as_tensor(regressors, dtype=torch.float64)
        if regressors_t.shape[0] != self.coefficients.shape[1] - 1:
            raise ValueError(
                f"回归量维度不匹配: 期望{self.coefficients.shape[1] - 1}, 收到{regressors_t.shape[0]}"
            )

        predictions = self.coefficients[:, 0] + self.coefficients[:, 1:] @ regressors_t
        return predictions.numpy().copy()

    def _fit(self) -> None:
        """对每个响应拟合带截距的最小二乘模型"""
        design = torch.cat(
            [torch.ones((self.regressors.shape[0], 1), dtype=torch.float64), self.regressors],
            dim=1
        )
        solution = torch.linalg.lstsq(design, self.responses).solution  # (1 + R, K)
        self.coefficients = solution.T.contiguous()
        self._trained = True

        residuals = self.responses - design @ solution
        mse = float((residuals ** 2).mean())
        logger.info(
            f"监督学习器拟合完成 - 样本数: {self.regressors.shape[0]}, "
            f"响应数: {self.responses.shape[1]}, 训练MSE: {mse:.6f}"
        )

        # 拟合后不再需要样本缓存
        self.regressors = None
        self.responses = None

    def get_learning_stats(self) -> Dict[str, Any]:
        """获取学习统计信息"""
        stats = {
            "is_trained": self._trained,
            "num_learning_samples": self.num_learning_samples,
            "samples_seen": self.count,
        }
        if self.coefficients is not None:
            stats["num_responses"] = self.coefficients.shape[0]
            stats["num_regressors"] = self.coefficients.shape[1] - 1
        return stats
