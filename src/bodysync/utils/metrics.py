"""评估指标：学习器预测与骨架观测值之间的角度误差"""

import math

import numpy as np
import torch


def _as_tensor(values) -> torch.Tensor:
    return torch.as_tensor(np.asarray(values, dtype=np.float64))


def wrap_angle(diff: torch.Tensor) -> torch.Tensor:
    """角度差折算到 [-π, π)"""
    return torch.remainder(diff + math.pi, 2 * math.pi) - math.pi


def compute_angle_mae(
    pred: torch.Tensor,
    target: torch.Tensor,
    mask: torch.Tensor | None = None
) -> torch.Tensor:
    """计算角度平均绝对误差（MAE）

    Args:
        pred: 预测角度 (T, C)
        target: 目标角度 (T, C)
        mask: 有效掩码 (T,)，True表示有效样本

    Returns:
        标量MAE
    """
    diff = torch.abs(wrap_angle(pred - target))
    if mask is not None:
        diff = diff[mask]
    return diff.mean()


def compute_angle_mse(
    pred: torch.Tensor,
    target: torch.Tensor,
    mask: torch.Tensor | None = None
) -> torch.Tensor:
    """计算角度均方误差（MSE）

    Args:
        pred: 预测角度 (T, C)
        target: 目标角度 (T, C)
        mask: 有效掩码 (T,)，True表示有效样本

    Returns:
        标量MSE
    """
    diff = wrap_angle(pred - target)
    if mask is not None:
        diff = diff[mask]
    return (diff ** 2).mean()


def compute_max_absolute_diff(
    pred: torch.Tensor,
    target: torch.Tensor,
    mask: torch.Tensor | None = None
) -> torch.Tensor:
    """计算最大绝对差异"""
    diff = torch.abs(wrap_angle(pred - target))
    if mask is not None:
        diff = diff[mask]
    return torch.max(diff)


def evaluate_predictions(pred, target, mask=None) -> dict[str, float]:
    """评估预测结果

    Args:
        pred: 预测角度 (T, C)，可以是numpy数组或张量
        target: 目标角度 (T, C)
        mask: 有效掩码 (T,)

    Returns:
        指标字典
    """
    pred_t = _as_tensor(pred)
    target_t = _as_tensor(target)
    if pred_t.shape != target_t.shape:
        raise ValueError(f"预测与目标形状不一致: {tuple(pred_t.shape)} vs {tuple(target_t.shape)}")
    mask_t = None if mask is None else torch.as_tensor(np.asarray(mask, dtype=bool))

    if mask_t is not None and not bool(mask_t.any()):
        raise ValueError("没有有效样本可供评估")

    metrics = {
        'mae': compute_angle_mae(pred_t, target_t, mask_t).item(),
        'mse': compute_angle_mse(pred_t, target_t, mask_t).item(),
        'max_diff': compute_max_absolute_diff(pred_t, target_t, mask_t).item(),
    }

    return metrics
