"""Checkpoint：保存和加载监督学习器的回归系数"""

from pathlib import Path
from typing import Any, Dict

import torch

from ..core.supervised_learner import SupervisedLearner


def save_learner_checkpoint(
    learner: SupervisedLearner,
    ckpt_path: str | Path,
    metadata: Dict[str, Any] | None = None
) -> Path:
    """保存已训练学习器的系数

    Args:
        learner: 已训练的学习器
        ckpt_path: checkpoint文件路径
        metadata: 附加信息（如配置快照）

    Returns:
        写入的文件路径
    """
    if not learner.is_trained:
        raise RuntimeError("学习器尚未训练，没有可保存的系数")

    ckpt_path = Path(ckpt_path)
    ckpt_path.parent.mkdir(parents=True, exist_ok=True)

    torch.save({
        'coefficients': learner.coefficients.clone(),
        'num_learning_samples': learner.num_learning_samples,
        'metadata': metadata or {},
    }, ckpt_path)

    return ckpt_path


def load_learner_checkpoint(ckpt_path: str | Path) -> Dict[str, Any]:
    """加载checkpoint字典

    Args:
        ckpt_path: checkpoint文件路径

    Returns:
        包含 'coefficients' 等键的字典
    """
    ckpt_path = Path(ckpt_path)
    if not ckpt_path.exists():
        raise FileNotFoundError(f"Checkpoint文件不存在: {ckpt_path}")

    checkpoint = torch.load(ckpt_path, map_location='cpu', weights_only=False)

    if 'coefficients' not in checkpoint:
        raise ValueError(f"Checkpoint中缺少 'coefficients': {ckpt_path}")

    return checkpoint


def create_learner_from_checkpoint(ckpt_path: str | Path) -> SupervisedLearner:
    """从checkpoint创建已训练的学习器"""
    checkpoint = load_learner_checkpoint(ckpt_path)
    return SupervisedLearner.from_coefficients(checkpoint['coefficients'])
