# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""
工具模块

包含配置管理、检查点、TensorBoard日志记录和评估指标等辅助功能。
"""

from .config_manager import get_config, load_config, override_config, parse_args, validate_config
from .checkpoint import create_learner_from_checkpoint, load_learner_checkpoint, save_learner_checkpoint
from .logger import TensorBoardLogger
from .metrics import evaluate_predictions

__all__ = [
    "get_config",
    "load_config",
    "override_config",
    "parse_args",
    "validate_config",
    "create_learner_from_checkpoint",
    "load_learner_checkpoint",
    "save_learner_checkpoint",
    "TensorBoardLogger",
    "evaluate_predictions",
]
