"""配置管理模块：YAML配置文件 + 命令行 --set 覆写 + 合法性校验"""

import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..core.interpolation import InterpolationMethod

DEFAULT_CONFIG_PATH = 'configs/bodysync_config.yaml'

REQUIRED_SECTIONS = ('multiplexer', 'analyzer', 'learner', 'simulator', 'runtime', 'logging')
RUNTIME_MODES = ('offline', 'realtime')


def load_config(yaml_path: str | Path) -> Dict[str, Any]:
    """读取YAML配置文件，空文件视为空配置"""
    with open(yaml_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"配置文件顶层必须是映射: {yaml_path}")
    return config


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """解析命令行参数

    Args:
        argv: 参数列表，None则读取sys.argv

    Returns:
        含 config 和 overrides 两个属性的命名空间
    """
    parser = argparse.ArgumentParser(
        description='多流同步与姿态特征提取系统',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  python main.py
  python main.py --config configs/custom.yaml
  python main.py --set runtime.mode=realtime
  python main.py --set analyzer.window_size=64 --set learner.num_learning_samples=500
  python main.py --set multiplexer.interpolation=cubic --set multiplexer.time_offsets_ms.skeleton=-40
        """
    )
    parser.add_argument(
        '--config',
        default=DEFAULT_CONFIG_PATH,
        help=f'配置文件路径 (默认: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--set',
        action='append',
        dest='overrides',
        metavar='KEY=VALUE',
        help='覆写配置项，键用点号分隔层级，可多次使用'
    )
    return parser.parse_args(argv)


def override_config(config: Dict[str, Any], overrides: Optional[List[str]]) -> Dict[str, Any]:
    """把 key.subkey=value 形式的覆写就地合并进配置

    Args:
        config: 配置字典
        overrides: 覆写列表

    Returns:
        同一个配置字典
    """
    for override in overrides or []:
        key_path, sep, value_str = override.partition('=')
        if not sep or not key_path.strip():
            raise ValueError(f"覆写格式错误: {override}，应为 key=value")
        _set_nested_value(config, key_path.strip().split('.'), _parse_value(value_str))
    return config


def _parse_value(value_str: str) -> Any:
    """按YAML标量规则推断类型（bool/int/float/null/str）"""
    try:
        value = yaml.safe_load(value_str)
    except yaml.YAMLError:
        return value_str
    if value is None and value_str.strip().lower() not in ('null', '~'):
        return value_str
    if isinstance(value, str):
        return value.strip('"\'')
    return value


def _set_nested_value(config: Dict[str, Any], keys: List[str], value: Any) -> None:
    node = config
    for depth, key in enumerate(keys[:-1]):
        child = node.setdefault(key, {})
        if not isinstance(child, dict):
            raise ValueError(f"配置项 {'.'.join(keys[:depth + 1])} 不是映射，无法设置子键")
        node = child
    node[keys[-1]] = value


def _require_number(value: Any, name: str, integer: bool = False) -> Any:
    if isinstance(value, bool) or not isinstance(value, int if integer else (int, float)):
        raise ValueError(f"{name} 必须为{'整数' if integer else '数值'}，当前为: {value!r}")
    return value


def validate_config(config: Dict[str, Any]) -> None:
    """检查配置的基本有效性

    Raises:
        ValueError: 缺少必需段或取值无效
    """
    missing = [section for section in REQUIRED_SECTIONS if section not in config]
    if missing:
        raise ValueError(f"配置缺少必需的段: {missing}")

    multiplexer = config['multiplexer']
    InterpolationMethod.from_name(str(multiplexer.get('interpolation', 'none')))
    delay = multiplexer.get('interpolation_delay_ms', 30.0)
    if delay < 0:
        raise ValueError(f"multiplexer.interpolation_delay_ms 不能为负数，当前为: {delay}")

    analyzer = config['analyzer']
    if _require_number(analyzer.get('window_size'), 'analyzer.window_size', integer=True) < 2:
        raise ValueError(f"analyzer.window_size 至少为2，当前为: {analyzer['window_size']}")
    sampling_rate = _require_number(analyzer.get('sampling_rate', 30.0), 'analyzer.sampling_rate')
    if sampling_rate <= 0:
        raise ValueError(f"analyzer.sampling_rate 必须为正数，当前为: {sampling_rate}")

    num_samples = _require_number(
        config['learner'].get('num_learning_samples'), 'learner.num_learning_samples', integer=True
    )
    if num_samples < 1:
        raise ValueError(f"learner.num_learning_samples 必须为正整数，当前为: {num_samples}")

    mode = config['runtime'].get('mode', 'offline')
    if mode not in RUNTIME_MODES:
        raise ValueError(f"runtime.mode 必须为 {RUNTIME_MODES} 之一，当前为: {mode}")


def get_config(config_path: Optional[str] = None, cli_overrides: Optional[List[str]] = None) -> Dict[str, Any]:
    """读取配置文件、应用覆写并校验"""
    config = load_config(config_path or DEFAULT_CONFIG_PATH)
    override_config(config, cli_overrides)
    validate_config(config)
    return config
