from pathlib import Path

import pytest
import yaml

from bodysync.utils.config_manager import (
    _parse_value,
    get_config,
    load_config,
    override_config,
    parse_args,
    validate_config,
)

CONFIG_PATH = Path(__file__).parents[1] / 'configs' / 'bodysync_config.yaml'


@pytest.fixture
def config():
    return load_config(str(CONFIG_PATH))


def test_default_config_is_valid(config):
    validate_config(config)

    assert config['analyzer']['window_size'] == 32
    assert config['multiplexer']['interpolation'] == 'none'


def test_parse_value():
    assert _parse_value('true') is True
    assert _parse_value('False') is False
    assert _parse_value('12') == 12
    assert _parse_value('0.5') == 0.5
    assert _parse_value('"cubic"') == 'cubic'
    assert _parse_value('/tmp/logs') == '/tmp/logs'
    assert _parse_value('') == ''


def test_override_nested_and_new_keys(config):
    override_config(config, ['analyzer.window_size=64', 'runtime.mode=realtime', 'extra.flag=true'])

    assert config['analyzer']['window_size'] == 64
    assert config['runtime']['mode'] == 'realtime'
    assert config['extra'] == {'flag': True}


def test_override_requires_equals(config):
    with pytest.raises(ValueError):
        override_config(config, ['analyzer.window_size'])


def test_missing_section(config):
    del config['learner']

    with pytest.raises(ValueError):
        validate_config(config)


@pytest.mark.parametrize('override', [
    'multiplexer.interpolation=spline',
    'multiplexer.interpolation_delay_ms=-1',
    'analyzer.window_size=1',
    'analyzer.sampling_rate=0',
    'learner.num_learning_samples=0',
    'runtime.mode=batch',
])
def test_invalid_values(config, override):
    override_config(config, [override])

    with pytest.raises(ValueError):
        validate_config(config)


def test_get_config_from_file(tmp_path, config):
    path = tmp_path / 'custom.yaml'
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(config, f)

    loaded = get_config(str(path), ['multiplexer.interpolation=cubic'])

    assert loaded['multiplexer']['interpolation'] == 'cubic'


def test_parse_args():
    args = parse_args(['--config', 'a.yaml', '--set', 'x=1', '--set', 'y.z=2'])

    assert args.config == 'a.yaml'
    assert args.overrides == ['x=1', 'y.z=2']
    assert parse_args([]).overrides is None


def test_override_through_scalar_fails(config):
    with pytest.raises(ValueError):
        override_config(config, ['analyzer.window_size.inner=1'])


def test_non_numeric_window_size(config):
    override_config(config, ['analyzer.window_size=large'])

    with pytest.raises(ValueError):
        validate_config(config)
