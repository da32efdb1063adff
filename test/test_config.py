#!/usr/bin/env python3
"""
测试配置文件功能
验证配置文件中的各项是否正确校验、补全并影响切片行为
"""

import json
import os
import sys
from pathlib import Path

import pytest

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from parser.config_parser import ConfigParser, SlicerConfig
from parser.errors import ConfigError
from slicer import BenchmarkExtractor

DATA_DIR = Path(__file__).parent / "data"


def write_config(directory: Path, config) -> Path:
    config_path = directory / "slicer_config.json"
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
    return config_path


def test_defaults_are_filled_in(tmp_path):
    parser = ConfigParser(str(write_config(tmp_path, {})))
    config = parser.to_config()
    print(parser.get_config_summary_text())
    assert config.language == 'auto'
    assert config.emit_includes is True
    assert config.emit_header_comment is True
    assert config.prune_unreferenced is False
    assert config.stdlib_names == SlicerConfig().stdlib_names


def test_relative_output_dir_is_relative_to_config_file(tmp_path):
    parser = ConfigParser(str(write_config(tmp_path, {'output_dir': 'out'})))
    assert parser.get_output_dir() == os.path.abspath(str(tmp_path / 'out'))
    assert parser.to_config().output_dir == parser.get_output_dir()


def test_absolute_output_dir_is_kept(tmp_path):
    target = tmp_path / "elsewhere"
    parser = ConfigParser(str(write_config(tmp_path, {'output_dir': str(target)})))
    assert parser.get_output_dir() == str(target)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        ConfigParser(str(tmp_path / "missing.json"))


def test_malformed_json(tmp_path):
    config_path = tmp_path / "broken.json"
    config_path.write_text('{"language": ', encoding='utf-8')
    with pytest.raises(ConfigError):
        ConfigParser(str(config_path))


def test_top_level_must_be_object(tmp_path):
    with pytest.raises(ConfigError):
        ConfigParser(str(write_config(tmp_path, ["c"])))


@pytest.mark.parametrize("config", [
    {'language': 'rust'},
    {'emit_includes': 'yes'},
    {'stdlib_names': 'printf'},
    {'stdlib_names': ['printf', 3]},
    {'output_dir': 7},
    {'skip_directories': ['build']},
])
def test_invalid_values_are_rejected(tmp_path, config):
    with pytest.raises(ConfigError):
        ConfigParser(str(write_config(tmp_path, config)))


def test_resolve_language():
    assert SlicerConfig().resolve_language('widget.cpp') == 'cpp'
    assert SlicerConfig().resolve_language('widget.hpp') == 'cpp'
    assert SlicerConfig().resolve_language('widget.c') == 'c'
    assert SlicerConfig().resolve_language(None) == 'c'
    assert SlicerConfig(language='cpp').resolve_language('widget.c') == 'cpp'


def test_config_changes_slicing_behaviour(tmp_path):
    """修改配置文件后，标准库名单和输出内容随之变化"""
    source = (DATA_DIR / "several_functions.c").read_text(encoding='utf-8')

    default = BenchmarkExtractor(source)
    result = default.slice(['string_length'])
    assert 'strlen' in result.diagnostics.unresolved_names(stdlib=True)

    config_path = write_config(tmp_path, {
        'stdlib_names': [],
        'emit_includes': False,
    })
    configured = BenchmarkExtractor(source, ConfigParser(str(config_path)).to_config())
    result = configured.slice(['string_length'])
    assert result.diagnostics.unresolved_names(stdlib=False) == ['size_t', 'strlen']
    assert result.diagnostics.unresolved_names(stdlib=True) == []
    assert '#include' not in configured.render(result)
