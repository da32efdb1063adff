#!/usr/bin/env python3
"""
配置文件解析器 - 解析切片工具的JSON配置
"""

import json
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from .errors import ConfigError
from .file_extensions import get_file_type
from .keywords import DEFAULT_STDLIB_NAMES

LANGUAGES = ('c', 'cpp', 'auto')


@dataclass
class SlicerConfig:
    """切片配置"""
    language: str = 'auto'
    emit_includes: bool = True
    emit_header_comment: bool = True
    prune_unreferenced: bool = False
    check_syntax: bool = False
    output_dir: str = '.'
    stdlib_names: List[str] = field(default_factory=lambda: list(DEFAULT_STDLIB_NAMES))

    def resolve_language(self, file_path: Optional[str] = None) -> str:
        """language 为 auto 时根据文件扩展名判断，无法判断时按C处理"""
        if self.language != 'auto':
            return self.language
        if file_path and get_file_type(file_path) == 'cpp':
            return 'cpp'
        return 'c'


class ConfigParser:
    """用户配置文件解析器"""

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"配置文件不存在: {self.config_path}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"配置文件格式错误: {e}")

        if not isinstance(config, dict):
            raise ConfigError("配置文件的顶层必须是JSON对象")
        return self.validate(config)

    @staticmethod
    def validate(config: Dict[str, Any]) -> Dict[str, Any]:
        """校验配置项并补全默认值"""
        known = {f.name for f in fields(SlicerConfig)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise ConfigError(f"未知的配置项: {', '.join(unknown)}")

        config = dict(config)
        defaults = SlicerConfig()
        for name in known:
            config.setdefault(name, getattr(defaults, name))

        if config['language'] not in LANGUAGES:
            raise ConfigError(f"language 必须是 {', '.join(LANGUAGES)} 之一，而不是 {config['language']!r}")
        for name in ('emit_includes', 'emit_header_comment', 'prune_unreferenced', 'check_syntax'):
            if not isinstance(config[name], bool):
                raise ConfigError(f"{name} 必须是布尔值")
        if not isinstance(config['output_dir'], str):
            raise ConfigError("output_dir 必须是字符串")
        if not isinstance(config['stdlib_names'], list) or \
                not all(isinstance(n, str) for n in config['stdlib_names']):
            raise ConfigError("stdlib_names 必须是字符串列表")
        return config

    def get_output_dir(self) -> str:
        """获取输出目录；相对路径相对于配置文件所在目录"""
        output_dir = self.config['output_dir']
        if not os.path.isabs(output_dir):
            config_dir = os.path.dirname(os.path.abspath(self.config_path))
            output_dir = os.path.abspath(os.path.join(config_dir, output_dir))
        return output_dir

    def to_config(self) -> SlicerConfig:
        """转换为 SlicerConfig"""
        values = dict(self.config)
        values['output_dir'] = self.get_output_dir()
        return SlicerConfig(**values)

    def get_config_summary_text(self) -> str:
        """获取配置文件摘要文本"""
        summary = "📋 配置文件摘要:\n"
        summary += f"   语言: {self.config['language']}\n"
        summary += f"   输出目录: {self.get_output_dir()}\n"
        summary += f"   输出include: {self.config['emit_includes']}\n"
        summary += f"   删除未引用声明: {self.config['prune_unreferenced']}\n"
        summary += f"   语法检查: {self.config['check_syntax']}"
        return summary
