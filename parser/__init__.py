#!/usr/bin/env python3
"""
Parser包 - C/C++源码扫描与顶层声明提取
"""

import logging
import sys

from .config_parser import ConfigParser, SlicerConfig
from .declaration import Declaration, DeclarationKind, FunctionSignature, TranslationUnit
from .declaration_extractor import DeclarationExtractor, extract_declarations
from .errors import (
    AmbiguousDeclarationError, AmbiguousOverloadError, ConfigError, DuplicateDefinitionError,
    ParseError, SlicerError, TargetNotFoundError, UnresolvedExternal
)
from .scanner import ScanResult, Scanner, ScanState, scan
from .tokens import Token, TokenKind


# 版本信息
__version__ = "1.0.0"
__author__ = "Parser Team"

# 公开的API
__all__ = [
    'ConfigParser',
    'SlicerConfig',
    'Declaration',
    'DeclarationKind',
    'FunctionSignature',
    'TranslationUnit',
    'DeclarationExtractor',
    'extract_declarations',
    'AmbiguousDeclarationError',
    'AmbiguousOverloadError',
    'ConfigError',
    'DuplicateDefinitionError',
    'ParseError',
    'SlicerError',
    'TargetNotFoundError',
    'UnresolvedExternal',
    'ScanResult',
    'Scanner',
    'ScanState',
    'scan',
    'Token',
    'TokenKind',
    'setup_logging',
]

# 包的简介
__doc__ = """
Parser包提供切片工具的前两个阶段：

主要功能：
- 词法扫描：注释、字符串/字符字面量（含原始字符串）、预处理行
- 顶层声明提取：函数、struct/union/enum、typedef、宏、全局变量、命名空间
- 函数原型与定义合并，重复定义标记为歧义
- 收集翻译单元中的 #include

使用示例：

1. 扫描源码：
   result = scan(source)
   for token in result.significant():
       print(token)

2. 提取声明：
   unit = extract_declarations(source)
   for decl in unit:
       print(decl.id, decl.kind.value)

   # 按名字（含struct标签、枚举值等别名）查找
   unit.lookup("Node")
"""


def setup_logging(level=logging.INFO, format_string=None):
    """
    配置日志记录

    Args:
        level: 日志级别 (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR)
        format_string: 自定义日志格式字符串
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # 为各阶段的模块设置日志级别
    for name in (__name__.split('.')[0], 'graph', 'slicer', 'analysis', 'tools'):
        logging.getLogger(name).setLevel(level)
