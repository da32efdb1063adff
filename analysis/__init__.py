"""
切片输出检查模块

用 tree-sitter 对生成的切片做语法检查
"""

from .base import SyntaxChecker

__all__ = [
    'SyntaxChecker',
]
