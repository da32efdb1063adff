#!/usr/bin/env python3
"""
语法检查模块

用 tree-sitter 解析切片输出，检查其中是否有语法错误
"""

from typing import List, Tuple

import tree_sitter_c as tsc
import tree_sitter_cpp as tscpp
from tree_sitter import Language, Parser


class SyntaxChecker:
    """基于 tree-sitter 的语法检查器"""

    def __init__(self, language: str = "c"):
        """
        初始化检查器
        Args:
            language: 编程语言 ("c" 或 "cpp")
        """
        if language == "c":
            self.language = Language(tsc.language())
        elif language == "cpp":
            self.language = Language(tscpp.language())
        else:
            raise ValueError(f"Unsupported language: {language}")

        self.parser = Parser(self.language)
        self.language_name = language

    def parse_code(self, code: str):
        """解析代码"""
        tree = self.parser.parse(code.encode('utf-8', errors='surrogateescape'))
        return tree.root_node

    def has_errors(self, code: str) -> bool:
        """检查语法错误"""
        return self.parse_code(code).has_error

    def error_locations(self, code: str) -> List[Tuple[int, int]]:
        """返回所有 ERROR / MISSING 节点的 (行, 列)，行列从1开始"""
        locations = []

        def traverse(node):
            if node.type == 'ERROR' or node.is_missing:
                row, column = node.start_point
                locations.append((row + 1, column + 1))
                return
            for child in node.children:
                traverse(child)

        traverse(self.parse_code(code))
        return locations
