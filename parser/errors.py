#!/usr/bin/env python3
"""
错误与诊断类型

致命错误（ParseError、TargetNotFoundError、ConfigError）直接抛出；
非致命情况（重复声明、重复的函数定义、重载歧义、未解析的外部符号）的异常实例作为诊断记录保存，
由调用者在结果中统一查看。
"""

from typing import List, Optional, Tuple


class SlicerError(Exception):
    """切片工具所有错误的基类"""


class ParseError(SlicerError):
    """源码无法扫描或大括号不匹配，对整个翻译单元是致命的"""

    def __init__(self, message: str, offset: int):
        super().__init__(f"{message} (offset {offset})")
        self.message = message
        self.offset = offset


class ConfigError(SlicerError):
    """配置文件错误"""


class TargetNotFoundError(SlicerError):
    """请求的目标声明不存在，仅对该目标致命"""

    def __init__(self, name: str, signature: Optional[str] = None):
        if signature is None:
            message = f"目标声明 '{name}' 未找到"
        else:
            message = f"目标声明 '{name}({signature})' 未找到"
        super().__init__(message)
        self.name = name
        self.signature = signature


class AmbiguousDeclarationError(SlicerError):
    """同名的非函数声明被重复定义（例如预处理器分支中的重复定义）"""

    def __init__(self, name: str, declaration_ids: List[str]):
        super().__init__(f"声明 '{name}' 被重复定义: {', '.join(declaration_ids)}")
        self.name = name
        self.declaration_ids = list(declaration_ids)

    def key(self) -> Tuple:
        return (self.name, tuple(self.declaration_ids))


class DuplicateDefinitionError(SlicerError):
    """同一签名的函数有多个不同的定义（例如 #if/#else 两个分支各有一份）"""

    def __init__(self, name: str, declaration_ids: List[str]):
        super().__init__(f"函数 '{name}' 有多个定义: {', '.join(declaration_ids)}")
        self.name = name
        self.declaration_ids = list(declaration_ids)

    def key(self) -> Tuple:
        return (self.name, tuple(self.declaration_ids))


class AmbiguousOverloadError(SlicerError):
    """一个引用同时匹配多个函数重载"""

    def __init__(self, name: str, candidate_ids: List[str], referenced_by: Optional[str] = None):
        where = f"（引用自 {referenced_by}）" if referenced_by else ""
        super().__init__(f"'{name}' 匹配多个重载{where}: {', '.join(candidate_ids)}")
        self.name = name
        self.candidate_ids = list(candidate_ids)
        self.referenced_by = referenced_by

    def key(self) -> Tuple:
        return (self.name, tuple(self.candidate_ids), self.referenced_by or "")


class UnresolvedExternal(SlicerError):
    """引用在当前翻译单元中没有定义，假定由头文件或库提供"""

    def __init__(self, name: str, referenced_by: str, is_stdlib: bool = False):
        super().__init__(f"'{name}' 未在本翻译单元中定义（引用自 {referenced_by}）")
        self.name = name
        self.referenced_by = referenced_by
        self.is_stdlib = is_stdlib

    def key(self) -> Tuple:
        return (self.name, self.referenced_by)
