#!/usr/bin/env python3
"""
声明信息类 - 存储顶层声明的基本信息
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class DeclarationKind(Enum):
    """声明种类"""
    FUNCTION = "function"
    STRUCT = "struct"
    UNION = "union"
    ENUM = "enum"
    TYPEDEF = "typedef"
    MACRO = "macro"
    GLOBAL = "global"
    NAMESPACE = "namespace"


# 可以作为类型使用的声明种类
TYPE_KINDS = {
    DeclarationKind.STRUCT, DeclarationKind.UNION,
    DeclarationKind.ENUM, DeclarationKind.TYPEDEF,
}


@dataclass(frozen=True)
class FunctionSignature:
    """函数签名：返回类型 + 有序参数类型列表，用于区分重载"""
    return_type: str
    parameter_types: Tuple[str, ...] = ()

    @property
    def parameters_text(self) -> str:
        return ', '.join(self.parameter_types)

    def digest(self) -> str:
        """参数类型列表的稳定哈希"""
        return hashlib.sha1(self.parameters_text.encode('utf-8')).hexdigest()[:8]

    def __str__(self):
        return f"{self.return_type} ({self.parameters_text})"


@dataclass(frozen=True)
class Declaration:
    """
    顶层声明

    dependencies 与 header_dependencies 只在引用解析阶段通过
    dataclasses.replace 设置一次，之后不再变化。
    """
    id: str
    kind: DeclarationKind
    name: str
    start: int
    end: int
    text: str
    signature: Optional[FunctionSignature] = None
    header_end: int = 0                                 # 声明头（函数体 { 之前）的结束偏移
    aliases: Tuple[str, ...] = ()                       # 声明额外引入的名字
    parameters: Tuple[str, ...] = ()                    # 声明头绑定的局部名字
    is_definition: bool = True
    is_function_like_macro: bool = False
    tag: Optional[str] = None                           # struct/union/enum 的标签名
    tag_keyword: Optional[str] = None
    ambiguous: bool = False
    dependencies: FrozenSet[str] = frozenset()
    header_dependencies: FrozenSet[str] = frozenset()
    prototype_text: Optional[str] = None                # 定义前带默认实参的原型，切片时用作前向声明

    @property
    def names(self) -> Tuple[str, ...]:
        """声明引入的全部名字"""
        return (self.name,) + self.aliases

    @property
    def header_text(self) -> str:
        """声明头文本（函数签名部分）"""
        if self.header_end <= self.start:
            return self.text
        return self.text[:self.header_end - self.start].rstrip()

    @property
    def is_function(self) -> bool:
        return self.kind == DeclarationKind.FUNCTION

    @property
    def is_type(self) -> bool:
        return self.kind in TYPE_KINDS

    def __str__(self):
        decl_type = "定义" if self.is_definition else "声明"
        signature = f" {self.signature}" if self.signature else ""
        return f"{self.kind.value} {self.name}{signature} [{self.start}:{self.end}] ({decl_type})"


def function_id(name: str, signature: FunctionSignature) -> str:
    """函数的唯一ID：名字 + 参数签名哈希"""
    return f"{name}#{signature.digest()}"


@dataclass
class TranslationUnit:
    """一个翻译单元的声明表，每次运行重新构建"""
    text: str
    declarations: List[Declaration] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)
    ambiguities: List = field(default_factory=list)
    duplicate_definitions: List = field(default_factory=list)

    def __post_init__(self):
        self._by_id: Dict[str, Declaration] = {}
        self._by_name: Dict[str, List[str]] = {}
        self._reindex()

    def _reindex(self):
        self._by_id = {}
        self._by_name = {}
        for decl in self.declarations:
            if decl.id in self._by_id:
                raise ValueError(f"重复的声明ID: {decl.id}")
            self._by_id[decl.id] = decl
            for name in decl.names:
                ids = self._by_name.setdefault(name, [])
                if decl.id not in ids:
                    ids.append(decl.id)

    def replace_declarations(self, declarations: List[Declaration]) -> "TranslationUnit":
        """返回使用新声明列表的翻译单元（原对象不变）"""
        return TranslationUnit(self.text, list(declarations), list(self.includes),
                               list(self.ambiguities), list(self.duplicate_definitions))

    def get(self, decl_id: str) -> Optional[Declaration]:
        return self._by_id.get(decl_id)

    def __getitem__(self, decl_id: str) -> Declaration:
        decl = self._by_id.get(decl_id)
        if decl is None:
            raise KeyError(f"Declaration with id {decl_id} not found")
        return decl

    def __contains__(self, decl_id: str) -> bool:
        return decl_id in self._by_id

    def __iter__(self):
        return iter(self.declarations)

    def __len__(self):
        return len(self.declarations)

    def lookup(self, name: str) -> List[Declaration]:
        """按名字（含别名）查找声明，按源码顺序返回"""
        return [self._by_id[i] for i in self._by_name.get(name, [])]

    def find(self, name: str, kind: Optional[DeclarationKind] = None) -> List[Declaration]:
        """按主名字查找声明"""
        return [d for d in self.declarations
                if d.name == name and (kind is None or d.kind == kind)]

    def source_order(self) -> Dict[str, int]:
        """声明ID -> 源码顺序"""
        return {decl.id: index for index, decl in enumerate(self.declarations)}
