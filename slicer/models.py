#!/usr/bin/env python3
"""
数据模型定义
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from parser.declaration import Declaration
from parser.errors import (
    AmbiguousDeclarationError, AmbiguousOverloadError, DuplicateDefinitionError, SlicerError,
    UnresolvedExternal
)


class FragmentKind(Enum):
    """切片片段类型"""
    STUB = "stub"                # 断环用的前向声明
    DECLARATION = "declaration"  # 原样拷贝的声明文本


@dataclass(frozen=True)
class ForwardDeclaration:
    """为断环候选生成的前向声明"""
    decl_id: str
    text: str


@dataclass(frozen=True)
class CycleBreak:
    """一次断环记录"""
    candidate: str                       # 被前置声明的节点（DFS 中先被访问的一方）
    back_edge_source: str
    cycle: Tuple[str, ...]
    stub: Optional[ForwardDeclaration] = None


@dataclass(frozen=True)
class SliceFragment:
    """输出中的一段文本"""
    kind: FragmentKind
    decl_id: str
    text: str


@dataclass
class SliceDiagnostics:
    """切片诊断信息，按出现顺序记录"""
    unresolved_externals: List[UnresolvedExternal] = field(default_factory=list)
    cycles_broken: List[CycleBreak] = field(default_factory=list)
    ambiguous_overloads: List[AmbiguousOverloadError] = field(default_factory=list)
    ambiguous_declarations: List[AmbiguousDeclarationError] = field(default_factory=list)
    duplicate_definitions: List[DuplicateDefinitionError] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            'unresolved_externals': len(self.unresolved_externals),
            'cycles_broken': len(self.cycles_broken),
            'ambiguous_overloads': len(self.ambiguous_overloads),
            'ambiguous_declarations': len(self.ambiguous_declarations),
            'duplicate_definitions': len(self.duplicate_definitions),
        }

    def unresolved_names(self, stdlib: Optional[bool] = None) -> List[str]:
        """未解析的名字（去重，保持顺序）；stdlib 为 True/False 时只返回对应类别"""
        names: List[str] = []
        for item in self.unresolved_externals:
            if stdlib is not None and item.is_stdlib != stdlib:
                continue
            if item.name not in names:
                names.append(item.name)
        return names


@dataclass
class Slice:
    """
    一个切片：目标声明的依赖闭包，按拓扑顺序排列

    declarations 中每个依赖都出现在依赖它的声明之前；
    stubs 是为打破依赖环插入的前向声明，fragments 给出最终的输出顺序。
    """
    targets: List[str]
    declarations: List[Declaration] = field(default_factory=list)
    stubs: List[ForwardDeclaration] = field(default_factory=list)
    fragments: List[SliceFragment] = field(default_factory=list)
    diagnostics: SliceDiagnostics = field(default_factory=SliceDiagnostics)

    @property
    def declaration_ids(self) -> List[str]:
        return [decl.id for decl in self.declarations]

    @property
    def names(self) -> List[str]:
        return [decl.name for decl in self.declarations]

    def __contains__(self, name: str) -> bool:
        """按声明ID或名字判断是否在切片中"""
        return any(decl.id == name or decl.name == name for decl in self.declarations)

    def __len__(self):
        return len(self.declarations)

    @property
    def text(self) -> str:
        """切片正文（不含头部注释与include）"""
        return '\n\n'.join(fragment.text for fragment in self.fragments)


@dataclass
class SliceResult:
    """按目标逐个切片时，每个目标的结果；失败的目标记录错误而不影响其他目标"""
    target: str
    slice: Optional[Slice] = None
    error: Optional[SlicerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
