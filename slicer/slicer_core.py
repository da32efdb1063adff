#!/usr/bin/env python3
"""
基准切片核心实现

给定一个或多个目标声明，取它们在依赖图中的传递闭包，
对依赖环插入前向声明后做确定性的拓扑排序：依赖在前，
同时就绪的声明按源码顺序输出。
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from graph.dependency_graph import BackEdge, DependencyGraph
from graph.reference_resolver import Resolution
from parser.declaration import Declaration, DeclarationKind
from parser.declaration_extractor import parse_parameters, strip_default_arguments
from parser.errors import AmbiguousOverloadError, TargetNotFoundError
from parser.scanner import scan

from .models import (
    CycleBreak, ForwardDeclaration, FragmentKind, Slice, SliceDiagnostics,
    SliceFragment, SliceResult
)

logger = logging.getLogger(__name__)

STUB = 'stub'
DECL = 'decl'


def normalize_signature(signature: str) -> Tuple[str, ...]:
    """把 "const char* s, int" 这样的参数列表规范化为参数类型元组"""
    text = signature.strip()
    if text.startswith('(') and text.endswith(')'):
        text = text[1:-1]
    types, _ = parse_parameters(scan(text).significant())
    return types


def split_target(target: str) -> Tuple[str, Optional[str]]:
    """'square(double)' -> ('square', 'double')；不带括号时签名为None"""
    target = target.strip()
    if target.endswith(')') and '(' in target:
        name, _, rest = target.partition('(')
        return name.strip(), rest[:-1]
    return target, None


def make_forward_declaration(decl: Declaration) -> Optional[ForwardDeclaration]:
    """
    为声明生成前向声明

    Returns:
        ForwardDeclaration；宏、命名空间、枚举、匿名类型等无法前向声明时返回None
    """
    text = None
    if decl.kind == DeclarationKind.FUNCTION:
        header = (decl.prototype_text or decl.header_text).rstrip()
        if header.endswith(';'):
            header = header[:-1].rstrip()
        text = f"{header};"
    elif decl.kind in (DeclarationKind.STRUCT, DeclarationKind.UNION) and decl.tag:
        text = f"{decl.tag_keyword} {decl.tag};"
    elif decl.kind == DeclarationKind.TYPEDEF and decl.tag and decl.tag_keyword in ('struct', 'union', 'class'):
        text = f"typedef {decl.tag_keyword} {decl.tag} {decl.name};"
    elif decl.kind == DeclarationKind.GLOBAL:
        text = _extern_declaration(decl)
    if text is None:
        return None
    return ForwardDeclaration(decl.id, text)


def definition_text(decl: Declaration) -> str:
    """前向声明已带默认实参时，函数定义的文本去掉默认实参"""
    if decl.kind != DeclarationKind.FUNCTION or decl.header_end <= decl.start:
        return decl.text
    split = decl.header_end - decl.start
    return strip_default_arguments(decl.text[:split]) + decl.text[split:]


def _extern_declaration(decl: Declaration) -> Optional[str]:
    depth = 0
    cut = None
    for tok in scan(decl.text).significant():
        if tok.text in ('(', '[', '{'):
            if tok.text == '{' and depth == 0:
                # 内联定义的匿名类型无法前向声明
                return None
            depth += 1
        elif tok.text in (')', ']', '}'):
            depth -= 1
        elif tok.text in ('=', ';') and depth == 0:
            cut = tok.start
            break
    head = (decl.text if cut is None else decl.text[:cut]).rstrip()
    words = head.split()
    if not words:
        return None
    if words[0] not in ('extern', 'static'):
        head = f"extern {head}"
    return f"{head};"


class BenchmarkSlicer:
    """基准切片器"""

    def __init__(self, graph: DependencyGraph, resolution: Optional[Resolution] = None):
        """
        初始化切片器

        Args:
            graph: 依赖图
            resolution: 引用解析结果，用于收集诊断信息
        """
        self.graph = graph
        self.unit = graph.unit
        self.resolution = resolution

    def resolve_target(self, name: str, signature: Optional[str] = None
                       ) -> Tuple[List[str], Optional[AmbiguousOverloadError]]:
        """
        把目标名解析为声明ID

        Args:
            name: 目标名
            signature: 可选的参数类型列表，用于选择重载

        Returns:
            (声明ID列表, 重载歧义诊断或None)

        Raises:
            TargetNotFoundError: 没有匹配的声明
        """
        candidates = self.unit.find(name) or self.unit.lookup(name)
        if not candidates:
            raise TargetNotFoundError(name)
        if signature is not None:
            wanted = normalize_signature(signature)
            candidates = [d for d in candidates
                          if d.signature is not None and d.signature.parameter_types == wanted]
            if not candidates:
                raise TargetNotFoundError(name, signature)

        functions = [d for d in candidates if d.is_function]
        ambiguity = None
        if len({d.signature.parameter_types for d in functions}) > 1:
            ambiguity = AmbiguousOverloadError(name, [d.id for d in functions])
            logger.warning(str(ambiguity))
        return [d.id for d in candidates], ambiguity

    def slice(self, targets: Sequence[str], signature: Optional[str] = None) -> Slice:
        """
        为一组目标生成一个切片

        Args:
            targets: 目标名，可以写成 'name(参数类型)' 来选择重载
            signature: 应用于所有目标的参数类型过滤

        Returns:
            Slice

        Raises:
            TargetNotFoundError: 任一目标不存在
        """
        seeds: List[str] = []
        diagnostics = SliceDiagnostics()
        for target in targets:
            name, target_signature = split_target(target)
            ids, ambiguity = self.resolve_target(name, target_signature or signature)
            if ambiguity is not None:
                diagnostics.ambiguous_overloads.append(ambiguity)
            for decl_id in ids:
                if decl_id not in seeds:
                    seeds.append(decl_id)

        closure = self.graph.reachable(seeds)
        back_edges = self.graph.find_back_edges(seeds, within=closure)
        stubs = self._make_stubs(back_edges, closure)
        ordered = self._order(closure, back_edges, stubs)

        result = Slice(targets=list(targets), diagnostics=diagnostics)
        for kind, decl_id in ordered:
            if kind == STUB:
                stub = stubs[decl_id]
                result.stubs.append(stub)
                result.fragments.append(SliceFragment(FragmentKind.STUB, decl_id, stub.text))
            else:
                decl = self.unit[decl_id]
                result.declarations.append(decl)
                text = definition_text(decl) if decl_id in stubs else decl.text
                result.fragments.append(SliceFragment(FragmentKind.DECLARATION, decl_id, text))

        for edge in back_edges:
            result.diagnostics.cycles_broken.append(
                CycleBreak(edge.target, edge.source, edge.cycle, stubs.get(edge.target)))
        self._collect_diagnostics(result)
        logger.info(f"切片 {', '.join(targets)}: {len(result.declarations)} 个声明, "
                    f"{len(result.stubs)} 个前向声明")
        return result

    def slice_each(self, targets: Iterable[str], signature: Optional[str] = None) -> List[SliceResult]:
        """逐个目标切片；某个目标不存在只影响它自己的结果"""
        results = []
        for target in targets:
            try:
                results.append(SliceResult(target, slice=self.slice([target], signature)))
            except TargetNotFoundError as e:
                logger.error(str(e))
                results.append(SliceResult(target, error=e))
        return results

    def _make_stubs(self, back_edges: List[BackEdge], closure: List[str]) -> Dict[str, ForwardDeclaration]:
        stubs: Dict[str, ForwardDeclaration] = {}
        # 默认实参只写在原型里的函数，原型要出现在定义和调用之前
        for decl_id in closure:
            decl = self.unit[decl_id]
            if decl.prototype_text is not None:
                stubs[decl_id] = make_forward_declaration(decl)
        for edge in back_edges:
            if edge.target in stubs:
                continue
            stub = make_forward_declaration(self.unit[edge.target])
            if stub is None:
                logger.warning(f"无法为 {edge.target} 生成前向声明，环 {' -> '.join(edge.cycle)} 的顺序可能无法编译")
                continue
            stubs[edge.target] = stub
        return stubs

    def _order(self, closure: List[str], back_edges: List[BackEdge],
               stubs: Dict[str, ForwardDeclaration]) -> List[Tuple[str, str]]:
        """在加入前向声明后的无环图上做字典序拓扑排序"""
        cut = {(edge.source, edge.target) for edge in back_edges}
        members = set(closure)
        augmented = nx.DiGraph()
        for decl_id in closure:
            augmented.add_node((DECL, decl_id))
        for decl_id in closure:
            for dep in self.graph.dependencies_of(decl_id):
                if dep not in members:
                    continue
                if (decl_id, dep) in cut:
                    if dep in stubs:
                        augmented.add_edge((STUB, dep), (DECL, decl_id))
                else:
                    augmented.add_edge((DECL, dep), (DECL, decl_id))

        header_edges = []
        for decl_id in stubs:
            augmented.add_edge((STUB, decl_id), (DECL, decl_id))
            decl = self.unit[decl_id]
            # struct X; 和 typedef struct X Y; 不依赖其他声明
            if decl.kind not in (DeclarationKind.FUNCTION, DeclarationKind.GLOBAL):
                continue
            for dep in sorted(decl.header_dependencies & members, key=self.graph.order.__getitem__):
                if dep != decl_id:
                    header_edges.append(((DECL, dep), (STUB, decl_id)))
        augmented.add_edges_from(header_edges)

        def sort_key(node):
            kind, decl_id = node
            return (0 if kind == STUB else 1, self.graph.order[decl_id])

        try:
            return list(nx.lexicographical_topological_sort(augmented, key=sort_key))
        except nx.NetworkXUnfeasible:
            logger.warning("前向声明的类型依赖构成环，忽略前向声明的类型依赖重新排序")
            augmented.remove_edges_from(header_edges)
            return list(nx.lexicographical_topological_sort(augmented, key=sort_key))

    def _collect_diagnostics(self, result: Slice):
        ids = result.declaration_ids
        in_slice = set(ids)
        diagnostics = result.diagnostics
        if self.resolution is not None:
            # 按声明在切片中的顺序收集
            for decl_id in ids:
                diagnostics.unresolved_externals.extend(self.resolution.unresolved_for(decl_id))
                diagnostics.ambiguous_overloads.extend(self.resolution.overloads_for(decl_id))
        diagnostics.ambiguous_declarations.extend(
            a for a in self.unit.ambiguities if any(i in in_slice for i in a.declaration_ids))
        diagnostics.duplicate_definitions.extend(
            d for d in self.unit.duplicate_definitions if any(i in in_slice for i in d.declaration_ids))

        missing = diagnostics.unresolved_names(stdlib=False)
        if missing:
            logger.warning(f"切片引用了本翻译单元之外的符号: {', '.join(missing)}")
