#!/usr/bin/env python3
"""
依赖图可视化

把依赖图（可选地高亮一个切片）导出为 Graphviz DOT。
"""

import html
import os
from typing import Optional

from graphviz import Digraph

from parser.declaration import DeclarationKind

from .dependency_graph import DependencyGraph

# 不同声明种类使用的节点形状
NODE_SHAPES = {
    DeclarationKind.FUNCTION: 'ellipse',
    DeclarationKind.STRUCT: 'box',
    DeclarationKind.UNION: 'box',
    DeclarationKind.ENUM: 'box',
    DeclarationKind.TYPEDEF: 'box',
    DeclarationKind.MACRO: 'hexagon',
    DeclarationKind.GLOBAL: 'note',
    DeclarationKind.NAMESPACE: 'folder',
}


def _node_name(graph: DependencyGraph, decl_id: str) -> str:
    # 声明ID可能含有 ':'，DOT 会把它当作端口分隔符
    return f"decl{graph.order[decl_id]}"


def visualize_dependency_graph(graph: DependencyGraph, slice_result=None,
                               title: str = 'Dependency Graph') -> Digraph:
    """
    构建依赖图的 Digraph

    Args:
        graph: 依赖图
        slice_result: 可选的 Slice，切片内的节点填充颜色，断环的回边画成虚线
        title: 图标题

    Returns:
        graphviz.Digraph
    """
    dot = Digraph(comment=title, strict=True)
    dot.attr(rankdir='BT', label=title)
    dot.attr('node', fontname='Arial')
    dot.attr('edge', fontname='Arial')

    in_slice = set(slice_result.declaration_ids) if slice_result is not None else set()
    targets = set()
    broken = set()
    if slice_result is not None:
        names = {t.partition('(')[0].strip() for t in slice_result.targets}
        targets = {d.id for d in slice_result.declarations if d.name in names}
        broken = {(c.back_edge_source, c.candidate) for c in slice_result.diagnostics.cycles_broken}

    for decl_id in graph.nodes:
        decl = graph.declaration(decl_id)
        label = f"<{html.escape(decl.name)}<SUB>{decl.kind.value}</SUB>>"
        attrs = {'shape': NODE_SHAPES.get(decl.kind, 'box')}
        if decl_id in targets:
            attrs.update(style='filled', fillcolor='lightcoral')
        elif decl_id in in_slice:
            attrs.update(style='filled', fillcolor='lightblue')
        dot.node(_node_name(graph, decl_id), label=label, **attrs)

    for source, target in graph.edges:
        if (source, target) in broken:
            dot.edge(_node_name(graph, source), _node_name(graph, target), style="dashed", label="stub")
        else:
            dot.edge(_node_name(graph, source), _node_name(graph, target))
    return dot


def save_dependency_dot(graph: DependencyGraph, output_file: str, slice_result=None,
                        title: str = 'Dependency Graph', render: Optional[str] = None) -> str:
    """
    保存 DOT 文件

    Args:
        output_file: .dot 文件路径
        render: 额外渲染的格式（例如 'pdf'），需要本地安装 Graphviz

    Returns:
        DOT 文件路径
    """
    dot = visualize_dependency_graph(graph, slice_result, title)
    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_file, 'w', encoding='utf-8') as f:
        f.write(dot.source)
    if render:
        dot.render(output_file.rsplit('.', 1)[0], format=render, cleanup=True)
    return output_file
