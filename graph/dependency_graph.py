#!/usr/bin/env python3
"""
依赖图 - 以声明ID为节点、以"依赖"为有向边的图

边 A -> B 表示 A 引用了 B，因此在输出中 B 必须出现在 A 之前。
节点和出边都按源码顺序插入，遍历结果因此是确定的。
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx

from parser.declaration import Declaration, TranslationUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackEdge:
    """DFS 回边 source -> target，target 是断环候选"""
    source: str
    target: str
    cycle: Tuple[str, ...]          # 从 target 沿依赖走回 source 的路径


class DependencyGraph:
    """声明依赖图"""

    def __init__(self, unit: TranslationUnit):
        self.unit = unit
        self.order: Dict[str, int] = unit.source_order()
        self.graph = nx.DiGraph()
        for decl in unit:
            self.graph.add_node(decl.id, kind=decl.kind.value, name=decl.name)
        for decl in unit:
            for dep in sorted(decl.dependencies, key=lambda d: self.order.get(d, len(self.order))):
                if dep == decl.id:
                    continue
                if dep not in self.order:
                    raise ValueError(f"声明 {decl.id} 依赖不存在的声明 {dep}")
                self.graph.add_edge(decl.id, dep)
        logger.info(f"依赖图: {self.graph.number_of_nodes()} 个节点, {self.graph.number_of_edges()} 条边")

    def __contains__(self, decl_id: str) -> bool:
        return decl_id in self.graph

    def __len__(self):
        return self.graph.number_of_nodes()

    @property
    def nodes(self) -> List[str]:
        """所有节点，按源码顺序"""
        return sorted(self.graph.nodes, key=self.order.__getitem__)

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return sorted(self.graph.edges, key=lambda e: (self.order[e[0]], self.order[e[1]]))

    def declaration(self, decl_id: str) -> Declaration:
        return self.unit[decl_id]

    def dependencies_of(self, decl_id: str) -> List[str]:
        """直接依赖，按源码顺序"""
        return sorted(self.graph.successors(decl_id), key=self.order.__getitem__)

    def dependents_of(self, decl_id: str) -> List[str]:
        """直接依赖于 decl_id 的声明，按源码顺序"""
        return sorted(self.graph.predecessors(decl_id), key=self.order.__getitem__)

    def reachable(self, seeds: Iterable[str]) -> List[str]:
        """
        获取从种子出发可达的全部声明（含种子本身）

        Args:
            seeds: 起始声明ID

        Returns:
            按源码顺序排列的声明ID列表
        """
        visited: Set[str] = set()
        queue = deque()
        for seed in seeds:
            if seed not in self.graph:
                raise KeyError(f"Declaration with id {seed} not found")
            if seed not in visited:
                visited.add(seed)
                queue.append(seed)
        while queue:
            current = queue.popleft()
            for dep in self.graph.successors(current):
                if dep not in visited:
                    visited.add(dep)
                    queue.append(dep)
        return sorted(visited, key=self.order.__getitem__)

    def find_back_edges(self, roots: Iterable[str], within: Optional[Iterable[str]] = None) -> List[BackEdge]:
        """
        从 roots 依次做深度优先搜索，返回所有回边

        后继按源码顺序访问，所以回边的 target（先被访问到的节点）是稳定的断环候选。

        Args:
            roots: DFS 起点，按给定顺序
            within: 只在这些节点构成的子图中搜索（默认整张图）

        Returns:
            按发现顺序排列的 BackEdge 列表
        """
        allowed = set(self.graph.nodes) if within is None else set(within)
        visited: Set[str] = set()
        back_edges: List[BackEdge] = []

        for root in roots:
            if root in visited or root not in allowed:
                continue
            visited.add(root)
            path = [root]
            on_path = {root}
            stack = [(root, iter(self.dependencies_of(root)))]
            while stack:
                node, successors = stack[-1]
                advanced = False
                for dep in successors:
                    if dep not in allowed:
                        continue
                    if dep in on_path:
                        cycle = tuple(path[path.index(dep):])
                        back_edges.append(BackEdge(node, dep, cycle))
                        logger.debug(f"发现回边 {node} -> {dep}, 环: {' -> '.join(cycle)}")
                    elif dep not in visited:
                        visited.add(dep)
                        path.append(dep)
                        on_path.add(dep)
                        stack.append((dep, iter(self.dependencies_of(dep))))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    on_path.discard(path.pop())
        return back_edges

    def cycles_through(self, decl_id: str) -> List[Tuple[str, ...]]:
        """
        经过 decl_id 的全部基本环

        Returns:
            每个环从源码中最早的节点开始，按环的内容排序
        """
        if decl_id not in self.graph:
            raise KeyError(f"Declaration with id {decl_id} not found")
        members = nx.descendants(self.graph, decl_id) & nx.ancestors(self.graph, decl_id)
        members.add(decl_id)
        cycles = []
        for cycle in nx.simple_cycles(self.graph.subgraph(members)):
            if decl_id not in cycle or len(cycle) < 2:
                continue
            index = cycle.index(min(cycle, key=self.order.__getitem__))
            cycles.append(tuple(cycle[index:] + cycle[:index]))
        return sorted(cycles, key=lambda c: [self.order[n] for n in c])

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.graph)

    def prune_unreferenced(self, keep: Iterable[str]) -> Tuple["DependencyGraph", List[str]]:
        """
        删除没有任何入边、且不在 keep 闭包中的声明，直到不再有可删除的声明

        Args:
            keep: 必须保留的声明ID（通常是所有目标）

        Returns:
            (新的依赖图, 被删除的声明ID列表)
        """
        protected = set(self.reachable(keep))
        remaining = self.graph.copy()
        dropped: List[str] = []
        changed = True
        while changed:
            changed = False
            for node in sorted(remaining.nodes, key=self.order.__getitem__):
                if node not in protected and remaining.in_degree(node) == 0:
                    remaining.remove_node(node)
                    dropped.append(node)
                    changed = True
        if dropped:
            logger.info(f"删除 {len(dropped)} 个未被引用的声明: {', '.join(dropped)}")
        kept = [decl for decl in self.unit if decl.id in remaining]
        return DependencyGraph(self.unit.replace_declarations(kept)), dropped
