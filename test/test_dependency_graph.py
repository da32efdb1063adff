#!/usr/bin/env python3
"""
测试依赖图：边的方向、可达性、回边、环、剪枝
"""

import sys
from dataclasses import replace
from pathlib import Path

import pytest

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from graph.dependency_graph import BackEdge, DependencyGraph
from graph.reference_resolver import resolve_references
from parser.declaration_extractor import DeclarationExtractor
from parser.scanner import scan

DATA_DIR = Path(__file__).parent / "data"


def build_graph(*parts):
    code = ''.join((DATA_DIR / part).read_text(encoding='utf-8') for part in parts)
    scan_result = scan(code)
    unit = DeclarationExtractor(scan_result).extract()
    return DependencyGraph(resolve_references(scan_result, unit).unit)


def ids(graph, *names):
    return [graph.unit.find(name)[0].id for name in names]


def names(graph, decl_ids):
    return [graph.unit[decl_id].name for decl_id in decl_ids]


@pytest.fixture
def cycles():
    return build_graph("cycles.c")


@pytest.fixture
def stack():
    return build_graph("stack_project/stack.h", "stack_project/stack.c")


def test_edges_point_from_user_to_dependency(cycles):
    owner, node, even, odd, count, main = ids(cycles, 'owner', 'list_node', 'is_even', 'is_odd',
                                              'count_items', 'main')
    assert cycles.edges == [
        (owner, node),
        (node, owner),
        (even, odd),
        (odd, even),
        (count, owner),
        (count, node),
        (main, even),
    ]
    assert cycles.dependencies_of(count) == [owner, node]
    assert cycles.dependents_of(owner) == [node, count]


def test_nodes_in_source_order(cycles):
    assert names(cycles, cycles.nodes) == ['owner', 'list_node', 'is_even', 'is_odd', 'count_items', 'main']
    assert len(cycles) == 6


def test_reachable_includes_seeds_in_source_order(cycles):
    main, = ids(cycles, 'main')
    assert names(cycles, cycles.reachable([main])) == ['is_even', 'is_odd', 'main']


def test_reachable_unknown_seed(cycles):
    with pytest.raises(KeyError):
        cycles.reachable(['no_such_declaration'])


def test_stack_closure_excludes_unrelated_functions(stack):
    target, = ids(stack, 'is_balanced')
    closure = names(stack, stack.reachable([target]))
    assert closure == ['Node', 'Stack', 'node_new', 'node_free', 'stack_push', 'stack_pop',
                       'stack_is_empty', 'is_balanced']
    assert stack.is_acyclic()


def test_back_edge_targets_node_visited_first(cycles):
    count, owner, node = ids(cycles, 'count_items', 'owner', 'list_node')
    back_edges = cycles.find_back_edges([count])
    assert back_edges == [BackEdge(node, owner, (owner, node))]


def test_back_edges_respect_within(cycles):
    even, odd = ids(cycles, 'is_even', 'is_odd')
    assert cycles.find_back_edges([even], within=[even]) == []
    assert cycles.find_back_edges([even]) == [BackEdge(odd, even, (even, odd))]


def test_cycles_through(cycles):
    even, odd, main = ids(cycles, 'is_even', 'is_odd', 'main')
    assert cycles.cycles_through(odd) == [(even, odd)]
    assert cycles.cycles_through(main) == []
    assert not cycles.is_acyclic()


def test_prune_unreferenced_reaches_fixpoint(stack):
    target, = ids(stack, 'is_balanced')
    pruned, dropped = stack.prune_unreferenced([target])
    assert names(stack, dropped) == ['stack_free', 'stack_print', 'main', 'stack_new']
    assert names(pruned, pruned.nodes) == names(stack, stack.reachable([target]))


def test_prune_keeps_mutually_referencing_declarations(cycles):
    count, = ids(cycles, 'count_items')
    pruned, dropped = cycles.prune_unreferenced([count])
    assert names(cycles, dropped) == ['main']
    assert 'is_even' in [d.name for d in pruned.unit]


def test_self_dependency_is_not_an_edge(cycles):
    unit = cycles.unit
    even = unit.find('is_even')[0]
    patched = replace(even, dependencies=even.dependencies | {even.id})
    graph = DependencyGraph(unit.replace_declarations(
        [patched if d.id == even.id else d for d in unit]))
    assert not graph.graph.has_edge(even.id, even.id)


def test_dangling_dependency_is_rejected(cycles):
    unit = cycles.unit
    main = unit.find('main')[0]
    patched = replace(main, dependencies=frozenset({'missing'}))
    with pytest.raises(ValueError):
        DependencyGraph(unit.replace_declarations([patched if d.id == main.id else d for d in unit]))
