"""
Graph包 - 引用解析与声明依赖图
"""

from .dependency_graph import BackEdge, DependencyGraph
from .reference_resolver import ReferenceResolver, Resolution, resolve_references

__all__ = [
    'BackEdge',
    'DependencyGraph',
    'ReferenceResolver',
    'Resolution',
    'resolve_references',
]
