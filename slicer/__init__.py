#!/usr/bin/env python3
"""
Slicer包 - C/C++基准切片工具
"""

from .benchmark import BenchmarkExtractor, extract_slice, extract_slices
from .models import (
    CycleBreak, ForwardDeclaration, FragmentKind, Slice, SliceDiagnostics,
    SliceFragment, SliceResult
)
from .output_utils import print_slice_result, render_slice, save_slice_to_file
from .slicer_core import BenchmarkSlicer, make_forward_declaration

# 版本信息
__version__ = "1.0.0"
__author__ = "Slicer Team"

# 公开的API
__all__ = [
    'BenchmarkExtractor',
    'BenchmarkSlicer',
    'extract_slice',
    'extract_slices',
    'make_forward_declaration',
    'CycleBreak',
    'ForwardDeclaration',
    'FragmentKind',
    'Slice',
    'SliceDiagnostics',
    'SliceFragment',
    'SliceResult',
    'print_slice_result',
    'render_slice',
    'save_slice_to_file',
]

# 包的简介
__doc__ = """
Slicer包从一个C/C++翻译单元中抽取目标声明的最小可编译切片：

主要功能：
- 目标声明的传递依赖闭包
- 确定性的拓扑排序（依赖在前，同时就绪时按源码顺序）
- 依赖环通过前向声明打破
- 未解析符号、重载歧义、重复定义等诊断信息

使用示例：

from slicer import extract_slices, render_slice

source = '''
int square(int x) { return x * x; }
int sum_of_squares(int a, int b) { return square(a) + square(b); }
'''

result = extract_slices(source, ["sum_of_squares"])[0]
print(render_slice(result.slice))
"""
