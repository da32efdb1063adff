#!/usr/bin/env python3
"""
输出和文件保存工具
"""

import os
from typing import Iterable, List, Optional

from .models import FragmentKind, Slice, SliceResult


def render_slice(slice_result: Slice, includes: Iterable[str] = (),
                 header_comment: bool = True) -> str:
    """
    把切片拼接成可以单独编译的源码文本

    依次输出：头部注释（本翻译单元之外的符号）、include、按顺序排列的片段。

    Args:
        slice_result: 切片
        includes: 原翻译单元中的 #include 行
        header_comment: 是否输出头部注释

    Returns:
        源码文本（以换行结尾）
    """
    sections: List[str] = []
    if header_comment:
        comment = [f"// 切片目标: {', '.join(slice_result.targets)}"]
        stdlib = slice_result.diagnostics.unresolved_names(stdlib=True)
        external = slice_result.diagnostics.unresolved_names(stdlib=False)
        if stdlib:
            comment.append(f"// 标准库符号: {', '.join(stdlib)}")
        if external:
            comment.append(f"// 外部符号: {', '.join(external)}")
        sections.append('\n'.join(comment))
    include_lines = list(includes)
    if include_lines:
        sections.append('\n'.join(include_lines))
    if slice_result.fragments:
        sections.append(slice_result.text)
    return '\n\n'.join(sections) + '\n'


def print_slice_result(slice_result: Slice):
    """
    打印切片结果

    Args:
        slice_result: 切片
    """
    print(f"切片 {', '.join(slice_result.targets)} 包含 {len(slice_result.declarations)} 个声明, "
          f"{len(slice_result.stubs)} 个前向声明:")
    print("-" * 40)

    for fragment in slice_result.fragments:
        if fragment.kind == FragmentKind.STUB:
            print(f"  [前向声明] {fragment.text}")
        else:
            decl = next(d for d in slice_result.declarations if d.id == fragment.decl_id)
            print(f"  [{decl.kind.value:9s}] {decl.id}")

    diagnostics = slice_result.diagnostics
    counts = diagnostics.counts()
    if any(counts.values()):
        print()
        print("诊断信息:")
        for name, count in counts.items():
            if count:
                print(f"  {name}: {count}")
        for cycle in diagnostics.cycles_broken:
            stub = cycle.stub.text if cycle.stub else "无法前向声明"
            print(f"  断环 {' -> '.join(cycle.cycle)} ({stub})")
        for error in (diagnostics.ambiguous_overloads + diagnostics.ambiguous_declarations
                      + diagnostics.duplicate_definitions):
            print(f"  {error}")
        external = diagnostics.unresolved_names()
        if external:
            print(f"  外部符号: {', '.join(external)}")
    print()


def print_slice_results(results: List[SliceResult]):
    """逐个打印每个目标的结果"""
    for result in results:
        if result.ok:
            print_slice_result(result.slice)
        else:
            print(f"❌ {result.target}: {result.error}")
            print()


def output_filename(original_filename: str, target: str, output_dir: Optional[str] = None) -> str:
    """生成输出文件名: <原文件名>_<目标>_benchmark.<扩展名>"""
    base_name = os.path.basename(original_filename).rsplit('.', 1)[0]
    extension = original_filename.rsplit('.', 1)[1] if '.' in os.path.basename(original_filename) else 'c'
    safe_target = ''.join(ch if ch.isalnum() or ch == '_' else '_' for ch in target)
    filename = f"{base_name}_{safe_target}_benchmark.{extension}"
    return os.path.join(output_dir, filename) if output_dir else filename


def save_slice_to_file(slice_result: Slice, original_filename: str, target: str,
                       includes: Iterable[str] = (), output_dir: Optional[str] = None,
                       header_comment: bool = True) -> str:
    """
    将切片结果保存到文件

    Args:
        slice_result: 切片
        original_filename: 原始文件名
        target: 目标名
        includes: 要输出的 #include 行
        output_dir: 输出目录（默认当前目录）
        header_comment: 是否输出头部注释

    Returns:
        保存的文件名
    """
    path = output_filename(original_filename, target, output_dir)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    lines = [
        "// 基准切片结果",
        f"// 原始文件: {original_filename}",
        "",
    ] if header_comment else []
    with open(path, 'w', encoding='utf-8', errors='surrogateescape') as f:
        f.write('\n'.join(lines))
        f.write(render_slice(slice_result, includes, header_comment))

    return path
