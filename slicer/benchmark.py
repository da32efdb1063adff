#!/usr/bin/env python3
"""
基准切片工具 - 从一个C/C++翻译单元中抽取目标声明的最小可编译切片
输入：翻译单元源码、目标声明名
输出：每个目标一个切片（依赖完整、拓扑有序，必要时带前向声明）
"""

import logging
from typing import Iterable, List, Optional, Sequence, Union

from graph.dependency_graph import DependencyGraph
from graph.reference_resolver import Resolution, ReferenceResolver
from parser.config_parser import SlicerConfig
from parser.declaration import TranslationUnit
from parser.declaration_extractor import DeclarationExtractor
from parser.scanner import Scanner

from .models import Slice, SliceResult
from .output_utils import render_slice
from .slicer_core import BenchmarkSlicer, split_target

logger = logging.getLogger(__name__)


class BenchmarkExtractor:
    """
    对一个翻译单元依次运行 扫描 -> 声明提取 -> 引用解析 -> 依赖图 -> 切片

    声明表和依赖图在构造时建立一次，之后可以对多个目标切片。

    Raises:
        ParseError: 源码无法扫描或顶层大括号不匹配
    """

    def __init__(self, source: Union[str, bytes], config: Optional[SlicerConfig] = None):
        self.config = config or SlicerConfig()
        logger.info("扫描源码")
        self.scan_result = Scanner(source).scan()
        logger.info("提取顶层声明")
        self.unit: TranslationUnit = DeclarationExtractor(self.scan_result).extract()
        logger.info("解析引用")
        self.resolution: Resolution = ReferenceResolver(
            self.scan_result, self.unit, self.config.stdlib_names).resolve()
        self.graph = DependencyGraph(self.resolution.unit)

    @property
    def includes(self) -> List[str]:
        return list(self.unit.includes)

    def _graph_for(self, targets: Sequence[str]) -> DependencyGraph:
        """开启 prune_unreferenced 时，先删除与目标无关且未被引用的声明"""
        if not self.config.prune_unreferenced:
            return self.graph
        keep = []
        for target in targets:
            name, _ = split_target(target)
            keep.extend(d.id for d in (self.graph.unit.find(name) or self.graph.unit.lookup(name)))
        pruned, _ = self.graph.prune_unreferenced(keep)
        return pruned

    def slicer_for(self, targets: Sequence[str]) -> BenchmarkSlicer:
        return BenchmarkSlicer(self._graph_for(targets), self.resolution)

    def slice(self, targets: Sequence[str], signature: Optional[str] = None) -> Slice:
        """
        为一组目标生成一个合并的切片

        Raises:
            TargetNotFoundError: 任一目标不存在
        """
        return self.slicer_for(targets).slice(targets, signature)

    def slice_each(self, targets: Iterable[str], signature: Optional[str] = None) -> List[SliceResult]:
        """每个目标单独切片，某个目标失败不影响其他目标"""
        targets = list(targets)
        return self.slicer_for(targets).slice_each(targets, signature)

    def render(self, slice_result: Slice) -> str:
        """按配置渲染切片"""
        includes = self.unit.includes if self.config.emit_includes else []
        return render_slice(slice_result, includes, self.config.emit_header_comment)


def extract_slices(source: Union[str, bytes], targets: Iterable[str],
                   config: Optional[SlicerConfig] = None,
                   signature: Optional[str] = None) -> List[SliceResult]:
    """
    对翻译单元中的每个目标生成切片（便捷函数）
    Args:
        source: 翻译单元源码
        targets: 目标声明名，可以写成 'name(参数类型)' 来选择重载
        config: 切片配置
        signature: 应用于所有目标的参数类型过滤
    Returns:
        每个目标一个 SliceResult，顺序与 targets 相同
    Raises:
        ParseError: 源码无法解析（对整个翻译单元致命）
    """
    return BenchmarkExtractor(source, config).slice_each(targets, signature)


def extract_slice(source: Union[str, bytes], target: str,
                  config: Optional[SlicerConfig] = None,
                  signature: Optional[str] = None) -> Slice:
    """
    为单个目标生成切片（便捷函数）

    Raises:
        TargetNotFoundError: 目标不存在
    """
    result = extract_slices(source, [target], config, signature)[0]
    if result.error is not None:
        raise result.error
    return result.slice
