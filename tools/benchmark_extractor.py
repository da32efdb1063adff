#!/usr/bin/env python3
"""
基准切片工具
从C/C++翻译单元中为指定的函数或类型抽取可以单独编译的最小切片
"""

import argparse
import logging
import os
import sys

# 添加父目录到路径，以便导入各个包
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from parser import setup_logging
from parser.config_parser import ConfigParser, SlicerConfig
from parser.errors import ConfigError, ParseError
from parser.file_extensions import is_supported_file
from slicer.benchmark import BenchmarkExtractor
from slicer.output_utils import print_slice_results, save_slice_to_file

logger = logging.getLogger(__name__)


def read_sources(paths) -> str:
    """读取并拼接多个文件（头文件应放在前面），作为一个翻译单元"""
    parts = []
    for path in paths:
        with open(path, 'r', encoding='utf-8', errors='surrogateescape') as f:
            text = f.read()
        if not text.endswith('\n'):
            text += '\n'
        parts.append(text)
    return ''.join(parts)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="C/C++ 基准切片工具")
    parser.add_argument("files", nargs='+',
                        help="源代码文件路径；多个文件按顺序拼接为一个翻译单元（头文件放在前面）")
    parser.add_argument("-t", "--target", action="append", required=True, dest="targets",
                        help="目标声明名，可重复；可以写成 'name(参数类型)' 选择重载")
    parser.add_argument("--signature", default=None,
                        help="用参数类型列表选择重载，例如 'double' 或 'const char*, int'")
    parser.add_argument("--config", default=None, help="JSON配置文件")
    parser.add_argument("--language", choices=["c", "cpp", "auto"], default=None,
                        help="语言类型（覆盖配置文件）")
    parser.add_argument("--output-dir", default=None,
                        help="输出目录（默认为当前目录）")
    parser.add_argument("--no-save", action="store_true",
                        help="不保存切片结果到文件，只显示")
    parser.add_argument("--prune", action="store_true",
                        help="切片前删除与目标无关且未被引用的声明")
    parser.add_argument("--check-syntax", action="store_true",
                        help="用tree-sitter检查生成的切片是否有语法错误")
    parser.add_argument("--dot", default=None, help="把依赖图导出为DOT文件")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    return parser


def load_config(args) -> SlicerConfig:
    config = ConfigParser(args.config).to_config() if args.config else SlicerConfig()
    if args.language:
        config.language = args.language
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.prune:
        config.prune_unreferenced = True
    if args.check_syntax:
        config.check_syntax = True
    return config


def main(argv=None) -> int:
    """主函数，返回进程退出码"""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"错误：{e}")
        return 2

    for path in args.files:
        if not is_supported_file(path):
            logger.warning(f"{path} 不是C/C++源文件扩展名，仍按C/C++源码处理")

    try:
        code = read_sources(args.files)
    except OSError as e:
        print(f"错误：无法读取文件: {e}")
        return 2

    try:
        extractor = BenchmarkExtractor(code, config)
    except ParseError as e:
        print(f"错误：无法解析 '{', '.join(args.files)}': {e}")
        return 1

    results = extractor.slice_each(args.targets, args.signature)
    print_slice_results(results)

    checker = None
    if config.check_syntax:
        from analysis.base import SyntaxChecker
        checker = SyntaxChecker(config.resolve_language(args.files[-1]))

    exit_code = 0
    for result in results:
        if not result.ok:
            exit_code = 1
            continue
        if checker is not None:
            rendered = extractor.render(result.slice)
            if checker.has_errors(rendered):
                locations = ', '.join(f"{row}:{col}" for row, col in checker.error_locations(rendered))
                logger.warning(f"{result.target} 的切片有语法错误: {locations}")
                exit_code = 1
        if not args.no_save:
            includes = extractor.unit.includes if config.emit_includes else []
            output_file = save_slice_to_file(
                result.slice, args.files[-1], result.target, includes,
                config.output_dir, config.emit_header_comment,
            )
            print(f"切片结果已保存到: {output_file}")

    if args.dot:
        from graph.visualization import save_dependency_dot
        first = next((r.slice for r in results if r.ok), None)
        save_dependency_dot(extractor.graph, args.dot, first)
        print(f"依赖图已保存到: {args.dot}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
