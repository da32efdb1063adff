#!/usr/bin/env python3
"""
C/C++ 基准切片工具 - 主入口

使用方法:
    python slicer.py file [file ...] -t target [-t target ...] [options]

示例:
    python slicer.py stack.h stack.c -t is_balanced
    python slicer.py overloads.cpp -t square --signature double --no-save
"""

import sys

if __name__ == "__main__":
    from tools.benchmark_extractor import main
    sys.exit(main())
