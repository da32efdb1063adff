#!/usr/bin/env python3
"""
文件扩展名常量定义 - 统一管理C/C++文件扩展名
"""

import os

# C语言文件扩展名
C_EXTENSIONS = {'.c', '.h'}

# C++语言文件扩展名
CPP_EXTENSIONS = {'.cpp', '.cxx', '.cc', '.hpp', '.hxx', '.hh', '.h++'}

# 所有支持的C/C++文件扩展名
ALL_C_CPP_EXTENSIONS = C_EXTENSIONS | CPP_EXTENSIONS

# 头文件扩展名
HEADER_EXTENSIONS = {'.h', '.hpp', '.hxx', '.hh', '.h++', '.inc'}


def _extension(file_path: str) -> str:
    return os.path.splitext(file_path)[1].lower()


def is_c_file(file_path: str) -> bool:
    """判断是否为C文件"""
    return _extension(file_path) in C_EXTENSIONS


def is_cpp_file(file_path: str) -> bool:
    """判断是否为C++文件"""
    return _extension(file_path) in CPP_EXTENSIONS


def is_header_file(file_path: str) -> bool:
    """判断是否为头文件"""
    return _extension(file_path) in HEADER_EXTENSIONS


def is_supported_file(file_path: str) -> bool:
    """判断是否为支持的C/C++文件"""
    return _extension(file_path) in ALL_C_CPP_EXTENSIONS or is_header_file(file_path)


def get_file_type(file_path: str) -> str:
    """获取文件类型: 'c'、'cpp' 或 'unknown'"""
    if is_cpp_file(file_path):
        return 'cpp'
    elif is_c_file(file_path):
        return 'c'
    else:
        return 'unknown'
