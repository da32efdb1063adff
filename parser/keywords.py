#!/usr/bin/env python3
"""
C/C++ 关键字表
"""

# 基本类型关键字
TYPE_KEYWORDS = {
    'void', 'char', 'short', 'int', 'long', 'float', 'double',
    'signed', 'unsigned', 'bool', '_Bool', '_Complex', '_Imaginary',
    'wchar_t', 'char8_t', 'char16_t', 'char32_t', 'auto',
}

# 类型修饰符与存储类说明符
QUALIFIER_KEYWORDS = {
    'const', 'volatile', 'restrict', '_Atomic', 'static', 'extern',
    'register', 'inline', '_Thread_local', 'thread_local', 'mutable',
    'constexpr', 'consteval', 'constinit', 'virtual', 'explicit',
    'friend', '_Noreturn', '__inline', '__inline__', '__restrict',
    '__restrict__', '__extension__',
}

# 引入复合类型的关键字
TAG_KEYWORDS = {'struct', 'union', 'enum', 'class'}

C_KEYWORDS = TYPE_KEYWORDS | QUALIFIER_KEYWORDS | {
    'break', 'case', 'continue', 'default', 'do', 'else', 'for', 'goto',
    'if', 'return', 'sizeof', 'switch', 'typedef', 'while', 'struct',
    'union', 'enum', '_Alignas', '_Alignof', '_Generic', '_Static_assert',
    'typeof', '__typeof__', '__attribute__', '__asm__', 'asm',
    '__declspec', 'true', 'false',
}

CPP_KEYWORDS = {
    'alignas', 'alignof', 'and', 'and_eq', 'bitand', 'bitor', 'catch',
    'class', 'co_await', 'co_return', 'co_yield', 'compl', 'concept',
    'const_cast', 'decltype', 'delete', 'dynamic_cast', 'export',
    'namespace', 'new', 'noexcept', 'not', 'not_eq', 'nullptr', 'operator',
    'or', 'or_eq', 'private', 'protected', 'public', 'reinterpret_cast',
    'requires', 'static_assert', 'static_cast', 'template', 'this', 'throw',
    'try', 'typeid', 'typename', 'using', 'xor', 'xor_eq', 'override',
    'final',
}

ALL_KEYWORDS = C_KEYWORDS | CPP_KEYWORDS

# 出现在声明前缀中、不属于返回类型的说明符
DECL_SPECIFIERS = {
    'static', 'extern', 'inline', '__inline', '__inline__', 'virtual',
    'explicit', 'friend', 'constexpr', 'consteval', '_Noreturn',
    'thread_local', '_Thread_local', '__extension__',
}

# 后面紧跟括号参数、但并非函数名的关键字
CALL_LIKE_KEYWORDS = {
    '__attribute__', '__declspec', 'alignas', '_Alignas', 'decltype',
    'typeof', '__typeof__', 'sizeof', 'alignof', '_Alignof', 'noexcept',
    'static_assert', '_Static_assert', '__asm__', 'asm', 'throw',
}

# 常见C标准库的函数、宏、类型和对象，未解析时标记为 is_stdlib
DEFAULT_STDLIB_NAMES = [
    # <stdio.h>
    'printf', 'fprintf', 'sprintf', 'snprintf', 'scanf', 'fscanf', 'sscanf',
    'puts', 'fputs', 'putchar', 'fputc', 'putc', 'getchar', 'fgetc', 'getc', 'fgets',
    'fopen', 'fclose', 'fread', 'fwrite', 'fflush', 'fseek', 'ftell', 'rewind', 'perror',
    'FILE', 'EOF', 'stdin', 'stdout', 'stderr',
    # <stdlib.h>
    'malloc', 'calloc', 'realloc', 'free', 'exit', 'abort', 'atoi', 'atol', 'atof',
    'strtol', 'strtoul', 'strtod', 'qsort', 'bsearch', 'rand', 'srand', 'abs', 'labs',
    'EXIT_SUCCESS', 'EXIT_FAILURE', 'RAND_MAX',
    # <string.h>
    'strlen', 'strcpy', 'strncpy', 'strcat', 'strncat', 'strcmp', 'strncmp', 'strchr',
    'strrchr', 'strstr', 'strcspn', 'strspn', 'strtok', 'strdup',
    'memcpy', 'memmove', 'memset', 'memcmp', 'memchr',
    # <ctype.h>
    'isalpha', 'isdigit', 'isalnum', 'isspace', 'isupper', 'islower', 'toupper', 'tolower',
    # <math.h>
    'pow', 'sqrt', 'fabs', 'floor', 'ceil', 'round', 'exp', 'log', 'sin', 'cos', 'tan',
    'INFINITY', 'NAN', 'M_PI',
    # <stddef.h> / <stdint.h> / <limits.h> / <assert.h> / <time.h>
    'NULL', 'size_t', 'ptrdiff_t', 'int8_t', 'int16_t', 'int32_t', 'int64_t',
    'uint8_t', 'uint16_t', 'uint32_t', 'uint64_t', 'intptr_t', 'uintptr_t',
    'INT_MAX', 'INT_MIN', 'UINT_MAX', 'LONG_MAX', 'CHAR_BIT', 'assert',
    'time', 'clock', 'time_t', 'clock_t', 'CLOCKS_PER_SEC',
]


def is_keyword(word: str) -> bool:
    """判断是否为C/C++关键字"""
    return word in ALL_KEYWORDS
