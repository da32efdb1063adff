#!/usr/bin/env python3
"""
测试顶层声明提取
"""

import sys
from pathlib import Path

import pytest

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parser.declaration import DeclarationKind, FunctionSignature, function_id
from parser.declaration_extractor import extract_declarations, strip_default_arguments
from parser.errors import ParseError

DATA_DIR = Path(__file__).parent / "data"


def read(*parts):
    return ''.join((DATA_DIR / part).read_text(encoding='utf-8') for part in parts)


def stack_source():
    return read("stack_project/stack.h", "stack_project/stack.c")


def only(unit, name):
    found = unit.find(name)
    assert len(found) == 1, f"{name}: {found}"
    return found[0]


def test_stack_project_declarations_in_source_order():
    unit = extract_declarations(stack_source())
    assert [d.name for d in unit] == [
        'Node', 'Stack', 'stack_new', 'stack_free', 'node_new', 'node_free',
        'stack_push', 'stack_pop', 'stack_print', 'stack_is_empty', 'is_balanced', 'main',
    ]


def test_prototypes_merge_with_definitions():
    unit = extract_declarations(stack_source())
    push = only(unit, 'stack_push')
    assert push.is_definition
    assert push.text.rstrip().endswith('}')
    assert unit.ambiguities == []


def test_typedef_struct_tag_is_alias():
    unit = extract_declarations(stack_source())
    node = only(unit, 'Node')
    assert node.kind == DeclarationKind.TYPEDEF
    assert node.tag == 'node_t'
    assert node.tag_keyword == 'struct'
    assert 'node_t' in node.aliases
    assert unit.lookup('node_t') == [node]


def test_system_includes_are_collected():
    unit = extract_declarations(stack_source())
    # "stack.h" 已拼接在翻译单元里，不作为include输出
    assert unit.includes == [
        '#include <stdbool.h>',
        '#include <stdio.h>',
        '#include <stdlib.h>',
        '#include <string.h>',
    ]


def test_function_signature_and_id():
    unit = extract_declarations(stack_source())
    pop = only(unit, 'stack_pop')
    assert pop.signature == FunctionSignature('char', ('Stack *',))
    assert pop.id == function_id('stack_pop', pop.signature)
    assert pop.id.startswith('stack_pop#')
    assert pop.parameters == ('self',)
    assert pop.header_text == 'char stack_pop(Stack* self)'


def test_void_parameter_list_is_empty():
    unit = extract_declarations(stack_source())
    assert only(unit, 'stack_new').signature.parameter_types == ()


def test_overloads_get_distinct_ids():
    unit = extract_declarations(read("overloads.cpp"))
    squares = unit.find('square')
    assert len(squares) == 2
    assert squares[0].id != squares[1].id
    assert [s.signature.parameter_types for s in squares] == [('int',), ('double',)]
    assert all(s.kind == DeclarationKind.FUNCTION for s in squares)


def test_cpp_feature_showcase():
    unit = extract_declarations(read("several_functions.cpp"))
    kinds = {d.name: d.kind for d in unit}
    assert kinds == {
        'PI': DeclarationKind.MACRO,
        'square': DeclarationKind.FUNCTION,
        'MathUtils': DeclarationKind.NAMESPACE,
        'RoundingMode': DeclarationKind.ENUM,
        'roundToNearest': DeclarationKind.FUNCTION,
        'sum': DeclarationKind.FUNCTION,
        'FloatPrinter': DeclarationKind.STRUCT,
        'FloatIntUnion': DeclarationKind.UNION,
        'checkInfinity': DeclarationKind.FUNCTION,
        'main': DeclarationKind.FUNCTION,
        'calculate_trapezoid_integral': DeclarationKind.FUNCTION,
    }


def test_namespace_members_and_enumerators_are_aliases():
    unit = extract_declarations(read("several_functions.cpp"))
    namespace = only(unit, 'MathUtils')
    assert set(namespace.aliases) >= {'cube', 'MathFunc', 'sqrtLambda'}
    rounding = only(unit, 'RoundingMode')
    assert rounding.id == 'enum RoundingMode'
    assert rounding.aliases == ('UP', 'DOWN', 'NEAREST')


def test_template_parameters_are_bound_names():
    unit = extract_declarations(read("several_functions.cpp"))
    assert only(unit, 'square').parameters == ('x', 'T')
    assert only(unit, 'sum').parameters == ('args', 'Args')


def test_default_arguments_are_not_part_of_the_type():
    unit = extract_declarations(read("several_functions.cpp"))
    rounding = only(unit, 'roundToNearest')
    assert rounding.signature.parameter_types == ('double', 'RoundingMode')
    assert rounding.parameters == ('value', 'mode')


def test_strip_default_arguments():
    assert strip_default_arguments('int f(int n, int k = 2)') == 'int f(int n, int k)'
    assert strip_default_arguments(
        'void g(std::map<int, int> m = {}, const char *s = "a,b", int t = h(1, 2))'
    ) == 'void g(std::map<int, int> m, const char *s, int t)'
    assert strip_default_arguments('int f(int n)') == 'int f(int n)'
    assert strip_default_arguments('X& operator=(const X& o)') == 'X& operator=(const X& o)'
    assert strip_default_arguments('int operator()(int a = 1) const') == 'int operator()(int a) const'


def test_prototype_default_arguments_survive_merge():
    unit = extract_declarations("int g(int n, int k = 2);\nint g(int n, int k) { return n + k; }\n")
    g = only(unit, 'g')
    assert g.is_definition
    assert g.prototype_text == 'int g(int n, int k = 2);'

    # 定义自己带默认实参，或者原型没有默认实参时不记录原型
    unit = extract_declarations("int g(int n, int k);\nint g(int n, int k = 2) { return n + k; }\n")
    assert only(unit, 'g').prototype_text is None
    assert only(extract_declarations(stack_source()), 'stack_push').prototype_text is None


def test_anonymous_struct_gets_offset_name():
    unit = extract_declarations(read("with_make.c"))
    first = unit.declarations[0]
    assert first.kind == DeclarationKind.STRUCT
    assert first.name == '<anonymous struct@0>'
    point = only(unit, 'Point')
    assert point.kind == DeclarationKind.TYPEDEF
    assert point.tag is None


def test_misc_c_declarations():
    code = """
#define PI 3.14
#define SQUARE(v) ((v) * (v))
enum color { RED, GREEN = 2, BLUE };
typedef int (*compare_fn)(const void *, const void *);
struct { int a; } anonymous_global;
static int counter = 0;
extern int shared;
int first, second = 2;
struct opaque;
"""
    unit = extract_declarations(code)
    assert not only(unit, 'PI').is_function_like_macro
    square = only(unit, 'SQUARE')
    assert square.is_function_like_macro
    assert square.parameters == ('v',)
    color = only(unit, 'color')
    assert color.id == 'enum color'
    assert color.aliases == ('RED', 'GREEN', 'BLUE')
    assert only(unit, 'compare_fn').kind == DeclarationKind.TYPEDEF
    assert only(unit, 'anonymous_global').kind == DeclarationKind.GLOBAL
    assert only(unit, 'counter').is_definition
    assert not only(unit, 'shared').is_definition
    assert only(unit, 'first').aliases == ('second',)
    opaque = only(unit, 'opaque')
    assert opaque.id == 'struct opaque'
    assert not opaque.is_definition


def test_struct_forward_declaration_merges_with_definition():
    unit = extract_declarations(read("cycles.c"))
    node = only(unit, 'list_node')
    assert node.is_definition
    assert node.id == 'struct list_node'
    assert [d.name for d in unit] == ['owner', 'list_node', 'is_even', 'is_odd', 'count_items', 'main']


def test_extern_c_block_contents_are_top_level():
    code = 'extern "C" {\nint c_api(int x);\nint c_impl(void) { return 1; }\n}\n'
    unit = extract_declarations(code)
    assert [d.name for d in unit] == ['c_api', 'c_impl']


def test_operator_and_qualified_names():
    code = """
struct P { int v; };
bool operator==(const P& a, const P& b) { return a.v == b.v; }
int Shape::area() const { return 0; }
"""
    unit = extract_declarations(code)
    assert only(unit, 'operator==').kind == DeclarationKind.FUNCTION
    assert only(unit, 'area').kind == DeclarationKind.FUNCTION


def test_duplicate_definitions_are_flagged_ambiguous():
    code = """
#ifdef USE_FLOAT
typedef float real;
#else
typedef double real;
#endif
"""
    unit = extract_declarations(code)
    reals = unit.lookup('real')
    assert len(reals) == 2
    assert all(d.ambiguous for d in reals)
    assert reals[0].id == 'real'
    assert reals[1].id == f"real@{reals[1].start}"
    assert len(unit.ambiguities) == 1
    assert unit.ambiguities[0].declaration_ids == ['real', reals[1].id]


def test_duplicate_function_definitions_are_reported_separately():
    code = """
#ifdef FAST
int step(int v) { return v + 2; }
#else
int step(int v) { return v + 1; }
#endif
"""
    unit = extract_declarations(code)
    steps = unit.lookup('step')
    assert len(steps) == 2
    assert all(d.ambiguous for d in steps)
    assert unit.ambiguities == []
    assert len(unit.duplicate_definitions) == 1
    assert unit.duplicate_definitions[0].declaration_ids == [d.id for d in steps]


def test_identical_redefinition_is_not_ambiguous():
    unit = extract_declarations("#define LIMIT 10\nint x;\n#define LIMIT 10\n")
    assert len(unit.find('LIMIT')) == 1
    assert unit.ambiguities == []


def test_unclosed_brace_is_parse_error():
    code = "int ok(void) { return 0; }\nint broken(void) {\n    return 1;\n"
    with pytest.raises(ParseError) as info:
        extract_declarations(code)
    assert info.value.offset == code.index('{', code.index('broken'))


def test_stray_closing_brace_is_parse_error():
    code = "int a;\n}\nint b;\n"
    with pytest.raises(ParseError) as info:
        extract_declarations(code)
    assert info.value.offset == code.index('}')


def test_braces_in_strings_do_not_confuse_extraction():
    code = 'const char *open = "{";\nint f(void) { return \'}\'; }\n'
    unit = extract_declarations(code)
    assert [d.name for d in unit] == ['open', 'f']
