#!/usr/bin/env python3
"""
测试引用解析：局部作用域、成员访问、宏引用、未解析的外部符号
"""

import sys
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from graph.reference_resolver import local_declarators, resolve_references
from parser.declaration_extractor import DeclarationExtractor
from parser.scanner import scan

DATA_DIR = Path(__file__).parent / "data"


def resolve(code, stdlib_names=None):
    scan_result = scan(code)
    unit = DeclarationExtractor(scan_result).extract()
    return resolve_references(scan_result, unit, stdlib_names)


def deps(resolution, name):
    """某个声明依赖的声明名（按源码顺序）"""
    unit = resolution.unit
    decl = unit.find(name)[0]
    order = unit.source_order()
    return [unit[d].name for d in sorted(decl.dependencies, key=order.__getitem__)]


def unresolved(resolution, name):
    decl = resolution.unit.find(name)[0]
    return [u.name for u in resolution.unresolved_for(decl.id)]


def test_stack_dependencies():
    code = ''.join((DATA_DIR / "stack_project" / f).read_text(encoding='utf-8')
                   for f in ("stack.h", "stack.c"))
    resolution = resolve(code)
    assert deps(resolution, 'Node') == []
    assert deps(resolution, 'Stack') == ['Node']
    assert deps(resolution, 'is_balanced') == ['Stack', 'stack_push', 'stack_pop', 'stack_is_empty']
    assert deps(resolution, 'stack_pop') == ['Node', 'Stack', 'node_free', 'stack_is_empty']
    assert deps(resolution, 'stack_push') == ['Node', 'Stack', 'node_new', 'stack_is_empty']
    assert unresolved(resolution, 'Node') == []
    assert unresolved(resolution, 'Stack') == []


def test_recursion_is_not_a_dependency_or_external():
    resolution = resolve("int fact(int n) { return n ? n * fact(n - 1) : 1; }")
    assert deps(resolution, 'fact') == []
    assert unresolved(resolution, 'fact') == []


def test_parameters_shadow_globals():
    resolution = resolve("int count = 0;\nint get(int count) { return count; }\n")
    assert deps(resolution, 'get') == []


def test_local_variables_shadow_functions():
    code = """
int helper(void) { return 1; }
int use(void) {
    int helper = 2;
    return helper;
}
"""
    resolution = resolve(code)
    assert deps(resolution, 'use') == []


def test_local_binding_ends_with_its_block():
    code = """
int tmp = 0;
int f(void) {
    {
        int tmp = 1;
        (void)tmp;
    }
    return tmp;
}
"""
    resolution = resolve(code)
    assert deps(resolution, 'f') == ['tmp']


def test_for_loop_and_catch_declarations_bind_locally():
    code = """
int i = 0;
int e = 0;
void loop(int n) {
    for (int i = 0; i < n; i++) { }
    try { } catch (const Error& e) { (void)e; }
}
"""
    resolution = resolve(code)
    assert deps(resolution, 'loop') == []
    assert unresolved(resolution, 'loop') == ['Error']


def test_member_names_are_not_references():
    code = """
struct P { int x; };
int x = 0;
int px(struct P *p, struct P q) { return p->x + q.x; }
"""
    resolution = resolve(code)
    assert deps(resolution, 'px') == ['P']


def test_macro_references():
    code = """
#define PI 3.14
#define TWO_PI (2 * PI)
#define SQUARE(v) ((v) * (v))
double area(double r) { return TWO_PI * SQUARE(r); }
"""
    resolution = resolve(code)
    assert deps(resolution, 'TWO_PI') == ['PI']
    assert deps(resolution, 'SQUARE') == []
    assert deps(resolution, 'area') == ['TWO_PI', 'SQUARE']


def test_macro_comments_and_literals_are_not_references():
    code = """
#define GREETING "hello world" /* shown at start,
   once */
#define LIMIT 10 // upper bound
#define QUOTE 'q'
int f(void) { return LIMIT; }
"""
    resolution = resolve(code)
    assert resolution.unresolved == []
    assert deps(resolution, 'f') == ['LIMIT']


def test_unresolved_externals_are_flagged_as_stdlib():
    code = 'int show(const char *s) { printf("%s", s); fputs(s, stderr); return text_width(s); }'
    resolution = resolve(code)
    flags = {u.name: u.is_stdlib for u in resolution.unresolved}
    assert flags == {'printf': True, 'fputs': True, 'stderr': True, 'text_width': False}


def test_custom_stdlib_names():
    code = 'int show(const char *s) { return text_width(s) + strlen(s); }'
    resolution = resolve(code, stdlib_names=['text_width'])
    assert [u.is_stdlib for u in resolution.unresolved] == [True, False]


def test_names_qualified_by_unknown_scope_are_skipped():
    code = "double root(double v) { return std::sqrt(v); }"
    resolution = resolve(code)
    assert unresolved(resolution, 'root') == ['std']


def test_names_qualified_by_known_scope_resolve():
    resolution = resolve((DATA_DIR / "several_functions.cpp").read_text(encoding='utf-8'))
    main_deps = deps(resolution, 'main')
    for name in ('PI', 'square', 'MathUtils', 'RoundingMode', 'roundToNearest', 'sum',
                 'FloatPrinter', 'FloatIntUnion', 'checkInfinity'):
        assert name in main_deps
    assert deps(resolution, 'roundToNearest') == ['RoundingMode']


def test_header_dependencies():
    resolution = resolve((DATA_DIR / "with_make.c").read_text(encoding='utf-8'))
    unit = resolution.unit
    add_points = unit.find('add_points')[0]
    print_point = unit.find('print_point')[0]
    point = unit.find('Point')[0]
    assert add_points.header_dependencies == frozenset({point.id})
    assert print_point.header_dependencies == frozenset({point.id})
    assert print_point.dependencies == frozenset({point.id, add_points.id})


def test_ambiguous_overload_reference():
    resolution = resolve((DATA_DIR / "overloads.cpp").read_text(encoding='utf-8'))
    main = resolution.unit.find('main')[0]
    assert len(resolution.ambiguous_overloads) == 1
    error = resolution.ambiguous_overloads[0]
    assert error.name == 'square'
    assert error.referenced_by == main.id
    assert set(error.candidate_ids) == {d.id for d in resolution.unit.find('square')}
    assert set(main.dependencies) == set(error.candidate_ids)


def test_local_declarators():
    tokens = scan("Node* current = self->head, *prev = 0;").significant()
    names = [tokens[i].text for i in local_declarators(tokens, 0)]
    assert names == ['current', 'prev']

    tokens = scan("i < n;").significant()
    assert local_declarators(tokens, 0) == []

    tokens = scan("std::vector<int> items;").significant()
    assert [tokens[i].text for i in local_declarators(tokens, 0)] == ['items']


def test_member_function_and_lambda_parameters_bind_locally():
    resolution = resolve((DATA_DIR / "several_functions.cpp").read_text(encoding='utf-8'))
    assert unresolved(resolution, 'FloatPrinter') == ['std']
    assert unresolved(resolution, 'MathUtils') == ['std']
    assert unresolved(resolution, 'FloatIntUnion') == []


def test_struct_fields_are_not_references():
    code = """
int data = 0;
struct holder { int data; struct holder *next; };
"""
    resolution = resolve(code)
    assert deps(resolution, 'holder') == []
    assert unresolved(resolution, 'holder') == []


def test_call_with_pointer_argument_is_not_a_declaration():
    code = """
int total = 0;
void add(int *p);
void run(void) { add(&total); }
"""
    resolution = resolve(code)
    assert deps(resolution, 'run') == ['total', 'add']
