"""Tests for name resolution, declarator typing and constant evaluation."""

import pytest

from scalecheck.engine.c_types import BOOL, CHAR, INT, LONG, UCHAR, ULONG, TypeKind, pointer_to
from scalecheck.engine.declarations import TranslationUnit
from scalecheck.engine.decls import FunctionDecl, VarDecl
from scalecheck.engine.layout import ILP32, LP64
from scalecheck.engine.syntax import node_text, walk
from scalecheck.parser import create_parser, parse_bytes


def _unit(source: bytes, layout=LP64) -> TranslationUnit:
    tree = parse_bytes(source, parser=create_parser())
    return TranslationUnit.build(tree.root_node, layout)


def _nodes(unit: TranslationUnit, kind: str, text: str | None = None):
    return [n for n in walk(unit.root) if n.type == kind and (text is None or node_text(n) == text)]


def _global_type(source: bytes, name: str):
    return _unit(source).globals[name].type


def test_pointer_array_declarators():
    assert _global_type(b"int *a[3];", "a").element == pointer_to(INT)
    t = _global_type(b"int (*a)[3];", "a")
    assert t.kind is TypeKind.POINTER
    assert t.pointee.length == 3


def test_function_pointer_declarator():
    t = _global_type(b"long (*fp)(int, char);", "fp")
    assert t.pointee.is_function()
    assert t.pointee.return_type == LONG


def test_typedef_and_struct_tags():
    unit = _unit(b"typedef struct node { int v; struct node *next; } node_t;\nnode_t head;")
    t = unit.globals["head"].type
    assert t.record.tag == "node"
    assert t.record.find_field("next").type.pointee == t


def test_array_size_completed_from_initializer():
    assert _global_type(b'char s[] = "abc";', "s").length == 4
    assert _global_type(b"int v[] = {1, 2, 3};", "v").length == 3


def test_vla_is_detected():
    unit = _unit(b"void f(int n) { int buf[n]; }")
    decl = [n for n in _nodes(unit, "declaration")][0]
    (var,) = unit.declared_vars(decl)
    assert var.type.is_vla


def test_identifiers_resolve_to_innermost_scope():
    unit = _unit(b"int x; void f(void) { long x; x = 1; }")
    use = [n for n in _nodes(unit, "identifier", "x") if n.parent.type == "assignment_expression"][0]
    decl = unit.decl_of(use)
    assert isinstance(decl, VarDecl)
    assert decl.type == LONG
    assert not decl.is_global


def test_parameters_are_adjusted():
    unit = _unit(b"int f(char buf[8], int g(void)) { return 0; }")
    params = unit.functions["f"].params
    assert params[0].type == pointer_to(CHAR)
    assert params[1].type.pointee.is_function()


def test_implicit_function_declaration():
    unit = _unit(b"void f(void) { g(1); }")
    g = unit.functions["g"]
    assert isinstance(g, FunctionDecl)
    assert g.implicit
    assert not g.is_defined
    assert [fn.name for fn in unit.defined_functions()] == ["f"]


def test_enum_constants():
    unit = _unit(b"enum color { RED, GREEN = 5, BLUE };\nint v = BLUE;")
    init = unit.globals["v"].init
    assert unit.sema.evaluate_constant(init) == 6


@pytest.mark.parametrize(
    "expr, expected",
    [
        (b"sizeof(int)", 4),
        (b"sizeof(long)", 8),
        (b"sizeof(struct s)", 16),
        (b"offsetof(struct s, b)", 8),
        (b"_Alignof(struct s)", 8),
        (b"sizeof(int) * 2 + 1", 9),
        (b"(char)300", 44),
    ],
)
def test_constant_evaluation(expr, expected):
    source = b"struct s { char a; long b; };\nlong v = " + expr + b";"
    unit = _unit(source)
    assert unit.sema.evaluate_constant(unit.globals["v"].init) == expected


def test_constants_follow_target():
    source = b"struct s { char a; long b; };\nlong v = sizeof(struct s);"
    unit = _unit(source, ILP32)
    assert unit.sema.evaluate_constant(unit.globals["v"].init) == 8


def test_sizeof_without_compile_time_value():
    unit = _unit(b"struct fwd;\nlong v = sizeof(struct fwd);")
    assert unit.sema.evaluate_constant(unit.globals["v"].init) is None


def test_sizeof_expression_sees_undecayed_array():
    unit = _unit(b"int arr[10];\nlong v = sizeof arr;")
    assert unit.sema.evaluate_constant(unit.globals["v"].init) == 40


def test_operand_type_decays_arrays():
    unit = _unit(b"int arr[4];\nvoid f(void) { arr + 1; }")
    use = [n for n in _nodes(unit, "identifier", "arr") if n.parent.type == "binary_expression"][0]
    assert unit.sema.type_of(use).is_array()
    assert unit.sema.operand_type(use) == pointer_to(INT)


def test_keyword_and_library_type_names():
    unit = _unit(b"_Bool flag;\nsize_t count;\nuint8_t byte;")
    assert unit.globals["flag"].type == BOOL
    assert unit.globals["count"].type == ULONG
    assert unit.globals["byte"].type == UCHAR
