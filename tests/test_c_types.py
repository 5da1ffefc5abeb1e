"""Tests for the static C type model."""

from scalecheck.engine.c_types import (
    CHAR,
    INT,
    LONG,
    VOID,
    EnumDecl,
    FieldDecl,
    RecordDecl,
    TypeKind,
    array_of,
    dependent,
    enum_type,
    function_of,
    opaque,
    pointer_to,
    record_type,
    spell,
)


def test_builtin_classification():
    assert INT.is_integer() and INT.is_arithmetic() and INT.is_scalar()
    assert not VOID.is_integer()
    assert VOID.is_void() and VOID.is_incomplete()
    assert pointer_to(INT).is_scalar()
    assert not pointer_to(INT).is_integer()


def test_pointee_and_element():
    p = pointer_to(CHAR)
    assert p.pointee == CHAR
    assert INT.pointee is None
    a = array_of(INT, 4)
    assert a.element == INT
    assert a.decay() == pointer_to(INT)


def test_function_decays_to_pointer():
    f = function_of(INT, (INT,))
    assert f.return_type == INT
    assert f.decay().pointee == f
    assert not f.is_constant_size()


def test_record_completeness_is_shared_by_identity():
    decl = RecordDecl(tag="node")
    t = record_type(decl)
    assert t.is_incomplete()
    decl.define([FieldDecl("next", pointer_to(t))])
    assert not t.is_incomplete()
    assert record_type(decl) == t
    assert record_type(RecordDecl(tag="node")) != t


def test_find_field_in_anonymous_member():
    inner = RecordDecl(tag=None, is_union=True, fields=[FieldDecl("i", INT), FieldDecl("c", CHAR)])
    outer = RecordDecl(tag="v", fields=[FieldDecl("kind", INT), FieldDecl("", record_type(inner))])
    assert outer.find_field("c").type == CHAR
    assert outer.find_field("missing") is None


def test_incomplete_enum_is_not_integer():
    decl = EnumDecl(tag="color")
    t = enum_type(decl)
    assert not t.is_integer()
    decl.constants = {"RED": 0}
    assert t.is_integer()


def test_array_kinds():
    assert array_of(INT, None).is_incomplete()
    vla = array_of(INT, None, is_vla=True)
    assert not vla.is_incomplete()
    assert not vla.is_constant_size()
    dep = array_of(INT, None, dependent_size=True)
    assert dep.is_dependent_sized_array()
    assert dep.is_dependent()
    assert array_of(INT, 3).is_constant_size()


def test_dependent_and_opaque():
    assert dependent("T").is_dependent()
    assert pointer_to(dependent("T")).is_dependent()
    assert opaque("FILE").is_incomplete()
    assert opaque("FILE").kind is TypeKind.OPAQUE


def test_const_does_not_affect_equality():
    assert INT.with_const() == INT
    assert INT.with_const().is_const


def test_spell():
    assert spell(pointer_to(CHAR)) == "char *"
    assert spell(array_of(LONG, 2)) == "long[2]"
    assert spell(record_type(RecordDecl(tag="s"))) == "struct s"
    assert spell(function_of(INT, (), variadic=True)) == "int (...)"
    assert spell(None) == "<null type>"
