"""Tests for target data layouts."""

import pytest

from scalecheck.engine.c_types import (
    CHAR,
    DOUBLE,
    INT,
    LONG,
    VOID,
    FieldDecl,
    RecordDecl,
    array_of,
    function_of,
    pointer_to,
    record_type,
)
from scalecheck.engine.errors import TypeLayoutError
from scalecheck.engine.layout import ILP32, LP64, get_target


def _struct(*fields, union=False, tag="s"):
    return record_type(RecordDecl(tag=tag, is_union=union, fields=[FieldDecl(n, t) for n, t in fields]))


def test_builtin_sizes_per_target():
    assert LP64.size_in_chars(CHAR) == 1
    assert LP64.size_in_chars(LONG) == 8
    assert ILP32.size_in_chars(LONG) == 4
    assert LP64.size_in_chars(pointer_to(VOID)) == 8
    assert ILP32.size_in_chars(pointer_to(VOID)) == 4


def test_struct_padding_and_alignment():
    t = _struct(("c", CHAR), ("i", INT), ("d", DOUBLE))
    assert LP64.size_in_chars(t) == 16
    assert LP64.align_in_chars(t) == 8
    assert ILP32.size_in_chars(t) == 16
    assert ILP32.align_in_chars(t) == 4


def test_union_size_is_largest_member():
    t = _struct(("c", array_of(CHAR, 5)), ("i", INT), union=True)
    assert LP64.size_in_chars(t) == 8


def test_field_offset():
    t = _struct(("kind", CHAR), ("count", LONG), ("tail", CHAR))
    assert LP64.field_offset(t.record, "count") == 8
    assert LP64.field_offset(t.record, "tail") == 16
    assert ILP32.field_offset(t.record, "count") == 4
    with pytest.raises(TypeLayoutError):
        LP64.field_offset(t.record, "nope")


def test_field_offset_through_anonymous_member():
    inner = _struct(("x", INT), ("y", INT), tag=None)
    outer = record_type(RecordDecl(tag="o", fields=[FieldDecl("k", LONG), FieldDecl("", inner)]))
    assert LP64.field_offset(outer.record, "y") == 12


def test_flexible_array_member_has_no_size():
    t = _struct(("len", INT), ("data", array_of(CHAR, None)))
    assert LP64.has_size(t)
    assert LP64.size_in_chars(t) == 4


def test_types_without_size():
    assert not LP64.has_size(VOID)
    assert not LP64.has_size(function_of(INT))
    assert not LP64.has_size(array_of(INT, None, is_vla=True))
    assert not LP64.has_size(record_type(RecordDecl(tag="opaque")))
    incomplete_member = _struct(("inner", record_type(RecordDecl(tag="fwd"))))
    assert not LP64.has_size(incomplete_member)
    with pytest.raises(TypeLayoutError):
        LP64.size_in_chars(VOID)


def test_get_target():
    assert get_target("LP64") is LP64
    assert get_target("ilp32") is ILP32
    with pytest.raises(ValueError, match="unknown target"):
        get_target("lp32")
