"""Tests for literal parsing and node helpers."""

import pytest

from scalecheck.engine.c_types import DOUBLE, FLOAT, INT, LONG, UINT, ULONG, ULONGLONG
from scalecheck.engine.syntax import (
    literal_type,
    node_text,
    parse_char_literal,
    parse_int_literal,
    string_literal_length,
    strip_parens,
    walk,
)
from scalecheck.parser import create_parser, parse_bytes


@pytest.mark.parametrize(
    "text, value",
    [
        ("42", 42),
        ("0x1F", 31),
        ("017", 15),
        ("0b101", 5),
        ("10UL", 10),
        ("1'000", 1000),
        ("1.5", None),
        ("1e3", None),
    ],
)
def test_parse_int_literal(text, value):
    assert parse_int_literal(text) == value


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1", INT),
        ("1u", UINT),
        ("1L", LONG),
        ("1ull", ULONGLONG),
        ("0xFFFFFFFFFFFFFFFF", ULONG),
        ("2.0", DOUBLE),
        ("2.0f", FLOAT),
    ],
)
def test_literal_type(text, expected):
    assert literal_type(text) == expected


@pytest.mark.parametrize(
    "text, value",
    [("'a'", 97), ("'\\n'", 10), ("'\\x41'", 65), ("'\\101'", 65), ("'\\0'", 0), ("L'b'", 98)],
)
def test_parse_char_literal(text, value):
    assert parse_char_literal(text) == value


def _first(source: bytes, kind: str):
    tree = parse_bytes(source, parser=create_parser())
    return next(n for n in walk(tree.root_node) if n.type == kind)


def test_string_literal_length_counts_escapes():
    assert string_literal_length(_first(b'char *s = "a\\tb";', "string_literal")) == 3
    assert string_literal_length(_first(b'char *s = "ab" "cd";', "concatenated_string")) == 4


def test_strip_parens():
    node = _first(b"int x = ((1 + 2));", "parenthesized_expression")
    assert node_text(strip_parens(node)) == "1 + 2"
