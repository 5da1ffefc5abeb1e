# Small helpers over tree-sitter-c nodes shared by the front end and the engine.

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from tree_sitter import Node as TSNode

from scalecheck.engine.c_types import (
    DOUBLE,
    FLOAT,
    INT,
    LONG,
    LONGDOUBLE,
    LONGLONG,
    UINT,
    ULONG,
    ULONGLONG,
    CType,
)

_SIMPLE_ESCAPES = {
    "n": 10,
    "t": 9,
    "r": 13,
    "0": 0,
    "a": 7,
    "b": 8,
    "f": 12,
    "v": 11,
    "\\": 92,
    "'": 39,
    '"': 34,
    "?": 63,
    "e": 27,
}


def node_text(node: Optional[TSNode]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def walk(node: TSNode) -> Iterator[TSNode]:
    """Yield node and every descendant in document order."""
    yield node
    for child in node.children:
        yield from walk(child)


def named_children(node: TSNode) -> List[TSNode]:
    return [c for c in node.children if c.is_named and c.type != "comment"]


def first_named(node: TSNode) -> Optional[TSNode]:
    kids = named_children(node)
    return kids[0] if kids else None


def operator_of(node: TSNode) -> str:
    op = node.child_by_field_name("operator")
    return node_text(op)


def strip_parens(node: TSNode) -> TSNode:
    while node.type == "parenthesized_expression":
        inner = first_named(node)
        if inner is None:
            break
        node = inner
    return node


def line_col(node: TSNode) -> Tuple[int, int]:
    """1-based (line, column) of the node start."""
    row, col = node.start_point
    return row + 1, col + 1


def is_float_literal(text: str) -> bool:
    t = text.lower().replace("'", "")
    if t.startswith("0x"):
        return "p" in t or "." in t
    return "." in t or "e" in t


def _split_suffix(text: str) -> Tuple[str, str]:
    t = text.replace("'", "")
    end = len(t)
    while end > 0 and t[end - 1] in "uUlLzZ":
        end -= 1
    return t[:end], t[end:].lower()


def parse_int_literal(text: str) -> Optional[int]:
    """Value of a C integer literal (hex, octal, binary, decimal, any suffix), None for floats."""
    if is_float_literal(text):
        return None
    digits, _ = _split_suffix(text.strip())
    lowered = digits.lower()
    try:
        if lowered.startswith("0x"):
            return int(lowered[2:], 16)
        if lowered.startswith("0b"):
            return int(lowered[2:], 2)
        if len(lowered) > 1 and lowered.startswith("0"):
            return int(lowered[1:], 8)
        return int(lowered, 10)
    except ValueError:
        return None


def literal_type(text: str) -> CType:
    """Static type of a number literal from its spelling."""
    t = text.strip()
    if is_float_literal(t):
        suffix = t[-1].lower()
        if suffix == "f":
            return FLOAT
        if suffix == "l":
            return LONGDOUBLE
        return DOUBLE
    value = parse_int_literal(t)
    _, suffix = _split_suffix(t)
    unsigned = "u" in suffix
    longs = suffix.count("l")
    if longs >= 2:
        return ULONGLONG if unsigned else LONGLONG
    if longs == 1:
        return ULONG if unsigned else LONG
    if value is not None and value > 0x7FFFFFFF:
        if unsigned or value > 0x7FFFFFFFFFFFFFFF:
            return ULONG
        return LONG
    return UINT if unsigned else INT


def parse_char_literal(text: str) -> Optional[int]:
    """Value of a single-character C literal such as 'a', '\\n' or '\\x41'."""
    t = text.strip()
    # Drop encoding prefixes (L'x', u'x', U'x', u8'x').
    quote = t.find("'")
    if quote < 0 or not t.endswith("'") or len(t) - quote < 3:
        return None
    body = t[quote + 1 : -1]
    if not body.startswith("\\"):
        return ord(body[0])
    esc = body[1:]
    if not esc:
        return None
    if esc[0] == "x":
        try:
            return int(esc[1:], 16)
        except ValueError:
            return None
    if esc[0] in "01234567" and (len(esc) > 1 or esc[0] != "0"):
        try:
            return int(esc[:3], 8)
        except ValueError:
            return None
    return _SIMPLE_ESCAPES.get(esc[0])


def string_literal_length(node: TSNode) -> int:
    """Number of chars in a string literal or concatenated_string, excluding the terminator."""
    if node.type == "concatenated_string":
        return sum(string_literal_length(c) for c in named_children(node) if c.type == "string_literal")
    total = 0
    for child in named_children(node):
        if child.type == "string_content":
            total += len(child.text or b"")
        elif child.type == "escape_sequence":
            total += 1
    return total
