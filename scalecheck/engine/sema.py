"""
Static typing of C expressions and integer constant evaluation.

Sema answers "what is the declared type of this sub-expression" for the
engine and the checkers. It relies on the name bindings recorded by
scalecheck.engine.declarations (identifier -> declaration, type_descriptor
-> resolved type), so it can type any node of the translation unit without
tracking scopes itself.

type_of() returns the type as written; operand_type() applies the
array-to-pointer and function-to-pointer decay an operand undergoes, which
is the type binary operators actually see.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, Optional

from tree_sitter import Node as TSNode

from scalecheck.engine.c_types import (
    CHAR,
    INT,
    INTEGER_RANK,
    DOUBLE,
    FLOAT,
    LONGDOUBLE,
    PTRDIFF_T,
    SIZE_T,
    VOID,
    CType,
    TypeKind,
    array_of,
    pointer_to,
)
from scalecheck.engine.decls import EnumConstantDecl, FunctionDecl, VarDecl
from scalecheck.engine.errors import TypeLayoutError
from scalecheck.engine.syntax import (
    first_named,
    literal_type,
    node_text,
    operator_of,
    parse_char_literal,
    parse_int_literal,
    string_literal_length,
)

if TYPE_CHECKING:
    from scalecheck.engine.declarations import TranslationUnit

logger = logging.getLogger(__name__)

ARITHMETIC_OPS = frozenset({"+", "-", "*", "/", "%", "&", "|", "^"})
SHIFT_OPS = frozenset({"<<", ">>"})
COMPARISON_OPS = frozenset({"<", ">", "<=", ">=", "==", "!="})
LOGICAL_OPS = frozenset({"&&", "||"})


def promote(t: CType) -> CType:
    """Integer promotion: anything ranked below int becomes int."""
    if t.kind is TypeKind.ENUM:
        return INT
    if t.is_integer() and INTEGER_RANK.get(t.kind, 3) < INTEGER_RANK[TypeKind.INT]:
        return INT
    return t


def usual_arithmetic_conversion(a: CType, b: CType) -> CType:
    """Common type of two arithmetic operands (C11 6.3.1.8)."""
    for floating in (LONGDOUBLE, DOUBLE, FLOAT):
        if a.kind is floating.kind or b.kind is floating.kind:
            return floating
    pa, pb = promote(a), promote(b)
    if pa.kind is pb.kind:
        return pa
    if pa.is_unsigned() == pb.is_unsigned():
        return pa if INTEGER_RANK[pa.kind] >= INTEGER_RANK[pb.kind] else pb
    unsigned, signed = (pa, pb) if pa.is_unsigned() else (pb, pa)
    if INTEGER_RANK[unsigned.kind] >= INTEGER_RANK[signed.kind]:
        return unsigned
    return signed


class Sema:
    def __init__(self, unit: "TranslationUnit") -> None:
        self.unit = unit
        self._cache: Dict[int, Optional[CType]] = {}

    @property
    def layout(self):
        return self.unit.layout

    # -- typing --------------------------------------------------------------

    def operand_type(self, node: TSNode) -> Optional[CType]:
        t = self.type_of(node)
        return t.decay() if t is not None else None

    def type_of(self, node: TSNode) -> Optional[CType]:
        """Declared type of an expression, or None when it cannot be determined."""
        cached = self._cache.get(node.id, self)
        if cached is not self:
            return cached  # type: ignore[return-value]
        t = self._compute(node)
        self._cache[node.id] = t
        return t

    def _compute(self, node: TSNode) -> Optional[CType]:
        handler: Optional[Callable[[TSNode], Optional[CType]]] = getattr(
            self, f"_type_{node.type}", None
        )
        if handler is None:
            logger.debug("No typing rule for %s", node.type)
            return None
        return handler(node)

    def _type_identifier(self, node: TSNode) -> Optional[CType]:
        decl = self.unit.decl_of(node)
        if isinstance(decl, (VarDecl, FunctionDecl)):
            return decl.type
        if isinstance(decl, EnumConstantDecl):
            return INT
        return None

    def _type_number_literal(self, node: TSNode) -> Optional[CType]:
        return literal_type(node_text(node))

    def _type_char_literal(self, node: TSNode) -> Optional[CType]:
        return INT

    def _type_string_literal(self, node: TSNode) -> Optional[CType]:
        return array_of(CHAR, string_literal_length(node) + 1)

    _type_concatenated_string = _type_string_literal

    def _type_true(self, node: TSNode) -> Optional[CType]:
        return INT

    _type_false = _type_true

    def _type_null(self, node: TSNode) -> Optional[CType]:
        return pointer_to(VOID)

    def _type_parenthesized_expression(self, node: TSNode) -> Optional[CType]:
        inner = first_named(node)
        return self.type_of(inner) if inner is not None else None

    def _type_binary_expression(self, node: TSNode) -> Optional[CType]:
        op = operator_of(node)
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if op in COMPARISON_OPS or op in LOGICAL_OPS:
            return INT
        lt = self.operand_type(left) if left is not None else None
        rt = self.operand_type(right) if right is not None else None
        if lt is None or rt is None:
            return None
        if op == "+":
            if lt.is_pointer() and rt.is_integer():
                return lt
            if lt.is_integer() and rt.is_pointer():
                return rt
        if op == "-":
            if lt.is_pointer() and rt.is_pointer():
                return PTRDIFF_T
            if lt.is_pointer() and rt.is_integer():
                return lt
        if op in SHIFT_OPS and lt.is_integer():
            return promote(lt)
        if lt.is_arithmetic() and rt.is_arithmetic():
            return usual_arithmetic_conversion(lt, rt)
        return None

    def _type_assignment_expression(self, node: TSNode) -> Optional[CType]:
        left = node.child_by_field_name("left")
        t = self.type_of(left) if left is not None else None
        return t.with_const(False) if t is not None else None

    def _type_unary_expression(self, node: TSNode) -> Optional[CType]:
        op = operator_of(node)
        if op == "!":
            return INT
        arg = node.child_by_field_name("argument")
        t = self.operand_type(arg) if arg is not None else None
        return promote(t) if t is not None else None

    def _type_pointer_expression(self, node: TSNode) -> Optional[CType]:
        op = operator_of(node)
        arg = node.child_by_field_name("argument")
        if arg is None:
            return None
        if op == "&":
            t = self.type_of(arg)
            return pointer_to(t) if t is not None else None
        t = self.operand_type(arg)
        if t is None or not t.is_pointer():
            return None
        return t.pointee

    def _type_update_expression(self, node: TSNode) -> Optional[CType]:
        arg = node.child_by_field_name("argument")
        return self.type_of(arg) if arg is not None else None

    def _type_cast_expression(self, node: TSNode) -> Optional[CType]:
        return self.unit.descriptor_type(node.child_by_field_name("type"))

    def _type_compound_literal_expression(self, node: TSNode) -> Optional[CType]:
        return self.unit.descriptor_type(node.child_by_field_name("type"))

    def _type_sizeof_expression(self, node: TSNode) -> Optional[CType]:
        return SIZE_T

    _type_offsetof_expression = _type_sizeof_expression
    _type_alignof_expression = _type_sizeof_expression

    def _type_subscript_expression(self, node: TSNode) -> Optional[CType]:
        base = node.child_by_field_name("argument")
        index = node.child_by_field_name("index")
        for candidate in (base, index):
            if candidate is None:
                continue
            t = self.operand_type(candidate)
            if t is not None and t.is_pointer():
                return t.pointee
        return None

    def _type_field_expression(self, node: TSNode) -> Optional[CType]:
        record_t = self.member_base_type(node)
        field_name = node_text(node.child_by_field_name("field"))
        if record_t is None or record_t.record is None:
            return None
        member = record_t.record.find_field(field_name)
        return member.type if member is not None else None

    def member_base_type(self, node: TSNode) -> Optional[CType]:
        """Record type accessed by a field_expression (after ``->`` dereference)."""
        arg = node.child_by_field_name("argument")
        if arg is None:
            return None
        if operator_of(node) == "->":
            t = self.operand_type(arg)
            t = t.pointee if t is not None and t.is_pointer() else None
        else:
            t = self.type_of(arg)
        if t is None or not t.is_record():
            return None
        return t

    def _type_call_expression(self, node: TSNode) -> Optional[CType]:
        fn = node.child_by_field_name("function")
        t = self.operand_type(fn) if fn is not None else None
        if t is not None and t.is_pointer() and t.pointee is not None and t.pointee.is_function():
            return t.pointee.return_type
        if fn is not None and fn.type == "identifier" and self.unit.decl_of(fn) is None:
            # Implicitly declared function.
            return INT
        return None

    def _type_conditional_expression(self, node: TSNode) -> Optional[CType]:
        cons = node.child_by_field_name("consequence")
        alt = node.child_by_field_name("alternative")
        ct = self.operand_type(cons) if cons is not None else None
        at = self.operand_type(alt) if alt is not None else None
        if ct is not None and at is not None and ct.is_arithmetic() and at.is_arithmetic():
            return usual_arithmetic_conversion(ct, at)
        if ct is not None and ct.is_pointer():
            return ct
        return at if at is not None else ct

    def _type_comma_expression(self, node: TSNode) -> Optional[CType]:
        right = node.child_by_field_name("right")
        return self.type_of(right) if right is not None else None

    # -- constants -----------------------------------------------------------

    def evaluate_constant(self, node: Optional[TSNode]) -> Optional[int]:
        """Value of an integer constant expression, or None if it is not one."""
        if node is None:
            return None
        kind = node.type
        if kind == "number_literal":
            return parse_int_literal(node_text(node))
        if kind == "char_literal":
            return parse_char_literal(node_text(node))
        if kind in ("true", "false"):
            return 1 if kind == "true" else 0
        if kind == "parenthesized_expression":
            return self.evaluate_constant(first_named(node))
        if kind == "identifier":
            decl = self.unit.decl_of(node)
            if isinstance(decl, EnumConstantDecl):
                return decl.value
            return None
        if kind in ("sizeof_expression", "alignof_expression", "offsetof_expression"):
            return self.size_query(node)
        if kind == "cast_expression":
            target = self.unit.descriptor_type(node.child_by_field_name("type"))
            value = self.evaluate_constant(node.child_by_field_name("value"))
            if target is None or value is None or not target.is_integer():
                return None
            return self.truncate(value, target)
        if kind == "unary_expression":
            value = self.evaluate_constant(node.child_by_field_name("argument"))
            if value is None:
                return None
            return fold_unary(operator_of(node), value)
        if kind == "binary_expression":
            left = self.evaluate_constant(node.child_by_field_name("left"))
            right = self.evaluate_constant(node.child_by_field_name("right"))
            if left is None or right is None:
                return None
            return fold_binary(operator_of(node), left, right)
        if kind == "conditional_expression":
            cond = self.evaluate_constant(node.child_by_field_name("condition"))
            if cond is None:
                return None
            branch = "consequence" if cond else "alternative"
            return self.evaluate_constant(node.child_by_field_name(branch))
        return None

    def size_query(self, node: TSNode) -> Optional[int]:
        """Result of a sizeof/_Alignof/offsetof node, or None when it has no compile-time value."""
        try:
            if node.type == "offsetof_expression":
                record_t = self.unit.descriptor_type(node.child_by_field_name("type"))
                member = node_text(node.child_by_field_name("member"))
                if record_t is None or record_t.record is None:
                    return None
                return self.layout.field_offset(record_t.record, member)
            t = self.queried_type(node)
            if t is None:
                return None
            if node.type == "alignof_expression":
                return self.layout.align_in_chars(t)
            return self.layout.size_in_chars(t)
        except TypeLayoutError as exc:
            logger.debug("No constant value for %s: %s", node.type, exc)
            return None

    def queried_type(self, node: TSNode) -> Optional[CType]:
        """The type measured by a sizeof or _Alignof node."""
        type_node = node.child_by_field_name("type")
        if type_node is not None:
            return self.unit.descriptor_type(type_node)
        value = node.child_by_field_name("value")
        if value is None:
            return None
        # sizeof applied to an expression sees the undecayed type.
        return self.type_of(value)

    def truncate(self, value: int, t: CType) -> int:
        """Convert ``value`` to integer type ``t`` (two's complement wraparound)."""
        if t.kind is TypeKind.BOOL:
            return 1 if value else 0
        if not self.layout.has_size(t):
            return value
        bits = self.layout.size_in_chars(t) * 8
        value &= (1 << bits) - 1
        if not t.is_unsigned() and value >= 1 << (bits - 1):
            value -= 1 << bits
        return value


def fold_unary(op: str, value: int) -> Optional[int]:
    if op == "-":
        return -value
    if op == "+":
        return value
    if op == "~":
        return ~value
    if op == "!":
        return 0 if value else 1
    return None


def fold_binary(op: str, left: int, right: int) -> Optional[int]:
    """Evaluate a C integer operator on Python ints; None on division by zero or unknown op."""
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op in ("/", "%"):
        if right == 0:
            return None
        quotient = abs(left) // abs(right)
        if (left < 0) != (right < 0):
            quotient = -quotient
        return quotient if op == "/" else left - quotient * right
    if op == "<<":
        return left << right if right >= 0 else None
    if op == ">>":
        return left >> right if right >= 0 else None
    if op == "&":
        return left & right
    if op == "|":
        return left | right
    if op == "^":
        return left ^ right
    if op == "&&":
        return int(bool(left) and bool(right))
    if op == "||":
        return int(bool(left) or bool(right))
    comparisons = {
        "<": left < right,
        ">": left > right,
        "<=": left <= right,
        ">=": left >= right,
        "==": left == right,
        "!=": left != right,
    }
    if op in comparisons:
        return int(comparisons[op])
    return None
