# Badly scaled pointer arithmetic: a pointer offset computed from sizeof or offsetof.
#
# Pointer arithmetic already scales the integer operand by the pointee size,
# so ``p + sizeof(int)`` on an ``int *`` advances 4 * sizeof(int) bytes, not
# 4. The rule fires on ``+``, ``-``, ``+=`` and ``-=`` whose integer operand
# carries sizeof/offsetof provenance on the current path, unless the pointee
# is exactly one byte wide (``char *``), where the two readings agree.

from __future__ import annotations

import logging
from typing import Optional

from tree_sitter import Node as TSNode

from scalecheck.engine.bug_reporter import BugType, PathSensitiveBugReport
from scalecheck.engine.c_types import CType
from scalecheck.engine.checker_manager import CheckerContext
from scalecheck.engine.layout import TargetLayout
from scalecheck.engine.options import AnalyzerOptions
from scalecheck.engine.syntax import operator_of
from scalecheck.rules.base import PathSensitiveRule

logger = logging.getLogger(__name__)

RULE_ID = "bad-scaled-pointer-arithmetic"

ADDITIVE_OPERATORS = frozenset({"+", "-", "+=", "-="})

BAD_SCALED_POINTER_ARITHMETIC = BugType(
    checker=RULE_ID,
    name="Badly scaled pointer arithmetic",
    category="Suspicious operation",
)


def is_single_byte_pointee(pointee: Optional[CType], layout: TargetLayout) -> bool:
    """
    True when ``pointee`` has a statically known size of exactly one char.

    Pointees without a usable size (unknown, incomplete, dependent, variably
    modified, functions) are never single-byte.
    """
    if pointee is None:
        return False
    if pointee.is_incomplete() or pointee.is_dependent():
        return False
    if pointee.is_dependent_sized_array() or not pointee.is_constant_size():
        return False
    if not layout.has_size(pointee):
        return False
    return layout.size_in_chars(pointee) == 1


def _side_message(side: str) -> str:
    return f"In pointer arithmetic {side} argument is calculated from a sizeof or offsetof expression"


class BadScaledPointerArithmeticRule(PathSensitiveRule):
    """Detects pointer arithmetic whose offset is a byte count from sizeof/offsetof."""

    id = RULE_ID
    name = "Badly scaled pointer arithmetic"

    def should_register(self, options: AnalyzerOptions) -> bool:
        return True

    def check_pre_binary_operator(self, node: TSNode, ctx: CheckerContext) -> None:
        if operator_of(node) not in ADDITIVE_OPERATORS:
            return
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None:
            return
        lt = ctx.type_of(left)
        rt = ctx.type_of(right)
        if lt is None or rt is None:
            return

        if lt.is_pointer() and rt.is_integer():
            pointer_t, scalar, side = lt, right, "right"
        elif lt.is_integer() and rt.is_pointer():
            pointer_t, scalar, side = rt, left, "left"
        else:
            return

        if not ctx.get_sval(scalar).is_from_sizeof():
            return
        if is_single_byte_pointee(pointer_t.pointee, ctx.layout):
            return
        self._report(ctx, side)

    def _report(self, ctx: CheckerContext, side: str) -> None:
        node = ctx.generate_non_fatal_error_node(ctx.get_state())
        if node is None:
            return
        ctx.emit_report(PathSensitiveBugReport(BAD_SCALED_POINTER_ARITHMETIC, _side_message(side), node))
