"""
Checker registration and the context handed to checker callbacks.

A checker is any object with a ``should_register(options)`` predicate and
one or more hook methods. The only event the engine publishes today is
``check_pre_binary_operator(node, ctx)``, fired after both operands of a
binary_expression or assignment_expression have been evaluated and before
the operator itself is applied.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from tree_sitter import Node as TSNode

from scalecheck.engine.bug_reporter import PathSensitiveBugReport
from scalecheck.engine.c_types import CType
from scalecheck.engine.exploded_graph import ExplodedNode
from scalecheck.engine.layout import TargetLayout
from scalecheck.engine.options import AnalyzerOptions
from scalecheck.engine.state import ProgramState
from scalecheck.engine.values import SVal

if TYPE_CHECKING:
    from scalecheck.engine.expr_engine import ExprEngine, Frame, Path

logger = logging.getLogger(__name__)

PreBinaryHook = Callable[[TSNode, "CheckerContext"], None]


class CheckerManager:
    def __init__(self, options: Optional[AnalyzerOptions] = None) -> None:
        self.options = options or AnalyzerOptions()
        self.checkers: List[Any] = []
        self._pre_binary: List[PreBinaryHook] = []

    def register_checker(self, checker: Any) -> bool:
        """Subscribe ``checker`` to the events it implements. Returns False if it opted out."""
        should_register = getattr(checker, "should_register", None)
        if should_register is not None and not should_register(self.options):
            logger.info("Checker %s not registered for this configuration", _name(checker))
            return False
        self.checkers.append(checker)
        hook = getattr(checker, "check_pre_binary_operator", None)
        if hook is not None:
            self._pre_binary.append(hook)
        logger.debug("Registered checker %s", _name(checker))
        return True

    @property
    def has_pre_binary_hooks(self) -> bool:
        return bool(self._pre_binary)

    def run_pre_binary_operator(self, node: TSNode, ctx: "CheckerContext") -> None:
        for hook in self._pre_binary:
            hook(node, ctx)


class CheckerContext:
    """What a checker sees of the engine at one (statement, path) pair."""

    def __init__(self, engine: "ExprEngine", path: "Path", frame: "Frame", stmt: TSNode) -> None:
        self._engine = engine
        self._path = path
        self._frame = frame
        self._stmt = stmt
        self.generated: Optional[ExplodedNode] = None

    @property
    def layout(self) -> TargetLayout:
        return self._engine.layout

    @property
    def current_node(self) -> TSNode:
        return self._stmt

    @property
    def predecessor(self) -> ExplodedNode:
        return self.generated or self._path.node

    def get_state(self) -> ProgramState:
        return self._path.state

    def get_sval(self, expr: TSNode) -> SVal:
        """Symbolic value of an already-evaluated sub-expression on this path."""
        return self._path.state.get_sval(expr.id)

    def type_of(self, expr: TSNode) -> Optional[CType]:
        """Static type of ``expr`` as an operand (arrays and functions decayed to pointers)."""
        return self._engine.sema.operand_type(expr)

    def generate_non_fatal_error_node(self, state: Optional[ProgramState]) -> Optional[ExplodedNode]:
        """
        Add a node to attach a report to; analysis of the path continues afterwards.

        Returns None when the state is infeasible, the path already ended in a
        sink, or an identical node exists (the report was already produced).
        """
        if state is None:
            return None
        pred = self.predecessor
        if pred.is_sink:
            return None
        location = self._engine.program_point(self._stmt, self._frame, kind="error")
        node, is_new = self._engine.graph.get_node(location, state, pred=pred)
        if not is_new:
            logger.debug("Error node at %d:%d already exists", location.line, location.column)
            return None
        self.generated = node
        return node

    def emit_report(self, report: PathSensitiveBugReport) -> None:
        self._engine.reporter.emit_report(report)


def _name(checker: Any) -> str:
    return getattr(checker, "id", type(checker).__name__)
