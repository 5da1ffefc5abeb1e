"""
Path-sensitive symbolic execution over the tree-sitter-c AST.

ExprEngine analyzes every function defined in a translation unit as an
entry point. Statements are executed one at a time against a ProgramState;
a branch whose condition is not decided by the state forks the path, and
each fork is pruned as soon as its constraints become contradictory.

Every statement entry is recorded as an (program point, state) node of the
ExplodedGraph. Reaching a node that already exists means the rest of that
path was explored before, so exploration of it stops ("caching out").

Expression evaluation returns a list of (path, value) pairs because
``&&``, ``||``, ``?:`` and inlined calls may fork. The value of each
evaluated sub-expression is bound in the state's environment, which is
what CheckerContext.get_sval() reads.

Exploration is bounded:

- loops are unrolled at most ``max_loop_iterations`` times, and a backward
  ``goto`` is taken at most as often on one path; paths that
  would iterate further are dropped;
- calls to functions defined in the same file are inlined up to
  ``max_inline_depth``, other calls are evaluated conservatively;
- at most ``max_paths`` live paths are kept after each statement.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from tree_sitter import Node as TSNode

from scalecheck.engine.bug_reporter import BugReporter
from scalecheck.engine.c_types import INT, CType, TypeKind
from scalecheck.engine.checker_manager import CheckerContext, CheckerManager
from scalecheck.engine.declarations import TranslationUnit
from scalecheck.engine.decls import EnumConstantDecl, FunctionDecl, VarDecl
from scalecheck.engine.exploded_graph import ExplodedGraph, ExplodedNode, ProgramPoint
from scalecheck.engine.options import AnalyzerOptions
from scalecheck.engine.sema import COMPARISON_OPS, fold_binary, fold_unary
from scalecheck.engine.state import ProgramState
from scalecheck.engine.syntax import (
    first_named,
    is_float_literal,
    node_text,
    named_children,
    operator_of,
    parse_char_literal,
    parse_int_literal,
    walk,
)
from scalecheck.engine.values import (
    UNDEFINED,
    UNKNOWN,
    ConcreteInt,
    ElementRegion,
    FieldRegion,
    FunctionVal,
    LocVal,
    MemRegion,
    StringRegion,
    SVal,
    SymbolicRegion,
    SymbolRegionValue,
    SymbolVal,
    SymExpr,
    VarRegion,
    lineage,
)

logger = logging.getLogger(__name__)

GLOBAL_FRAME = 0

# Aggregates larger than this are not zero-filled element by element.
_MAX_ZERO_FILL = 64

# Statements whose remaining children run in order after the one control left.
_SEQUENCES = frozenset(
    {"compound_statement", "case_statement", "labeled_statement", "preproc_ifdef", "preproc_if"}
)


class Flow(enum.Enum):
    NORMAL = "normal"
    BREAK = "break"
    CONTINUE = "continue"
    RETURN = "return"


@dataclass(frozen=True)
class Frame:
    """One activation of a function: top-level analysis or an inlined call."""

    index: int
    function: FunctionDecl
    parent: Optional["Frame"] = None
    depth: int = 0

    def is_active(self, fn: FunctionDecl) -> bool:
        frame: Optional[Frame] = self
        while frame is not None:
            if frame.function is fn:
                return True
            frame = frame.parent
        return False


@dataclass(frozen=True)
class Path:
    state: ProgramState
    node: ExplodedNode

    def with_state(self, state: ProgramState) -> "Path":
        return Path(state, self.node)


@dataclass(frozen=True)
class Outcome:
    """How execution of a statement ended on one path."""

    path: Path
    flow: Flow = Flow.NORMAL
    value: Optional[SVal] = None


Evaluated = Tuple[Path, SVal]


class ExprEngine:
    def __init__(
        self,
        root: TSNode,
        manager: CheckerManager,
        options: Optional[AnalyzerOptions] = None,
    ) -> None:
        self.options = options or manager.options
        self.layout = self.options.layout
        self.unit = TranslationUnit.build(root, self.layout)
        self.sema = self.unit.sema
        self.manager = manager
        self.graph = ExplodedGraph()
        self.reporter = BugReporter()
        self._frame_count = GLOBAL_FRAME
        # Regions whose unwritten contents are unknown rather than uninitialised.
        self._symbolic_bases: Set[MemRegion] = set()
        # Static storage declared const; opaque calls cannot change it.
        self._readonly: Set[MemRegion] = set()

    # -- driver ----------------------------------------------------------------

    def run(self) -> BugReporter:
        for fn in self.unit.defined_functions():
            self.analyze_function(fn)
        logger.debug(
            "Exploded graph has %d node(s); %d report(s)", len(self.graph), len(self.reporter)
        )
        return self.reporter

    def analyze_function(self, fn: FunctionDecl) -> List[Outcome]:
        """Explore ``fn`` as an entry point with unknown arguments and globals."""
        if fn.body is None or fn.definition is None:
            return []
        logger.debug("Analyzing %s", fn.name)
        frame = self._new_frame(fn, None)
        state = ProgramState()
        root, _ = self.graph.get_node(self.program_point(fn.definition, frame, kind="entry"), state)
        path = self._bind_globals(Path(state, root), frame, is_main=fn.name == "main")
        state = path.state
        for param in fn.params:
            if not param.name:
                continue
            region = self.region_of(param, frame)
            self._symbolic_bases.add(region)
            if param.type.is_scalar():
                state = state.bind(region, SymbolVal(SymbolRegionValue(region)))
        outcomes = self.exec_stmt(fn.body, path.with_state(state), frame)
        logger.debug("Finished %s: %d path(s) reached the end", fn.name, len(outcomes))
        return outcomes

    def _new_frame(self, fn: FunctionDecl, parent: Optional[Frame]) -> Frame:
        self._frame_count += 1
        depth = parent.depth + 1 if parent is not None else 0
        return Frame(self._frame_count, fn, parent, depth)

    def _bind_globals(self, path: Path, frame: Frame, is_main: bool) -> Path:
        # Only main is known to start with the initial values of mutable globals.
        for var in self.unit.globals.values():
            if var.init is None or var.is_extern:
                continue
            if not (is_main or var.type.is_const):
                continue
            region = self.region_of(var, frame)
            if var.type.is_const:
                self._readonly.add(region)
            paths = self._initialize(region, var.type, var.init, path, frame)
            if paths:
                path = paths[0]
        return path.with_state(path.state.clear_env())

    # -- program points and regions ----------------------------------------

    def program_point(self, node: TSNode, frame: Frame, kind: str = "stmt") -> ProgramPoint:
        return ProgramPoint(
            node_id=node.id,
            frame=frame.index,
            kind=kind,
            line=node.start_point[0] + 1,
            column=node.start_point[1] + 1,
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            end_line=node.end_point[0] + 1,
            end_column=node.end_point[1] + 1,
        )

    def region_of(self, var: VarDecl, frame: Frame) -> VarRegion:
        if var.is_global or var.is_extern:
            return VarRegion(var.name, GLOBAL_FRAME, 0)
        if var.is_static:
            return VarRegion(var.name, GLOBAL_FRAME, var.decl_id)
        return VarRegion(var.name, frame.index, var.decl_id)

    # -- statements -------------------------------------------------------------

    def exec_stmt(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        entered = self._enter(node, path, frame)
        if entered is None:
            return []
        handler = getattr(self, f"_exec_{node.type}", None)
        if handler is None:
            logger.debug("Skipping %s at line %d", node.type, node.start_point[0] + 1)
            return [Outcome(entered)]
        return handler(node, entered, frame)

    def _enter(self, node: TSNode, path: Path, frame: Frame) -> Optional[Path]:
        state = path.state.clear_env()
        location = self.program_point(node, frame)
        exploded, is_new = self.graph.get_node(location, state, pred=path.node)
        if not is_new:
            return None
        return Path(state, exploded)

    def _exec_sequence(self, stmts: List[TSNode], path: Path, frame: Frame) -> List[Outcome]:
        finished: List[Outcome] = []
        live = [path]
        for stmt in stmts:
            following: List[Path] = []
            for p in live:
                for out in self.exec_stmt(stmt, p, frame):
                    if out.flow is Flow.NORMAL:
                        following.append(out.path)
                    else:
                        finished.append(out)
            live = self._limit(following, stmt)
            if not live:
                break
        return finished + [Outcome(p) for p in live]

    def _limit(self, paths: List[Path], stmt: TSNode) -> List[Path]:
        if len(paths) <= self.options.max_paths:
            return paths
        logger.debug(
            "Dropping %d path(s) after line %d",
            len(paths) - self.options.max_paths,
            stmt.end_point[0] + 1,
        )
        return paths[: self.options.max_paths]

    def _exec_compound_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        return self._exec_sequence(named_children(node), path, frame)

    def _exec_expression_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        expr = first_named(node)
        if expr is None:
            return [Outcome(path)]
        return [Outcome(p) for p, _ in self.eval(expr, path, frame)]

    def _exec_declaration(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        paths = [path]
        for var in self.unit.declared_vars(node):
            paths = [q for p in paths for q in self._declare(var, p, frame)]
        return [Outcome(p) for p in paths]

    def _declare(self, var: VarDecl, path: Path, frame: Frame) -> List[Path]:
        if var.is_extern or var.init is None:
            return [path]
        region = self.region_of(var, frame)
        if var.is_static:
            if not var.type.is_const:
                return [path]
            self._readonly.add(region)
        return self._initialize(region, var.type, var.init, path, frame)

    def _exec_if_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")
        if alternative is not None and alternative.type == "else_clause":
            alternative = first_named(alternative)
        outcomes: List[Outcome] = []
        for p, truth in self._branch(node.child_by_field_name("condition"), path, frame):
            taken = consequence if truth else alternative
            if taken is None:
                outcomes.append(Outcome(p))
            else:
                outcomes.extend(self.exec_stmt(taken, p, frame))
        return outcomes

    def _exec_while_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        return self._loop(
            node, node.child_by_field_name("condition"), node.child_by_field_name("body"), None, path, frame
        )

    def _exec_do_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        return self._loop(
            node,
            node.child_by_field_name("condition"),
            node.child_by_field_name("body"),
            None,
            path,
            frame,
            test_first=False,
        )

    def _exec_for_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        init = node.child_by_field_name("initializer")
        paths = [path]
        if init is not None:
            if init.type == "declaration":
                paths = [o.path for o in self._exec_declaration(init, path, frame)]
            else:
                paths = [p for p, _ in self.eval(init, path, frame)]
        outcomes: List[Outcome] = []
        for p in paths:
            outcomes.extend(
                self._loop(
                    node,
                    node.child_by_field_name("condition"),
                    node.child_by_field_name("body"),
                    node.child_by_field_name("update"),
                    p,
                    frame,
                )
            )
        return outcomes

    def _loop(
        self,
        node: TSNode,
        condition: Optional[TSNode],
        body: Optional[TSNode],
        update: Optional[TSNode],
        path: Path,
        frame: Frame,
        test_first: bool = True,
    ) -> List[Outcome]:
        limit = self.options.max_loop_iterations
        done: List[Outcome] = []
        current = [path]
        for iteration in range(limit + 1):
            entering: List[Path] = []
            for p in current:
                if condition is None or (iteration == 0 and not test_first):
                    entering.append(p)
                    continue
                for q, truth in self._branch(condition, p, frame):
                    if truth:
                        entering.append(q)
                    else:
                        done.append(Outcome(q))
            if iteration == limit:
                if entering:
                    logger.debug(
                        "Loop at line %d exceeded %d iteration(s); %d path(s) dropped",
                        node.start_point[0] + 1,
                        limit,
                        len(entering),
                    )
                break
            current = []
            for p in entering:
                outcomes = self.exec_stmt(body, p, frame) if body is not None else [Outcome(p)]
                for out in outcomes:
                    if out.flow in (Flow.NORMAL, Flow.CONTINUE):
                        if update is None:
                            current.append(out.path)
                        else:
                            current.extend(q for q, _ in self.eval(update, out.path, frame))
                    elif out.flow is Flow.BREAK:
                        done.append(Outcome(out.path))
                    else:
                        done.append(out)
            current = self._limit(current, node)
            if not current:
                break
        return done

    def _exec_switch_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        body = node.child_by_field_name("body")
        cases = [c for c in named_children(body) if c.type == "case_statement"] if body else []
        outcomes: List[Outcome] = []
        for p, value in self.eval(node.child_by_field_name("condition"), path, frame):
            value = self._simplify(p.state, value)
            unmatched = [p]
            default_at: Optional[int] = None
            for i, case in enumerate(cases):
                label = case.child_by_field_name("value")
                if label is None:
                    default_at = i
                    continue
                label_value = self.sema.evaluate_constant(label)
                test = UNKNOWN if label_value is None else self._compare("==", value, label_value)
                remaining: List[Path] = []
                for q in unmatched:
                    taken = q.state.assume(test, True)
                    if taken is not None:
                        outcomes.extend(self._run_cases(cases[i:], q.with_state(taken), frame))
                    skipped = q.state.assume(test, False)
                    if skipped is not None:
                        remaining.append(q.with_state(skipped))
                unmatched = remaining
            for q in unmatched:
                if default_at is None:
                    outcomes.append(Outcome(q))
                else:
                    outcomes.extend(self._run_cases(cases[default_at:], q, frame))
        return outcomes

    def _run_cases(self, cases: List[TSNode], path: Path, frame: Frame) -> List[Outcome]:
        # Control falls through from the matched label to the end of the switch body.
        stmts: List[TSNode] = []
        for case in cases:
            label = case.child_by_field_name("value")
            stmts.extend(
                c for c in named_children(case) if label is None or c.id != label.id
            )
        outcomes = []
        for out in self._exec_sequence(stmts, path, frame):
            if out.flow is Flow.BREAK:
                out = Outcome(out.path)
            outcomes.append(out)
        return outcomes

    def _exec_case_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        # Reached only when a case label appears outside a switch body.
        return self._run_cases([node], path, frame)

    def _exec_return_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        expr = first_named(node)
        if expr is None:
            return [Outcome(path, Flow.RETURN)]
        return [Outcome(p, Flow.RETURN, v) for p, v in self.eval(expr, path, frame)]

    def _exec_break_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        return [Outcome(path, Flow.BREAK)]

    def _exec_continue_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        return [Outcome(path, Flow.CONTINUE)]

    def _exec_labeled_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        stmts = [c for c in named_children(node) if c.type != "statement_identifier"]
        return self._exec_sequence(stmts, path, frame)

    def _exec_goto_statement(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        name = node_text(node.child_by_field_name("label"))
        target = _find_label(frame.function.body, name)
        if target is None:
            logger.debug("goto %s at line %d: no such label", name, node.start_point[0] + 1)
            self._sink(node, path, frame)
            return []
        if target.start_byte < node.start_byte:
            here = self.program_point(node, frame)
            taken = sum(1 for n in path.node.path() if n.location == here)
            if taken > self.options.max_loop_iterations:
                logger.debug(
                    "Backward goto at line %d taken %d time(s); path dropped", node.start_point[0] + 1, taken
                )
                self._sink(node, path, frame)
                return []
        return self._resume_at(target, path, frame)

    def _sink(self, node: TSNode, path: Path, frame: Frame) -> None:
        self.graph.get_node(self.program_point(node, frame, kind="sink"), path.state, path.node, is_sink=True)

    def _resume_at(self, target: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        """
        Execute from ``target`` to the end of the function body.

        Each statement enclosing the label is finished the way control would
        leave it: a block runs its remaining statements and a loop goes round
        again. Every path that gets through the body returns from the
        function, so the statements after the goto itself never run on them.
        """
        body = frame.function.body
        outcomes = self.exec_stmt(target, path, frame)
        child = target
        while body is not None and child.id != body.id and child.parent is not None:
            parent = child.parent
            outcomes = self._leave(parent, child, outcomes, frame)
            child = parent
        finished: List[Outcome] = []
        for out in outcomes:
            if out.flow is Flow.NORMAL:
                finished.append(Outcome(out.path, Flow.RETURN))
            elif out.flow is Flow.RETURN:
                finished.append(out)
        return finished

    def _leave(self, parent: TSNode, child: TSNode, outcomes: List[Outcome], frame: Frame) -> List[Outcome]:
        """Continue ``outcomes`` of ``child`` through the remainder of ``parent``."""
        kind = parent.type
        result: List[Outcome] = []
        if kind in _SEQUENCES:
            skipped = parent.child_by_field_name("alternative")
            rest = [
                c
                for c in named_children(parent)
                if c.start_byte > child.start_byte and (skipped is None or c.id != skipped.id)
            ]
            if parent.parent is not None and parent.parent.type == "switch_statement":
                # Later cases fall through; break is left for the switch itself.
                flat: List[TSNode] = []
                for c in rest:
                    if c.type != "case_statement":
                        flat.append(c)
                        continue
                    label = c.child_by_field_name("value")
                    flat.extend(s for s in named_children(c) if label is None or s.id != label.id)
                rest = flat
            for out in outcomes:
                if out.flow is Flow.NORMAL:
                    result.extend(self._exec_sequence(rest, out.path, frame))
                else:
                    result.append(out)
            return result
        if kind in ("while_statement", "do_statement", "for_statement"):
            condition = parent.child_by_field_name("condition")
            body = parent.child_by_field_name("body")
            update = parent.child_by_field_name("update")
            for out in outcomes:
                if out.flow in (Flow.NORMAL, Flow.CONTINUE):
                    paths = [out.path]
                    if update is not None:
                        paths = [q for q, _ in self.eval(update, out.path, frame)]
                    for p in paths:
                        result.extend(self._loop(parent, condition, body, update, p, frame))
                elif out.flow is Flow.BREAK:
                    result.append(Outcome(out.path))
                else:
                    result.append(out)
            return result
        if kind == "switch_statement":
            return [Outcome(out.path) if out.flow is Flow.BREAK else out for out in outcomes]
        return outcomes

    def _exec_preproc_ifdef(self, node: TSNode, path: Path, frame: Frame) -> List[Outcome]:
        # Conditional blocks inside a body: follow the first branch only.
        skipped = {
            child.id
            for child in (
                node.child_by_field_name("name"),
                node.child_by_field_name("condition"),
                node.child_by_field_name("alternative"),
            )
            if child is not None
        }
        stmts = [c for c in named_children(node) if c.id not in skipped]
        return self._exec_sequence(stmts, path, frame)

    _exec_preproc_if = _exec_preproc_ifdef

    # -- branching -----------------------------------------------------------

    def _branch(self, condition: Optional[TSNode], path: Path, frame: Frame) -> List[Tuple[Path, bool]]:
        if condition is None:
            return [(path, True)]
        results: List[Tuple[Path, bool]] = []
        for p, value in self.eval(condition, path, frame):
            value = self._simplify(p.state, value)
            for truth in (True, False):
                state = p.state.assume(value, truth)
                if state is not None:
                    results.append((p.with_state(state), truth))
        return results

    def _simplify(self, state: ProgramState, value: SVal) -> SVal:
        """Replace a symbol the path has pinned to a constant by that constant."""
        if isinstance(value, SymbolVal):
            known = state.known_value(value.symbol)
            if known is not None:
                return ConcreteInt(known, from_sizeof=value.from_sizeof)
        return value

    # -- expressions -------------------------------------------------------------

    def eval(self, node: Optional[TSNode], path: Path, frame: Frame) -> List[Evaluated]:
        """Evaluate an rvalue; every resulting path has the value bound for ``node``."""
        if node is None:
            return [(path, UNKNOWN)]
        handler = getattr(self, f"_eval_{node.type}", None)
        if handler is None:
            logger.debug("Unmodelled expression %s at line %d", node.type, node.start_point[0] + 1)
            results: List[Evaluated] = [(path, UNKNOWN)]
        else:
            results = handler(node, path, frame)
        return [(p.with_state(p.state.bind_expr(node.id, v)), v) for p, v in results]

    def _eval_identifier(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        decl = self.unit.decl_of(node)
        if isinstance(decl, VarDecl):
            region = self.region_of(decl, frame)
            return [(path, self.load(path.state, region, decl.type))]
        if isinstance(decl, FunctionDecl):
            return [(path, FunctionVal(decl.name))]
        if isinstance(decl, EnumConstantDecl):
            return [(path, ConcreteInt(decl.value))]
        return [(path, UNKNOWN)]

    def _eval_number_literal(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        text = node_text(node)
        if is_float_literal(text):
            return [(path, UNKNOWN)]
        value = parse_int_literal(text)
        return [(path, UNKNOWN if value is None else ConcreteInt(value))]

    def _eval_char_literal(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        value = parse_char_literal(node_text(node))
        return [(path, UNKNOWN if value is None else ConcreteInt(value))]

    def _eval_true(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        return [(path, ConcreteInt(1))]

    def _eval_false(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        return [(path, ConcreteInt(0))]

    _eval_null = _eval_false

    def _eval_string_literal(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        return [(path, LocVal(ElementRegion(StringRegion(node.id, node_text(node)), 0)))]

    _eval_concatenated_string = _eval_string_literal

    def _eval_parenthesized_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        return self.eval(first_named(node), path, frame)

    def _eval_sizeof_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        value = self.sema.size_query(node)
        if value is not None:
            return [(path, ConcreteInt(value, from_sizeof=True))]
        # Variable-length arrays and records without a layout: the size is a
        # runtime quantity, but it is still a size.
        state, sym = path.state.conjure(node.id)
        return [(path.with_state(state), SymbolVal(sym, from_sizeof=True))]

    _eval_alignof_expression = _eval_sizeof_expression
    _eval_offsetof_expression = _eval_sizeof_expression

    def _eval_cast_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        target = self.unit.descriptor_type(node.child_by_field_name("type"))
        return [
            (p, self.convert(v, target))
            for p, v in self.eval(node.child_by_field_name("value"), path, frame)
        ]

    def _eval_comma_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        results: List[Evaluated] = []
        for p, _ in self.eval(node.child_by_field_name("left"), path, frame):
            results.extend(self.eval(node.child_by_field_name("right"), p, frame))
        return results

    def _eval_conditional_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")
        result_t = self.sema.type_of(node)
        results: List[Evaluated] = []
        for p, cond in self.eval(node.child_by_field_name("condition"), path, frame):
            cond = self._simplify(p.state, cond)
            for truth in (True, False):
                state = p.state.assume(cond, truth)
                if state is None:
                    continue
                q = p.with_state(state)
                branch = consequence if truth else alternative
                if branch is None:
                    # GNU ``a ?: b`` yields the condition itself.
                    results.append((q, cond))
                    continue
                results.extend((r, self.convert(v, result_t)) for r, v in self.eval(branch, q, frame))
        return results

    def _eval_unary_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        op = operator_of(node)
        results: List[Evaluated] = []
        for p, v in self.eval(node.child_by_field_name("argument"), path, frame):
            v = self._simplify(p.state, v)
            if op == "+":
                results.append((p, v))
            elif isinstance(v, ConcreteInt):
                folded = fold_unary(op, v.value)
                results.append((p, UNKNOWN if folded is None else ConcreteInt(folded)))
            elif op == "!" and isinstance(v, (LocVal, FunctionVal)):
                results.append((p, ConcreteInt(0)))
            elif isinstance(v, SymbolVal):
                results.append((p, SymbolVal(SymExpr(op, v.symbol))))
            else:
                results.append((p, UNKNOWN))
        return results

    def _eval_binary_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        op = operator_of(node)
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if op in ("&&", "||"):
            return self._eval_logical(node, op, left, right, path, frame)
        lt = self.sema.operand_type(left) if left is not None else None
        rt = self.sema.operand_type(right) if right is not None else None
        result_t = self.sema.type_of(node)
        results: List[Evaluated] = []
        for p1, lv in self.eval(left, path, frame):
            for p2, rv in self.eval(right, p1, frame):
                p3 = self._pre_binary(node, p2, frame)
                results.append((p3, self.binary_op(p3.state, op, lv, rv, lt, rt, result_t)))
        return results

    def _eval_logical(
        self,
        node: TSNode,
        op: str,
        left: Optional[TSNode],
        right: Optional[TSNode],
        path: Path,
        frame: Frame,
    ) -> List[Evaluated]:
        results: List[Evaluated] = []
        for p, lv in self.eval(left, path, frame):
            lv = self._simplify(p.state, lv)
            for truth in (True, False):
                state = p.state.assume(lv, truth)
                if state is None:
                    continue
                q = p.with_state(state)
                if truth == (op == "||"):
                    results.append((self._pre_binary(node, q, frame), ConcreteInt(int(truth))))
                    continue
                for r, rv in self.eval(right, q, frame):
                    r = self._pre_binary(node, r, frame)
                    rv = self._simplify(r.state, rv)
                    for rtruth in (True, False):
                        rstate = r.state.assume(rv, rtruth)
                        if rstate is not None:
                            results.append((r.with_state(rstate), ConcreteInt(int(rtruth))))
        return results

    def _pre_binary(self, node: TSNode, path: Path, frame: Frame) -> Path:
        """Run pre-binary-operator checkers; continue from the node they add, if any."""
        if not self.manager.has_pre_binary_hooks:
            return path
        ctx = CheckerContext(self, path, frame, node)
        self.manager.run_pre_binary_operator(node, ctx)
        if ctx.generated is not None:
            return Path(path.state, ctx.generated)
        return path

    def _eval_assignment_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        op = operator_of(node)
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        lt = self.sema.type_of(left) if left is not None else None
        rt = self.sema.operand_type(right) if right is not None else None
        results: List[Evaluated] = []
        for p1, region in self.eval_lvalue(left, path, frame):
            if op == "=":
                current: SVal = LocVal(region) if region is not None else UNKNOWN
            else:
                current = self.load(p1.state, region, lt) if region is not None else UNKNOWN
            p1 = p1.with_state(p1.state.bind_expr(left.id, current))
            for p2, rv in self.eval(right, p1, frame):
                p3 = self._pre_binary(node, p2, frame)
                if op == "=":
                    value = rv
                else:
                    value = self.binary_op(
                        p3.state, op[:-1], current, rv, lt.decay() if lt else None, rt, lt
                    )
                value = self.convert(value, lt)
                state = p3.state
                if region is not None:
                    state = self._store(state, region, lt, value)
                results.append((p3.with_state(state), value))
        return results

    def _eval_update_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        op = operator_of(node)
        arg = node.child_by_field_name("argument")
        t = self.sema.type_of(arg) if arg is not None else None
        prefix = node.children[0].type in ("++", "--")
        results: List[Evaluated] = []
        for p, region in self.eval_lvalue(arg, path, frame):
            if region is None:
                results.append((p, UNKNOWN))
                continue
            old = self.load(p.state, region, t)
            new = self.binary_op(p.state, op[0], old, ConcreteInt(1), t, INT, t)
            new = self.convert(new, t)
            results.append((p.with_state(p.state.bind(region, new)), new if prefix else old))
        return results

    def _eval_pointer_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        arg = node.child_by_field_name("argument")
        if operator_of(node) == "&":
            if arg is not None and isinstance(self.unit.decl_of(arg), FunctionDecl):
                return self.eval(arg, path, frame)
            return [
                (p, LocVal(region) if region is not None else UNKNOWN)
                for p, region in self.eval_lvalue(arg, path, frame)
            ]
        t = self.sema.type_of(node)
        if t is not None and t.is_function():
            # ``*fp`` designates the function itself.
            return self.eval(arg, path, frame)
        return self._load_lvalue(node, t, path, frame)

    def _eval_subscript_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        return self._load_lvalue(node, self.sema.type_of(node), path, frame)

    _eval_field_expression = _eval_subscript_expression

    def _eval_compound_literal_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        return self._load_lvalue(node, self.sema.type_of(node), path, frame)

    def _load_lvalue(self, node: TSNode, t: Optional[CType], path: Path, frame: Frame) -> List[Evaluated]:
        results: List[Evaluated] = []
        for p, region in self.eval_lvalue(node, path, frame):
            value = self.load(p.state, region, t) if region is not None else UNKNOWN
            results.append((p, value))
        return results

    # -- calls ------------------------------------------------------------------

    def _eval_call_expression(self, node: TSNode, path: Path, frame: Frame) -> List[Evaluated]:
        arguments = node.child_by_field_name("arguments")
        args = named_children(arguments) if arguments is not None else []
        results: List[Evaluated] = []
        for p, callee in self.eval(node.child_by_field_name("function"), path, frame):
            pending: List[Tuple[Path, List[SVal]]] = [(p, [])]
            for arg in args:
                pending = [
                    (q, values + [v]) for r, values in pending for q, v in self.eval(arg, r, frame)
                ]
            fn = self.unit.functions.get(callee.name) if isinstance(callee, FunctionVal) else None
            for q, values in pending:
                if fn is not None and self._can_inline(fn, frame):
                    results.extend(self._inline_call(node, fn, values, q, frame))
                else:
                    results.append(self._opaque_call(node, values, q))
        return results

    def _can_inline(self, fn: FunctionDecl, frame: Frame) -> bool:
        if fn.body is None or fn.definition is None:
            return False
        if frame.depth >= self.options.max_inline_depth:
            return False
        return not frame.is_active(fn)

    def _inline_call(
        self,
        node: TSNode,
        fn: FunctionDecl,
        values: List[SVal],
        path: Path,
        frame: Frame,
    ) -> List[Evaluated]:
        callee = self._new_frame(fn, frame)
        saved_env = path.state.env_snapshot()
        state = path.state.clear_env()
        for param, value in zip(fn.params, values):
            if param.name:
                state = self._store(state, self.region_of(param, callee), param.type, value)
        location = self.program_point(fn.definition, callee, kind="call-enter")
        entry, _ = self.graph.get_node(location, state, pred=path.node)
        ret_t = fn.type.return_type
        results: List[Evaluated] = []
        for out in self.exec_stmt(fn.body, Path(state, entry), callee):
            value = UNKNOWN
            if out.flow is Flow.RETURN and out.value is not None and ret_t is not None and not ret_t.is_void():
                value = self.convert(out.value, ret_t)
            results.append((Path(out.path.state.restore_env(saved_env), out.path.node), value))
        return results

    def _opaque_call(self, node: TSNode, values: List[SVal], path: Path) -> Evaluated:
        """A call whose body is not analyzed: it may write through its pointer arguments and to globals."""
        state = path.state
        targets: List[MemRegion] = []
        for v in values:
            if isinstance(v, LocVal) and not isinstance(v.region.base(), StringRegion):
                targets.append(v.region.base())
            elif isinstance(v, SymbolVal):
                targets.append(SymbolicRegion(v.symbol))
        for region in state.store:
            base = region.base()
            if isinstance(base, VarRegion) and base.frame == GLOBAL_FRAME and base not in self._readonly:
                targets.append(base)
        if targets:
            state = state.invalidate(targets)
            for region in targets:
                self._symbolic_bases.add(region)
                state, sym = state.conjure(node.id)
                state = state.bind(region, SymbolVal(sym))
        t = self.sema.type_of(node)
        if t is None or t.is_void():
            return path.with_state(state), UNKNOWN
        state, sym = state.conjure(node.id)
        return path.with_state(state), SymbolVal(sym)

    # -- lvalues and memory ------------------------------------------------------

    def eval_lvalue(
        self, node: Optional[TSNode], path: Path, frame: Frame
    ) -> List[Tuple[Path, Optional[MemRegion]]]:
        """Evaluate ``node`` as an lvalue: the region it designates, or None if unknown."""
        if node is None:
            return [(path, None)]
        kind = node.type
        if kind == "parenthesized_expression":
            return self.eval_lvalue(first_named(node), path, frame)
        if kind == "identifier":
            decl = self.unit.decl_of(node)
            if isinstance(decl, VarDecl):
                return [(path, self.region_of(decl, frame))]
            return [(path, None)]
        if kind == "pointer_expression" and operator_of(node) == "*":
            pointee = self.sema.type_of(node)
            return [
                (p, self._deref(v, pointee))
                for p, v in self.eval(node.child_by_field_name("argument"), path, frame)
            ]
        if kind == "subscript_expression":
            return self._subscript_lvalue(node, path, frame)
        if kind == "field_expression":
            return self._field_lvalue(node, path, frame)
        if kind == "compound_literal_expression":
            region = VarRegion(f"compound#{node.id}", frame.index, node.id)
            t = self.sema.type_of(node)
            init = node.child_by_field_name("value")
            return [(p, region) for p in self._initialize(region, t, init, path, frame)]
        if kind in ("string_literal", "concatenated_string"):
            return [(path, StringRegion(node.id, node_text(node)))]
        return [(p, None) for p, _ in self.eval(node, path, frame)]

    def _subscript_lvalue(self, node: TSNode, path: Path, frame: Frame) -> List[Tuple[Path, Optional[MemRegion]]]:
        base = node.child_by_field_name("argument")
        index = node.child_by_field_name("index")
        element_t = self.sema.type_of(node)
        base_t = self.sema.operand_type(base) if base is not None else None
        if base_t is not None and base_t.is_integer():
            # ``2[a]`` is ``a[2]``.
            base, index = index, base
        results: List[Tuple[Path, Optional[MemRegion]]] = []
        for p1, pointer in self.eval(base, path, frame):
            for p2, offset in self.eval(index, p1, frame):
                offset = self._simplify(p2.state, offset)
                region: Optional[MemRegion] = None
                if isinstance(offset, ConcreteInt):
                    region = self._deref(pointer, element_t, offset.value)
                results.append((p2, region))
        return results

    def _field_lvalue(self, node: TSNode, path: Path, frame: Frame) -> List[Tuple[Path, Optional[MemRegion]]]:
        arg = node.child_by_field_name("argument")
        name = node_text(node.child_by_field_name("field"))
        if operator_of(node) == "->":
            record_t = self.sema.member_base_type(node)
            bases = [(p, self._deref(v, record_t)) for p, v in self.eval(arg, path, frame)]
        else:
            bases = self.eval_lvalue(arg, path, frame)
        return [(p, FieldRegion(r, name) if r is not None else None) for p, r in bases]

    def _deref(self, pointer: SVal, pointee: Optional[CType], index: int = 0) -> Optional[MemRegion]:
        """Region designated by ``pointer[index]`` for an object of type ``pointee``."""
        if isinstance(pointer, SymbolVal):
            region: MemRegion = SymbolicRegion(pointer.symbol)
            return region if index == 0 else ElementRegion(region, index)
        if not isinstance(pointer, LocVal) or pointer.offset is None:
            return None
        if pointer.offset == 0:
            return self._element(pointer.region, index)
        if pointee is None or not self.layout.has_size(pointee):
            return None
        size = self.layout.size_in_chars(pointee)
        if size == 0 or pointer.offset % size:
            return None
        return self._element(pointer.region, pointer.offset // size + index)

    @staticmethod
    def _element(region: MemRegion, index: int) -> MemRegion:
        if isinstance(region, ElementRegion):
            return ElementRegion(region.parent, region.index + index) if index else region
        return ElementRegion(region, index) if index else region

    def load(self, state: ProgramState, region: MemRegion, t: Optional[CType]) -> SVal:
        """Value read from ``region``; arrays and records evaluate to their address."""
        if t is not None and t.is_array():
            return LocVal(ElementRegion(region, 0))
        if t is not None and t.is_record():
            return LocVal(region)
        if t is not None and t.is_function():
            return UNKNOWN
        value = state.lookup(region)
        if value is not None:
            return value
        base = region.base()
        if isinstance(base, StringRegion):
            return self._string_char(region, base)
        if isinstance(base, VarRegion) and base.frame != GLOBAL_FRAME and not self._has_unknown_contents(region):
            return UNDEFINED
        return SymbolVal(SymbolRegionValue(region))

    def _has_unknown_contents(self, region: MemRegion) -> bool:
        return any(r in self._symbolic_bases for r in lineage(region))

    @staticmethod
    def _string_char(region: MemRegion, base: StringRegion) -> SVal:
        if isinstance(region, ElementRegion) and region.parent == base:
            text = base.text
            body = text[text.find('"') + 1 : text.rfind('"')]
            if "\\" not in body and 0 <= region.index <= len(body):
                return ConcreteInt(ord(body[region.index]) if region.index < len(body) else 0)
        return UNKNOWN

    def _store(self, state: ProgramState, region: MemRegion, t: Optional[CType], value: SVal) -> ProgramState:
        if t is not None and t.is_record():
            if isinstance(value, LocVal) and value.offset == 0:
                if value.region == region:
                    return state
                return self._copy_aggregate(state, value.region, region)
            # A struct produced by an unanalyzed call: contents unknown.
            self._symbolic_bases.add(region)
            return state.invalidate([region])
        return state.bind(region, value)

    def _copy_aggregate(self, state: ProgramState, source: MemRegion, target: MemRegion) -> ProgramState:
        """Struct assignment: copy every binding under ``source`` to the same path under ``target``."""
        snapshot = state.store
        state = state.invalidate([target])
        for region, value in snapshot.items():
            relocated = _relocate(region, source, target)
            if relocated is not None:
                state = state.bind(relocated, value)
        if self._has_unknown_contents(source) or isinstance(source.base(), SymbolicRegion):
            self._symbolic_bases.add(target)
        return state

    def convert(self, value: SVal, t: Optional[CType]) -> SVal:
        """Implicit or explicit conversion to ``t``; the provenance flag survives."""
        if t is None:
            return value
        if t.is_void():
            return UNKNOWN
        if t.is_integer() and isinstance(value, ConcreteInt):
            converted = self.sema.truncate(value.value, t)
            if converted != value.value:
                return ConcreteInt(converted, from_sizeof=value.from_sizeof)
        return value

    # -- initialisation -----------------------------------------------------

    def _initialize(
        self,
        region: MemRegion,
        t: Optional[CType],
        init: Optional[TSNode],
        path: Path,
        frame: Frame,
    ) -> List[Path]:
        if init is None:
            return [path]
        if init.type == "initializer_list":
            if t is not None and (t.is_array() or t.is_record()):
                return self._initialize_aggregate(region, t, init, path, frame)
            first = first_named(init)
            return self._initialize(region, t, first, path, frame) if first is not None else [path]
        if t is not None and t.is_array():
            # ``char s[] = "..."``: contents are modelled through the literal.
            return [p for p, _ in self.eval(init, path, frame)]
        return [p.with_state(self._store(p.state, region, t, self.convert(v, t))) for p, v in self.eval(init, path, frame)]

    def _initialize_aggregate(
        self,
        region: MemRegion,
        t: CType,
        init: TSNode,
        path: Path,
        frame: Frame,
    ) -> List[Path]:
        paths = [path.with_state(self._zero_fill(path.state, region, t))]
        fields = [f for f in (t.record.fields or []) if f.name or f.type.is_record()] if t.record else []
        cursor = 0
        for item in named_children(init):
            value = item
            target: Optional[MemRegion] = None
            target_t: Optional[CType] = None
            if item.type == "initializer_pair":
                value = item.child_by_field_name("value")
                target, target_t, cursor = self._designate(region, t, fields, item, cursor)
            elif t.is_array():
                target, target_t = ElementRegion(region, cursor), t.element
                cursor += 1
            elif cursor < len(fields):
                member = fields[cursor]
                target, target_t = FieldRegion(region, member.name), member.type
                cursor += 1
            if target is None:
                paths = [p for q in paths for p, _ in self.eval(value, q, frame)]
                continue
            paths = [p for q in paths for p in self._initialize(target, target_t, value, q, frame)]
        return paths

    def _designate(self, region, t, fields, pair: TSNode, cursor: int):
        """Resolve a designator chain such as ``.a.b[2]`` to (region, type, next cursor)."""
        target: Optional[MemRegion] = region
        target_t: Optional[CType] = t
        for depth, designator in enumerate(pair.children_by_field_name("designator")):
            if target is None or target_t is None:
                return None, None, cursor
            if designator.type == "field_designator":
                name = node_text(first_named(designator))
                member = target_t.record.find_field(name) if target_t.record else None
                if member is None:
                    return None, None, cursor
                if depth == 0:
                    positions = [f.name for f in fields]
                    cursor = positions.index(name) + 1 if name in positions else cursor
                target, target_t = FieldRegion(target, name), member.type
            elif designator.type == "subscript_designator":
                index = self.sema.evaluate_constant(first_named(designator))
                if index is None or not target_t.is_array():
                    return None, None, cursor
                if depth == 0:
                    cursor = index + 1
                target, target_t = ElementRegion(target, index), target_t.element
            else:
                return None, None, cursor
        return target, target_t, cursor

    def _zero_fill(self, state: ProgramState, region: MemRegion, t: Optional[CType], depth: int = 0) -> ProgramState:
        """Members not named by an initializer list are zero."""
        if t is None or depth > 4:
            return state
        if t.is_scalar():
            return state.bind(region, ConcreteInt(0))
        if t.is_array() and t.length is not None and t.length <= _MAX_ZERO_FILL:
            for i in range(t.length):
                state = self._zero_fill(state, ElementRegion(region, i), t.element, depth + 1)
            return state
        if t.is_record() and t.record is not None and t.record.fields:
            members = t.record.fields[:1] if t.record.is_union else t.record.fields
            for member in members:
                if member.name:
                    state = self._zero_fill(state, FieldRegion(region, member.name), member.type, depth + 1)
        return state

    # -- operators --------------------------------------------------------------

    def binary_op(
        self,
        state: ProgramState,
        op: str,
        left: SVal,
        right: SVal,
        lt: Optional[CType],
        rt: Optional[CType],
        result_t: Optional[CType],
    ) -> SVal:
        """Apply a non-logical binary operator. The result never carries sizeof provenance."""
        if left.is_undefined() or right.is_undefined() or left.is_unknown() or right.is_unknown():
            return UNKNOWN
        left = self._simplify(state, left)
        right = self._simplify(state, right)
        if lt is not None and rt is not None:
            if op in ("+", "-") and lt.is_pointer() and rt.is_integer():
                return self._pointer_offset(left, right, lt, op)
            if op == "+" and lt.is_integer() and rt.is_pointer():
                return self._pointer_offset(right, left, rt, op)
            if op == "-" and lt.is_pointer() and rt.is_pointer():
                return self._pointer_difference(left, right, lt)
        if isinstance(left, ConcreteInt) and isinstance(right, ConcreteInt):
            folded = fold_binary(op, left.value, right.value)
            if folded is None:
                return UNKNOWN
            if result_t is not None and result_t.is_integer():
                folded = self.sema.truncate(folded, result_t)
            return ConcreteInt(folded)
        if op in COMPARISON_OPS:
            compared = _compare_locations(op, left, right)
            if compared is not None:
                return compared
        lhs, rhs = _operand(left), _operand(right)
        if lhs is None or rhs is None:
            return UNKNOWN
        return SymbolVal(SymExpr(op, lhs, rhs))

    def _compare(self, op: str, value: SVal, constant: int) -> SVal:
        return self.binary_op(ProgramState(), op, value, ConcreteInt(constant), INT, INT, INT)

    def _pointer_offset(self, pointer: SVal, count: SVal, pointer_t: CType, op: str) -> SVal:
        pointee = pointer_t.pointee
        size: Optional[int] = None
        if pointee is not None and pointee.kind is not TypeKind.VOID and self.layout.has_size(pointee):
            size = self.layout.size_in_chars(pointee)
        elif pointee is not None and pointee.is_void():
            # GNU arithmetic on void * advances by bytes.
            size = 1
        if isinstance(pointer, LocVal):
            if isinstance(count, ConcreteInt) and size is not None and pointer.offset is not None:
                delta = count.value * size
                return LocVal(pointer.region, pointer.offset + delta if op == "+" else pointer.offset - delta)
            return LocVal(pointer.region, None)
        if isinstance(pointer, ConcreteInt) and isinstance(count, ConcreteInt) and size is not None:
            delta = count.value * size
            return ConcreteInt(pointer.value + delta if op == "+" else pointer.value - delta)
        lhs, rhs = _operand(pointer), _operand(count)
        if lhs is None or rhs is None:
            return UNKNOWN
        return SymbolVal(SymExpr(op, lhs, rhs))

    def _pointer_difference(self, left: SVal, right: SVal, pointer_t: CType) -> SVal:
        pointee = pointer_t.pointee
        if (
            isinstance(left, LocVal)
            and isinstance(right, LocVal)
            and left.region == right.region
            and left.offset is not None
            and right.offset is not None
            and pointee is not None
            and self.layout.has_size(pointee)
            and self.layout.size_in_chars(pointee)
        ):
            return ConcreteInt((left.offset - right.offset) // self.layout.size_in_chars(pointee))
        lhs, rhs = _operand(left), _operand(right)
        if lhs is None or rhs is None:
            return UNKNOWN
        return SymbolVal(SymExpr("-", lhs, rhs))


def _operand(value: SVal):
    if isinstance(value, ConcreteInt):
        return value.value
    if isinstance(value, SymbolVal):
        return value.symbol
    return None


def _compare_locations(op: str, left: SVal, right: SVal) -> Optional[SVal]:
    """Fold comparisons between addresses, and between an address and null."""
    if op not in ("==", "!="):
        if isinstance(left, LocVal) and isinstance(right, LocVal) and left.region == right.region:
            if left.offset is not None and right.offset is not None:
                folded = fold_binary(op, left.offset, right.offset)
                return ConcreteInt(folded) if folded is not None else None
        return None
    equal: Optional[bool] = None
    addresses = (LocVal, FunctionVal)
    if isinstance(left, addresses) and isinstance(right, ConcreteInt) and right.value == 0:
        equal = False
    elif isinstance(right, addresses) and isinstance(left, ConcreteInt) and left.value == 0:
        equal = False
    elif isinstance(left, LocVal) and isinstance(right, LocVal):
        if left.region == right.region and left.offset is not None and right.offset is not None:
            equal = left.offset == right.offset
        elif not isinstance(left.region.base(), SymbolicRegion) and not isinstance(
            right.region.base(), SymbolicRegion
        ) and left.region.base() != right.region.base():
            equal = False
    elif isinstance(left, FunctionVal) and isinstance(right, FunctionVal):
        equal = left.name == right.name
    if equal is None:
        return None
    return ConcreteInt(int(equal == (op == "==")))


def _relocate(region: MemRegion, source: MemRegion, target: MemRegion) -> Optional[MemRegion]:
    """Rewrite ``region`` if it lies strictly beneath ``source``, re-rooted at ``target``."""
    chain: List[MemRegion] = []
    current: Optional[MemRegion] = region
    while isinstance(current, (FieldRegion, ElementRegion)):
        if current.parent == source:
            rebuilt: MemRegion = target
            for step in [current] + list(reversed(chain)):
                if isinstance(step, FieldRegion):
                    rebuilt = FieldRegion(rebuilt, step.field)
                else:
                    rebuilt = ElementRegion(rebuilt, step.index)  # type: ignore[union-attr]
            return rebuilt
        chain.append(current)
        current = current.parent
    return None


def _find_label(body: Optional[TSNode], name: str) -> Optional[TSNode]:
    """The labeled_statement called ``name`` inside a function body."""
    if body is None:
        return None
    for node in walk(body):
        if node.type == "labeled_statement" and node_text(node.child_by_field_name("label")) == name:
            return node
    return None
