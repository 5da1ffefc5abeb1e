"""
Immutable per-path program state.

A ProgramState holds three maps:

- the store: memory region -> value currently held there;
- the environment: syntax node id -> value of that sub-expression while the
  current statement is being evaluated;
- path constraints: what has been assumed about symbols on this path.

Every mutator returns a new state; the receiver is never modified. States
with the same contents compare and hash equal, which is what lets the
exploded graph recognise a revisited (location, state) pair.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from scalecheck.engine.values import (
    UNKNOWN,
    ConcreteInt,
    FunctionVal,
    LocVal,
    MemRegion,
    SVal,
    Symbol,
    SymbolConjured,
    SymbolVal,
    SymExpr,
    lineage,
)

logger = logging.getLogger(__name__)

# Relational operators and the operator that expresses their negation.
_NEGATED_OPS = {"!=": "==", ">=": "<", "<=": ">"}


class ProgramState:
    __slots__ = ("_store", "_env", "_eqs", "_neqs", "_facts", "_conjured", "_hash")

    def __init__(
        self,
        store: Optional[Mapping[MemRegion, SVal]] = None,
        env: Optional[Mapping[int, SVal]] = None,
        eqs: Optional[Mapping[Symbol, int]] = None,
        neqs: Optional[Mapping[Symbol, FrozenSet[int]]] = None,
        facts: Optional[Mapping[Symbol, bool]] = None,
        conjured: int = 0,
    ) -> None:
        self._store: Dict[MemRegion, SVal] = dict(store or {})
        self._env: Dict[int, SVal] = dict(env or {})
        self._eqs: Dict[Symbol, int] = dict(eqs or {})
        self._neqs: Dict[Symbol, FrozenSet[int]] = dict(neqs or {})
        self._facts: Dict[Symbol, bool] = dict(facts or {})
        self._conjured = conjured
        self._hash: Optional[int] = None

    def _copy(self, **changes) -> "ProgramState":
        return ProgramState(
            store=changes.get("store", self._store),
            env=changes.get("env", self._env),
            eqs=changes.get("eqs", self._eqs),
            neqs=changes.get("neqs", self._neqs),
            facts=changes.get("facts", self._facts),
            conjured=changes.get("conjured", self._conjured),
        )

    # -- store --------------------------------------------------------------

    def bind(self, region: MemRegion, value: SVal) -> "ProgramState":
        store = dict(self._store)
        store[region] = value
        return self._copy(store=store)

    def lookup(self, region: MemRegion) -> Optional[SVal]:
        """Value bound to ``region`` on this path, or None if never written."""
        return self._store.get(region)

    def invalidate(self, regions) -> "ProgramState":
        """Forget the contents of ``regions`` and everything stored beneath them."""
        targets = set(regions)
        store = {
            r: v for r, v in self._store.items() if not any(a in targets for a in lineage(r))
        }
        return self._copy(store=store)

    @property
    def store(self) -> Mapping[MemRegion, SVal]:
        return dict(self._store)

    # -- environment ---------------------------------------------------------

    def bind_expr(self, node_id: int, value: SVal) -> "ProgramState":
        env = dict(self._env)
        env[node_id] = value
        return self._copy(env=env)

    def get_sval(self, node_id: int) -> SVal:
        """Value of a sub-expression evaluated on this path (UnknownVal if never evaluated)."""
        return self._env.get(node_id, UNKNOWN)

    def env_snapshot(self) -> Dict[int, SVal]:
        return dict(self._env)

    def restore_env(self, env: Mapping[int, SVal]) -> "ProgramState":
        """Reinstate the expression bindings of a caller after an inlined call returns."""
        return self._copy(env=env)

    def clear_env(self) -> "ProgramState":
        if not self._env:
            return self
        return self._copy(env={})

    # -- symbols --------------------------------------------------------------

    def conjure(self, node_id: int) -> Tuple["ProgramState", SymbolConjured]:
        """Create a fresh symbol for an expression the engine cannot evaluate."""
        sym = SymbolConjured(node_id, self._conjured)
        return self._copy(conjured=self._conjured + 1), sym

    def known_value(self, sym: Symbol) -> Optional[int]:
        return self._eqs.get(sym)

    # -- constraints -----------------------------------------------------------

    def assume(self, cond: SVal, truth: bool) -> Optional["ProgramState"]:
        """
        Return the state refined by ``cond == truth``, or None if that is infeasible.

        Unknown and undefined conditions are compatible with both outcomes.
        """
        if isinstance(cond, ConcreteInt):
            return self if (cond.value != 0) == truth else None
        if isinstance(cond, (LocVal, FunctionVal)):
            return self if truth else None
        if isinstance(cond, SymbolVal):
            return self._assume_symbol(cond.symbol, truth)
        return self

    def _assume_symbol(self, sym: Symbol, truth: bool) -> Optional["ProgramState"]:
        # Normalise negations so that each fact has a single canonical key.
        while isinstance(sym, SymExpr):
            if sym.op == "!" and sym.right is None and isinstance(sym.left, Symbol):
                sym, truth = sym.left, not truth
            elif sym.op in _NEGATED_OPS:
                sym, truth = SymExpr(_NEGATED_OPS[sym.op], sym.left, sym.right), not truth
            else:
                break

        if isinstance(sym, SymExpr) and sym.op == "==":
            lhs, rhs = sym.left, sym.right
            if isinstance(lhs, int) and isinstance(rhs, Symbol):
                lhs, rhs = rhs, lhs
            if isinstance(lhs, Symbol) and isinstance(rhs, int):
                return self._assume_equal(lhs, rhs, truth)

        if isinstance(sym, SymExpr):
            known = self._facts.get(sym)
            if known is not None:
                return self if known == truth else None
            facts = dict(self._facts)
            facts[sym] = truth
            return self._copy(facts=facts)

        # A bare symbol used as a condition means ``sym != 0``.
        return self._assume_equal(sym, 0, not truth)

    def _assume_equal(self, sym: Symbol, value: int, truth: bool) -> Optional["ProgramState"]:
        known = self._eqs.get(sym)
        excluded = self._neqs.get(sym, frozenset())
        if truth:
            if known is not None:
                return self if known == value else None
            if value in excluded:
                return None
            eqs = dict(self._eqs)
            eqs[sym] = value
            return self._copy(eqs=eqs)
        if known is not None:
            return None if known == value else self
        if value in excluded:
            return self
        neqs = dict(self._neqs)
        neqs[sym] = excluded | {value}
        return self._copy(neqs=neqs)

    # -- identity ---------------------------------------------------------------

    def _key(self):
        return (
            frozenset(self._store.items()),
            frozenset(self._env.items()),
            frozenset(self._eqs.items()),
            frozenset(self._neqs.items()),
            frozenset(self._facts.items()),
            self._conjured,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProgramState):
            return NotImplemented
        return self is other or self._key() == other._key()

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(self._key())
        return self._hash

    def __repr__(self) -> str:
        bindings = ", ".join(f"{r}={v}" for r, v in self._store.items())
        return f"<ProgramState {{{bindings}}}>"
