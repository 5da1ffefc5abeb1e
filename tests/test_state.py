"""Tests for ProgramState: store, environment and path constraints."""

from scalecheck.engine.state import ProgramState
from scalecheck.engine.values import (
    UNKNOWN,
    ConcreteInt,
    ElementRegion,
    FieldRegion,
    LocVal,
    SymbolConjured,
    SymbolRegionValue,
    SymbolVal,
    SymExpr,
    VarRegion,
)

X = VarRegion("x", 1, 1)
Y = VarRegion("y", 1, 2)


def test_bind_returns_new_state():
    empty = ProgramState()
    bound = empty.bind(X, ConcreteInt(8, from_sizeof=True))
    assert empty.lookup(X) is None
    assert bound.lookup(X) == ConcreteInt(8, from_sizeof=True)
    assert bound.lookup(X).is_from_sizeof()


def test_equal_contents_hash_equal():
    a = ProgramState().bind(X, ConcreteInt(1)).bind(Y, ConcreteInt(2))
    b = ProgramState().bind(Y, ConcreteInt(2)).bind(X, ConcreteInt(1))
    assert a == b
    assert hash(a) == hash(b)
    assert a != a.bind(X, ConcreteInt(1, from_sizeof=True))


def test_invalidate_drops_subregions():
    s = ProgramState()
    s = s.bind(FieldRegion(X, "len"), ConcreteInt(4))
    s = s.bind(ElementRegion(FieldRegion(X, "data"), 0), ConcreteInt(5))
    s = s.bind(Y, ConcreteInt(6))
    s = s.invalidate([X])
    assert s.lookup(FieldRegion(X, "len")) is None
    assert s.lookup(ElementRegion(FieldRegion(X, "data"), 0)) is None
    assert s.lookup(Y) == ConcreteInt(6)


def test_env_snapshot_and_restore():
    s = ProgramState().bind_expr(10, ConcreteInt(3))
    saved = s.env_snapshot()
    s = s.clear_env().bind_expr(11, ConcreteInt(4))
    assert s.get_sval(10) is UNKNOWN
    s = s.restore_env(saved)
    assert s.get_sval(10) == ConcreteInt(3)
    assert s.get_sval(11) is UNKNOWN


def test_clear_env_is_identity_when_empty():
    s = ProgramState()
    assert s.clear_env() is s


def test_conjure_is_fresh():
    s = ProgramState()
    s, first = s.conjure(7)
    s, second = s.conjure(7)
    assert first != second
    assert isinstance(first, SymbolConjured)


def test_assume_concrete_and_locations():
    s = ProgramState()
    assert s.assume(ConcreteInt(0), False) is s
    assert s.assume(ConcreteInt(0), True) is None
    assert s.assume(LocVal(X), True) is s
    assert s.assume(LocVal(X), False) is None
    assert s.assume(UNKNOWN, True) is s
    assert s.assume(UNKNOWN, False) is s


def test_assume_symbol_records_equality():
    sym = SymbolRegionValue(X)
    s = ProgramState()
    taken = s.assume(SymbolVal(SymExpr("==", sym, 3)), True)
    assert taken is not None
    assert taken.known_value(sym) == 3
    assert taken.assume(SymbolVal(SymExpr("==", sym, 4)), True) is None
    assert taken.assume(SymbolVal(SymExpr("!=", sym, 3)), True) is None


def test_assume_bare_symbol_means_nonzero():
    sym = SymbolRegionValue(X)
    s = ProgramState().assume(SymbolVal(sym), False)
    assert s.known_value(sym) == 0
    assert s.assume(SymbolVal(sym), True) is None


def test_assume_relational_fact_and_negation():
    sym = SymbolRegionValue(X)
    s = ProgramState().assume(SymbolVal(SymExpr("<", sym, 10)), True)
    assert s.assume(SymbolVal(SymExpr(">=", sym, 10)), True) is None
    assert s.assume(SymbolVal(SymExpr("!", SymExpr("<", sym, 10))), True) is None
    assert s.assume(SymbolVal(SymExpr("<", sym, 10)), True) is s
