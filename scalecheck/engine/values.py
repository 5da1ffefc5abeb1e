"""
Symbolic values, symbols and memory regions.

Every value the engine manipulates is an SVal. Defined values carry a
``from_sizeof`` provenance flag: True when the value was produced by a
sizeof/_Alignof/offsetof expression, either directly or after being copied
around (assignment, parameter passing, casts, loads and stores). The engine
preserves the flag simply by moving the same SVal object around; operators
that compute something new (arithmetic, comparisons, bitwise ops) build a
fresh, untagged value.

All classes here are frozen dataclasses so program states built from them
are hashable and comparable.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from scalecheck.engine.c_types import CType, spell

# ---------------------------------------------------------------------------
# Memory regions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MemRegion:
    """Base class for addressable storage."""

    def base(self) -> "MemRegion":
        return self


@dataclass(frozen=True)
class VarRegion(MemRegion):
    """Storage of a named variable in one stack frame (frame 0 = globals)."""

    name: str
    frame: int
    decl_id: int

    def __str__(self) -> str:
        return self.name if self.frame == 0 else f"{self.name}@{self.frame}"


@dataclass(frozen=True)
class SymbolicRegion(MemRegion):
    """Memory pointed to by a pointer whose value is a symbol."""

    symbol: "Symbol"

    def __str__(self) -> str:
        return f"*{self.symbol}"


@dataclass(frozen=True)
class FieldRegion(MemRegion):
    parent: MemRegion
    field: str

    def base(self) -> MemRegion:
        return self.parent.base()

    def __str__(self) -> str:
        return f"{self.parent}.{self.field}"


@dataclass(frozen=True)
class ElementRegion(MemRegion):
    parent: MemRegion
    index: int

    def base(self) -> MemRegion:
        return self.parent.base()

    def __str__(self) -> str:
        return f"{self.parent}[{self.index}]"


@dataclass(frozen=True)
class StringRegion(MemRegion):
    """Storage for a string literal, keyed by its syntax node."""

    node_id: int
    text: str

    def __str__(self) -> str:
        return f"string#{self.node_id}"


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Symbol:
    """Base class for symbolic (unknown but fixed) values."""


@dataclass(frozen=True)
class SymbolRegionValue(Symbol):
    """The initial value stored in a region when analysis began."""

    region: MemRegion

    def __str__(self) -> str:
        return f"reg<{self.region}>"


@dataclass(frozen=True)
class SymbolConjured(Symbol):
    """A value produced by an expression the engine cannot model (e.g. an external call)."""

    node_id: int
    count: int

    def __str__(self) -> str:
        return f"conj#{self.node_id}.{self.count}"


@dataclass(frozen=True)
class SymExpr(Symbol):
    """A symbolic operation: ``op`` applied to symbols and/or integers."""

    op: str
    left: Union[Symbol, int]
    right: Union[Symbol, int, None] = None

    def __str__(self) -> str:
        if self.right is None:
            return f"({self.op}{self.left})"
        return f"({self.left} {self.op} {self.right})"


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SVal:
    """Base class of symbolic values."""

    def is_from_sizeof(self) -> bool:
        """True when this value was computed from a sizeof or offsetof expression."""
        return bool(getattr(self, "from_sizeof", False))

    def is_undefined(self) -> bool:
        return False

    def is_unknown(self) -> bool:
        return False

    def as_int(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class UndefinedVal(SVal):
    """Value of an uninitialised local."""

    def is_undefined(self) -> bool:
        return True

    def __str__(self) -> str:
        return "Undefined"


@dataclass(frozen=True)
class UnknownVal(SVal):
    """A value the engine gave up tracking."""

    def is_unknown(self) -> bool:
        return True

    def __str__(self) -> str:
        return "Unknown"


@dataclass(frozen=True)
class ConcreteInt(SVal):
    value: int
    from_sizeof: bool = False

    def as_int(self) -> Optional[int]:
        return self.value

    def __str__(self) -> str:
        return f"{self.value}{' [sizeof]' if self.from_sizeof else ''}"


@dataclass(frozen=True)
class SymbolVal(SVal):
    symbol: Symbol
    from_sizeof: bool = False

    def __str__(self) -> str:
        return f"{self.symbol}{' [sizeof]' if self.from_sizeof else ''}"


@dataclass(frozen=True)
class LocVal(SVal):
    """A pointer to ``region`` plus a byte offset (None when unknown)."""

    region: MemRegion
    offset: Optional[int] = 0
    from_sizeof: bool = False

    def __str__(self) -> str:
        return f"&{self.region}{'' if self.offset == 0 else f'+{self.offset}'}"


@dataclass(frozen=True)
class FunctionVal(SVal):
    """The address of a function defined or declared in the translation unit."""

    name: str

    def __str__(self) -> str:
        return f"&{self.name}()"


def lineage(region: MemRegion) -> Iterator[MemRegion]:
    """Yield ``region`` and each region enclosing it, innermost first."""
    current: Optional[MemRegion] = region
    while current is not None:
        yield current
        current = getattr(current, "parent", None)


UNKNOWN = UnknownVal()
UNDEFINED = UndefinedVal()


def with_provenance(val: SVal, from_sizeof: bool) -> SVal:
    """Return ``val`` with its provenance flag set to ``from_sizeof``."""
    if not hasattr(val, "from_sizeof") or val.is_from_sizeof() == from_sizeof:
        return val
    return dataclasses.replace(val, from_sizeof=from_sizeof)


def describe(val: SVal, t: Optional[CType] = None) -> str:
    """Short debugging rendering of a value and (optionally) its static type."""
    if t is None:
        return str(val)
    return f"{val} : {spell(t)}"
