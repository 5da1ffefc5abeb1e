"""
Static C type model.

CType values are immutable and hashable so they can appear inside symbolic
values and program states. Struct/union/enum declarations are the one
exception: a RecordDecl starts out incomplete (``struct S;``) and becomes
complete when its body is seen, exactly like a C compiler's tag table.
Types referring to the same RecordDecl therefore compare equal by identity
of the declaration, not by field contents.

Typical usage:
    from scalecheck.engine.c_types import INT, CHAR, pointer_to

    p = pointer_to(INT)
    p.is_pointer()          # True
    p.pointee == INT        # True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple


class TypeKind(Enum):
    VOID = auto()
    BOOL = auto()
    CHAR = auto()
    SCHAR = auto()
    UCHAR = auto()
    SHORT = auto()
    USHORT = auto()
    INT = auto()
    UINT = auto()
    LONG = auto()
    ULONG = auto()
    LONGLONG = auto()
    ULONGLONG = auto()
    FLOAT = auto()
    DOUBLE = auto()
    LONGDOUBLE = auto()
    ENUM = auto()
    POINTER = auto()
    ARRAY = auto()
    RECORD = auto()
    FUNCTION = auto()
    # A named type with no visible definition (unknown typedef, macro type).
    OPAQUE = auto()
    # A type whose shape depends on something unresolved (typeof of an unknown expression).
    DEPENDENT = auto()


INTEGER_KINDS = frozenset(
    {
        TypeKind.BOOL,
        TypeKind.CHAR,
        TypeKind.SCHAR,
        TypeKind.UCHAR,
        TypeKind.SHORT,
        TypeKind.USHORT,
        TypeKind.INT,
        TypeKind.UINT,
        TypeKind.LONG,
        TypeKind.ULONG,
        TypeKind.LONGLONG,
        TypeKind.ULONGLONG,
    }
)

FLOATING_KINDS = frozenset({TypeKind.FLOAT, TypeKind.DOUBLE, TypeKind.LONGDOUBLE})

UNSIGNED_KINDS = frozenset(
    {
        TypeKind.BOOL,
        TypeKind.UCHAR,
        TypeKind.USHORT,
        TypeKind.UINT,
        TypeKind.ULONG,
        TypeKind.ULONGLONG,
    }
)

# Conversion rank of each integer kind (C11 6.3.1.1).
INTEGER_RANK: Dict[TypeKind, int] = {
    TypeKind.BOOL: 0,
    TypeKind.CHAR: 1,
    TypeKind.SCHAR: 1,
    TypeKind.UCHAR: 1,
    TypeKind.SHORT: 2,
    TypeKind.USHORT: 2,
    TypeKind.INT: 3,
    TypeKind.UINT: 3,
    TypeKind.ENUM: 3,
    TypeKind.LONG: 4,
    TypeKind.ULONG: 4,
    TypeKind.LONGLONG: 5,
    TypeKind.ULONGLONG: 5,
}

_SPELLING: Dict[TypeKind, str] = {
    TypeKind.VOID: "void",
    TypeKind.BOOL: "_Bool",
    TypeKind.CHAR: "char",
    TypeKind.SCHAR: "signed char",
    TypeKind.UCHAR: "unsigned char",
    TypeKind.SHORT: "short",
    TypeKind.USHORT: "unsigned short",
    TypeKind.INT: "int",
    TypeKind.UINT: "unsigned int",
    TypeKind.LONG: "long",
    TypeKind.ULONG: "unsigned long",
    TypeKind.LONGLONG: "long long",
    TypeKind.ULONGLONG: "unsigned long long",
    TypeKind.FLOAT: "float",
    TypeKind.DOUBLE: "double",
    TypeKind.LONGDOUBLE: "long double",
}


@dataclass(eq=False)
class FieldDecl:
    """One member of a struct or union."""

    name: str
    type: "CType"
    bit_width: Optional[int] = None


@dataclass(eq=False)
class RecordDecl:
    """
    A struct or union tag. ``fields`` is None until the definition is seen.

    Compared by identity: two ``struct S`` references share one RecordDecl.
    """

    tag: Optional[str]
    is_union: bool = False
    fields: Optional[List[FieldDecl]] = None

    @property
    def is_complete(self) -> bool:
        return self.fields is not None

    def define(self, fields: List[FieldDecl]) -> None:
        self.fields = list(fields)

    def find_field(self, name: str) -> Optional[FieldDecl]:
        """Look up a member, descending into anonymous struct/union members."""
        for f in self.fields or ():
            if f.name == name:
                return f
            if not f.name and f.type.kind is TypeKind.RECORD and f.type.record is not None:
                inner = f.type.record.find_field(name)
                if inner is not None:
                    return inner
        return None

    def __repr__(self) -> str:
        keyword = "union" if self.is_union else "struct"
        state = "complete" if self.is_complete else "incomplete"
        return f"<RecordDecl {keyword} {self.tag or '<anonymous>'} {state}>"


@dataclass(eq=False)
class EnumDecl:
    tag: Optional[str]
    constants: Optional[Dict[str, int]] = None

    @property
    def is_complete(self) -> bool:
        return self.constants is not None


@dataclass(frozen=True)
class CType:
    kind: TypeKind
    # Pointee, array element or function return type.
    inner: Optional["CType"] = None
    # Array bound; None for incomplete, variable-length or dependent arrays.
    length: Optional[int] = None
    is_vla: bool = False
    dependent_size: bool = False
    record: Optional[RecordDecl] = None
    enum: Optional[EnumDecl] = None
    params: Tuple["CType", ...] = ()
    variadic: bool = False
    name: Optional[str] = None
    is_const: bool = field(default=False, compare=False)

    # -- classification -----------------------------------------------------

    def is_void(self) -> bool:
        return self.kind is TypeKind.VOID

    def is_pointer(self) -> bool:
        return self.kind is TypeKind.POINTER

    def is_array(self) -> bool:
        return self.kind is TypeKind.ARRAY

    def is_function(self) -> bool:
        return self.kind is TypeKind.FUNCTION

    def is_record(self) -> bool:
        return self.kind is TypeKind.RECORD

    def is_integer(self) -> bool:
        """Integer types in the C sense: _Bool, the char family, integers and complete enums."""
        if self.kind in INTEGER_KINDS:
            return True
        return self.kind is TypeKind.ENUM and self.enum is not None and self.enum.is_complete

    def is_floating(self) -> bool:
        return self.kind in FLOATING_KINDS

    def is_arithmetic(self) -> bool:
        return self.is_integer() or self.is_floating()

    def is_scalar(self) -> bool:
        return self.is_arithmetic() or self.is_pointer()

    def is_unsigned(self) -> bool:
        return self.kind in UNSIGNED_KINDS

    @property
    def pointee(self) -> Optional["CType"]:
        """The pointed-to type for pointers, None for anything else."""
        if self.kind is TypeKind.POINTER:
            return self.inner
        return None

    @property
    def element(self) -> Optional["CType"]:
        if self.kind is TypeKind.ARRAY:
            return self.inner
        return None

    @property
    def return_type(self) -> Optional["CType"]:
        if self.kind is TypeKind.FUNCTION:
            return self.inner
        return None

    def is_incomplete(self) -> bool:
        """void, undefined tags, unbounded arrays and names with no visible definition."""
        if self.kind in (TypeKind.VOID, TypeKind.OPAQUE):
            return True
        if self.kind is TypeKind.RECORD:
            return self.record is None or not self.record.is_complete
        if self.kind is TypeKind.ENUM:
            return self.enum is None or not self.enum.is_complete
        if self.kind is TypeKind.ARRAY:
            if self.length is None and not self.is_vla and not self.dependent_size:
                return True
            return self.inner is None or self.inner.is_incomplete()
        return False

    def is_dependent(self) -> bool:
        if self.kind is TypeKind.DEPENDENT or self.dependent_size:
            return True
        if self.kind in (TypeKind.POINTER, TypeKind.ARRAY, TypeKind.FUNCTION):
            if self.inner is not None and self.inner.is_dependent():
                return True
        if self.kind is TypeKind.FUNCTION:
            return any(p.is_dependent() for p in self.params)
        return False

    def is_dependent_sized_array(self) -> bool:
        return self.kind is TypeKind.ARRAY and self.dependent_size

    def is_constant_size(self) -> bool:
        """False for variable-length arrays, functions and dependent types."""
        if self.is_dependent() or self.kind is TypeKind.FUNCTION:
            return False
        if self.kind is TypeKind.ARRAY:
            if self.is_vla or self.length is None:
                return False
            return self.inner is not None and self.inner.is_constant_size()
        return True

    # -- derived types ------------------------------------------------------

    def decay(self) -> "CType":
        """Array-to-pointer and function-to-pointer conversion."""
        if self.kind is TypeKind.ARRAY and self.inner is not None:
            return pointer_to(self.inner)
        if self.kind is TypeKind.FUNCTION:
            return pointer_to(self)
        return self

    def with_const(self, is_const: bool = True) -> "CType":
        if self.is_const == is_const:
            return self
        return CType(
            kind=self.kind,
            inner=self.inner,
            length=self.length,
            is_vla=self.is_vla,
            dependent_size=self.dependent_size,
            record=self.record,
            enum=self.enum,
            params=self.params,
            variadic=self.variadic,
            name=self.name,
            is_const=is_const,
        )

    def __str__(self) -> str:
        return spell(self)


def spell(t: Optional[CType]) -> str:
    """Render a type in C-like notation for messages and debug logs."""
    if t is None:
        return "<null type>"
    if t.kind in _SPELLING:
        return _SPELLING[t.kind]
    if t.kind is TypeKind.POINTER:
        return f"{spell(t.inner)} *"
    if t.kind is TypeKind.ARRAY:
        if t.length is not None:
            bound = str(t.length)
        elif t.is_vla:
            bound = "*"
        elif t.dependent_size:
            bound = "<dependent>"
        else:
            bound = ""
        return f"{spell(t.inner)}[{bound}]"
    if t.kind is TypeKind.RECORD:
        keyword = "union" if t.record is not None and t.record.is_union else "struct"
        tag = t.record.tag if t.record is not None and t.record.tag else "<anonymous>"
        return f"{keyword} {tag}"
    if t.kind is TypeKind.ENUM:
        tag = t.enum.tag if t.enum is not None and t.enum.tag else "<anonymous>"
        return f"enum {tag}"
    if t.kind is TypeKind.FUNCTION:
        params = ", ".join(spell(p) for p in t.params)
        if t.variadic:
            params = f"{params}, ..." if params else "..."
        return f"{spell(t.inner)} ({params or 'void'})"
    if t.kind is TypeKind.DEPENDENT:
        return f"typeof({t.name or '?'})"
    return t.name or "<opaque>"


def builtin(kind: TypeKind) -> CType:
    return CType(kind=kind)


def pointer_to(t: CType) -> CType:
    return CType(kind=TypeKind.POINTER, inner=t)


def array_of(
    t: CType,
    length: Optional[int],
    *,
    is_vla: bool = False,
    dependent_size: bool = False,
) -> CType:
    return CType(
        kind=TypeKind.ARRAY,
        inner=t,
        length=length,
        is_vla=is_vla,
        dependent_size=dependent_size,
    )


def function_of(ret: CType, params: Tuple[CType, ...] = (), variadic: bool = False) -> CType:
    return CType(kind=TypeKind.FUNCTION, inner=ret, params=tuple(params), variadic=variadic)


def record_type(decl: RecordDecl) -> CType:
    return CType(kind=TypeKind.RECORD, record=decl)


def enum_type(decl: EnumDecl) -> CType:
    return CType(kind=TypeKind.ENUM, enum=decl)


def opaque(name: str) -> CType:
    return CType(kind=TypeKind.OPAQUE, name=name)


def dependent(name: str) -> CType:
    return CType(kind=TypeKind.DEPENDENT, name=name)


VOID = builtin(TypeKind.VOID)
BOOL = builtin(TypeKind.BOOL)
CHAR = builtin(TypeKind.CHAR)
SCHAR = builtin(TypeKind.SCHAR)
UCHAR = builtin(TypeKind.UCHAR)
SHORT = builtin(TypeKind.SHORT)
USHORT = builtin(TypeKind.USHORT)
INT = builtin(TypeKind.INT)
UINT = builtin(TypeKind.UINT)
LONG = builtin(TypeKind.LONG)
ULONG = builtin(TypeKind.ULONG)
LONGLONG = builtin(TypeKind.LONGLONG)
ULONGLONG = builtin(TypeKind.ULONGLONG)
FLOAT = builtin(TypeKind.FLOAT)
DOUBLE = builtin(TypeKind.DOUBLE)
LONGDOUBLE = builtin(TypeKind.LONGDOUBLE)

# size_t / ptrdiff_t on the modelled targets.
SIZE_T = ULONG
PTRDIFF_T = LONG
