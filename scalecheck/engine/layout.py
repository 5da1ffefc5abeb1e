"""
Target data layout: sizes, alignments and member offsets of C types.

Sizes are expressed in chars (the smallest addressable unit). Only complete,
non-dependent, constant-size types have a size; asking for anything else
raises TypeLayoutError, so callers are expected to check the type first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

from scalecheck.engine.c_types import CType, RecordDecl, TypeKind, spell
from scalecheck.engine.errors import TypeLayoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetLayout:
    """Size and alignment of every builtin kind for one target ABI."""

    name: str
    builtin_sizes: Dict[TypeKind, int]
    pointer_size: int
    builtin_aligns: Dict[TypeKind, int] = field(default_factory=dict)

    def _builtin_align(self, kind: TypeKind) -> int:
        return self.builtin_aligns.get(kind, self.builtin_sizes[kind])

    def has_size(self, t: CType) -> bool:
        """True when size_in_chars(t) is well defined."""
        return self._has_size(t, set())

    def _has_size(self, t: CType, visiting: set) -> bool:
        if t.is_incomplete() or t.is_dependent() or not t.is_constant_size():
            return False
        if t.kind is TypeKind.ARRAY:
            return t.inner is not None and self._has_size(t.inner, visiting)
        if t.kind is TypeKind.RECORD:
            assert t.record is not None
            if id(t.record) in visiting:
                return False
            visiting = visiting | {id(t.record)}
            fields = t.record.fields or []
            for i, f in enumerate(fields):
                if _is_flexible_member(f.type) and i == len(fields) - 1 and not t.record.is_union:
                    continue
                if not self._has_size(f.type, visiting):
                    return False
        return True

    def size_in_chars(self, t: CType) -> int:
        return self._layout(t)[0]

    def align_in_chars(self, t: CType) -> int:
        return self._layout(t)[1]

    def field_offset(self, record: RecordDecl, member: str) -> int:
        """Byte offset of ``member`` inside ``record`` (offsetof semantics)."""
        if not record.is_complete:
            raise TypeLayoutError(f"offsetof into incomplete {record!r}")
        offsets, _, _ = self._record_layout(record)
        if member in offsets:
            return offsets[member]
        # Anonymous members contribute their own members at a base offset.
        for f in record.fields or ():
            if not f.name and f.type.kind is TypeKind.RECORD and f.type.record is not None:
                if f.type.record.find_field(member) is not None:
                    return offsets[id(f)] + self.field_offset(f.type.record, member)
        raise TypeLayoutError(f"no member named {member!r} in {record!r}")

    # -- internals ----------------------------------------------------------

    def _layout(self, t: CType) -> Tuple[int, int]:
        if not self.has_size(t):
            raise TypeLayoutError(f"type {spell(t)} has no constant size")
        kind = t.kind
        if kind in self.builtin_sizes:
            return self.builtin_sizes[kind], self._builtin_align(kind)
        if kind is TypeKind.ENUM:
            return self.builtin_sizes[TypeKind.INT], self._builtin_align(TypeKind.INT)
        if kind is TypeKind.POINTER:
            return self.pointer_size, self.pointer_size
        if kind is TypeKind.ARRAY:
            assert t.inner is not None and t.length is not None
            size, align = self._layout(t.inner)
            return size * t.length, align
        if kind is TypeKind.RECORD:
            assert t.record is not None
            _, size, align = self._record_layout(t.record)
            return size, align
        raise TypeLayoutError(f"type {spell(t)} has no layout on {self.name}")

    def _record_layout(self, record: RecordDecl) -> Tuple[Dict, int, int]:
        offsets: Dict = {}
        offset = 0
        size = 0
        max_align = 1
        for f in record.fields or ():
            if _is_flexible_member(f.type):
                assert f.type.inner is not None
                f_size, f_align = 0, self.align_in_chars(f.type.inner)
            else:
                f_size, f_align = self._layout(f.type)
            max_align = max(max_align, f_align)
            if record.is_union:
                start = 0
                size = max(size, f_size)
            else:
                start = _align_to(offset, f_align)
                offset = start + f_size
                size = offset
            offsets[f.name if f.name else id(f)] = start
        size = _align_to(size, max_align)
        logger.debug("Laid out %r: size=%d align=%d", record, size, max_align)
        return offsets, size, max_align


def _is_flexible_member(t: CType) -> bool:
    """``T member[];`` as the trailing member of a struct."""
    return (
        t.kind is TypeKind.ARRAY
        and t.length is None
        and not t.is_vla
        and not t.dependent_size
        and t.inner is not None
        and not t.inner.is_incomplete()
    )


def _align_to(value: int, align: int) -> int:
    return (value + align - 1) // align * align


_COMMON_SIZES: Dict[TypeKind, int] = {
    TypeKind.BOOL: 1,
    TypeKind.CHAR: 1,
    TypeKind.SCHAR: 1,
    TypeKind.UCHAR: 1,
    TypeKind.SHORT: 2,
    TypeKind.USHORT: 2,
    TypeKind.INT: 4,
    TypeKind.UINT: 4,
    TypeKind.LONGLONG: 8,
    TypeKind.ULONGLONG: 8,
    TypeKind.FLOAT: 4,
    TypeKind.DOUBLE: 8,
}

LP64 = TargetLayout(
    name="lp64",
    builtin_sizes={
        **_COMMON_SIZES,
        TypeKind.LONG: 8,
        TypeKind.ULONG: 8,
        TypeKind.LONGDOUBLE: 16,
    },
    pointer_size=8,
)

ILP32 = TargetLayout(
    name="ilp32",
    builtin_sizes={
        **_COMMON_SIZES,
        TypeKind.LONG: 4,
        TypeKind.ULONG: 4,
        TypeKind.LONGDOUBLE: 12,
    },
    pointer_size=4,
    builtin_aligns={
        TypeKind.LONGLONG: 4,
        TypeKind.ULONGLONG: 4,
        TypeKind.DOUBLE: 4,
        TypeKind.LONGDOUBLE: 4,
    },
)

TARGETS: Dict[str, TargetLayout] = {LP64.name: LP64, ILP32.name: ILP32}


def get_target(name: str) -> TargetLayout:
    """Return the layout preset called ``name`` ("lp64" or "ilp32")."""
    try:
        return TARGETS[name.lower()]
    except KeyError:
        raise ValueError(
            f"unknown target {name!r}; expected one of {', '.join(sorted(TARGETS))}"
        ) from None
