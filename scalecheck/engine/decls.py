# Declarations and lexical scopes produced by name resolution.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from tree_sitter import Node as TSNode

from scalecheck.engine.c_types import CType, EnumDecl, RecordDecl


@dataclass(eq=False)
class VarDecl:
    name: str
    type: CType
    decl_id: int
    is_global: bool = False
    is_param: bool = False
    is_static: bool = False
    is_extern: bool = False
    # Initializer expression (or initializer_list) from the declaration, if any.
    init: Optional[TSNode] = None

    @property
    def has_static_storage(self) -> bool:
        return self.is_global or self.is_static


@dataclass(eq=False)
class FunctionDecl:
    name: str
    type: CType
    decl_id: int
    params: List[VarDecl] = field(default_factory=list)
    body: Optional[TSNode] = None
    definition: Optional[TSNode] = None
    implicit: bool = False

    @property
    def is_defined(self) -> bool:
        return self.body is not None


@dataclass(eq=False)
class TypedefDecl:
    name: str
    type: CType


@dataclass(eq=False)
class EnumConstantDecl:
    name: str
    value: int
    enum: Optional[EnumDecl] = None


OrdinaryDecl = Union[VarDecl, FunctionDecl, TypedefDecl, EnumConstantDecl]
TagDecl = Union[RecordDecl, EnumDecl]


class Scope:
    """One lexical block: ordinary identifiers and struct/union/enum tags are separate namespaces."""

    def __init__(self, parent: Optional["Scope"] = None) -> None:
        self.parent = parent
        self.ordinary: Dict[str, OrdinaryDecl] = {}
        self.tags: Dict[str, TagDecl] = {}

    @property
    def is_file_scope(self) -> bool:
        return self.parent is None

    def child(self) -> "Scope":
        return Scope(self)

    def declare(self, name: str, decl: OrdinaryDecl) -> None:
        self.ordinary[name] = decl

    def declare_tag(self, name: str, decl: TagDecl) -> None:
        self.tags[name] = decl

    def lookup(self, name: str) -> Optional[OrdinaryDecl]:
        scope: Optional[Scope] = self
        while scope is not None:
            decl = scope.ordinary.get(name)
            if decl is not None:
                return decl
            scope = scope.parent
        return None

    def lookup_tag(self, name: str, local_only: bool = False) -> Optional[TagDecl]:
        scope: Optional[Scope] = self
        while scope is not None:
            decl = scope.tags.get(name)
            if decl is not None:
                return decl
            if local_only:
                return None
            scope = scope.parent
        return None
