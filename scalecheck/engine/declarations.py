"""
Name resolution and type resolution for one C translation unit.

TranslationUnit.build() walks the tree-sitter AST once, in source order,
maintaining C's lexical scopes. It records:

- for every identifier used as an expression, the declaration it refers to;
- for every type_descriptor (casts, sizeof, offsetof, compound literals),
  the CType it spells;
- for every declaration statement, the variables it declares;
- every function (declared, defined or implicitly declared by a call) and
  every file-scope variable.

Type resolution follows C declarator semantics: the specifier gives a base
type and the declarator chain is applied outside-in, so ``int *a[3]`` is an
array of three pointers while ``int (*a)[3]`` is a pointer to an array.

Typical usage:
    unit = TranslationUnit.build(tree.root_node, layout=LP64)
    for fn in unit.defined_functions():
        ...
    unit.sema.type_of(expr_node)
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from tree_sitter import Node as TSNode

from scalecheck.engine.c_types import (
    BOOL,
    CHAR,
    DOUBLE,
    FLOAT,
    INT,
    LONG,
    LONGDOUBLE,
    LONGLONG,
    SCHAR,
    SHORT,
    UCHAR,
    UINT,
    ULONG,
    ULONGLONG,
    USHORT,
    VOID,
    CType,
    EnumDecl,
    FieldDecl,
    RecordDecl,
    array_of,
    enum_type,
    function_of,
    opaque,
    pointer_to,
    record_type,
)
from scalecheck.engine.decls import (
    EnumConstantDecl,
    FunctionDecl,
    OrdinaryDecl,
    Scope,
    TypedefDecl,
    VarDecl,
)
from scalecheck.engine.errors import UnsupportedConstructError
from scalecheck.engine.layout import LP64, TargetLayout
from scalecheck.engine.sema import Sema
from scalecheck.engine.syntax import first_named, named_children, node_text, string_literal_length

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES: Dict[str, CType] = {
    "void": VOID,
    "char": CHAR,
    "short": SHORT,
    "int": INT,
    "long": LONG,
    "float": FLOAT,
    "double": DOUBLE,
    "bool": BOOL,
    "_Bool": BOOL,
    "size_t": ULONG,
    "ssize_t": LONG,
    "ptrdiff_t": LONG,
    "intptr_t": LONG,
    "uintptr_t": ULONG,
    "max_align_t": LONGDOUBLE,
    "int8_t": SCHAR,
    "uint8_t": UCHAR,
    "int16_t": SHORT,
    "uint16_t": USHORT,
    "int32_t": INT,
    "uint32_t": UINT,
    "int64_t": LONGLONG,
    "uint64_t": ULONGLONG,
    "char8_t": UCHAR,
    "char16_t": USHORT,
    "char32_t": UINT,
    "nullptr_t": pointer_to(VOID),
}

_NAME_NODES = frozenset({"identifier", "field_identifier", "type_identifier", "primitive_type"})
_POINTER_DECLARATORS = frozenset(
    {"pointer_declarator", "abstract_pointer_declarator", "pointer_type_declarator"}
)
_ARRAY_DECLARATORS = frozenset(
    {"array_declarator", "abstract_array_declarator", "array_type_declarator"}
)
_FUNCTION_DECLARATORS = frozenset(
    {"function_declarator", "abstract_function_declarator", "function_type_declarator"}
)
_WRAPPING_DECLARATORS = frozenset(
    {
        "parenthesized_declarator",
        "abstract_parenthesized_declarator",
        "parenthesized_type_declarator",
        "attributed_declarator",
    }
)
# Preprocessor nodes whose contents are not C code.
_SKIPPED_NODES = frozenset(
    {
        "preproc_include",
        "preproc_def",
        "preproc_function_def",
        "preproc_call",
        "comment",
        "field_identifier",
        "statement_identifier",
    }
)


def _has_qualifier(node: TSNode, qualifier: str) -> bool:
    return any(c.type == "type_qualifier" and node_text(c) == qualifier for c in node.children)


def adjust_parameter_type(t: CType) -> CType:
    """Parameters declared as arrays or functions are really pointers."""
    return t.decay() if t.is_array() or t.is_function() else t


class TranslationUnit:
    def __init__(self, root: TSNode, layout: TargetLayout = LP64) -> None:
        self.root = root
        self.layout = layout
        self.sema = Sema(self)
        self.file_scope = Scope()
        self.functions: Dict[str, FunctionDecl] = {}
        self.globals: Dict[str, VarDecl] = {}
        self._refs: Dict[int, OrdinaryDecl] = {}
        self._descriptors: Dict[int, CType] = {}
        self._declared: Dict[int, List[VarDecl]] = {}
        self._next_id = 0

    @classmethod
    def build(cls, root: TSNode, layout: TargetLayout = LP64) -> "TranslationUnit":
        unit = cls(root, layout)
        unit._resolve(root, unit.file_scope)
        logger.debug(
            "Resolved translation unit: %d function(s), %d global(s), %d reference(s)",
            len(unit.functions),
            len(unit.globals),
            len(unit._refs),
        )
        return unit

    # -- queries -----------------------------------------------------------

    def decl_of(self, node: Optional[TSNode]) -> Optional[OrdinaryDecl]:
        if node is None:
            return None
        return self._refs.get(node.id)

    def descriptor_type(self, node: Optional[TSNode]) -> Optional[CType]:
        if node is None:
            return None
        return self._descriptors.get(node.id)

    def declared_vars(self, node: TSNode) -> List[VarDecl]:
        """Variables introduced by a declaration statement, in declarator order."""
        return list(self._declared.get(node.id, ()))

    def defined_functions(self) -> Iterator[FunctionDecl]:
        """Functions with a body, in order of definition."""
        defined = [fn for fn in self.functions.values() if fn.definition is not None]
        defined.sort(key=lambda fn: fn.definition.start_byte)  # type: ignore[union-attr]
        return iter(defined)

    # -- walking ------------------------------------------------------------

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _resolve(self, node: TSNode, scope: Scope) -> None:
        if node.type in _SKIPPED_NODES:
            return
        handler = getattr(self, f"_resolve_{node.type}", None)
        if handler is not None:
            handler(node, scope)
            return
        for child in named_children(node):
            self._resolve(child, scope)

    def _resolve_identifier(self, node: TSNode, scope: Scope) -> None:
        decl = scope.lookup(node_text(node))
        if decl is not None:
            self._refs[node.id] = decl

    def _resolve_compound_statement(self, node: TSNode, scope: Scope) -> None:
        inner = scope.child()
        for child in named_children(node):
            self._resolve(child, inner)

    def _resolve_for_statement(self, node: TSNode, scope: Scope) -> None:
        inner = scope.child()
        for child in named_children(node):
            self._resolve(child, inner)

    def _resolve_call_expression(self, node: TSNode, scope: Scope) -> None:
        callee = node.child_by_field_name("function")
        if callee is not None and callee.type == "identifier":
            name = node_text(callee)
            if scope.lookup(name) is None:
                # C89 implicit declaration: int name();
                fn = self._declare_function(name, function_of(INT, variadic=True), self.file_scope)
                fn.implicit = True
        for child in named_children(node):
            self._resolve(child, scope)

    def _resolve_type_descriptor(self, node: TSNode, scope: Scope) -> None:
        self._descriptors[node.id] = self._descriptor(node, scope)

    def _resolve_struct_specifier(self, node: TSNode, scope: Scope) -> None:
        # ``struct S { ... };`` with no declarator.
        self._type_specifier(node, scope)

    _resolve_union_specifier = _resolve_struct_specifier
    _resolve_enum_specifier = _resolve_struct_specifier

    def _resolve_type_definition(self, node: TSNode, scope: Scope) -> None:
        base = self._specifier_type(node, scope)
        for declarator in node.children_by_field_name("declarator"):
            try:
                name, t = self._declarator(declarator, base, scope)
            except UnsupportedConstructError as exc:
                logger.debug("Skipping typedef declarator: %s", exc)
                continue
            if name:
                scope.declare(name, TypedefDecl(name, t))

    def _resolve_declaration(self, node: TSNode, scope: Scope) -> None:
        base = self._specifier_type(node, scope)
        storage = {node_text(c) for c in node.children if c.type == "storage_class_specifier"}
        declared: List[VarDecl] = []
        for declarator in node.children_by_field_name("declarator"):
            init: Optional[TSNode] = None
            target: Optional[TSNode] = declarator
            if declarator.type == "init_declarator":
                init = declarator.child_by_field_name("value")
                target = declarator.child_by_field_name("declarator")
            try:
                name, t = self._declarator(target, base, scope)
            except UnsupportedConstructError as exc:
                logger.debug("Skipping declarator: %s", exc)
                continue
            if not name:
                continue
            if t.is_function():
                self._declare_function(name, t, scope)
                continue
            if init is not None and t.is_array() and t.length is None and not t.is_vla:
                t = self._complete_array(t, init)
            var = VarDecl(
                name=name,
                type=t,
                decl_id=self._new_id(),
                is_global=scope.is_file_scope,
                is_static="static" in storage,
                is_extern="extern" in storage,
                init=init,
            )
            scope.declare(name, var)
            if var.is_global:
                previous = self.globals.get(name)
                if previous is None or init is not None or previous.is_extern:
                    self.globals[name] = var
            if init is not None:
                self._resolve(init, scope)
            declared.append(var)
        self._declared[node.id] = declared

    def _resolve_function_definition(self, node: TSNode, scope: Scope) -> None:
        base = self._specifier_type(node, scope)
        declarator = node.child_by_field_name("declarator")
        body = node.child_by_field_name("body")
        try:
            name, t = self._declarator(declarator, base, scope)
        except UnsupportedConstructError as exc:
            logger.debug("Skipping function definition: %s", exc)
            return
        if not name or not t.is_function():
            logger.debug("Function definition without a function declarator at %s", node.start_point)
            return
        fn = self._declare_function(name, t, scope)
        fn.implicit = False
        fn_scope = scope.child()
        params: List[VarDecl] = []
        fn_declarator = _innermost_function_declarator(declarator)
        if fn_declarator is not None:
            parsed, _ = self._parameters(fn_declarator.child_by_field_name("parameters"), fn_scope)
            for pname, ptype in parsed:
                var = VarDecl(name=pname or "", type=ptype, decl_id=self._new_id(), is_param=True)
                if pname:
                    fn_scope.declare(pname, var)
                params.append(var)
        fn.params = params
        fn.body = body
        fn.definition = node
        if body is not None:
            # Parameters share the outermost block scope of the body.
            for child in named_children(body):
                self._resolve(child, fn_scope)

    def _declare_function(self, name: str, t: CType, scope: Scope) -> FunctionDecl:
        fn = self.functions.get(name)
        if fn is None:
            fn = FunctionDecl(name=name, type=t, decl_id=self._new_id())
            self.functions[name] = fn
            self.file_scope.declare(name, fn)
        elif fn.implicit or fn.body is None:
            fn.type = t
        scope.declare(name, fn)
        return fn

    # -- types --------------------------------------------------------------

    def _descriptor(self, node: TSNode, scope: Scope) -> CType:
        type_node = node.child_by_field_name("type")
        declarator = node.child_by_field_name("declarator")
        if declarator is None and type_node is not None and type_node.type == "type_identifier":
            # ``sizeof(x)`` can parse as a type name; prefer a visible variable.
            decl = scope.lookup(node_text(type_node))
            if isinstance(decl, VarDecl):
                return decl.type
        base = self._specifier_type(node, scope)
        if declarator is None:
            return base
        try:
            _, t = self._declarator(declarator, base, scope)
        except UnsupportedConstructError as exc:
            logger.debug("Unresolved type descriptor: %s", exc)
            return opaque(node_text(node))
        return t

    def _specifier_type(self, node: TSNode, scope: Scope) -> CType:
        type_node = node.child_by_field_name("type")
        t = self._type_specifier(type_node, scope) if type_node is not None else INT
        if _has_qualifier(node, "const"):
            t = t.with_const()
        return t

    def _type_specifier(self, node: TSNode, scope: Scope) -> CType:
        kind = node.type
        if kind == "primitive_type":
            text = node_text(node)
            return PRIMITIVE_TYPES.get(text, opaque(text))
        if kind == "sized_type_specifier":
            return self._sized_type(node)
        if kind == "type_identifier":
            name = node_text(node)
            decl = scope.lookup(name)
            if isinstance(decl, TypedefDecl):
                return decl.type
            # Keywords such as _Bool and library typedefs like size_t reach
            # here as type identifiers.
            builtin = PRIMITIVE_TYPES.get(name)
            if builtin is not None:
                return builtin
            logger.debug("Unknown type name %r treated as opaque", name)
            return opaque(name)
        if kind in ("struct_specifier", "union_specifier"):
            return self._record_specifier(node, scope, is_union=kind == "union_specifier")
        if kind == "enum_specifier":
            return self._enum_specifier(node, scope)
        logger.debug("Unsupported type specifier %s", kind)
        return opaque(node_text(node))

    def _sized_type(self, node: TSNode) -> CType:
        modifiers = [node_text(c) for c in node.children if not c.is_named]
        type_node = node.child_by_field_name("type")
        base = node_text(type_node) if type_node is not None else "int"
        unsigned = "unsigned" in modifiers
        longs = modifiers.count("long")
        if base == "char":
            if unsigned:
                return UCHAR
            return SCHAR if "signed" in modifiers else CHAR
        if base == "double":
            return LONGDOUBLE if longs else DOUBLE
        if "short" in modifiers:
            return USHORT if unsigned else SHORT
        if longs >= 2:
            return ULONGLONG if unsigned else LONGLONG
        if longs == 1:
            return ULONG if unsigned else LONG
        return UINT if unsigned else INT

    def _record_specifier(self, node: TSNode, scope: Scope, is_union: bool) -> CType:
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        tag = node_text(name_node) if name_node is not None else None
        decl: Optional[RecordDecl] = None
        if tag:
            existing = scope.lookup_tag(tag, local_only=body is not None)
            if isinstance(existing, RecordDecl) and (body is None or not existing.is_complete):
                decl = existing
        if decl is None:
            decl = RecordDecl(tag=tag, is_union=is_union)
            if tag:
                scope.declare_tag(tag, decl)
        if body is not None:
            decl.define(self._fields(body, scope))
        return record_type(decl)

    def _fields(self, body: TSNode, scope: Scope) -> List[FieldDecl]:
        fields: List[FieldDecl] = []
        for member in named_children(body):
            if member.type != "field_declaration":
                continue
            base = self._specifier_type(member, scope)
            width: Optional[int] = None
            for child in member.children:
                if child.type == "bitfield_clause":
                    width_node = first_named(child)
                    if width_node is not None:
                        self._resolve(width_node, scope)
                    width = self.sema.evaluate_constant(width_node)
            declarators = member.children_by_field_name("declarator")
            if not declarators:
                if base.is_record():
                    fields.append(FieldDecl("", base))
                continue
            for declarator in declarators:
                try:
                    name, t = self._declarator(declarator, base, scope)
                except UnsupportedConstructError as exc:
                    logger.debug("Skipping field: %s", exc)
                    continue
                fields.append(FieldDecl(name or "", t, width))
        return fields

    def _enum_specifier(self, node: TSNode, scope: Scope) -> CType:
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        tag = node_text(name_node) if name_node is not None else None
        decl: Optional[EnumDecl] = None
        if tag:
            existing = scope.lookup_tag(tag, local_only=body is not None)
            if isinstance(existing, EnumDecl):
                decl = existing
        if decl is None:
            decl = EnumDecl(tag=tag)
            if tag:
                scope.declare_tag(tag, decl)
        if body is not None:
            constants: Dict[str, int] = {}
            next_value = 0
            for enumerator in named_children(body):
                if enumerator.type != "enumerator":
                    continue
                ename = node_text(enumerator.child_by_field_name("name"))
                value_node = enumerator.child_by_field_name("value")
                if value_node is not None:
                    self._resolve(value_node, scope)
                    value = self.sema.evaluate_constant(value_node)
                    if value is not None:
                        next_value = value
                constants[ename] = next_value
                scope.declare(ename, EnumConstantDecl(ename, next_value, decl))
                next_value += 1
            decl.constants = constants
        return enum_type(decl)

    def _declarator(
        self,
        node: Optional[TSNode],
        base: CType,
        scope: Scope,
    ) -> Tuple[Optional[str], CType]:
        t = base
        while node is not None:
            kind = node.type
            if kind in _NAME_NODES:
                return node_text(node), t
            if kind in _POINTER_DECLARATORS:
                t = pointer_to(t).with_const(_has_qualifier(node, "const"))
                node = node.child_by_field_name("declarator")
            elif kind in _ARRAY_DECLARATORS:
                t = self._array_type(t, node, scope)
                node = node.child_by_field_name("declarator")
            elif kind in _FUNCTION_DECLARATORS:
                params, variadic = self._parameters(node.child_by_field_name("parameters"), scope)
                t = function_of(t, tuple(p for _, p in params), variadic)
                node = node.child_by_field_name("declarator")
            elif kind in _WRAPPING_DECLARATORS:
                node = next(
                    (c for c in named_children(node) if c.type != "attribute_declaration"),
                    None,
                )
            elif kind == "init_declarator":
                node = node.child_by_field_name("declarator")
            else:
                raise UnsupportedConstructError(kind, node_text(node))
        return None, t

    def _array_type(self, element: CType, node: TSNode, scope: Scope) -> CType:
        size = node.child_by_field_name("size")
        if size is None:
            if any(not c.is_named and node_text(c) == "*" for c in node.children):
                return array_of(element, None, is_vla=True)
            return array_of(element, None)
        self._resolve(size, scope)
        length = self.sema.evaluate_constant(size)
        if length is None:
            return array_of(element, None, is_vla=True)
        return array_of(element, length)

    def _parameters(
        self,
        plist: Optional[TSNode],
        scope: Scope,
    ) -> Tuple[List[Tuple[Optional[str], CType]], bool]:
        params: List[Tuple[Optional[str], CType]] = []
        variadic = False
        if plist is None:
            return params, variadic
        for child in plist.children:
            if child.type == "variadic_parameter" or (not child.is_named and node_text(child) == "..."):
                variadic = True
                continue
            if child.type != "parameter_declaration":
                continue
            base = self._specifier_type(child, scope)
            declarator = child.child_by_field_name("declarator")
            try:
                name, t = self._declarator(declarator, base, scope)
            except UnsupportedConstructError as exc:
                logger.debug("Unresolved parameter: %s", exc)
                name, t = None, opaque(node_text(child))
            params.append((name, adjust_parameter_type(t)))
        if len(params) == 1 and params[0][0] is None and params[0][1].is_void():
            params = []
        return params, variadic

    def _complete_array(self, t: CType, init: TSNode) -> CType:
        """``T a[] = {...}`` or ``char s[] = "..."`` takes its bound from the initializer."""
        assert t.inner is not None
        if init.type == "initializer_list":
            count = 0
            index = 0
            for item in named_children(init):
                if item.type == "initializer_pair":
                    designator = item.child_by_field_name("designator")
                    if designator is not None and designator.type == "subscript_designator":
                        value = self.sema.evaluate_constant(first_named(designator))
                        if value is not None:
                            index = value
                index += 1
                count = max(count, index)
            return array_of(t.inner, count)
        if init.type in ("string_literal", "concatenated_string"):
            return array_of(t.inner, string_literal_length(init) + 1)
        return t


def _innermost_function_declarator(node: Optional[TSNode]) -> Optional[TSNode]:
    """The function_declarator that binds the parameters of the entity being defined."""
    found: Optional[TSNode] = None
    while node is not None:
        if node.type in _FUNCTION_DECLARATORS:
            found = node
        if node.type in _NAME_NODES:
            break
        inner = node.child_by_field_name("declarator")
        if inner is None:
            inner = first_named(node)
        node = inner
    return found
