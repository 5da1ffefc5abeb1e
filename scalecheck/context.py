# Per-file analysis context: the file path, its raw bytes and the parsed tree.
# Rules receive one FileContext per translation unit; unreadable files never
# get one, files with syntax errors get one flagged has_parse_errors.

import logging
from pathlib import Path
from typing import Optional, Protocol

from tree_sitter import Node as TSNode
from tree_sitter import Parser, Tree

from scalecheck.parser import create_parser, parse_bytes

logger = logging.getLogger(__name__)


class ByteSpan(Protocol):
    """Anything covering a byte range of the source: a tree node or a program point."""

    @property
    def start_byte(self) -> int: ...

    @property
    def end_byte(self) -> int: ...


def count_tree_stats(root: TSNode) -> tuple[int, int]:
    """
    Return (total node count, function definition count) for the tree.

    Logged per file so that an unexpectedly small tree (e.g. a file that is
    mostly macros) is visible when debugging missing findings.
    """
    nodes = 0
    functions = 0
    stack = [root]
    while stack:
        node = stack.pop()
        nodes += 1
        if node.type == "function_definition":
            functions += 1
        stack.extend(node.children)
    return nodes, functions


class FileContext:
    """
    One translation unit ready for analysis.

    Path-sensitive rules hand context.root_node to the engine and use
    get_source_span() on the reported program point to attach the source
    snippet to each finding.
    """

    def __init__(
        self,
        path: Path,
        source: bytes,
        tree: Tree,
        *,
        has_parse_errors: bool = False,
    ) -> None:
        self.path = path
        self.source = source
        self.tree = tree
        self.has_parse_errors = has_parse_errors

    @property
    def root_node(self) -> TSNode:
        """The translation_unit node the engine starts from."""
        return self.tree.root_node


def get_source_span(context: FileContext, span: ByteSpan) -> str:
    """
    Return the text of context.source between span.start_byte and span.end_byte.

    Args:
        context: The file the span belongs to.
        span: A tree-sitter node, or an engine ProgramPoint, which records
            the byte range of the statement or expression it stands for.

    Returns:
        The decoded text, with bad UTF-8 replaced rather than raised.
    """
    return context.source[span.start_byte : span.end_byte].decode("utf-8", errors="replace")


def create_context(
    path: Path,
    parser: Optional[Parser] = None,
) -> Optional[FileContext]:
    """
    Read one C file and parse it into a FileContext.

    - Unreadable file (permission, missing): returns None and logs an error.
    - Syntax errors: the context is still returned, with the partial tree and
      has_parse_errors=True, and a warning is logged. The engine skips ERROR
      nodes, so the rest of the file is still analyzed.
    - Either way, node and function counts are logged at INFO.

    Args:
        path: The .c or .h file to read.
        parser: Optional shared parser; if None, a new one is created.

    Returns:
        FileContext if the file could be read, None otherwise.
    """
    if parser is None:
        parser = create_parser()

    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None

    tree = parse_bytes(source, parser=parser)
    has_errors = tree.root_node.has_error
    if has_errors:
        logger.warning("File %s parsed with syntax errors; analysis continues on the partial tree", path)

    node_count, func_count = count_tree_stats(tree.root_node)
    logger.info(
        "Parsed %s: %d nodes, %d function(s)%s",
        path,
        node_count,
        func_count,
        " (with parse errors)" if has_errors else "",
    )

    return FileContext(
        path=path,
        source=source,
        tree=tree,
        has_parse_errors=has_errors,
    )
