# Tree-sitter front end: turn C translation units into syntax trees for the engine.

import logging
from pathlib import Path
from typing import Optional, Union

import tree_sitter
from tree_sitter import Language
from tree_sitter_c import language as _c_language_capsule

logger = logging.getLogger(__name__)

# The C grammar is loaded once per process and shared by every parser.
_C_LANGUAGE = Language(_c_language_capsule())


def get_c_language() -> Language:
    """Return the Tree-sitter Language object for C."""
    return _C_LANGUAGE


def create_parser() -> tree_sitter.Parser:
    """
    Create and return a Tree-sitter Parser configured for C.

    Parsers are cheap but not free; the CLI creates one and shares it across
    every file of a directory scan.
    """
    parser = tree_sitter.Parser(_C_LANGUAGE)
    return parser


def count_error_nodes(root: tree_sitter.Node) -> int:
    """
    Count ERROR and MISSING nodes under root.

    Only subtrees that contain an error are descended into, so a clean
    parse costs a single has_error check.

    Args:
        root: Root of the tree, usually tree.root_node.

    Returns:
        Number of error nodes; 0 for a clean parse.
    """
    if not root.has_error:
        return 0
    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        stack.extend(c for c in node.children if c.has_error or c.is_missing)
    return count


def parse_bytes(
    source: Union[bytes, str],
    parser: Optional[tree_sitter.Parser] = None,
) -> tree_sitter.Tree:
    """
    Parse one C translation unit into a syntax tree.

    Tree-sitter always produces a tree; syntax errors show up as ERROR
    nodes, which the engine skips. The number of error nodes is logged
    as a warning.

    Args:
        source: C source code. Text input is encoded as UTF-8 first.
        parser: Optional parser instance; if None, a new one is created.

    Returns:
        The parse tree. Check tree.root_node.has_error for syntax errors.
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    if parser is None:
        parser = create_parser()
    tree = parser.parse(source)
    errors = count_error_nodes(tree.root_node)
    if errors:
        logger.warning("Parse completed with %d error node(s)", errors)
    else:
        logger.debug("Parse succeeded: %d byte(s), root=%s", len(source), tree.root_node.type)
    return tree


def parse_file(path: Path, parser: Optional[tree_sitter.Parser] = None) -> Optional[tree_sitter.Tree]:
    """
    Read and parse a C source or header file.

    Args:
        path: Path to the .c or .h file.
        parser: Optional parser instance; if None, a new one is created.

    Returns:
        The parse tree, or None if the file could not be read. The read
        error is logged rather than raised.
    """
    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None
    tree = parse_bytes(source, parser=parser)
    logger.info("Parsed file %s: success=%s", path, not tree.root_node.has_error)
    return tree
