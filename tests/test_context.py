"""Tests for scalecheck.context: FileContext, create_context, source spans, node/function counts."""

import logging
from pathlib import Path

from scalecheck.context import FileContext, count_tree_stats, create_context, get_source_span
from scalecheck.engine.exploded_graph import ProgramPoint
from scalecheck.parser import create_parser, parse_bytes


def test_count_tree_stats():
    tree = parse_bytes(b"int f(void) { return 0; }\nint main(void) { return f(); }")
    nodes, funcs = count_tree_stats(tree.root_node)
    assert nodes > 10
    assert funcs == 2


def test_create_context_reads_and_parses(tmp_path, caplog):
    c_file = tmp_path / "main.c"
    c_file.write_bytes(b"int main(void) { return 0; }\n")
    with caplog.at_level(logging.INFO):
        ctx = create_context(c_file)
    assert ctx is not None
    assert ctx.path == c_file
    assert ctx.source == b"int main(void) { return 0; }\n"
    assert ctx.root_node.type == "translation_unit"
    assert ctx.has_parse_errors is False
    assert "1 function(s)" in caplog.text


def test_create_context_nonexistent(caplog):
    with caplog.at_level(logging.ERROR):
        ctx = create_context(Path("/nonexistent/file.c"))
    assert ctx is None
    assert "Failed to read" in caplog.text


def test_create_context_malformed_still_returns_context(tmp_path, caplog):
    c_file = tmp_path / "bad.c"
    c_file.write_bytes(b"int main( { return 0; }\n")
    with caplog.at_level(logging.WARNING):
        ctx = create_context(c_file)
    assert ctx is not None
    assert ctx.has_parse_errors is True
    assert "syntax errors" in caplog.text


def test_get_source_span():
    source = b"int x = 42;"
    tree = parse_bytes(source, parser=create_parser())
    ctx = FileContext(path=Path("x.c"), source=source, tree=tree)
    declaration = ctx.root_node.children[0]
    assert get_source_span(ctx, declaration) == "int x = 42;"


def test_get_source_span_of_program_point():
    source = b"int x = 42;"
    ctx = FileContext(path=Path("x.c"), source=source, tree=parse_bytes(source))
    point = ProgramPoint(node_id=0, frame=0, kind="expr", line=1, column=9, start_byte=8, end_byte=10)
    assert get_source_span(ctx, point) == "42"


def test_get_source_span_replaces_bad_utf8():
    source = b"char *s = \"\xff\";"
    ctx = FileContext(path=Path("x.c"), source=source, tree=parse_bytes(source))
    assert get_source_span(ctx, ctx.root_node.children[0]) == 'char *s = "�";'
