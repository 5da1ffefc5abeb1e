"""Tests for the tree-sitter C front end."""

import logging
from pathlib import Path

from scalecheck.parser import (
    count_error_nodes,
    create_parser,
    get_c_language,
    parse_bytes,
    parse_file,
)


def test_get_c_language_returns_language():
    lang = get_c_language()
    assert lang is not None
    assert lang is get_c_language()


def test_create_parser_returns_parser():
    parser = create_parser()
    assert parser is not None
    assert parser.language is not None


def test_parse_bytes_success(caplog):
    source = b"int main(void) { return 0; }"
    parser = create_parser()
    with caplog.at_level(logging.DEBUG):
        tree = parse_bytes(source, parser=parser)
    assert not tree.root_node.has_error
    assert tree.root_node.type == "translation_unit"
    assert "Parse succeeded" in caplog.text


def test_parse_bytes_accepts_text():
    tree = parse_bytes("int x = sizeof(int);")
    assert tree.root_node.type == "translation_unit"
    assert not tree.root_node.has_error


def test_parse_bytes_invalid_c_logs_warning(caplog):
    source = b"int main( { broken"
    with caplog.at_level(logging.WARNING):
        tree = parse_bytes(source)
    assert tree.root_node is not None
    assert tree.root_node.has_error
    assert "error node" in caplog.text


def test_count_error_nodes():
    assert count_error_nodes(parse_bytes(b"int x;").root_node) == 0
    assert count_error_nodes(parse_bytes(b"int main( { broken").root_node) >= 1


def test_parse_file_sample_c():
    sample_path = Path(__file__).parent / "sample.c"
    assert sample_path.exists(), "tests/sample.c must exist"
    tree = parse_file(sample_path)
    assert tree is not None
    assert not tree.root_node.has_error
    assert tree.root_node.type == "translation_unit"


def test_parse_file_nonexistent(caplog):
    with caplog.at_level(logging.ERROR):
        tree = parse_file(Path("/nonexistent/sample.c"))
    assert tree is None
    assert "Failed to read" in caplog.text
