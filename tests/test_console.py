"""Tests for the console, plain and JSON reporters."""

import json
from pathlib import Path

from rich.console import Console

from scalecheck.findings.models import Finding, Location
from scalecheck.reporting.console import (
    findings_to_json,
    format_plain,
    get_remediation,
    print_findings,
)

MESSAGE = "In pointer arithmetic right argument is calculated from a sizeof or offsetof expression"


def _finding(path="src/a.c", line=3, column=13):
    return Finding(
        rule_id="bad-scaled-pointer-arithmetic",
        message=MESSAGE,
        location=Location(path=Path(path), line=line, column=column, snippet="p + sizeof(int)"),
        category="Suspicious operation",
        bug_type="Badly scaled pointer arithmetic",
    )


def _console():
    return Console(record=True, width=200, color_system=None)


def test_format_plain():
    assert format_plain(_finding()) == f"src/a.c:3:13: WARNING [bad-scaled-pointer-arithmetic] {MESSAGE}"


def test_json_is_sorted():
    data = json.loads(findings_to_json([_finding(line=9), _finding(line=2)]))
    assert [d["location"]["line"] for d in data] == [2, 9]
    assert data[0]["category"] == "Suspicious operation"
    assert data[0]["location"]["path"] == "src/a.c"


def test_json_empty():
    assert json.loads(findings_to_json([])) == []


def test_no_findings_panel():
    console = _console()
    print_findings([], console=console)
    assert "No issues found." in console.export_text()


def test_findings_table_and_summary():
    console = _console()
    print_findings([_finding(), _finding(line=7)], console=console)
    text = console.export_text()
    assert "src/a.c" in text
    assert "Suspicious operation" in text
    assert "p + sizeof(int)" in text
    assert "2 findings" in text
    assert "2 warning" in text


def test_file_summary_marks_clean_files():
    console = _console()
    print_findings([_finding()], analyzed_files=[Path("src/a.c"), Path("src/b.c")], console=console)
    text = console.export_text()
    assert "FLAGGED" in text
    assert "OK" in text
    assert "1 finding" in text


def test_verbose_prints_remediation_once():
    console = _console()
    print_findings([_finding(), _finding(line=8)], verbose=True, console=console)
    text = console.export_text()
    assert text.count("[Fix]") == 1
    assert "char *" in text


def test_unknown_rule_has_no_remediation():
    assert get_remediation("nope") is None
