"""Tests for the bad-scaled-pointer-arithmetic rule."""

from pathlib import Path

import pytest

from scalecheck.config import get_default_config
from scalecheck.context import FileContext
from scalecheck.engine.c_types import CHAR, INT, UCHAR, VOID, RecordDecl, array_of, function_of, record_type
from scalecheck.engine.checker_manager import CheckerManager
from scalecheck.engine.layout import ILP32, LP64
from scalecheck.engine.options import AnalyzerOptions
from scalecheck.parser import create_parser, parse_bytes
from scalecheck.rules.bad_scaled_pointer_arithmetic import (
    BAD_SCALED_POINTER_ARITHMETIC,
    RULE_ID,
    BadScaledPointerArithmeticRule,
    is_single_byte_pointee,
)

RIGHT_MESSAGE = "In pointer arithmetic right argument is calculated from a sizeof or offsetof expression"
LEFT_MESSAGE = "In pointer arithmetic left argument is calculated from a sizeof or offsetof expression"


def _run_rule(source: bytes, path: Path | None = None, config=None) -> list:
    tree = parse_bytes(source, parser=create_parser())
    ctx = FileContext(path=path or Path("test.c"), source=source, tree=tree)
    return BadScaledPointerArithmeticRule().run(ctx, config)


def _wrap(body: bytes, params: bytes = b"void") -> bytes:
    return b"struct S { int a; long field; };\nvoid f(" + params + b") {\n" + body + b"\n}\n"


class TestScenarios:
    def test_pointer_plus_sizeof(self):
        findings = _run_rule(_wrap(b"int *p; p = p + sizeof(int);"))
        assert len(findings) == 1
        assert findings[0].message == RIGHT_MESSAGE
        assert findings[0].rule_id == RULE_ID

    def test_char_pointer_plus_sizeof(self):
        assert _run_rule(_wrap(b"char *p; p = p + sizeof(int);")) == []

    def test_compound_assignment_with_offsetof(self):
        findings = _run_rule(_wrap(b"int *p; p += offsetof(struct S, field);"))
        assert len(findings) == 1
        assert findings[0].message == RIGHT_MESSAGE
        assert findings[0].location.snippet == "p += offsetof(struct S, field)"

    def test_provenance_through_variable(self):
        findings = _run_rule(_wrap(b"int x = sizeof(int); int *p; p = p + x;"))
        assert len(findings) == 1
        assert findings[0].location.snippet == "p + x"

    def test_plain_integer_offset(self):
        assert _run_rule(_wrap(b"int *p; int n = 5; p = p + n;")) == []


class TestOperands:
    def test_sizeof_on_the_left(self):
        findings = _run_rule(_wrap(b"p = sizeof(int) + p;", b"int *p"))
        assert [f.message for f in findings] == [LEFT_MESSAGE]

    def test_subtraction_and_minus_assign(self):
        findings = _run_rule(_wrap(b"int *q = p - sizeof(long);\np -= sizeof(long);", b"int *p"))
        assert len(findings) == 2
        assert {f.location.line for f in findings} == {3, 4}

    def test_array_operand_decays(self):
        findings = _run_rule(_wrap(b"long a[8]; long *end = a + sizeof(a);"))
        assert len(findings) == 1

    @pytest.mark.parametrize(
        "body",
        [
            b"unsigned long n = sizeof(int) * 2; p = p + n;",
            b"long d = p - p; d = d + sizeof(int);",
            b"unsigned long n = sizeof(int); n = n + sizeof(int);",
            b"p = p + 1;",
            b"if (p == p + 0) return;",
            b"unsigned long n = sizeof(int); int x = n * 3; x = x & 1;",
        ],
    )
    def test_not_reported(self, body):
        assert _run_rule(_wrap(body, b"int *p")) == []

    @pytest.mark.parametrize(
        "decl",
        [
            b"unsigned char *q;",
            b"signed char *q;",
            b"bool *q;",
            b"_Bool *q;",
            b"uint8_t *q;",
            b"char (*q)[1];",
        ],
    )
    def test_single_byte_pointees_are_exempt(self, decl):
        assert _run_rule(_wrap(decl + b" q = q + sizeof(long);")) == []

    @pytest.mark.parametrize(
        "decl",
        [
            b"void *q = 0;",
            b"struct incomplete *q = 0;",
            b"int (*q)(void) = 0;",
            b"char (*q)[2] = 0;",
        ],
    )
    def test_other_pointees_are_reported(self, decl):
        findings = _run_rule(_wrap(decl + b" q = q + sizeof(long);"))
        assert len(findings) == 1

    def test_bool_parameter_pointee_is_exempt(self):
        assert _run_rule(b"void f(_Bool *p) { p = p + sizeof(int); }") == []

    def test_vla_pointee_is_reported(self):
        findings = _run_rule(_wrap(b"char (*q)[n] = 0; q = q + sizeof(int);", b"int n"))
        assert len(findings) == 1


class TestPaths:
    def test_only_feasible_paths_report(self):
        source = _wrap(
            b"unsigned long step = 1;\n"
            b"if (flag) step = sizeof(int);\n"
            b"if (!flag) p = p + step;",
            b"int *p, int flag",
        )
        assert _run_rule(source) == []

    def test_one_finding_across_paths(self):
        source = _wrap(
            b"if (flag) p = p + 1; else p = p - 1;\n"
            b"p = p + sizeof(int);",
            b"int *p, int flag",
        )
        findings = _run_rule(source)
        assert len(findings) == 1

    def test_one_finding_through_inlining(self):
        source = b"""
static int *advance(int *p) {
    return p + sizeof(int);
}

int *caller(int *p) {
    return advance(p);
}
"""
        findings = _run_rule(source)
        assert len(findings) == 1
        assert findings[0].location.line == 3

    def test_parameter_carries_provenance(self):
        source = b"""
static int *advance(int *p, unsigned long step) {
    return p + step;
}

int *caller(int *p) {
    return advance(p, sizeof(double));
}
"""
        findings = _run_rule(source)
        assert len(findings) == 1
        assert findings[0].location.snippet == "p + step"

    def test_code_after_goto_label_is_analyzed(self):
        findings = _run_rule(b"void f(int *p) { goto out; out: p = p + sizeof(int); }")
        assert len(findings) == 1
        assert findings[0].location.snippet == "p + sizeof(int)"

    def test_code_skipped_by_goto_is_not_reported(self):
        source = _wrap(b"goto out;\np = p + sizeof(int);\nout:\np = p + 1;", b"int *p")
        assert _run_rule(source) == []

    def test_repeated_runs_are_stable(self):
        source = _wrap(b"int *p; p = p + sizeof(int);")
        first = _run_rule(source)
        second = _run_rule(source)
        assert first == second
        assert len(first) == 1

    def test_sample_file_is_clean(self):
        sample = Path(__file__).parent / "sample.c"
        source = sample.read_bytes()
        assert _run_rule(source, path=sample) == []


class TestFindingDetails:
    def test_location_and_metadata(self):
        findings = _run_rule(_wrap(b"int *p; p = p + sizeof(int);"), path=Path("src/x.c"))
        (finding,) = findings
        loc = finding.location
        assert loc.path == Path("src/x.c")
        assert (loc.line, loc.column) == (3, 13)
        assert (loc.end_line, loc.end_column) == (3, 28)
        assert loc.snippet == "p + sizeof(int)"
        assert finding.severity == "warning"
        assert finding.category == "Suspicious operation"
        assert finding.bug_type == "Badly scaled pointer arithmetic"

    def test_reported_on_both_targets(self):
        source = _wrap(b"long *p; p = p + sizeof(long);")
        assert len(_run_rule(source, config=get_default_config(target="ilp32"))) == 1
        assert len(_run_rule(source, config=get_default_config(target="lp64"))) == 1

    def test_run_logs_finding_count(self, caplog):
        source = _wrap(b"unsigned long off = offsetof(struct S, field); int *p; p = p + off;")
        with caplog.at_level("INFO"):
            findings = _run_rule(source, config=get_default_config(target="ilp32"))
        assert len(findings) == 1
        assert "1 finding(s)" in caplog.text


class TestRegistration:
    def test_always_registers(self):
        rule = BadScaledPointerArithmeticRule()
        manager = CheckerManager(AnalyzerOptions(target="ilp32"))
        assert rule.should_register(manager.options)
        assert manager.register_checker(rule)
        assert manager.has_pre_binary_hooks

    def test_bug_type(self):
        assert BAD_SCALED_POINTER_ARITHMETIC.name == "Badly scaled pointer arithmetic"
        assert BAD_SCALED_POINTER_ARITHMETIC.category == "Suspicious operation"


class TestSingleBytePointee:
    def test_char_types(self):
        assert is_single_byte_pointee(CHAR, LP64)
        assert is_single_byte_pointee(UCHAR, ILP32)
        assert not is_single_byte_pointee(INT, LP64)

    def test_types_without_size(self):
        assert not is_single_byte_pointee(None, LP64)
        assert not is_single_byte_pointee(VOID, LP64)
        assert not is_single_byte_pointee(record_type(RecordDecl(tag="fwd")), LP64)
        assert not is_single_byte_pointee(function_of(CHAR), LP64)
        assert not is_single_byte_pointee(array_of(CHAR, None, is_vla=True), LP64)
        assert not is_single_byte_pointee(array_of(CHAR, None, dependent_size=True), LP64)

    def test_one_byte_aggregates(self):
        one = record_type(RecordDecl(tag="b"))
        one.record.define([])
        assert not is_single_byte_pointee(one, LP64)
        assert is_single_byte_pointee(array_of(CHAR, 1), LP64)
