# Terminal output for findings: a rich report, a grep-like plain format and JSON.

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from scalecheck.findings.models import Finding

# Remediation hints per rule (shown with --verbose)
RULE_REMEDIATIONS: dict[str, str] = {
    "bad-scaled-pointer-arithmetic": (
        "Pointer arithmetic is already scaled by the pointee size: write p + 1 to advance one "
        "element, or cast to char * first when a byte offset from sizeof/offsetof is intended: "
        "(T *)((char *)p + offsetof(S, m))."
    ),
}

SEVERITY_STYLE = {
    "error": "bold red",
    "warning": "bold yellow",
    "info": "bold blue",
}

DEFAULT_SEVERITY_STYLE = "bold white"

REPORT_TITLE = "scalecheck analysis"


def _severity_style(severity: str) -> str:
    return SEVERITY_STYLE.get(severity.lower(), DEFAULT_SEVERITY_STYLE)


def get_remediation(rule_id: str) -> str | None:
    return RULE_REMEDIATIONS.get(rule_id)


def format_plain(finding: Finding) -> str:
    """``path:line:col: SEVERITY [rule] message``, the format compilers use."""
    loc = finding.location
    return f"{loc.path}:{loc.line}:{loc.column}: {finding.severity.upper()} [{finding.rule_id}] {finding.message}"


def findings_to_json(findings: Sequence[Finding]) -> str:
    ordered = sorted(findings, key=lambda f: f.sort_key())
    return json.dumps([f.model_dump(mode="json") for f in ordered], indent=2)


def print_findings(
    findings: Sequence[Finding],
    analyzed_files: Sequence[Path] | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> None:
    """
    Print findings grouped by file, one table per file, coloured by severity.

    Snippets of the offending expressions follow each table. With verbose,
    a remediation hint is printed once per rule and file. When
    analyzed_files is given, a per-file OK/FLAGGED summary is added.
    """
    console = console or Console()

    if not findings and not analyzed_files:
        console.print(
            Panel(
                "[green]No issues found.[/green]",
                title=REPORT_TITLE,
                border_style="green",
                box=box.ROUNDED,
            )
        )
        return

    by_file: dict[str, list[Finding]] = {}
    for f in findings:
        by_file.setdefault(str(f.location.path), []).append(f)

    for path in sorted(by_file):
        file_findings = sorted(by_file[path], key=lambda x: x.sort_key())
        console.print()
        console.print(
            Panel(
                f"[bold cyan]{escape(_shorten_path(path))}[/bold cyan]",
                box=box.SIMPLE_HEAD,
                border_style="blue",
                padding=(0, 1),
            )
        )
        console.print(_findings_table(file_findings))

        for f in file_findings:
            if f.location.snippet:
                snippet = escape(f.location.snippet.strip())
                console.print(f"  [dim]{f.location.line}:{f.location.column} |--[/dim] {snippet}")

        if verbose:
            for rule_id in sorted({f.rule_id for f in file_findings}):
                hint = get_remediation(rule_id)
                if hint:
                    console.print(f"  [dim]\\[Fix][/dim] {escape(f'[{rule_id}]')} {escape(hint)}")
        console.print()

    if analyzed_files:
        _print_file_summary_table(findings, analyzed_files, console)

    _print_summary(findings, console)


def _findings_table(findings: Sequence[Finding]) -> Table:
    table = Table(
        show_header=True,
        header_style="bold magenta",
        box=box.SIMPLE,
        padding=(0, 1),
        expand=False,
    )
    table.add_column("Line", justify="right", style="dim", width=5)
    table.add_column("Col", justify="right", style="dim", width=4)
    table.add_column("Severity", width=10)
    table.add_column("Category", width=22)
    table.add_column("Message", style="white")
    for f in findings:
        table.add_row(
            str(f.location.line),
            str(f.location.column),
            Text(f.severity.upper(), style=_severity_style(f.severity)),
            Text(f.category or f.rule_id, style="dim"),
            f.message,
        )
    return table


def _shorten_path(path: str | Path) -> str:
    """Path relative to the working directory when possible."""
    p = Path(path)
    try:
        return str(p.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(p)


def _print_file_summary_table(
    findings: Sequence[Finding],
    analyzed_files: Sequence[Path],
    console: Console,
) -> None:
    counts: dict[str, int] = {}
    for f in findings:
        key = str(f.location.path)
        counts[key] = counts.get(key, 0) + 1

    table = Table(
        title="Files Summary",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("File", style="white")
    table.add_column("Status", width=10)
    table.add_column("Findings", justify="right", width=8)

    flagged = sorted((p for p in analyzed_files if str(p) in counts), key=str)
    clean = sorted((p for p in analyzed_files if str(p) not in counts), key=str)
    for p in flagged:
        table.add_row(_shorten_path(p), Text("FLAGGED", style="bold red"), str(counts[str(p)]))
    for p in clean:
        table.add_row(_shorten_path(p), Text("OK", style="bold green"), "0")

    console.print()
    console.print(Panel(table, border_style="cyan", box=box.ROUNDED))


def _print_summary(findings: Sequence[Finding], console: Console) -> None:
    by_severity: dict[str, int] = {}
    for f in findings:
        s = f.severity.lower()
        by_severity[s] = by_severity.get(s, 0) + 1

    total = len(findings)
    parts = [f"[bold]{total} finding{'s' if total != 1 else ''}[/bold]"]
    for sev in ("error", "warning", "info"):
        if sev in by_severity:
            parts.append(f"[{_severity_style(sev)}]{by_severity[sev]} {sev}[/]")

    console.print()
    console.print(
        Panel(
            " | ".join(parts),
            title="Summary",
            border_style="yellow" if total > 0 else "green",
            box=box.ROUNDED,
        )
    )
