"""
Typer CLI entry point and orchestration of the analysis pipeline.

    scalecheck analyze TARGET [--format console|plain|json] [--target lp64|ilp32]
                              [--max-loop-iterations N] [--max-inline-depth N]
                              [--max-paths N] [--include-headers] [--verbose]
                              [--log-level LEVEL]

TARGET is a C file or a directory. Every file is parsed, every enabled rule
runs on it, and the findings are printed in the chosen format. The exit
status is 0 when nothing was found, 1 when there are findings and 2 for
invalid arguments.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.logging import RichHandler

from scalecheck.config import Config, get_default_config, get_enabled_rules
from scalecheck.context import create_context
from scalecheck.engine.layout import TARGETS
from scalecheck.findings.models import Finding
from scalecheck.parser import create_parser
from scalecheck.reporting.console import findings_to_json, format_plain, print_findings
from scalecheck.traversal import TargetError, collect_targets

logger = logging.getLogger(__name__)

app = typer.Typer(help="scalecheck - finds pointer arithmetic scaled twice by sizeof/offsetof in C sources.")

EXIT_CLEAN = 0
EXIT_FINDINGS = 1


@app.callback()
def cli() -> None:
    """Static analysis of C pointer arithmetic."""


class OutputFormat(str, enum.Enum):
    console = "console"
    plain = "plain"
    json = "json"


def configure_logging(level: str) -> None:
    """Route log records through rich on stderr at the requested level."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}", param_hint="--log-level")
    logging.basicConfig(
        level=numeric,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def run_analysis(files: List[Path], config: Config) -> List[Finding]:
    """Run every enabled rule on every readable file; a failing rule is logged and skipped."""
    rules = list(get_enabled_rules(config))
    parser = create_parser()
    findings: List[Finding] = []
    for path in files:
        ctx = create_context(path, parser=parser)
        if ctx is None:
            continue
        for rule in rules:
            try:
                findings.extend(rule.run(ctx, config))
            except Exception:
                logger.exception("Rule %s failed on %s", rule.id, path)
    findings.sort(key=lambda f: f.sort_key())
    return findings


@app.command()
def analyze(
    target: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="C file or directory to analyze.",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.console, "--format", "-f", help="Output format.", case_sensitive=False
    ),
    data_model: str = typer.Option("lp64", "--target", help=f"Data layout: {', '.join(sorted(TARGETS))}."),
    max_loop_iterations: int = typer.Option(4, min=0, help="Loop unrolling bound per path."),
    max_inline_depth: int = typer.Option(4, min=0, help="Inlining depth for calls to functions in the same file."),
    max_paths: int = typer.Option(256, min=1, help="Live paths kept per block."),
    include_headers: bool = typer.Option(False, "--include-headers", help="Also analyze .h files."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show remediation hints."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
) -> None:
    """Analyze a single C file or every C file under a directory."""
    configure_logging(log_level)
    try:
        config = get_default_config(
            target=data_model.lower(),
            max_loop_iterations=max_loop_iterations,
            max_inline_depth=max_inline_depth,
            max_paths=max_paths,
            include_headers=include_headers,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        files = collect_targets(target, include_headers=config.options.include_headers)
    except TargetError as exc:
        raise typer.BadParameter(str(exc), param_hint="TARGET") from exc

    findings = run_analysis(files, config)

    if output_format is OutputFormat.json:
        typer.echo(findings_to_json(findings))
    elif output_format is OutputFormat.plain:
        if not findings:
            typer.echo("No findings.")
        for f in findings:
            typer.echo(format_plain(f))
    else:
        print_findings(findings, analyzed_files=files, verbose=verbose)

    raise typer.Exit(code=EXIT_FINDINGS if findings else EXIT_CLEAN)


def main() -> None:
    """Entry point for the ``scalecheck`` console script."""
    app()


if __name__ == "__main__":
    main()
