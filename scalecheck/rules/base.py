# Rule interface (abstract base class): defines the contract all rules must implement.
# PathSensitiveRule adapts engine checkers to that contract: it runs the
# symbolic execution engine over the file and turns bug reports into Findings.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from scalecheck.context import FileContext, get_source_span
from scalecheck.engine.bug_reporter import PathSensitiveBugReport
from scalecheck.engine.checker_manager import CheckerManager
from scalecheck.engine.expr_engine import ExprEngine
from scalecheck.engine.options import AnalyzerOptions
from scalecheck.findings.models import Finding, Location

logger = logging.getLogger(__name__)


class Rule(ABC):
    """
    Abstract base class for all static analysis rules.

    Subclasses must define:
    - id: str: unique rule identifier (e.g. "bad-scaled-pointer-arithmetic")
    - name: str: human-readable rule name
    - run(context, config) -> list[Finding]: analyze one file and return findings

    The CLI calls run() once per file; context holds path, source bytes, and AST.
    """

    id: str
    name: str

    @abstractmethod
    def run(self, context: FileContext, config: Any) -> list[Finding]:
        """
        Analyze one file and return any findings.

        Args:
            context: Per-file state (path, source bytes, AST tree).
            config: scalecheck.config.Config, or None for defaults.

        Returns:
            List of Finding objects, empty if the file is clean.
        """
        ...


class PathSensitiveRule(Rule):
    """
    A rule implemented as a checker of the path-sensitive engine.

    Subclasses implement engine hooks (e.g. check_pre_binary_operator) and
    may override should_register(options). run() registers the rule with a
    fresh CheckerManager, explores every function in the file and converts
    the deduplicated bug reports to findings.
    """

    def should_register(self, options: AnalyzerOptions) -> bool:
        return True

    def run(self, context: FileContext, config: Any) -> list[Finding]:
        options = getattr(config, "options", None) or AnalyzerOptions()
        manager = CheckerManager(options)
        if not manager.register_checker(self):
            return []
        engine = ExprEngine(context.root_node, manager, options)
        reporter = engine.run()
        findings = [self.to_finding(context, report) for report in reporter.reports]
        logger.info("%s: %d finding(s) in %s", self.id, len(findings), context.path)
        return findings

    def to_finding(self, context: FileContext, report: PathSensitiveBugReport) -> Finding:
        point = report.location
        snippet = get_source_span(context, point)
        return Finding(
            rule_id=self.id,
            message=report.message,
            location=Location(
                path=context.path,
                line=point.line,
                column=point.column,
                end_line=point.end_line,
                end_column=point.end_column,
                snippet=snippet,
            ),
            severity=report.bug_type.severity,
            category=report.bug_type.category,
            bug_type=report.bug_type.name,
        )
