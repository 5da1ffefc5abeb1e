"""
Bug types, path-sensitive reports and the per-run report collector.

A BugType is created once per checker at import time and shared by every
report that checker emits. Reports are deduplicated on (bug type identity,
source position, message), so the same defect reached along several paths,
or through both a top-level and an inlined analysis of one function, is
reported exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from scalecheck.engine.exploded_graph import ExplodedNode, ProgramPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class BugType:
    """Immutable descriptor of one kind of defect. Compared by identity."""

    checker: str
    name: str
    category: str
    severity: str = "warning"


@dataclass(eq=False)
class PathSensitiveBugReport:
    bug_type: BugType
    message: str
    error_node: ExplodedNode

    @property
    def location(self) -> ProgramPoint:
        return self.error_node.location

    @property
    def path_length(self) -> int:
        return sum(1 for _ in self.error_node.path())

    def dedup_key(self) -> Tuple[BugType, int, int, str]:
        loc = self.location
        return self.bug_type, loc.start_byte, loc.end_byte, self.message


class BugReporter:
    """Collects reports for one analysis run, dropping duplicates."""

    def __init__(self) -> None:
        self._seen: Dict[Tuple[BugType, int, int, str], PathSensitiveBugReport] = {}
        self._reports: List[PathSensitiveBugReport] = []

    def emit_report(self, report: PathSensitiveBugReport) -> bool:
        """Record ``report``. Returns False when an equivalent report already exists."""
        key = report.dedup_key()
        existing = self._seen.get(key)
        if existing is not None:
            # Keep the shortest path as the representative.
            if report.path_length < existing.path_length:
                self._reports[self._reports.index(existing)] = report
                self._seen[key] = report
            logger.debug(
                "Duplicate %r report at %d:%d suppressed",
                report.bug_type.name,
                report.location.line,
                report.location.column,
            )
            return False
        self._seen[key] = report
        self._reports.append(report)
        logger.debug(
            "Report %r at %d:%d: %s",
            report.bug_type.name,
            report.location.line,
            report.location.column,
            report.message,
        )
        return True

    @property
    def reports(self) -> List[PathSensitiveBugReport]:
        return list(self._reports)

    def __len__(self) -> int:
        return len(self._reports)
