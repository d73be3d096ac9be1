"""
Coverage aggregation over a traceability matrix.

    summary = summarize_coverage(rows)
    summary.coverage_percent                  -> covered / total * 100
    summary.priority_coverage["Critical"]     -> PriorityCoverage

A requirement is *covered* when it links at least one existing test case and
*passed* when every executed linked case passed (row pass_rate >= 100).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from tracehub.engine.types import (
    HIGH_IMPACT_PRIORITIES,
    CoverageRow,
    ExecutionStatus,
    Priority,
    percent,
)

# Dashboard cards show at most this many rows
DEFAULT_CARD_LIMIT = 5


@dataclass(frozen=True)
class PriorityCoverage:
    total: int = 0
    covered: int = 0
    passed: int = 0

    @property
    def coverage_percent(self) -> float:
        return percent(self.covered, self.total)

    @property
    def pass_percent(self) -> float:
        return percent(self.passed, self.total)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "covered": self.covered,
            "passed": self.passed,
            "coverage_percent": self.coverage_percent,
            "pass_percent": self.pass_percent,
        }


@dataclass(frozen=True)
class CoverageSummary:
    total_requirements: int = 0
    covered_requirements: int = 0
    passed_requirements: int = 0
    priority_coverage: Mapping[str, PriorityCoverage] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view so a stored report cannot be changed through its buckets
        object.__setattr__(self, "priority_coverage",
                           MappingProxyType(dict(self.priority_coverage)))

    @property
    def coverage_percent(self) -> float:
        return percent(self.covered_requirements, self.total_requirements)

    @property
    def pass_rate(self) -> float:
        return percent(self.passed_requirements, self.total_requirements)

    @property
    def uncovered_requirements(self) -> int:
        return self.total_requirements - self.covered_requirements

    def bucket(self, priority: Priority | str) -> PriorityCoverage | None:
        key = priority.value if isinstance(priority, Priority) else priority
        return self.priority_coverage.get(key)

    def to_dict(self) -> dict:
        return {
            "total_requirements": self.total_requirements,
            "covered_requirements": self.covered_requirements,
            "coverage_percent": self.coverage_percent,
            "passed_requirements": self.passed_requirements,
            "pass_rate": self.pass_rate,
            "priority_coverage": {k: v.to_dict() for k, v in self.priority_coverage.items()},
        }


def _is_passed(row: CoverageRow) -> bool:
    return row.pass_rate >= 100


def summarize_coverage(matrix: list[CoverageRow]) -> CoverageSummary:
    """Aggregate project-level and per-priority coverage. Pure and repeatable."""
    totals, covered, passed = Counter(), Counter(), Counter()
    for row in matrix:
        label = row.requirement.priority_label
        totals[label] += 1
        if row.is_covered:
            covered[label] += 1
        if _is_passed(row):
            passed[label] += 1

    return CoverageSummary(
        total_requirements=len(matrix),
        covered_requirements=sum(covered.values()),
        passed_requirements=sum(passed.values()),
        priority_coverage={
            label: PriorityCoverage(total=n, covered=covered[label], passed=passed[label])
            for label, n in totals.items()
        },
    )


def uncovered_requirements(matrix: list[CoverageRow],
                           limit: int | None = DEFAULT_CARD_LIMIT) -> list[CoverageRow]:
    """Rows without any linked test case, in matrix order."""
    rows = [row for row in matrix if not row.is_covered]
    return rows[:limit] if limit is not None else rows


def failing_critical_requirements(matrix: list[CoverageRow],
                                  limit: int | None = DEFAULT_CARD_LIMIT) -> list[CoverageRow]:
    """High and Critical rows with at least one failed linked case."""
    rows = [
        row for row in matrix
        if row.requirement.priority in HIGH_IMPACT_PRIORITIES
        and any(tc.last_execution_status == ExecutionStatus.FAILED
                for tc in row.linked_test_cases)
    ]
    return rows[:limit] if limit is not None else rows
