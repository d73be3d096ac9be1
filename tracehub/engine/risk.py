"""
Risk analysis for high-impact requirements.

Only High and Critical requirements count towards risk. Two populations are
tracked:

- *uncovered*: no linked test case at all
- *failing*:   at least one linked test case whose last run failed

and folded into a weighted score:

    risk_score = 0.6 * uncovered / total + 0.4 * failing / covered

where ``total`` is every requirement in the matrix and ``covered`` every
requirement with at least one link. The score is rounded to nine decimal
places before classification. The level is taken from the first
matching band, checked top down (all comparisons inclusive).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from tracehub.engine.types import (
    HIGH_IMPACT_PRIORITIES,
    CoverageRow,
    ExecutionStatus,
    LinkedTestCase,
    Requirement,
)

UNCOVERED_WEIGHT = 0.6
FAILING_WEIGHT = 0.4

CRITICAL_SCORE = 0.20
HIGH_SCORE = 0.10
MEDIUM_SCORE = 0.05
# Decimal places kept on the score, so ratios such as 0.6 * 1/3 land on their band edge
SCORE_PRECISION = 9
CRITICAL_COUNT = 3
HIGH_COUNT = 1


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
    UNDEFINED = "Undefined"


@dataclass(frozen=True)
class FailingRequirement:
    requirement: Requirement
    failing_tests: tuple[LinkedTestCase, ...]

    def to_dict(self) -> dict:
        return {
            "requirement": self.requirement.to_dict(),
            "failing_tests": [tc.to_dict() for tc in self.failing_tests],
        }


@dataclass(frozen=True)
class RiskAssessment:
    risk_level: RiskLevel
    risk_score: float = 0.0
    total_requirements: int = 0
    critical_uncovered: tuple[Requirement, ...] = field(default_factory=tuple)
    critical_failing: tuple[FailingRequirement, ...] = field(default_factory=tuple)

    @property
    def critical_uncovered_count(self) -> int:
        return len(self.critical_uncovered)

    @property
    def critical_failing_count(self) -> int:
        return len(self.critical_failing)

    def to_dict(self) -> dict:
        return {
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "critical_uncovered_count": self.critical_uncovered_count,
            "critical_failing_count": self.critical_failing_count,
            "critical_uncovered": [r.to_dict() for r in self.critical_uncovered],
            "critical_failing": [f.to_dict() for f in self.critical_failing],
        }


def compute_risk_score(uncovered: int, failing: int, total: int, covered: int) -> float:
    """Weighted risk score rounded to SCORE_PRECISION places; each term is 0 when its denominator is 0."""
    score = 0.0
    if total:
        score += UNCOVERED_WEIGHT * (uncovered / total)
    if covered:
        score += FAILING_WEIGHT * (failing / covered)
    return round(score, SCORE_PRECISION)


def classify_risk(score: float, uncovered: int, failing: int, total: int) -> RiskLevel:
    if total == 0:
        return RiskLevel.UNDEFINED
    if score >= CRITICAL_SCORE or uncovered >= CRITICAL_COUNT or failing >= CRITICAL_COUNT:
        return RiskLevel.CRITICAL
    if score >= HIGH_SCORE or uncovered >= HIGH_COUNT or failing >= HIGH_COUNT:
        return RiskLevel.HIGH
    if score >= MEDIUM_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _failed_links(row: CoverageRow) -> tuple[LinkedTestCase, ...]:
    return tuple(
        tc for tc in row.linked_test_cases
        if tc.last_execution_status == ExecutionStatus.FAILED
    )


def assess_risk(matrix: list[CoverageRow]) -> RiskAssessment:
    """Classify project risk from a traceability matrix."""
    total = len(matrix)
    covered = sum(1 for row in matrix if row.is_covered)

    uncovered_reqs: list[Requirement] = []
    failing_reqs: list[FailingRequirement] = []
    for row in matrix:
        if row.requirement.priority not in HIGH_IMPACT_PRIORITIES:
            continue
        if not row.is_covered:
            uncovered_reqs.append(row.requirement)
            continue
        failed = _failed_links(row)
        if failed:
            failing_reqs.append(FailingRequirement(row.requirement, failed))

    score = compute_risk_score(len(uncovered_reqs), len(failing_reqs), total, covered)
    return RiskAssessment(
        risk_level=classify_risk(score, len(uncovered_reqs), len(failing_reqs), total),
        risk_score=score,
        total_requirements=total,
        critical_uncovered=tuple(uncovered_reqs),
        critical_failing=tuple(failing_reqs),
    )
