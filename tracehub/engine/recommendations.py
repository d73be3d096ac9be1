"""
Rule-based recommendations.

Every rule is evaluated independently and every matching rule fires. The
result is stably sorted by type, so recommendations of the same type keep
the order they were generated in:

    critical < high < medium < low
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from tracehub.engine.coverage import CoverageSummary
from tracehub.engine.quality import QualityMetrics
from tracehub.engine.risk import RiskAssessment
from tracehub.engine.types import Priority

MIN_COVERAGE_PERCENT = 70
MIN_PRIORITY_COVERAGE_PERCENT = 80
MIN_AUTOMATION_PERCENT = 30
MIN_PASS_RATE_PERCENT = 80

# Buckets inspected by the per-priority coverage rule, in emission order
WATCHED_PRIORITIES = (Priority.CRITICAL, Priority.HIGH)


class RecommendationType(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationArea(str, Enum):
    COVERAGE = "coverage"
    EXECUTION = "execution"
    AUTOMATION = "automation"
    SECURITY = "security"


TYPE_ORDER = {
    RecommendationType.CRITICAL: 0,
    RecommendationType.HIGH: 1,
    RecommendationType.MEDIUM: 2,
    RecommendationType.LOW: 3,
}


@dataclass(frozen=True)
class Recommendation:
    type: RecommendationType
    area: RecommendationArea
    message: str
    details: Mapping = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "area": self.area.value,
            "message": self.message,
            "details": {k: list(v) if isinstance(v, tuple) else v for k, v in self.details.items()},
        }


def sort_recommendations(items: list[Recommendation]) -> list[Recommendation]:
    return sorted(items, key=lambda r: TYPE_ORDER[r.type])


def generate_recommendations(coverage: CoverageSummary, risk: RiskAssessment,
                             metrics: QualityMetrics) -> list[Recommendation]:
    """Evaluate all rules and return the findings in priority order.

    A project without requirements has nothing to recommend.
    """
    if coverage.total_requirements == 0:
        return []

    found: list[Recommendation] = []

    if risk.critical_uncovered_count > 0:
        found.append(Recommendation(
            RecommendationType.HIGH, RecommendationArea.COVERAGE,
            f"{risk.critical_uncovered_count} critical requirements without test coverage",
            {
                "count": risk.critical_uncovered_count,
                "requirements": tuple(r.code for r in risk.critical_uncovered),
            },
        ))

    if risk.critical_failing_count > 0:
        found.append(Recommendation(
            RecommendationType.CRITICAL, RecommendationArea.EXECUTION,
            f"{risk.critical_failing_count} critical requirements with failing tests",
            {
                "count": risk.critical_failing_count,
                "requirements": tuple(f.requirement.code for f in risk.critical_failing),
            },
        ))

    if coverage.coverage_percent < MIN_COVERAGE_PERCENT:
        found.append(Recommendation(
            RecommendationType.MEDIUM, RecommendationArea.COVERAGE,
            f"Overall requirement coverage is {coverage.coverage_percent:.1f}%, "
            f"below the {MIN_COVERAGE_PERCENT}% target",
            {"coverage_percent": coverage.coverage_percent, "target": MIN_COVERAGE_PERCENT},
        ))

    for priority in WATCHED_PRIORITIES:
        bucket = coverage.bucket(priority)
        if bucket is None or bucket.coverage_percent >= MIN_PRIORITY_COVERAGE_PERCENT:
            continue
        found.append(Recommendation(
            RecommendationType.HIGH, RecommendationArea.COVERAGE,
            f"{priority.value} priority requirements are only "
            f"{bucket.coverage_percent:.1f}% covered",
            {
                "priority": priority.value,
                "coverage_percent": bucket.coverage_percent,
                "target": MIN_PRIORITY_COVERAGE_PERCENT,
            },
        ))

    automation = metrics.automation
    if automation.automation_rate < MIN_AUTOMATION_PERCENT:
        found.append(Recommendation(
            RecommendationType.LOW, RecommendationArea.AUTOMATION,
            f"Only {automation.automation_rate:.1f}% of test cases are automated",
            {"automation_rate": automation.automation_rate, "target": MIN_AUTOMATION_PERCENT},
        ))

    if coverage.pass_rate < MIN_PASS_RATE_PERCENT and coverage.covered_requirements > 0:
        found.append(Recommendation(
            RecommendationType.MEDIUM, RecommendationArea.EXECUTION,
            f"Only {coverage.pass_rate:.1f}% of requirements pass all their tests",
            {"pass_rate": coverage.pass_rate, "target": MIN_PASS_RATE_PERCENT},
        ))

    return sort_recommendations(found)
