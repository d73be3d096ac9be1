"""
Quality scoring.

Each dimension maps a percentage onto a 0–5 score:

    score = min(5, max(0, value / target * 5 * scale_factor))

with ``target = 100``. Automation is damped with ``scale_factor = 0.8``.
The overall score is the unweighted mean of the three dimensions.
"""

from __future__ import annotations

from dataclasses import dataclass

from tracehub.engine.coverage import CoverageSummary
from tracehub.engine.types import ProjectCounters, non_negative

MAX_SCORE = 5.0
DEFAULT_TARGET = 100.0
AUTOMATION_SCALE = 0.8

# (lower bound, label), highest first
QUALITY_BANDS = (
    (4.5, "Excellent"),
    (3.5, "Good"),
    (2.5, "Fair"),
    (1.5, "Poor"),
)


def normalize_score(value, *, target: float = DEFAULT_TARGET, scale_factor: float = 1.0) -> float:
    value = non_negative(value)
    if not target:
        return 0.0
    return min(MAX_SCORE, max(0.0, (value / target) * MAX_SCORE * scale_factor))


def quality_label(score: float) -> str:
    for lower, label in QUALITY_BANDS:
        if score >= lower:
            return label
    return "Critical"


@dataclass(frozen=True)
class RequirementsQuality:
    total_requirements: int
    covered_requirements: int
    coverage_percent: float
    quality_score: float

    def to_dict(self) -> dict:
        return {
            "total_requirements": self.total_requirements,
            "covered_requirements": self.covered_requirements,
            "coverage_percent": self.coverage_percent,
            "quality_score": self.quality_score,
        }


@dataclass(frozen=True)
class TestingQuality:
    total_tests: int
    executed_tests: int
    passed_tests: int
    failed_tests: int
    pass_rate: float
    quality_score: float

    def to_dict(self) -> dict:
        return {
            "total_tests": self.total_tests,
            "executed_tests": self.executed_tests,
            "passed_tests": self.passed_tests,
            "failed_tests": self.failed_tests,
            "pass_rate": self.pass_rate,
            "quality_score": self.quality_score,
        }


@dataclass(frozen=True)
class AutomationQuality:
    total_tests: int
    automated_tests: int
    automation_rate: float
    quality_score: float

    def to_dict(self) -> dict:
        return {
            "total_tests": self.total_tests,
            "automated_tests": self.automated_tests,
            "automation_rate": self.automation_rate,
            "quality_score": self.quality_score,
        }


@dataclass(frozen=True)
class QualityMetrics:
    requirements: RequirementsQuality
    testing: TestingQuality
    automation: AutomationQuality

    @property
    def overall_quality_score(self) -> float:
        scores = (
            self.requirements.quality_score,
            self.testing.quality_score,
            self.automation.quality_score,
        )
        return sum(scores) / len(scores)

    @property
    def overall_label(self) -> str:
        return quality_label(self.overall_quality_score)

    def to_dict(self) -> dict:
        return {
            "requirements": self.requirements.to_dict(),
            "testing": self.testing.to_dict(),
            "automation": self.automation.to_dict(),
            "overall_quality_score": self.overall_quality_score,
            "overall_label": self.overall_label,
        }


def compute_quality_metrics(coverage: CoverageSummary, counters: ProjectCounters) -> QualityMetrics:
    """Score requirements coverage, test pass rate and automation rate."""
    requirements = RequirementsQuality(
        total_requirements=coverage.total_requirements,
        covered_requirements=coverage.covered_requirements,
        coverage_percent=coverage.coverage_percent,
        quality_score=normalize_score(coverage.coverage_percent),
    )
    testing = TestingQuality(
        total_tests=counters.total_tests_count,
        executed_tests=counters.executed_tests_count,
        passed_tests=counters.pass_count,
        failed_tests=counters.fail_count,
        pass_rate=counters.pass_rate,
        quality_score=normalize_score(counters.pass_rate),
    )
    automation = AutomationQuality(
        total_tests=counters.total_tests_count,
        automated_tests=counters.automated_tests_count,
        automation_rate=counters.automation_rate,
        quality_score=normalize_score(counters.automation_rate, scale_factor=AUTOMATION_SCALE),
    )
    return QualityMetrics(requirements=requirements, testing=testing, automation=automation)
