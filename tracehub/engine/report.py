"""
Report assembly.

    snapshot -> matrix -> coverage, risk -> quality -> recommendations -> Report

All sections are always computed; the ``include_*`` flags only decide which
of them appear in the report, so turning one off never changes another.
``preview`` is carried through untouched for the store to act on.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from tracehub.core.exceptions import NotFoundError
from tracehub.engine.coverage import CoverageSummary, summarize_coverage
from tracehub.engine.matrix import build_traceability_matrix
from tracehub.engine.quality import QualityMetrics, compute_quality_metrics
from tracehub.engine.recommendations import Recommendation, generate_recommendations
from tracehub.engine.risk import RiskAssessment, assess_risk
from tracehub.engine.types import CoverageRow, ProjectCounters, Requirement, TestSuite

logger = logging.getLogger(__name__)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class ReportOptions:
    include_metrics: bool = True
    include_risk_analysis: bool = True
    include_coverage_analysis: bool = True
    preview: bool = False

    _KEYS = {
        "include_metrics": ("include_metrics", "includeMetrics"),
        "include_risk_analysis": ("include_risk_analysis", "includeRiskAnalysis"),
        "include_coverage_analysis": ("include_coverage_analysis", "includeCoverageAnalysis"),
        "preview": ("preview",),
    }

    @classmethod
    def from_mapping(cls, data: Mapping | None) -> "ReportOptions":
        """Read flags from a request body; accepts snake_case and camelCase keys."""
        data = data or {}
        kwargs = {}
        for attr, keys in cls._KEYS.items():
            for key in keys:
                if key in data:
                    kwargs[attr] = _flag(data[key])
                    break
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {
            "include_metrics": self.include_metrics,
            "include_risk_analysis": self.include_risk_analysis,
            "include_coverage_analysis": self.include_coverage_analysis,
            "preview": self.preview,
        }


@dataclass(frozen=True)
class ProjectSnapshot:
    """Everything the engine needs about one project, loaded up front."""
    project_id: int | str
    requirements: list[Requirement] = field(default_factory=list)
    suites: list[TestSuite] = field(default_factory=list)
    counters: ProjectCounters = field(default_factory=ProjectCounters)


@dataclass(frozen=True)
class Report:
    project_id: int | str
    generated_at: datetime
    options: ReportOptions
    recommendations: tuple[Recommendation, ...]
    coverage_analysis: CoverageSummary | None = None
    risk_analysis: RiskAssessment | None = None
    metrics: QualityMetrics | None = None

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "generated_at": self.generated_at.isoformat(),
            "options": self.options.to_dict(),
            "coverage_analysis": self.coverage_analysis.to_dict() if self.coverage_analysis else None,
            "risk_analysis": self.risk_analysis.to_dict() if self.risk_analysis else None,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass(frozen=True)
class Analysis:
    """Intermediate results of one pass over a snapshot."""
    matrix: list[CoverageRow]
    coverage: CoverageSummary
    risk: RiskAssessment
    metrics: QualityMetrics
    recommendations: list[Recommendation]


def analyze(snapshot: ProjectSnapshot | None) -> Analysis:
    if snapshot is None:
        raise NotFoundError("Project snapshot")
    matrix = build_traceability_matrix(snapshot.requirements, snapshot.suites)
    coverage = summarize_coverage(matrix)
    risk = assess_risk(matrix)
    metrics = compute_quality_metrics(coverage, snapshot.counters)
    recommendations = generate_recommendations(coverage, risk, metrics)
    return Analysis(matrix, coverage, risk, metrics, recommendations)


def assemble_report(snapshot: ProjectSnapshot | None, options: ReportOptions | None = None,
                    *, now: datetime | None = None) -> Report:
    """Run the whole pipeline over a snapshot and return an immutable Report."""
    options = options or ReportOptions()
    t0 = time.perf_counter()
    result = analyze(snapshot)

    report = Report(
        project_id=snapshot.project_id,
        generated_at=now or datetime.now(timezone.utc),
        options=options,
        recommendations=tuple(result.recommendations),
        coverage_analysis=result.coverage if options.include_coverage_analysis else None,
        risk_analysis=result.risk if options.include_risk_analysis else None,
        metrics=result.metrics if options.include_metrics else None,
    )
    duration_ms = (time.perf_counter() - t0) * 1000
    logger.info(
        "Quality report assembled for project %s: risk=%s, %d recommendations",
        snapshot.project_id, result.risk.risk_level.value, len(report.recommendations),
        extra={
            "project_id": snapshot.project_id,
            "risk_level": result.risk.risk_level.value,
            "duration_ms": duration_ms,
        },
    )
    return report
