"""
Quality report service.

Loads a project snapshot, runs the engine over it and, unless the request is
a preview, stores the result as a QualityReport.

A missing project or snapshot does not raise: ``generate`` returns a
``ReportResult`` carrying the error so the caller can offer a retry.

    result = QualityReportService.generate(project_id, ReportOptions(preview=True))
    if result.ok:
        body = result.data
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from tracehub.core.exceptions import NotFoundError
from tracehub.engine.coverage import (
    failing_critical_requirements,
    summarize_coverage,
    uncovered_requirements,
)
from tracehub.engine.matrix import build_traceability_matrix
from tracehub.engine.report import ReportOptions, assemble_report
from tracehub.models import db
from tracehub.models.reporting import QualityReport
from tracehub.services.helpers import get_or_raise
from tracehub.services.project_service import get_project
from tracehub.services.snapshot_loader import (
    list_requirements,
    list_suites_with_cases,
    load_project_snapshot,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportResult:
    data: dict | None = None
    error: str | None = None
    report_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QualityReportService:
    """Store-backed report assembly and report history."""

    @classmethod
    def generate(cls, project_id: int, options: ReportOptions | None = None, *,
                 now: datetime | None = None) -> ReportResult:
        options = options or ReportOptions()
        try:
            snapshot = load_project_snapshot(project_id)
            report = assemble_report(snapshot, options, now=now)
        except NotFoundError as e:
            logger.warning("Quality report for project %s not generated: %s", project_id, e,
                           extra={"project_id": project_id})
            return ReportResult(error=str(e))

        body = report.to_dict()
        if options.preview:
            return ReportResult(data=body)

        stored = QualityReport(
            project_id=snapshot.project_id,
            generated_at=report.generated_at,
            include_metrics=options.include_metrics,
            include_risk_analysis=options.include_risk_analysis,
            include_coverage_analysis=options.include_coverage_analysis,
            risk_level=report.risk_analysis.risk_level.value if report.risk_analysis else None,
            overall_quality_score=report.metrics.overall_quality_score if report.metrics else None,
            recommendation_count=len(report.recommendations),
            body=body,
        )
        db.session.add(stored)
        db.session.flush()
        logger.info("Quality report %s stored", stored.id,
                    extra={"project_id": snapshot.project_id, "report_id": stored.id})
        return ReportResult(data=body, report_id=stored.id)

    @classmethod
    def list_reports(cls, project_id: int, limit: int | None = None) -> list[QualityReport]:
        """Stored reports for a project, newest first."""
        get_project(project_id)
        if limit is None:
            limit = current_app.config.get("REPORT_HISTORY_LIMIT", 50)
        return (
            QualityReport.query
            .filter_by(project_id=project_id)
            .order_by(QualityReport.generated_at.desc(), QualityReport.id.desc())
            .limit(limit)
            .all()
        )

    @classmethod
    def get_report(cls, report_id: int) -> QualityReport:
        return get_or_raise(QualityReport, report_id, resource="QualityReport")

    @staticmethod
    def get_matrix(project_id: int) -> dict:
        """Matrix rows plus the suites they were resolved against."""
        suites = list_suites_with_cases(project_id)
        rows = build_traceability_matrix(list_requirements(project_id), suites)
        return {
            "rows": [row.to_dict() for row in rows],
            "suites": [suite.to_dict() for suite in suites],
        }

    @staticmethod
    def get_coverage(project_id: int) -> dict:
        """Coverage summary plus the two dashboard cards."""
        rows = build_traceability_matrix(
            list_requirements(project_id), list_suites_with_cases(project_id)
        )
        result = summarize_coverage(rows).to_dict()
        result["uncovered"] = [r.requirement.to_dict() for r in uncovered_requirements(rows)]
        result["critical_failing"] = [r.to_dict() for r in failing_critical_requirements(rows)]
        return result
