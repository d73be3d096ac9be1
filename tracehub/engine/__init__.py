"""
Traceability & quality scoring engine.

Pure functions over in-memory snapshots; no Flask, no database access.
"""

from tracehub.engine.coverage import CoverageSummary, summarize_coverage
from tracehub.engine.matrix import build_traceability_matrix
from tracehub.engine.quality import QualityMetrics, compute_quality_metrics
from tracehub.engine.recommendations import Recommendation, generate_recommendations
from tracehub.engine.report import ProjectSnapshot, Report, ReportOptions, assemble_report
from tracehub.engine.risk import RiskAssessment, RiskLevel, assess_risk

__all__ = [
    "CoverageSummary",
    "ProjectSnapshot",
    "QualityMetrics",
    "Recommendation",
    "Report",
    "ReportOptions",
    "RiskAssessment",
    "RiskLevel",
    "assemble_report",
    "assess_risk",
    "build_traceability_matrix",
    "compute_quality_metrics",
    "generate_recommendations",
    "summarize_coverage",
]
