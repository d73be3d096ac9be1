"""
Traceability blueprint — read-only views over the engine.

Endpoints:
    GET /api/v1/projects/<pid>/traceability/matrix    one row per requirement,
                                                       plus per-suite statistics
    GET /api/v1/projects/<pid>/traceability/coverage  summary + dashboard cards
"""

from flask import Blueprint, jsonify

from tracehub.services.quality_report_service import QualityReportService

traceability_bp = Blueprint("traceability", __name__, url_prefix="/api/v1")


@traceability_bp.route("/projects/<int:project_id>/traceability/matrix", methods=["GET"])
def get_matrix(project_id):
    matrix = QualityReportService.get_matrix(project_id)
    return jsonify({
        "project_id": project_id,
        "rows": matrix["rows"],
        "suites": matrix["suites"],
        "total": len(matrix["rows"]),
    })


@traceability_bp.route("/projects/<int:project_id>/traceability/coverage", methods=["GET"])
def get_coverage(project_id):
    return jsonify(QualityReportService.get_coverage(project_id))
