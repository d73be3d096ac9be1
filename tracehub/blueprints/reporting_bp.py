"""
Quality report blueprint.

Endpoints:
    POST /api/v1/projects/<pid>/quality-reports   generate (stored unless preview)
    GET  /api/v1/projects/<pid>/quality-reports   history, newest first
    GET  /api/v1/quality-reports/<id>             stored report with its body

POST body flags (snake_case or camelCase):
    include_metrics, include_risk_analysis, include_coverage_analysis, preview
"""

from flask import Blueprint, jsonify, request

from tracehub.blueprints import commit_or_error
from tracehub.engine.report import ReportOptions
from tracehub.services.quality_report_service import QualityReportService
from tracehub.utils.errors import E, api_error

reporting_bp = Blueprint("reporting", __name__, url_prefix="/api/v1")


@reporting_bp.route("/projects/<int:project_id>/quality-reports", methods=["POST"])
def generate_report(project_id):
    data = request.get_json(silent=True) or {}
    options = ReportOptions.from_mapping(data)
    result = QualityReportService.generate(project_id, options)
    if not result.ok:
        return api_error(E.NOT_FOUND, result.error, details={"retryable": True})

    if options.preview:
        return jsonify({"report": result.data, "report_id": None}), 200

    err = commit_or_error()
    if err:
        return err
    return jsonify({"report": result.data, "report_id": result.report_id}), 201


@reporting_bp.route("/projects/<int:project_id>/quality-reports", methods=["GET"])
def list_reports(project_id):
    limit = request.args.get("limit", type=int)
    reports = QualityReportService.list_reports(project_id, limit=limit)
    return jsonify([r.to_dict() for r in reports])


@reporting_bp.route("/quality-reports/<int:report_id>", methods=["GET"])
def get_report(report_id):
    return jsonify(QualityReportService.get_report(report_id).to_dict(include_body=True))
