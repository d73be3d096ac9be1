"""
Requirement blueprint.

Endpoints:
    /api/v1/projects/<pid>/requirements                  GET, POST
    /api/v1/requirements/<id>                            GET, PUT
    /api/v1/requirements/<id>/test-cases/<tc_id>         POST (link), DELETE (unlink)

The acting user is read from the ``X-Actor`` header and recorded in the
requirement history.
"""

from flask import Blueprint, jsonify, request

from tracehub.blueprints import commit_or_error, request_actor
from tracehub.services import requirement_service

requirement_bp = Blueprint("requirement", __name__, url_prefix="/api/v1")


@requirement_bp.route("/projects/<int:project_id>/requirements", methods=["GET"])
def list_requirements(project_id):
    items = requirement_service.list_project_requirements(project_id)
    return jsonify([r.to_dict() for r in items])


@requirement_bp.route("/projects/<int:project_id>/requirements", methods=["POST"])
def create_requirement(project_id):
    data = request.get_json(silent=True) or {}
    req = requirement_service.create_requirement(project_id, data, actor=request_actor())
    err = commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict(include_history=True)), 201


@requirement_bp.route("/requirements/<int:requirement_id>", methods=["GET"])
def get_requirement(requirement_id):
    include_history = request.args.get("include_history", "true").lower() == "true"
    req = requirement_service.get_requirement(requirement_id)
    return jsonify(req.to_dict(include_history=include_history))


@requirement_bp.route("/requirements/<int:requirement_id>", methods=["PUT"])
def update_requirement(requirement_id):
    data = request.get_json(silent=True) or {}
    req = requirement_service.update_requirement(requirement_id, data, actor=request_actor())
    err = commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict(include_history=True))


@requirement_bp.route("/requirements/<int:requirement_id>/test-cases/<test_case_id>",
                      methods=["POST"])
def link_test_case(requirement_id, test_case_id):
    req = requirement_service.link_test_case(requirement_id, test_case_id, actor=request_actor())
    err = commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict(include_history=True)), 201


@requirement_bp.route("/requirements/<int:requirement_id>/test-cases/<test_case_id>",
                      methods=["DELETE"])
def unlink_test_case(requirement_id, test_case_id):
    req = requirement_service.unlink_test_case(requirement_id, test_case_id, actor=request_actor())
    err = commit_or_error()
    if err:
        return err
    return jsonify(req.to_dict(include_history=True))
