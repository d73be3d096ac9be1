"""
Testing blueprint — suites, test cases and executions.

Endpoints:
    /api/v1/projects/<pid>/suites            GET, POST
    /api/v1/suites/<id>                      GET   (?include_cases=true)
    /api/v1/suites/<id>/test-cases           POST
    /api/v1/suites/<id>/executions           GET, POST (finalize a run)
    /api/v1/executions/<id>                  GET, DELETE

Execution payload:
    {"environment": "QA",
     "results": [{"test_case_id": 1, "status": "Passed", "notes": ""}, ...]}
"""

from flask import Blueprint, jsonify, request

from tracehub.blueprints import commit_or_error, request_actor
from tracehub.services import testing_service

testing_bp = Blueprint("testing", __name__, url_prefix="/api/v1")


@testing_bp.route("/projects/<int:project_id>/suites", methods=["GET"])
def list_suites(project_id):
    include_cases = request.args.get("include_cases", "false").lower() == "true"
    suites = testing_service.list_suites(project_id)
    return jsonify([s.to_dict(include_cases=include_cases) for s in suites])


@testing_bp.route("/projects/<int:project_id>/suites", methods=["POST"])
def create_suite(project_id):
    data = request.get_json(silent=True) or {}
    suite = testing_service.create_suite(project_id, data)
    err = commit_or_error()
    if err:
        return err
    return jsonify(suite.to_dict()), 201


@testing_bp.route("/suites/<int:suite_id>", methods=["GET"])
def get_suite(suite_id):
    include_cases = request.args.get("include_cases", "true").lower() == "true"
    return jsonify(testing_service.get_suite(suite_id).to_dict(include_cases=include_cases))


@testing_bp.route("/suites/<int:suite_id>/test-cases", methods=["POST"])
def add_test_case(suite_id):
    data = request.get_json(silent=True) or {}
    tc = testing_service.add_test_case(suite_id, data)
    err = commit_or_error()
    if err:
        return err
    return jsonify(tc.to_dict()), 201


@testing_bp.route("/suites/<int:suite_id>/executions", methods=["GET"])
def list_executions(suite_id):
    return jsonify([e.to_dict() for e in testing_service.list_executions(suite_id)])


@testing_bp.route("/suites/<int:suite_id>/executions", methods=["POST"])
def finalize_execution(suite_id):
    data = request.get_json(silent=True) or {}
    execution = testing_service.finalize_execution(suite_id, data, actor=request_actor())
    err = commit_or_error()
    if err:
        return err
    return jsonify(execution.to_dict(include_results=True)), 201


@testing_bp.route("/executions/<int:execution_id>", methods=["GET"])
def get_execution(execution_id):
    return jsonify(testing_service.get_execution(execution_id).to_dict(include_results=True))


@testing_bp.route("/executions/<int:execution_id>", methods=["DELETE"])
def delete_execution(execution_id):
    testing_service.delete_execution(execution_id)
    err = commit_or_error()
    if err:
        return err
    return jsonify({"message": "Execution deleted"}), 200
