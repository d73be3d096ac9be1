"""
Project blueprint.

Endpoints:
    /api/v1/projects              GET, POST
    /api/v1/projects/<id>         GET
"""

from flask import Blueprint, jsonify, request

from tracehub.blueprints import commit_or_error
from tracehub.services import project_service

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    return jsonify([p.to_dict() for p in project_service.list_projects()])


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    project = project_service.create_project(data)
    err = commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    return jsonify(project_service.get_project(project_id).to_dict())
