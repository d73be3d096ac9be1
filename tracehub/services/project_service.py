"""Project CRUD service."""

from __future__ import annotations

import logging

from tracehub.models import db
from tracehub.models.project import Project
from tracehub.services.helpers import get_or_raise, optional_text, require_text

logger = logging.getLogger(__name__)


def create_project(data: dict) -> Project:
    project = Project(
        name=require_text(data, "name", max_len=200),
        description=optional_text(data, "description"),
    )
    db.session.add(project)
    db.session.flush()
    logger.info("Project created: %s", project.name, extra={"project_id": project.id})
    return project


def get_project(project_id: int) -> Project:
    return get_or_raise(Project, project_id, resource="Project")


def list_projects() -> list[Project]:
    return Project.query.order_by(Project.created_at.desc(), Project.id.desc()).all()
