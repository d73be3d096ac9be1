"""
Requirement service — creation, update and test-case linking.

Every mutation appends exactly one RequirementHistory row:

    create  → "create"
    update  → "update"   (details list the changed fields)
    link    → "link"     (details carry the test case id)
    unlink  → "unlink"

Codes come from ``Project.requirement_seq`` and are never reused.
Priority labels on this write path are parsed strictly; an unknown label
raises ValidationError instead of landing in the "Undefined" bucket.
"""

from __future__ import annotations

import logging

from tracehub.core.exceptions import ConflictError, NotFoundError, ValidationError
from tracehub.engine.types import parse_priority
from tracehub.models import db
from tracehub.models.requirement import Requirement, RequirementHistory, RequirementTestLink
from tracehub.models.testing import TestCase, TestSuite
from tracehub.services.helpers import get_or_raise, optional_text, require_text, tags_to_text
from tracehub.services.project_service import get_project

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "Pending"
CODE_FORMAT = "REQ-{:03d}"

# Fields a caller may never change after creation
IMMUTABLE_FIELDS = frozenset({"id", "project_id", "code", "created_at", "created_by"})
UPDATABLE_FIELDS = ("name", "description", "priority", "status", "tags")


def _record(req: Requirement, action: str, actor: str | None, details: str = "") -> RequirementHistory:
    entry = RequirementHistory(requirement_id=req.id, action=action, actor=actor, details=details)
    db.session.add(entry)
    return entry


def next_requirement_code(project) -> str:
    project.requirement_seq = (project.requirement_seq or 0) + 1
    return CODE_FORMAT.format(project.requirement_seq)


def get_requirement(requirement_id: int) -> Requirement:
    return get_or_raise(Requirement, requirement_id, resource="Requirement")


def list_project_requirements(project_id: int) -> list[Requirement]:
    get_project(project_id)
    return (
        Requirement.query
        .filter_by(project_id=project_id)
        .order_by(Requirement.id)
        .all()
    )


def create_requirement(project_id: int, data: dict, actor: str | None = None) -> Requirement:
    project = get_project(project_id)
    name = require_text(data, "name", max_len=300)
    priority = parse_priority(data.get("priority") or "Medium")

    req = Requirement(
        project_id=project.id,
        code=next_requirement_code(project),
        name=name,
        description=optional_text(data, "description"),
        priority=priority.value,
        status=optional_text(data, "status", DEFAULT_STATUS),
        tags=tags_to_text(data.get("tags")),
        created_by=actor,
    )
    db.session.add(req)
    db.session.flush()
    _record(req, "create", actor, f"Requirement {req.code} created")
    db.session.flush()

    logger.info("Requirement created: %s", req.code,
                extra={"project_id": project.id, "requirement_id": req.id})
    return req


def update_requirement(requirement_id: int, data: dict, actor: str | None = None) -> Requirement:
    """Apply the updatable fields present in ``data``; immutable keys are ignored."""
    req = get_requirement(requirement_id)
    changed: list[str] = []

    for field in UPDATABLE_FIELDS:
        if field not in data:
            continue
        raw = data[field]
        if field == "name":
            value = require_text(data, "name", max_len=300)
        elif field == "priority":
            value = parse_priority(raw).value
        elif field == "tags":
            value = tags_to_text(raw)
        else:
            value = str(raw or "").strip()
            if field == "status" and not value:
                raise ValidationError("status cannot be empty", details={"status": "required"})
        if getattr(req, field) != value:
            setattr(req, field, value)
            changed.append(field)

    ignored = sorted(IMMUTABLE_FIELDS.intersection(data))
    if ignored:
        logger.debug("Ignoring immutable fields on %s: %s", req.code, ", ".join(ignored),
                     extra={"requirement_id": req.id})

    details = f"Updated: {', '.join(changed)}" if changed else "No changes"
    _record(req, "update", actor, details)
    db.session.flush()
    return req


def _find_project_case(project_id: int, test_case_id) -> TestCase:
    try:
        case_id = int(test_case_id)
    except (TypeError, ValueError):
        raise NotFoundError("TestCase", test_case_id) from None
    tc = (
        TestCase.query
        .join(TestSuite, TestCase.suite_id == TestSuite.id)
        .filter(TestCase.id == case_id, TestSuite.project_id == project_id)
        .first()
    )
    if tc is None:
        raise NotFoundError("TestCase", test_case_id)
    return tc


def link_test_case(requirement_id: int, test_case_id, actor: str | None = None) -> Requirement:
    req = get_requirement(requirement_id)
    tc = _find_project_case(req.project_id, test_case_id)

    if req.links.filter_by(test_case_id=tc.id).first() is not None:
        raise ConflictError("RequirementTestLink", "test_case_id", str(tc.id))

    db.session.add(RequirementTestLink(requirement_id=req.id, test_case_id=tc.id))
    _record(req, "link", actor, f"Linked test case {tc.id}")
    db.session.flush()

    logger.info("Linked test case %s to %s", tc.id, req.code,
                extra={"project_id": req.project_id, "requirement_id": req.id})
    return req


def unlink_test_case(requirement_id: int, test_case_id, actor: str | None = None) -> Requirement:
    req = get_requirement(requirement_id)
    try:
        case_id = int(test_case_id)
    except (TypeError, ValueError):
        case_id = None

    link = req.links.filter_by(test_case_id=case_id).first() if case_id is not None else None
    if link is None:
        raise ValidationError(
            f"Test case {test_case_id} is not linked to {req.code}",
            details={"test_case_id": test_case_id},
        )

    db.session.delete(link)
    _record(req, "unlink", actor, f"Unlinked test case {case_id}")
    db.session.flush()

    logger.info("Unlinked test case %s from %s", case_id, req.code,
                extra={"project_id": req.project_id, "requirement_id": req.id})
    return req
