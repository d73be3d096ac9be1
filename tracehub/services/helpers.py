"""
Lookup and payload helpers shared by the services.

Usage:
    project = get_or_raise(Project, project_id)
    name = require_text(data, "name")
"""

import logging

from tracehub.core.exceptions import NotFoundError, ValidationError
from tracehub.models import db

logger = logging.getLogger(__name__)


def get_or_raise(model, pk, *, resource: str | None = None):
    """Fetch an entity by primary key or raise NotFoundError (HTTP 404)."""
    try:
        key = int(pk)
    except (TypeError, ValueError):
        raise NotFoundError(resource or model.__name__, pk) from None
    entity = db.session.get(model, key)
    if entity is None:
        raise NotFoundError(resource or model.__name__, pk)
    return entity


def require_text(data: dict, field: str, *, max_len: int | None = None) -> str:
    value = str(data.get(field, "") or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", details={field: "required"})
    if max_len and len(value) > max_len:
        raise ValidationError(
            f"{field} must be at most {max_len} characters",
            details={field: "too_long"},
        )
    return value


def optional_text(data: dict, field: str, default: str = "") -> str:
    return str(data.get(field, default) or default).strip()


def tags_to_text(value) -> str:
    """Accept a list or a comma-separated string; store comma-separated."""
    if value is None:
        return ""
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        raise ValidationError("tags must be a list or a comma-separated string",
                              details={"tags": "invalid"})
    return ",".join(t.strip() for t in items if t.strip())
