"""
TraceHub — blueprint helpers shared by every API module.
"""

import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from tracehub.models import db
from tracehub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def commit_or_error():
    """Commit the session; on failure roll back and return a 500 response.

    Returns None when the commit succeeded.
    """
    try:
        db.session.commit()
    except SQLAlchemyError:
        logger.exception("Database commit failed")
        db.session.rollback()
        return api_error(E.DATABASE, "Database error")
    return None


def request_actor() -> str | None:
    """Who is making the change: ``X-Actor`` header, else ``actor`` in the body."""
    actor = request.headers.get("X-Actor")
    if not actor:
        data = request.get_json(silent=True) or {}
        actor = data.get("actor") if isinstance(data, dict) else None
    return (str(actor).strip() or None) if actor else None
