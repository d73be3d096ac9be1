"""Standardised API error responses.

Usage
-----
    from tracehub.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Requirement not found")
    return api_error(E.VALIDATION_REQUIRED, "name is required")

``register_error_handlers(app)`` maps the platform exception hierarchy
(``tracehub.core.exceptions``) onto these responses once, for every
blueprint.
"""

from __future__ import annotations

import logging

from flask import jsonify, request

from tracehub.core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, offending values).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(app) -> None:
    """Map platform exceptions to JSON error responses for all blueprints."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("Not found: %s", error)
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_CONSTRAINT, str(error), details=error.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(
            E.CONFLICT_DUPLICATE, str(error),
            details={"resource": error.resource, "field": error.field, "value": error.value},
        )

    @app.errorhandler(404)
    def _handle_route_not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def _handle_method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(500)
    def _handle_server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
