"""
Platform-wide exception hierarchy.

The engine, the store adapters and the services all raise these types.
Blueprints never need to know which layer failed: the handlers registered
in the app factory map each type to one HTTP status and one error code.

Usage:
    from tracehub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("Unknown priority 'Urgent'", details={"priority": "Urgent"})
"""


class NotFoundError(Exception):
    """Raised when a referenced project, requirement, suite or snapshot is missing.

    A NotFoundError aborts the whole computation it occurs in: no partial
    matrix and no partial report are ever returned.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Requirement").
        resource_id: The key that was looked up. Included in the message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed JSON but violates a business rule.

    Typical causes: an unknown priority or status label on a write path,
    a missing required field, unlinking a test case that is not linked.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate something that must be unique.

    Maps to HTTP 409.

    Args:
        resource: Entity name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
