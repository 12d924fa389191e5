"""Error taxonomy shared by every module.

Domain functions raise these; the request boundary in ``api.handle`` turns
them into ``(status, payload)`` pairs. Anything else that escapes is treated
as an internal error.
"""
from typing import Any


class TutorError(Exception):
    """Base class for errors that are safe to show to the user."""

    status = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(TutorError):
    """A required field is missing or malformed."""

    status = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(TutorError):
    """Missing or invalid credential."""

    status = 401
    code = "NOT_AUTHENTICATED"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthorizationError(TutorError):
    """The resource exists but the caller may not use it."""

    status = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(TutorError):
    status = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found"
        super().__init__(message, {"id": entity_id} if entity_id is not None else None)
        self.entity = entity
