"""Error taxonomy shared by the engine, auth dependencies and HTTP layer.

Each error carries the HTTP status it maps to; ``api.errors`` turns them
into the ``{"success": false, "message": ...}`` envelope.
"""

from __future__ import annotations


class TaskboardError(Exception):
    """Base class for client-visible errors."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskboardError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(TaskboardError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(TaskboardError):
    status_code = 403
    default_message = "Not authorized"


class NotFoundError(TaskboardError):
    """Entity absent, or outside the caller's organization.

    Both cases produce the same response.
    """

    status_code = 404
    default_message = "Not found"


class StateConflictError(TaskboardError):
    """A lifecycle transition precondition does not hold."""

    status_code = 400
    default_message = "Invalid state for this operation"


class UnexpectedError(TaskboardError):
    status_code = 500
    default_message = "Server error"
