"""
Error taxonomy for pool management and code assignment.

Running out of codes is not an error: the coordinator reports it as a
fallback result.
"""

from sqlalchemy import exc as sa_exc


class CodePoolError(Exception):
    """Base class for every error raised by this package."""

    default_message = "Code pool error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidInput(CodePoolError):
    """Malformed pool creation or update request."""

    default_message = "Invalid input"

    def __init__(self, message: str | None = None, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFound(CodePoolError):
    default_message = "Pool not found"


class AccessDenied(CodePoolError):
    default_message = "Access denied"


class ConstraintViolation(CodePoolError):
    """Removing an assigned code, or deleting a pool that has issued codes."""

    default_message = "Constraint violation"


class DuplicateAssignment(CodePoolError):
    """An assignment for this (automation, event) pair was already committed."""

    default_message = "Assignment already recorded for this event"

    def __init__(self, automation_id: str, event_id: str):
        super().__init__(
            f"Assignment already recorded for automation={automation_id} event={event_id}"
        )
        self.automation_id = automation_id
        self.event_id = event_id


class Unavailable(CodePoolError):
    """Storage could not be reached or timed out. Safe to retry the event."""

    default_message = "Storage unavailable"


class Internal(CodePoolError):
    default_message = "Internal storage error"


def translate_storage_error(error: Exception) -> CodePoolError:
    """Map a driver/SQLAlchemy failure onto Unavailable or Internal."""
    if isinstance(error, (sa_exc.TimeoutError, sa_exc.OperationalError, sa_exc.InterfaceError, OSError)):
        return Unavailable(str(error))
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return Unavailable(str(error))
    return Internal(str(error))
