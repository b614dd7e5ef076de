"""Error taxonomy shared by repositories, the session gate and the HTTP layer.

Every error carries the HTTP status it is rendered with; the single handler
registered in ``main.py`` turns it into ``{"detail": message}``.
"""
from fastapi import status
from sqlalchemy.exc import DBAPIError

UNDEFINED_TABLE = "42P01"

STORAGE_NOT_PROVISIONED_MESSAGE = (
    "Database tables not set up yet. Please run the database migrations."
)


class EventRSVPError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EventRSVPError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(EventRSVPError):
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyRegisteredError(EventRSVPError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "You have already RSVP'd for this event"):
        super().__init__(message)


class CapacityReachedError(EventRSVPError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Sorry, this event is at full capacity"):
        super().__init__(message)


class InvalidStatusTransitionError(EventRSVPError):
    status_code = status.HTTP_409_CONFLICT


class StorageNotProvisionedError(EventRSVPError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = STORAGE_NOT_PROVISIONED_MESSAGE):
        super().__init__(message)


class OperationFailedError(EventRSVPError):
    """Any other storage failure, wrapped as "Failed to <operation>: <cause>"."""

    def __init__(self, operation: str, cause: object = None):
        detail = str(cause) if cause else "Database connection error"
        super().__init__(f"Failed to {operation}: {detail}")
        self.operation = operation


class AuthError(EventRSVPError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(EventRSVPError):
    status_code = status.HTTP_403_FORBIDDEN


def is_missing_table(exc: BaseException) -> bool:
    """True when a storage error means the backing table does not exist.

    PostgreSQL reports SQLSTATE 42P01; SQLite only has the message text.
    """
    if isinstance(exc, DBAPIError):
        if getattr(exc.orig, "pgcode", None) == UNDEFINED_TABLE:
            return True
        text = str(exc.orig)
    else:
        text = str(exc)
    return "does not exist" in text or "no such table" in text


def wrap_write_error(operation: str, exc: Exception) -> EventRSVPError:
    """Translate a failed write into the error surfaced to callers."""
    if isinstance(exc, EventRSVPError):
        return exc
    if is_missing_table(exc):
        return StorageNotProvisionedError()
    return OperationFailedError(operation, getattr(exc, "orig", None) or exc)
