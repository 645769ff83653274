"""
Application error taxonomy.

Services raise subclasses of :class:`AppError`; the exception handlers
registered in ``main.create_app`` turn them into the JSON envelope
``{"success": false, "message": ..., "error": <code>}`` with the
status code carried by the class.  Lifecycle violations (double
registration, full event, passed deadline, ...) are all
:class:`StateConflictError` and are reported as HTTP 400.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that are rendered to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Access denied. No token provided."


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class AccountLocked(AppError):
    status_code = 423
    default_message = "Account is temporarily locked due to multiple failed login attempts"


class InternalError(AppError):
    status_code = 500


class StateConflictError(AppError):
    """A request that is well formed but illegal in the current state."""

    status_code = 400
    default_message = "Operation not allowed in the current state"


class DuplicateAccount(StateConflictError):
    default_message = "An account with these credentials already exists"


class RegistrationClosed(StateConflictError):
    default_message = "Registration is closed for this event"


class AlreadyRegistered(StateConflictError):
    default_message = "Already registered for this event"


class EventFull(StateConflictError):
    default_message = "Event is full"


class NotRegistered(StateConflictError):
    default_message = "Not registered for this event"


class CancellationNotAllowed(StateConflictError):
    default_message = "Cancellation is not allowed for this event"


class DeadlinePassed(StateConflictError):
    default_message = "Cancellation deadline has passed"


class InvalidStateForCheckIn(StateConflictError):
    default_message = "User cannot check in with current status"


class AlreadyCheckedIn(StateConflictError):
    default_message = "Cannot unregister after checking in"
