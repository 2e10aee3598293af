"""
Application error taxonomy.

Every error raised by the services derives from AppError and carries the
HTTP status and machine-readable code the error middleware renders.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message()
        self.details = details
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Request failed"


class Unauthenticated(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    @classmethod
    def default_message(cls) -> str:
        return "Authentication required"


class Forbidden(AppError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"

    @classmethod
    def default_message(cls) -> str:
        return "Access denied"


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    @classmethod
    def default_message(cls) -> str:
        return "Validation failed"


class InvalidCategory(ValidationError):
    code = "INVALID_CATEGORY"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid category for this organization"


class InvalidAssignee(ValidationError):
    code = "INVALID_ASSIGNEE"

    @classmethod
    def default_message(cls) -> str:
        return "One or more assigned users are invalid"


class InvalidUpdate(ValidationError):
    code = "INVALID_UPDATE"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid updates"


class InvalidOrExpiredInvitation(ValidationError):
    code = "INVALID_OR_EXPIRED_INVITATION"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid or expired invitation"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource} not found", details)


class InvalidTransition(AppError):
    """Raised when a task status change is not in the transition table"""

    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot transition from {from_status} to {to_status}",
            {"from": from_status, "to": to_status},
        )


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"

    @classmethod
    def default_message(cls) -> str:
        return "Resource already exists"


class DuplicateInvitation(Conflict):
    code = "DUPLICATE_INVITATION"

    @classmethod
    def default_message(cls) -> str:
        return "An invitation is already pending for this email"


class UserAlreadyMember(Conflict):
    code = "USER_ALREADY_MEMBER"

    @classmethod
    def default_message(cls) -> str:
        return "User is already a member of this organization"


class AlreadyInOrganization(Conflict):
    code = "ALREADY_IN_ORGANIZATION"

    @classmethod
    def default_message(cls) -> str:
        return ("You are already a member of an organization. "
                "Please leave your current organization before joining another.")


class NotificationFailed(AppError):
    status_code = 502
    code = "NOTIFICATION_FAILED"

    @classmethod
    def default_message(cls) -> str:
        return "Failed to send notification email"
