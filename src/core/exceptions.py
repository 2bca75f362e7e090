"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Not found errors (404)
    USER_NOT_FOUND = "USER_NOT_FOUND"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    DELIVERY_NOT_FOUND = "DELIVERY_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_RECIPIENTS = "INVALID_RECIPIENTS"
    INVALID_ROLE_WORKSPACE = "INVALID_ROLE_WORKSPACE"
    DOCUMENT_NOT_EDITABLE = "DOCUMENT_NOT_EDITABLE"

    # Conflict errors (409)
    INVALID_TRANSITION = "INVALID_TRANSITION"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    DUPLICATE_TEMPLATE = "DUPLICATE_TEMPLATE"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"
    DIRECTORY_UNAVAILABLE = "DIRECTORY_UNAVAILABLE"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppException):
    """Malformed input (recipient spec, transition request, template variables)."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=400,
            details=details,
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied", details: Any | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
            details=details,
        )


class NotFoundError(AppException):
    """Base class for missing resources."""

    def __init__(self, error_code: ErrorCode, message: str, details: Any | None = None) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=404,
            details=details,
        )


class UserNotFoundError(NotFoundError):
    """User not found."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.USER_NOT_FOUND,
            message=f"User not found: {user_id}",
            details={"user_id": user_id},
        )


class DocumentNotFoundError(NotFoundError):
    """Document not found."""

    def __init__(self, document_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.DOCUMENT_NOT_FOUND,
            message=f"Document not found: {document_id}",
            details={"document_id": document_id},
        )


class NotificationNotFoundError(NotFoundError):
    """Notification not found."""

    def __init__(self, notification_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.NOTIFICATION_NOT_FOUND,
            message=f"Notification not found: {notification_id}",
            details={"notification_id": notification_id},
        )


class DeliveryRecordNotFoundError(NotFoundError):
    """No delivery record exists for the (notification, user) pair."""

    def __init__(self, notification_id: str, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.DELIVERY_NOT_FOUND,
            message=f"Notification {notification_id} was not delivered to user {user_id}",
            details={"notification_id": notification_id, "user_id": user_id},
        )


class TemplateNotFoundError(NotFoundError):
    """Notification template not found or inactive."""

    def __init__(self, name: str) -> None:
        super().__init__(
            error_code=ErrorCode.TEMPLATE_NOT_FOUND,
            message=f"Notification template not found: {name}",
            details={"template": name},
        )


class DuplicateTemplateError(AppException):
    """A template with the same name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_TEMPLATE,
            message=f"Notification template already exists: {name}",
            status_code=409,
            details={"template": name},
        )


class InvalidTransitionError(AppException):
    """Target status is not reachable from the current status."""

    def __init__(self, current: str, target: str, allowed: list[str]) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move document from '{current}' to '{target}'",
            status_code=409,
            details={"current": current, "target": target, "allowed": allowed},
        )


class DocumentNotEditableError(AppException):
    """Content edits are only accepted in editable statuses."""

    def __init__(self, status: str) -> None:
        super().__init__(
            error_code=ErrorCode.DOCUMENT_NOT_EDITABLE,
            message=f"Document content cannot be edited while '{status}'",
            status_code=400,
            details={"status": status},
        )


class ConflictError(AppException):
    """The document changed since the caller read it."""

    def __init__(
        self,
        document_id: str,
        expected_revision: int | None = None,
        actual_revision: int | None = None,
    ) -> None:
        super().__init__(
            error_code=ErrorCode.VERSION_CONFLICT,
            message="Document was modified concurrently; re-read and retry",
            status_code=409,
            details={
                "document_id": document_id,
                "expected_revision": expected_revision,
                "actual_revision": actual_revision,
            },
        )


class DeliveryError(AppException):
    """A delivery channel failed. Captured into a status map, never raised to callers."""

    def __init__(self, channel: str, notification_id: str, reason: str) -> None:
        super().__init__(
            error_code=ErrorCode.DELIVERY_FAILED,
            message=f"Delivery via {channel} failed: {reason}",
            status_code=502,
            details={"channel": channel, "notification_id": notification_id},
        )


class StoreError(AppException):
    """Persistence failure for the current operation."""

    def __init__(self, message: str = "Database operation failed") -> None:
        super().__init__(
            error_code=ErrorCode.DATABASE_ERROR,
            message=message,
            status_code=503,
        )


class DirectoryUnavailableError(StoreError):
    """The user directory could not be queried while resolving recipients."""

    def __init__(self, message: str = "User directory unavailable") -> None:
        super().__init__(message)
        self.error_code = ErrorCode.DIRECTORY_UNAVAILABLE
