"""
Lifecycle Errors

Every error raised by the lifecycle services derives from LifecycleError and
carries a machine-readable error code plus the HTTP status the API layer
should answer with. Routers convert them with ``to_http_exception``.
"""

from uuid import UUID

from fastapi import HTTPException, status


class LifecycleError(Exception):
    """Base exception for lifecycle service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class Unauthenticated(LifecycleError):
    """Raised when a bearer credential is missing, malformed or unverifiable."""

    def __init__(
        self,
        message: str = "Invalid or expired authentication token.",
        error_code: str = "INVALID_TOKEN",
    ):
        super().__init__(message=message, error_code=error_code, status_code=401)


class Forbidden(LifecycleError):
    """Raised when an authenticated principal may not perform the operation."""

    def __init__(self, message: str, error_code: str = "FORBIDDEN"):
        super().__init__(message=message, error_code=error_code, status_code=403)


class AccountInactive(LifecycleError):
    """Raised when an INACTIVE account tries to sign in."""

    def __init__(self, email: str):
        super().__init__(
            message=f"Account {email} is inactive.",
            error_code="ACCOUNT_INACTIVE",
            status_code=403,
        )


class NotFound(LifecycleError):
    """Raised when the subject of an operation does not exist."""

    def __init__(self, entity: str, entity_id: UUID | str | None = None):
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(
            message=message,
            error_code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
        )


class InvalidStatus(LifecycleError):
    """Raised when the requested target status is not accepted by the operation."""

    def __init__(self, value: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid status '{value}'. Allowed values: {allowed}",
            error_code="INVALID_STATUS",
            status_code=400,
        )


class IllegalTransition(LifecycleError):
    """Raised when the state machine does not allow moving between two states."""

    def __init__(self, current_status: str, new_status: str):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            message=f"Cannot change status from {current_status} to {new_status}.",
            error_code="ILLEGAL_TRANSITION",
            status_code=409,
        )


class NoOpTransition(LifecycleError):
    """Raised when the subject already holds the requested status."""

    def __init__(self, current_status: str):
        self.current_status = current_status
        super().__init__(
            message=f"Status is already {current_status}.",
            error_code="STATUS_ALREADY_SET",
            status_code=409,
        )


class InvalidActor(LifecycleError):
    """Raised when no acting principal, or the wrong kind of principal, is supplied."""

    def __init__(self, message: str = "An acting admin is required."):
        super().__init__(message=message, error_code="INVALID_ACTOR", status_code=400)


class InvalidReason(LifecycleError):
    """Raised when a status change reason exceeds the allowed length."""

    def __init__(self, max_length: int):
        super().__init__(
            message=f"Reason must be at most {max_length} characters.",
            error_code="INVALID_REASON",
            status_code=400,
        )


class MissingSignature(LifecycleError):
    def __init__(self):
        super().__init__(
            message="A digital signature is required with the first qualification submission.",
            error_code="MISSING_SIGNATURE",
            status_code=400,
        )


class MissingDocument(LifecycleError):
    def __init__(self):
        super().__init__(
            message="At least one qualification document is required.",
            error_code="MISSING_DOCUMENT",
            status_code=400,
        )


class ArityMismatch(LifecycleError):
    """Raised when per-document metadata lists don't line up with the documents."""

    def __init__(self, field: str, expected: int, actual: int):
        super().__init__(
            message=f"Expected {expected} values for '{field}', got {actual}.",
            error_code="ARITY_MISMATCH",
            status_code=400,
        )


class InvalidDocument(LifecycleError):
    """Raised when an uploaded document is empty, too large or not a PDF."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_DOCUMENT", status_code=400)


class InvalidEmailDomain(LifecycleError):
    def __init__(self, domain: str):
        super().__init__(
            message=f"Email address must end with {domain}.",
            error_code="INVALID_EMAIL_DOMAIN",
            status_code=400,
        )


class DuplicateAccount(LifecycleError):
    def __init__(self, email: str):
        super().__init__(
            message=f"An account with email {email} already exists.",
            error_code="DUPLICATE_ACCOUNT",
            status_code=409,
        )


class StorageCleanupFailed(LifecycleError):
    """
    Raised when a retired document could not be removed from blob storage.

    Never surfaced to API callers: the unit of work logs it and the
    cleanup job retries later.
    """

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        super().__init__(
            message=f"Failed to delete stored document {reference}: {reason}",
            error_code="STORAGE_CLEANUP_FAILED",
            status_code=500,
        )


class InternalError(LifecycleError):
    """Generic failure reported in place of unexpected exceptions."""

    def __init__(self):
        super().__init__(
            message="An unexpected error occurred.",
            error_code="INTERNAL_ERROR",
            status_code=500,
        )


def to_http_exception(e: LifecycleError) -> HTTPException:
    """Convert a lifecycle error into the API's HTTPException shape."""
    headers = None
    if e.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
        headers=headers,
    )


def internal_http_exception() -> HTTPException:
    """Generic 500 response for unexpected errors; details stay in the logs."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
