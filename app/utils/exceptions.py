"""Custom exceptions for the Inkling backend."""

from typing import Any, Dict, Optional


class InklingException(Exception):
    """Base exception for the Inkling application."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize InklingException.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code.
            error_code: Machine-readable error code.
            details: Additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(InklingException):
    """Raised when request data has the wrong shape or values."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ValidationError."""
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class AuthenticationError(InklingException):
    """Raised when the bearer credential is missing, expired or malformed."""

    def __init__(
        self,
        message: str = "Unauthorized",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AuthenticationError."""
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR",
            details=details,
        )


class AuthorizationError(InklingException):
    """Raised when the caller does not own the resource it is acting on."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AuthorizationError."""
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTHORIZATION_ERROR",
            details=details,
        )


class GenerationDeniedError(InklingException):
    """Raised when the quota check refuses a story generation."""

    def __init__(self, reason: str, message: str) -> None:
        """Initialize GenerationDeniedError with the denial reason as error code."""
        super().__init__(
            message=message,
            status_code=403,
            error_code=reason,
            details={"reason": reason},
        )


class NotFoundError(InklingException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize NotFoundError."""
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class InvalidStateError(InklingException):
    """Raised when an operation is not allowed in the session's current state."""

    def __init__(
        self,
        message: str = "Operation not allowed in the current state",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize InvalidStateError."""
        super().__init__(
            message=message,
            status_code=409,
            error_code="INVALID_STATE",
            details=details,
        )


class IllustrationsNotReadyError(InklingException):
    """Raised when a draft is saved before every illustration slot is filled."""

    def __init__(self, missing_pages: list) -> None:
        """Initialize IllustrationsNotReadyError."""
        super().__init__(
            message="Illustrations not ready",
            status_code=409,
            error_code="ILLUSTRATIONS_NOT_READY",
            details={"missing_pages": missing_pages},
        )


class StoryGenerationError(InklingException):
    """Raised when the text generator errors or breaks the story contract."""

    def __init__(
        self,
        message: str = "Failed to generate story",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize StoryGenerationError."""
        super().__init__(
            message=message,
            status_code=502,
            error_code="GENERATION_ERROR",
            details=details,
        )


class UpstreamServiceError(InklingException):
    """Raised when an external collaborator call fails."""

    def __init__(
        self,
        message: str = "Upstream service failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize UpstreamServiceError."""
        super().__init__(
            message=message,
            status_code=502,
            error_code="UPSTREAM_ERROR",
            details=details,
        )


class ConfigurationError(InklingException):
    """Raised when a collaborator is not configured.

    The reason is only logged; callers always see the same opaque message.
    """

    def __init__(self, reason: str = "") -> None:
        """Initialize ConfigurationError."""
        self.reason = reason
        super().__init__(
            message="Service unavailable",
            status_code=500,
            error_code="SERVICE_UNAVAILABLE",
        )
