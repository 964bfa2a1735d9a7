"""
Custom exceptions for the compliance gateway.

Provides structured error handling with appropriate HTTP status codes
and error details for API responses. Policy denials (consent, rate limit,
business hours) are decisions, not errors, and never appear here.
"""

from enum import Enum
from typing import Any, Dict, Optional


class GatewayException(Exception):
    """Base exception for the compliance gateway."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(GatewayException):
    """Raised when request validation fails."""

    def __init__(
        self,
        message: str,
        error_code: str = "validation_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
        )


class InvalidRecipientError(ValidationError):
    """Raised when a recipient identifier is empty."""

    def __init__(self, message: str = "Recipient must not be empty") -> None:
        super().__init__(message=message, error_code="invalid_recipient")


class InvalidAmountError(ValidationError):
    """Raised when a monetary amount is zero, negative or not a number."""

    def __init__(self, message: str = "Amount must be greater than zero", amount: Any = None) -> None:
        super().__init__(
            message=message,
            error_code="invalid_amount",
            details={"amount": str(amount)} if amount is not None else None,
        )


class AuthenticationError(GatewayException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Invalid or missing authentication token") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="authentication_error",
        )


class ConfigurationError(GatewayException):
    """Raised when the service is started with an unsafe or inconsistent configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="configuration_error",
            details=details,
        )


class TokenErrorReason(str, Enum):
    """Why a signed token was rejected."""

    MALFORMED_TOKEN = "malformed_token"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_PAYLOAD = "invalid_payload"
    EXPIRED = "expired"
    TOO_OLD = "too_old"
    INVALID_EMAIL_FORMAT = "invalid_email_format"
    REPLAYED = "replayed"


class TokenVerificationError(GatewayException):
    """
    Raised when a signed token fails verification.

    The specific reason is kept on the exception for server-side
    diagnostics; the HTTP layer answers every subclass the same way.
    """

    reason: TokenErrorReason = TokenErrorReason.INVALID_PAYLOAD

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="invalid_token",
            details={"reason": self.reason.value},
        )


class MalformedTokenError(TokenVerificationError):
    reason = TokenErrorReason.MALFORMED_TOKEN


class InvalidSignatureError(TokenVerificationError):
    reason = TokenErrorReason.INVALID_SIGNATURE


class InvalidPayloadError(TokenVerificationError):
    reason = TokenErrorReason.INVALID_PAYLOAD


class TokenExpiredError(TokenVerificationError):
    reason = TokenErrorReason.EXPIRED


class TokenTooOldError(TokenVerificationError):
    reason = TokenErrorReason.TOO_OLD


class InvalidEmailFormatError(TokenVerificationError):
    reason = TokenErrorReason.INVALID_EMAIL_FORMAT


class TokenReplayedError(TokenVerificationError):
    reason = TokenErrorReason.REPLAYED
