"""Custom exception hierarchy for cv-screener."""

from __future__ import annotations


class CVScreenerError(Exception):
    """Base exception for all cv-screener errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"


class InvalidRequestError(CVScreenerError):
    """Raised when request input fails validation."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(CVScreenerError):
    """Raised when a bearer token is missing or rejected."""

    status_code = 401
    error_code = "UNAUTHORIZED"


class InsufficientCreditsError(CVScreenerError):
    """Raised when a user cannot cover the credits an operation needs."""

    status_code = 402
    error_code = "INSUFFICIENT_CREDITS"

    def __init__(self, message: str, required: int = 0, available: int = 0) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class NotFoundError(CVScreenerError):
    """Raised when a requested record does not exist for the user."""

    status_code = 404
    error_code = "NOT_FOUND"


class RateLimitExceededError(CVScreenerError):
    """Raised when a user or IP exceeds the analysis rate limit."""

    status_code = 429
    error_code = "RATE_LIMITED"

    def __init__(self, message: str, retry_after_seconds: int = 0) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class InvalidFileError(CVScreenerError):
    """Raised when the input file is not a valid PDF."""

    status_code = 422
    error_code = "FILE_ERROR"


class EncryptedPDFError(InvalidFileError):
    """Raised when a PDF is password-protected."""


class ScannedPDFError(InvalidFileError):
    """Raised when a PDF has no text layer (scanned/image-only)."""


class LLMError(CVScreenerError):
    """Raised when the language model call fails after all retries."""

    status_code = 502
    error_code = "AI_ERROR"


class CostLimitExceededError(CVScreenerError):
    """Raised when estimated analysis cost exceeds the configured limit."""

    error_code = "COST_LIMIT"


class CreditLedgerError(CVScreenerError):
    """Raised when a credit ledger operation cannot be completed."""

    error_code = "DATABASE_ERROR"


class CacheKeyError(CVScreenerError):
    """Raised when a cache key cannot be built from empty content."""

    error_code = "CACHE_ERROR"


class EmailDeliveryError(CVScreenerError):
    """Raised when email sending fails."""

    status_code = 502
    error_code = "EMAIL_ERROR"
