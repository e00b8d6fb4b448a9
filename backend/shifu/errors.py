"""Error taxonomy shared by the practice services and HTTP handlers."""

from __future__ import annotations

from typing import Optional


class PracticeError(RuntimeError):
    """Base class for errors surfaced to API callers as an error envelope."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(PracticeError):
    """Raised when required request data is missing or malformed."""

    status_code = 400


class ConfigurationError(PracticeError):
    """Raised when settings are invalid or a required credential is missing."""


class StoreUnavailableError(PracticeError):
    """Raised when the practice store cannot be read or written."""


class RecommendationUnavailableError(PracticeError):
    """Raised once the recommendation service exhausted its attempt budget."""

    def __init__(self, last_error: Optional[str], *, attempts: int) -> None:
        message = last_error or "Unknown error after retries"
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class DuplicateRecordError(RuntimeError):
    """Raised by the store when a record for the key already exists."""


__all__ = [
    "ConfigurationError",
    "DuplicateRecordError",
    "InvalidInputError",
    "PracticeError",
    "RecommendationUnavailableError",
    "StoreUnavailableError",
]
