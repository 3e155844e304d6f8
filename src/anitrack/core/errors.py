"""
Error taxonomy for the anitrack core.

Every failure the core reports carries an ErrorKind so callers (the CLI,
or any other front end) can map it to a response without string matching.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Kinds of failure reported by the core."""

    NOT_FOUND = "not_found"
    DUPLICATE_KEY = "duplicate_key"
    DUPLICATE_NUMBER = "duplicate_number"
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PERSISTENCE_FAILURE = "persistence_failure"


class AnitrackError(Exception):
    """Base exception for all anitrack core errors."""

    kind: ErrorKind = ErrorKind.INVALID_VALUE

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    @property
    def is_client_error(self) -> bool:
        """True for errors caused by caller input (never retried)."""
        return self.kind in CLIENT_ERRORS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {"error": self.kind.value, "message": self.message}
        if self.extra:
            result["extra"] = self.extra
        return result


class NotFoundError(AnitrackError):
    """An id or animeId does not resolve."""

    kind = ErrorKind.NOT_FOUND


class DuplicateKeyError(AnitrackError):
    """A record with the same key already exists."""

    kind = ErrorKind.DUPLICATE_KEY


class DuplicateNumberError(AnitrackError):
    """An episode number is already taken for the anime."""

    kind = ErrorKind.DUPLICATE_NUMBER


class MissingFieldError(AnitrackError):
    """A required input field is absent."""

    kind = ErrorKind.MISSING_FIELD


class InvalidValueError(AnitrackError):
    """An input field is present but cannot be interpreted."""

    kind = ErrorKind.INVALID_VALUE


class ProviderUnavailableError(AnitrackError):
    """The metadata provider failed or timed out."""

    kind = ErrorKind.PROVIDER_UNAVAILABLE

    def __init__(self, message: str, status_code: int | None = None, **extra: Any):
        self.status_code = status_code
        super().__init__(message, **extra)


class PersistenceError(AnitrackError):
    """Writing a collection to disk failed."""

    kind = ErrorKind.PERSISTENCE_FAILURE


CLIENT_ERRORS = frozenset({
    ErrorKind.NOT_FOUND,
    ErrorKind.DUPLICATE_KEY,
    ErrorKind.DUPLICATE_NUMBER,
    ErrorKind.MISSING_FIELD,
    ErrorKind.INVALID_VALUE,
})
