"""
Exception hierarchy for changelog-ko.

Provider failures are carried by a single tagged ``ProviderError`` whose
``kind`` decides retry vs. escalate behaviour. Configuration problems fail
fast with ``ConfigurationError``.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional, Dict, Any, List


class ErrorKind(str, Enum):
    """Classification of a failed provider call."""
    AUTH = "auth"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    CLIENT = "client"
    PARSE = "parse"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.SERVER})


class ChangelogKoError(Exception):
    """Base exception for all changelog-ko errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        suggestion: Optional[str] = None
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            details: Additional error details
            recoverable: Whether error can be recovered from
            suggestion: Suggested fix or workaround
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "suggestion": self.suggestion
        }

    def __str__(self) -> str:
        result = self.message
        if self.suggestion:
            result += f"\nSuggestion: {self.suggestion}"
        return result


class ProviderError(ChangelogKoError):
    """
    Raised when a translation provider call fails.

    The ``kind`` tag drives control flow. A partial translation is a
    ``PARSE`` error that also carries the translations that did arrive.
    """

    def __init__(
        self,
        kind: ErrorKind,
        provider: str,
        message: str,
        model: Optional[str] = None,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
        partial_translations: Optional[List[str]] = None,
        expected_count: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        full_message = f"Provider '{provider}' failed [{ErrorKind(kind).value}]: {message}"
        details = {
            "kind": ErrorKind(kind).value,
            "provider": provider,
            "model": model,
            "http_status": http_status,
            "original_error": str(original_error) if original_error else None,
        }
        if partial_translations is not None:
            details["received_count"] = len(partial_translations)
            details["expected_count"] = expected_count

        suggestion = None
        if kind == ErrorKind.AUTH:
            suggestion = f"Check the API key for {provider}."
        elif kind == ErrorKind.QUOTA:
            suggestion = "Daily quota reached; the next model or provider will be used."

        super().__init__(full_message, details, recoverable=True, suggestion=suggestion)
        self.kind = ErrorKind(kind)
        self.provider = provider
        self.model = model
        self.http_status = http_status
        self.body = body
        self.partial_translations = partial_translations
        self.expected_count = expected_count
        self.original_error = original_error
        self.retry_count = 0

    @classmethod
    def quota_exhausted(cls, provider: str, model: str, body: Optional[str] = None,
                        http_status: Optional[int] = 429) -> "ProviderError":
        return cls(
            ErrorKind.QUOTA, provider,
            f"[{model}] daily quota exhausted",
            model=model, http_status=http_status, body=body
        )

    @classmethod
    def partial(cls, provider: str, model: Optional[str], translations: List[str],
                expected_count: int) -> "ProviderError":
        return cls(
            ErrorKind.PARSE, provider,
            f"Expected {expected_count} translations, got {len(translations)}",
            model=model,
            partial_translations=list(translations),
            expected_count=expected_count
        )

    @property
    def is_partial(self) -> bool:
        """True when some, but not all, translations came back."""
        return self.partial_translations is not None

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


class ConfigurationError(ChangelogKoError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        invalid_value: Optional[Any] = None,
        valid_values: Optional[List[Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that's invalid
            invalid_value: Invalid value provided
            valid_values: List of valid values
        """
        details = {
            "config_key": config_key,
            "invalid_value": invalid_value,
            "valid_values": valid_values
        }

        suggestion = None
        if config_key and valid_values:
            suggestion = f"Valid values for {config_key}: {', '.join(map(str, valid_values))}"
        elif config_key:
            suggestion = f"Check configuration for '{config_key}'"

        super().__init__(message, details, recoverable=False, suggestion=suggestion)
        self.config_key = config_key
        self.invalid_value = invalid_value
        self.valid_values = valid_values


class TranslationFailedError(ChangelogKoError):
    """Raised only when every provider in the chain, identity included, failed."""

    def __init__(self, attempted: List[str], last_error: Optional[Exception] = None):
        message = f"All providers failed: {', '.join(attempted) or '(none)'}"
        details = {
            "attempted": attempted,
            "last_error": str(last_error) if last_error else None
        }
        super().__init__(message, details, recoverable=False)
        self.attempted = attempted
        self.last_error = last_error
