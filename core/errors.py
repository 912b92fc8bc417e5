"""Exception taxonomy shared by the signal pipeline."""

from __future__ import annotations

from typing import Optional


class OptionScoutError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(OptionScoutError):
    """Raised when required configuration (e.g. credentials) is missing."""


class TransportError(OptionScoutError):
    """A retryable transport or auth failure talking to the data source."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FetchExhaustedError(OptionScoutError):
    """Raised when every attempt of a fetch failed."""

    def __init__(self, message: str, *, attempts: int, last_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ModelUnavailableError(OptionScoutError):
    """The sentiment backend is missing or was never initialised."""


class InputValidationError(OptionScoutError):
    """Per-item input rejected before inference (empty or oversized text)."""


__all__ = [
    "ConfigError",
    "FetchExhaustedError",
    "InputValidationError",
    "ModelUnavailableError",
    "OptionScoutError",
    "TransportError",
]
