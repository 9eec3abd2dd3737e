"""Exception hierarchy for ccrequery.

Gated requery attempts are normal outcomes and never raise; these
exceptions cover configuration problems and misuse of the adapters.
"""

from __future__ import annotations

from typing import Any


class CCRQError(Exception):
    """Base exception for all ccrequery errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize ccrequery error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NetworkError(CCRQError):
    """Network-related errors."""


class RequeryError(CCRQError):
    """Requery scheduling errors."""


class DHTLookupError(RequeryError, NetworkError):
    """DHT alternate-location lookup could not be started."""


class ValidationError(CCRQError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""
