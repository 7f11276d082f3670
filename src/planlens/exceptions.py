"""
Package-level exception hierarchy for PlanLens.

Malformed EXPLAIN text is never reported through exceptions: the parsers
return a ParseFailure value instead, so callers can show the raw text next
to the error. Exceptions are reserved for problems outside the text itself
(an unreadable file, a broken config file) and for programmer errors.

Hierarchy:
    PlanLensError
    ├── ParseError          – EXPLAIN input could not be loaded
    └── ConfigurationError  – Invalid configuration file or value
"""

from __future__ import annotations

from typing import Any


class PlanLensError(Exception):
    """
    Base exception for all PlanLens errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(PlanLensError):
    """
    EXPLAIN input could not be loaded.

    Raised when a file is missing, empty, or cannot be decoded. Text that
    loads but matches neither grammar is a ParseFailure result, not this.

    Attributes:
        source: Description of the input source (file path, "stdin", etc.).
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(PlanLensError):
    """
    Error in PlanLens configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
