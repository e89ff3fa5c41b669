"""Custom exception hierarchy for carbonpick.

All carbonpick-specific exceptions inherit from CarbonpickError, enabling
callers to catch all of them with a single except clause.

ConfigurationError and ResourceNotFoundError are startup failures and abort
the run. RemoteLookupError is raised per lookup and is expected to be handled
item by item so that a partial report can still be produced.
"""

from __future__ import annotations

from pathlib import Path


class CarbonpickError(Exception):
    """Base exception for all carbonpick errors."""


class ConfigurationError(CarbonpickError):
    """Raised for invalid configuration or missing required settings."""


class ResourceNotFoundError(CarbonpickError):
    """Raised when a required input file does not exist."""

    def __init__(self, path: str | Path, what: str = "file") -> None:
        self.path = Path(path)
        self.what = what
        super().__init__(f"{what.capitalize()} not found: {self.path}")


class RemoteLookupError(CarbonpickError):
    """Raised when a carbon cost or catalog lookup fails.

    Covers network failures, timeouts, HTTP error statuses and responses
    that do not have the expected shape.
    """

    def __init__(self, subject: str, reason: str) -> None:
        self.subject = subject
        self.reason = reason
        super().__init__(f"Lookup failed for {subject}: {reason}")
