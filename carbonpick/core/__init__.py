"""Core building blocks shared across carbonpick."""

from carbonpick.core.exceptions import (
    CarbonpickError,
    ConfigurationError,
    RemoteLookupError,
    ResourceNotFoundError,
)

__all__ = [
    "CarbonpickError",
    "ConfigurationError",
    "RemoteLookupError",
    "ResourceNotFoundError",
]
