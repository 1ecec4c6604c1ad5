"""Utility functions and classes for Netloy."""

from netloy.utils.exceptions import (
    BuildError,
    ExternalToolError,
    NetloyError,
    NotFoundError,
    UnsupportedPlatformError,
    UserCancelledError,
    ValidationFailedError,
)

__all__ = [
    "BuildError",
    "ExternalToolError",
    "NetloyError",
    "NotFoundError",
    "UnsupportedPlatformError",
    "UserCancelledError",
    "ValidationFailedError",
]
