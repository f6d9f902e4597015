"""Exception types shared across fbembed components."""

from __future__ import annotations


class UnsupportedPlatformError(RuntimeError):
    """Raised when a platform or architecture has no native asset layout."""


class HostLocationError(RuntimeError):
    """Raised when the directory of the running executable cannot be determined."""


class ConfigError(RuntimeError):
    """Raised when a configuration or release manifest cannot be parsed."""


__all__ = ["ConfigError", "HostLocationError", "UnsupportedPlatformError"]
