"""Run-time lookup of Firebird native client binaries."""

from .probe import HostPlatform, probe
from .resolver import AssetPathResolver, default_resolver, native_asset_path
from .strategies import (
    LinuxStrategy,
    MacOsStrategy,
    PlatformStrategy,
    WindowsStrategy,
    runtime_directory,
    select_strategy,
)

__all__ = [
    "AssetPathResolver",
    "HostPlatform",
    "LinuxStrategy",
    "MacOsStrategy",
    "PlatformStrategy",
    "WindowsStrategy",
    "default_resolver",
    "native_asset_path",
    "probe",
    "runtime_directory",
    "select_strategy",
]
