"""Per-OS strategies for host discovery and native binary naming."""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Type

from ..errors import HostLocationError, UnsupportedPlatformError
from ..models import Architecture, Platform, ProductVersion, rid_name

# GetModuleFileNameW: (buffer capacity in characters) -> (text, characters written).
ModuleFileQuery = Callable[[int], Tuple[str, int]]

_INITIAL_MODULE_BUFFER = 260
# Long-path aware Windows caps paths at 32767 characters.
_MAX_MODULE_BUFFER = 65536


class PlatformStrategy(ABC):
    """OS-specific knowledge needed to resolve native assets."""

    platform: Platform

    @abstractmethod
    def host_directory(self) -> Path:
        """Return the absolute directory containing the running executable."""

    @abstractmethod
    def binary_name(self, version: ProductVersion) -> str:
        """Return the binary path relative to a version directory."""

    def rid(self, architecture: Architecture) -> str:
        return rid_name(self.platform, architecture)

    @staticmethod
    def _checked_directory(executable: str | os.PathLike[str]) -> Path:
        directory = Path(executable).resolve().parent
        if not directory.is_absolute() or not directory.is_dir():
            raise HostLocationError(f"Executable directory does not exist: {directory}")
        return directory


class WindowsStrategy(PlatformStrategy):
    platform = Platform.WINDOWS

    def __init__(self, query: Optional[ModuleFileQuery] = None) -> None:
        self._query = query or _query_module_file_name

    def host_directory(self) -> Path:
        return self._checked_directory(self.module_file_name())

    def module_file_name(self) -> str:
        """Return the full path of the running module, growing the buffer on truncation."""
        capacity = _INITIAL_MODULE_BUFFER
        while capacity <= _MAX_MODULE_BUFFER:
            text, written = self._query(capacity)
            if written == 0:
                raise HostLocationError("GetModuleFileNameW returned no path")
            # A result that fills the whole buffer has been truncated.
            if written < capacity:
                return text[:written]
            capacity *= 2
        raise HostLocationError(
            f"Module path does not fit in {_MAX_MODULE_BUFFER} characters"
        )

    def binary_name(self, version: ProductVersion) -> str:
        return "fbclient.dll"


class LinuxStrategy(PlatformStrategy):
    platform = Platform.LINUX

    def __init__(self, readlink: Optional[Callable[[str], str]] = None) -> None:
        self._readlink = readlink or os.readlink

    def host_directory(self) -> Path:
        try:
            executable = self._readlink("/proc/self/exe")
        except OSError as exc:
            raise HostLocationError(f"Unable to read /proc/self/exe: {exc}") from exc
        return self._checked_directory(executable)

    def binary_name(self, version: ProductVersion) -> str:
        return f"plugins/libEngine{version.native_binary_suffix()}.so"


class MacOsStrategy(PlatformStrategy):
    platform = Platform.OSX

    def __init__(self, entry_point: Optional[Callable[[], Optional[str]]] = None) -> None:
        self._entry_point = entry_point or _entry_module_path

    def host_directory(self) -> Path:
        executable = self._entry_point()
        if not executable:
            raise HostLocationError("Unable to determine the entry module location")
        return self._checked_directory(executable)

    def binary_name(self, version: ProductVersion) -> str:
        return "lib/libfbclient.dylib"


_STRATEGIES: Dict[Platform, Type[PlatformStrategy]] = {
    Platform.WINDOWS: WindowsStrategy,
    Platform.LINUX: LinuxStrategy,
    Platform.OSX: MacOsStrategy,
}


def select_strategy(platform: Platform) -> PlatformStrategy:
    """Instantiate the strategy for ``platform``."""
    strategy_cls = _STRATEGIES.get(platform)
    if strategy_cls is None:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform!r}")
    return strategy_cls()


def runtime_directory() -> Optional[Path]:
    """Return the install directory of the interpreter's standard library.

    Single-file or frozen deployments extract companion assets next to the
    runtime rather than the launcher, so this is the fallback search root.
    """
    module_file = getattr(os, "__file__", None)
    if not module_file:
        return None
    return Path(module_file).resolve().parent


def _entry_module_path() -> Optional[str]:
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None)
    if main_file:
        return os.path.abspath(main_file)
    return sys.executable or None


def _query_module_file_name(capacity: int) -> Tuple[str, int]:
    import ctypes
    from ctypes import wintypes

    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)  # type: ignore[attr-defined]
    get_module_file_name = kernel32.GetModuleFileNameW
    get_module_file_name.argtypes = [wintypes.HMODULE, wintypes.LPWSTR, wintypes.DWORD]
    get_module_file_name.restype = wintypes.DWORD

    buffer = ctypes.create_unicode_buffer(capacity)
    written = get_module_file_name(None, buffer, capacity)
    if written == 0:
        raise HostLocationError(
            f"GetModuleFileNameW failed with error {ctypes.get_last_error()}"  # type: ignore[attr-defined]
        )
    return buffer.value, int(written)


__all__ = [
    "LinuxStrategy",
    "MacOsStrategy",
    "PlatformStrategy",
    "WindowsStrategy",
    "runtime_directory",
    "select_strategy",
]
