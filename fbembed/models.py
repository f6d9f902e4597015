"""Core vocabulary shared by asset resolution and package assembly."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .errors import UnsupportedPlatformError


class ProductVersion(Enum):
    """Generation of the Firebird native client being resolved or packaged."""

    V3 = "V3"
    V4 = "V4"
    V5 = "V5"

    @property
    def directory_name(self) -> str:
        return self.value

    @property
    def long_name(self) -> str:
        return f"version {self.value[1:]}"

    def native_binary_suffix(self) -> str:
        """Return the numeric suffix embedded in the Linux engine library name."""
        return _NATIVE_BINARY_SUFFIXES[self]

    @classmethod
    def parse(cls, value: str) -> "ProductVersion":
        text = value.strip().upper()
        if not text.startswith("V"):
            text = f"V{text}"
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown product version: {value!r}") from None


# V4 and V5 ship the same engine ABI, hence the shared suffix.
_NATIVE_BINARY_SUFFIXES: Dict[ProductVersion, str] = {
    ProductVersion.V3: "12",
    ProductVersion.V4: "13",
    ProductVersion.V5: "13",
}


class Platform(Enum):
    """Operating system family."""

    WINDOWS = "windows"
    LINUX = "linux"
    OSX = "osx"

    @property
    def rid_prefix(self) -> str:
        return _RID_PREFIXES[self]

    @property
    def display_name(self) -> str:
        return _PLATFORM_DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "Platform":
        platform = _PLATFORM_ALIASES.get(value.strip().lower())
        if platform is None:
            raise UnsupportedPlatformError(f"Unsupported platform: {value!r}")
        return platform


class Architecture(Enum):
    """Processor architecture."""

    X86 = "x86"
    X64 = "x64"
    ARM32 = "arm32"
    ARM64 = "arm64"

    @property
    def rid_suffix(self) -> str:
        return self.value

    @property
    def msbuild_name(self) -> str:
        return _MSBUILD_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "Architecture":
        architecture = _ARCHITECTURE_ALIASES.get(value.strip().lower())
        if architecture is None:
            raise UnsupportedPlatformError(f"Unsupported architecture: {value!r}")
        return architecture


_RID_PREFIXES: Dict[Platform, str] = {
    Platform.WINDOWS: "win",
    Platform.LINUX: "linux",
    Platform.OSX: "osx",
}

_PLATFORM_DISPLAY_NAMES: Dict[Platform, str] = {
    Platform.WINDOWS: "Windows",
    Platform.LINUX: "Linux",
    Platform.OSX: "Osx",
}

_PLATFORM_ALIASES: Dict[str, Platform] = {
    "win": Platform.WINDOWS,
    "windows": Platform.WINDOWS,
    "linux": Platform.LINUX,
    "osx": Platform.OSX,
    "macos": Platform.OSX,
    "darwin": Platform.OSX,
}

_MSBUILD_NAMES: Dict[Architecture, str] = {
    Architecture.X86: "X86",
    Architecture.X64: "X64",
    Architecture.ARM32: "Arm32",
    Architecture.ARM64: "Arm64",
}

_ARCHITECTURE_ALIASES: Dict[str, Architecture] = {
    "x86": Architecture.X86,
    "x32": Architecture.X86,
    "x64": Architecture.X64,
    "arm32": Architecture.ARM32,
    "arm": Architecture.ARM32,
    "arm64": Architecture.ARM64,
}

SUPPORTED_ARCHITECTURES: Dict[Platform, FrozenSet[Architecture]] = {
    Platform.WINDOWS: frozenset({Architecture.X64, Architecture.X86}),
    Platform.LINUX: frozenset(
        {Architecture.X64, Architecture.X86, Architecture.ARM32, Architecture.ARM64}
    ),
    Platform.OSX: frozenset({Architecture.X64, Architecture.ARM64}),
}


def rid_name(platform: Platform, architecture: Architecture) -> str:
    """Return the runtime identifier for a platform/architecture pair.

    Raises ``UnsupportedPlatformError`` for any combination outside the
    published layout instead of guessing a directory name.
    """
    supported = SUPPORTED_ARCHITECTURES.get(platform)  # type: ignore[arg-type]
    if supported is None:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform!r}")
    if architecture not in supported:
        raise UnsupportedPlatformError(
            f"Architecture {architecture!r} is not supported on {platform.display_name}"
        )
    return f"{platform.rid_prefix}-{architecture.rid_suffix}"


@dataclass(frozen=True)
class Rid:
    """Runtime identifier; ``architecture=None`` denotes every architecture of a platform."""

    platform: Platform
    architecture: Optional[Architecture] = None

    def __str__(self) -> str:
        if self.architecture is None:
            return self.platform.rid_prefix
        return rid_name(self.platform, self.architecture)

    @property
    def display_name(self) -> str:
        arch = self.architecture.msbuild_name if self.architecture else "All"
        return f"{self.platform.display_name}.{arch}"

    @classmethod
    def parse(cls, value: str) -> "Rid":
        parts = value.strip().split("-")
        if len(parts) == 1:
            return cls(Platform.parse(parts[0]))
        if len(parts) == 2:
            platform = Platform.parse(parts[0])
            architecture = Architecture.parse(parts[1])
            rid_name(platform, architecture)
            return cls(platform, architecture)
        raise UnsupportedPlatformError(f"Invalid runtime identifier: {value!r}")


_FIREBIRD_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)\.(\d+)-(\d+)$")
_NUGET_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


@dataclass(frozen=True, order=True)
class ReleaseVersion:
    """Ordered release number, e.g. ``5.0.1.1469-0`` (Firebird) or ``5.0.1`` (NuGet)."""

    major: int
    minor: int
    patch: int
    build: int = 0
    revision: int = 0

    def __str__(self) -> str:
        return self.firebird_style()

    def firebird_style(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.build}-{self.revision}"

    def nuget_style(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def next_patch(self) -> "ReleaseVersion":
        return replace(self, patch=self.patch + 1)

    def next_major(self) -> "ReleaseVersion":
        return replace(self, major=self.major + 1, minor=0, patch=0)

    @classmethod
    def parse(cls, value: str, *, nuget: bool = False) -> Optional["ReleaseVersion"]:
        """Parse either style; returns ``None`` for malformed text.

        Firebird style requires the build/revision tail; NuGet style accepts
        the bare three-part form as well.
        """
        text = value.strip()
        match = _FIREBIRD_VERSION_RE.match(text)
        if match:
            return cls(*(int(part) for part in match.groups()))
        if nuget:
            match = _NUGET_VERSION_RE.match(text)
            if match:
                return cls(*(int(part) for part in match.groups()))
        return None


__all__ = [
    "Architecture",
    "Platform",
    "ProductVersion",
    "ReleaseVersion",
    "Rid",
    "SUPPORTED_ARCHITECTURES",
    "rid_name",
]
