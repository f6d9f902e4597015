"""Detect the operating system family and processor architecture of this process."""

from __future__ import annotations

import platform as _platform
import struct
from dataclasses import dataclass
from typing import Dict, Optional

from ..errors import UnsupportedPlatformError
from ..models import Architecture, Platform

_SYSTEMS: Dict[str, Platform] = {
    "windows": Platform.WINDOWS,
    "linux": Platform.LINUX,
    "darwin": Platform.OSX,
}

_LINUX_MACHINES: Dict[str, Architecture] = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "i386": Architecture.X86,
    "i486": Architecture.X86,
    "i586": Architecture.X86,
    "i686": Architecture.X86,
    "x86": Architecture.X86,
    "armv6l": Architecture.ARM32,
    "armv7l": Architecture.ARM32,
    "armv8l": Architecture.ARM32,
    "arm": Architecture.ARM32,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
}

_OSX_MACHINES: Dict[str, Architecture] = {
    "x86_64": Architecture.X64,
    "arm64": Architecture.ARM64,
}

# 32-bit processes on 64-bit Linux kernels load the 32-bit binaries.
_NARROWED: Dict[Architecture, Architecture] = {
    Architecture.X64: Architecture.X86,
    Architecture.ARM64: Architecture.ARM32,
}


@dataclass(frozen=True)
class HostPlatform:
    """Platform and architecture of the running process."""

    platform: Platform
    architecture: Architecture


def is_64bit_process() -> bool:
    return struct.calcsize("P") == 8


def detect_platform(system: Optional[str] = None) -> Platform:
    """Map ``platform.system()`` onto a supported OS family."""
    name = (system if system is not None else _platform.system()).lower()
    detected = _SYSTEMS.get(name)
    if detected is None:
        raise UnsupportedPlatformError(f"Unsupported operating system: {name or '<unknown>'}")
    return detected


def detect_architecture(
    platform: Platform,
    *,
    machine: Optional[str] = None,
    is_64bit: Optional[bool] = None,
) -> Architecture:
    """Detect the architecture the native binaries must be built for.

    Windows follows process bitness (a 32-bit interpreter on a 64-bit OS
    loads x86 binaries). Linux and macOS follow the reported machine name,
    narrowed on Linux to the 32-bit family when the process itself is 32-bit.
    """
    if platform is Platform.WINDOWS:
        wide = is_64bit if is_64bit is not None else is_64bit_process()
        return Architecture.X64 if wide else Architecture.X86

    name = (machine if machine is not None else _platform.machine()).lower()
    table = _LINUX_MACHINES if platform is Platform.LINUX else _OSX_MACHINES
    architecture = table.get(name)
    if architecture is None:
        raise UnsupportedPlatformError(
            f"Unsupported {platform.display_name} architecture: {name or '<unknown>'}"
        )
    if platform is Platform.LINUX:
        wide = is_64bit if is_64bit is not None else is_64bit_process()
        if not wide:
            architecture = _NARROWED.get(architecture, architecture)
    return architecture


def probe(
    *,
    system: Optional[str] = None,
    machine: Optional[str] = None,
    is_64bit: Optional[bool] = None,
) -> HostPlatform:
    """Return the platform/architecture pair for this process."""
    detected = detect_platform(system)
    architecture = detect_architecture(detected, machine=machine, is_64bit=is_64bit)
    return HostPlatform(platform=detected, architecture=architecture)


__all__ = [
    "HostPlatform",
    "detect_architecture",
    "detect_platform",
    "is_64bit_process",
    "probe",
]
