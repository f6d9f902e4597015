"""Tests for platform and architecture detection."""

from __future__ import annotations

import pytest

from fbembed.errors import UnsupportedPlatformError
from fbembed.models import Architecture, Platform
from fbembed.native.probe import HostPlatform, detect_architecture, detect_platform, probe


@pytest.mark.parametrize(
    ("system", "expected"),
    [("Windows", Platform.WINDOWS), ("Linux", Platform.LINUX), ("Darwin", Platform.OSX)],
)
def test_detect_platform(system: str, expected: Platform) -> None:
    assert detect_platform(system) is expected


def test_detect_platform_rejects_unknown_system() -> None:
    with pytest.raises(UnsupportedPlatformError):
        detect_platform("FreeBSD")


def test_windows_architecture_follows_process_bitness() -> None:
    assert detect_architecture(Platform.WINDOWS, machine="AMD64", is_64bit=True) is Architecture.X64
    assert detect_architecture(Platform.WINDOWS, machine="AMD64", is_64bit=False) is Architecture.X86


@pytest.mark.parametrize(
    ("machine", "expected"),
    [
        ("x86_64", Architecture.X64),
        ("i686", Architecture.X86),
        ("armv7l", Architecture.ARM32),
        ("aarch64", Architecture.ARM64),
    ],
)
def test_linux_architecture_from_machine(machine: str, expected: Architecture) -> None:
    assert detect_architecture(Platform.LINUX, machine=machine, is_64bit=True) is expected


@pytest.mark.parametrize(
    ("machine", "expected"),
    [
        ("x86_64", Architecture.X86),
        ("i686", Architecture.X86),
        ("aarch64", Architecture.ARM32),
        ("armv7l", Architecture.ARM32),
    ],
)
def test_linux_32bit_process_uses_32bit_family(machine: str, expected: Architecture) -> None:
    assert detect_architecture(Platform.LINUX, machine=machine, is_64bit=False) is expected


def test_macos_architecture_ignores_process_bitness() -> None:
    assert detect_architecture(Platform.OSX, machine="x86_64", is_64bit=False) is Architecture.X64


def test_unknown_machine_raises() -> None:
    with pytest.raises(UnsupportedPlatformError):
        detect_architecture(Platform.LINUX, machine="riscv64")
    with pytest.raises(UnsupportedPlatformError):
        detect_architecture(Platform.OSX, machine="i386")


def test_probe_combines_platform_and_architecture() -> None:
    assert probe(system="Darwin", machine="arm64") == HostPlatform(Platform.OSX, Architecture.ARM64)
