"""Tests for native asset path resolution."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from fbembed.errors import UnsupportedPlatformError
from fbembed.models import Architecture, Platform, ProductVersion, rid_name
from fbembed.native import resolver as resolver_module
from fbembed.native.probe import HostPlatform
from fbembed.native.resolver import AssetPathResolver
from fbembed.native.strategies import LinuxStrategy, MacOsStrategy, PlatformStrategy, WindowsStrategy


def _strategy(platform: Platform) -> PlatformStrategy:
    if platform is Platform.WINDOWS:
        return WindowsStrategy(query=lambda capacity: ("", 0))
    if platform is Platform.LINUX:
        return LinuxStrategy(readlink=lambda path: path)
    return MacOsStrategy(entry_point=lambda: None)


def _install(root: Path, rid: str, version: ProductVersion, binary: str) -> Path:
    path = root / "firebird" / rid / version.directory_name / binary
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x7fELF")
    return path


_COMBINATIONS = [
    (platform, architecture, version)
    for platform, architectures in [
        (Platform.WINDOWS, [Architecture.X64, Architecture.X86]),
        (
            Platform.LINUX,
            [Architecture.X64, Architecture.X86, Architecture.ARM32, Architecture.ARM64],
        ),
        (Platform.OSX, [Architecture.X64, Architecture.ARM64]),
    ]
    for architecture in architectures
    for version in ProductVersion
]


@pytest.mark.parametrize(("platform", "architecture", "version"), _COMBINATIONS)
def test_resolves_every_supported_combination(
    tmp_path: Path, platform: Platform, architecture: Architecture, version: ProductVersion
) -> None:
    strategy = _strategy(platform)
    expected = _install(
        tmp_path, rid_name(platform, architecture), version, strategy.binary_name(version)
    )

    resolved = AssetPathResolver(tmp_path, strategy, architecture).resolve(version)

    assert resolved == expected


def test_linux_layout_uses_engine_suffix(tmp_path: Path) -> None:
    strategy = _strategy(Platform.LINUX)
    _install(tmp_path, "linux-x64", ProductVersion.V5, "plugins/libEngine13.so")
    _install(tmp_path, "linux-x64", ProductVersion.V3, "plugins/libEngine12.so")
    resolver = AssetPathResolver(tmp_path, strategy, Architecture.X64)

    v5 = resolver.resolve(ProductVersion.V5)
    v3 = resolver.resolve(ProductVersion.V3)

    assert v5 == tmp_path / "firebird/linux-x64/V5/plugins/libEngine13.so"
    assert v3 == tmp_path / "firebird/linux-x64/V3/plugins/libEngine12.so"
    assert v5.name != v3.name


@pytest.mark.parametrize("missing", ["root", "rid", "version", "binary"])
def test_missing_levels_return_none(tmp_path: Path, missing: str) -> None:
    strategy = _strategy(Platform.WINDOWS)
    layout = {
        "root": None,
        "rid": tmp_path / "firebird",
        "version": tmp_path / "firebird" / "win-x64",
        "binary": tmp_path / "firebird" / "win-x64" / "V4",
    }
    directory: Optional[Path] = layout[missing]
    if directory is not None:
        directory.mkdir(parents=True)

    assert AssetPathResolver(tmp_path, strategy, Architecture.X64).resolve(ProductVersion.V4) is None


def test_binary_directory_is_not_a_file(tmp_path: Path) -> None:
    (tmp_path / "firebird" / "win-x64" / "V4" / "fbclient.dll").mkdir(parents=True)
    resolver = AssetPathResolver(tmp_path, _strategy(Platform.WINDOWS), Architecture.X64)

    assert resolver.resolve(ProductVersion.V4) is None


def test_unsupported_architecture_raises(tmp_path: Path) -> None:
    (tmp_path / "firebird").mkdir()
    resolver = AssetPathResolver(tmp_path, _strategy(Platform.WINDOWS), Architecture.ARM64)

    with pytest.raises(UnsupportedPlatformError):
        resolver.resolve(ProductVersion.V5)


def test_falls_back_to_runtime_directory(tmp_path: Path) -> None:
    host = tmp_path / "opt" / "app" / "bin"
    host.mkdir(parents=True)
    runtime = tmp_path / "runtime"
    expected = _install(runtime, "linux-arm64", ProductVersion.V5, "plugins/libEngine13.so")

    resolver = AssetPathResolver(
        host, _strategy(Platform.LINUX), Architecture.ARM64, runtime_directory=runtime
    )

    assert resolver.resolve(ProductVersion.V5) == expected


def test_host_directory_wins_over_runtime(tmp_path: Path) -> None:
    host = tmp_path / "host"
    runtime = tmp_path / "runtime"
    published = _install(host, "osx-arm64", ProductVersion.V5, "lib/libfbclient.dylib")
    _install(runtime, "osx-arm64", ProductVersion.V5, "lib/libfbclient.dylib")

    resolver = AssetPathResolver(
        host, _strategy(Platform.OSX), Architecture.ARM64, runtime_directory=runtime
    )

    assert resolver.resolve(ProductVersion.V5) == published


def test_host_firebird_without_version_does_not_fall_back(tmp_path: Path) -> None:
    host = tmp_path / "host"
    (host / "firebird").mkdir(parents=True)
    runtime = tmp_path / "runtime"
    _install(runtime, "win-x64", ProductVersion.V3, "fbclient.dll")

    resolver = AssetPathResolver(
        host, _strategy(Platform.WINDOWS), Architecture.X64, runtime_directory=runtime
    )

    assert resolver.resolve(ProductVersion.V3) is None


def test_default_resolver_is_created_once(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = []

    class CountingStrategy(LinuxStrategy):
        def host_directory(self) -> Path:
            calls.append("host")
            return tmp_path

    monkeypatch.setattr(resolver_module, "_default_resolver", None)
    monkeypatch.setattr(
        resolver_module, "probe", lambda: HostPlatform(Platform.LINUX, Architecture.X64)
    )
    monkeypatch.setattr(
        resolver_module, "select_strategy", lambda platform: CountingStrategy(readlink=str)
    )

    first = resolver_module.default_resolver()
    second = resolver_module.default_resolver()

    assert first is second
    assert calls == ["host"]
    assert first.host_directory == tmp_path
