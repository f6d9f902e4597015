"""Resolve the on-disk path of the Firebird native client for this process."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from ..logging import get_logger
from ..models import Architecture, ProductVersion
from .probe import probe
from .strategies import PlatformStrategy, runtime_directory, select_strategy

ASSET_ROOT_NAME = "firebird"

_LOGGER = get_logger("native.resolver")


class AssetPathResolver:
    """Computes ``firebird/{rid}/{version}/{binary}`` beneath the host or runtime directory.

    Every missing directory or file yields ``None``; only an architecture the
    strategy has no layout for raises ``UnsupportedPlatformError``.
    """

    def __init__(
        self,
        host_directory: Path,
        strategy: PlatformStrategy,
        architecture: Architecture,
        *,
        runtime_directory: Path | None = None,
    ) -> None:
        self.host_directory = Path(host_directory)
        self.runtime_directory = Path(runtime_directory) if runtime_directory else None
        self.strategy = strategy
        self.architecture = architecture

    def resolve(self, version: ProductVersion) -> Optional[Path]:
        asset_root = self.asset_root()
        if asset_root is None:
            _LOGGER.debug("No %s directory beside host or runtime", ASSET_ROOT_NAME)
            return None

        version_dir = asset_root / self.strategy.rid(self.architecture) / version.directory_name
        if not version_dir.is_dir():
            _LOGGER.debug("Native assets for %s not installed at %s", version.name, version_dir)
            return None

        binary = version_dir / self.strategy.binary_name(version)
        if not binary.is_file():
            _LOGGER.debug("Native binary missing: %s", binary)
            return None
        return binary

    def asset_root(self) -> Optional[Path]:
        published = self.host_directory / ASSET_ROOT_NAME
        if published.is_dir():
            return published
        if self.runtime_directory is None:
            return None
        extracted = self.runtime_directory / ASSET_ROOT_NAME
        if extracted.is_dir():
            return extracted
        return None


_default_resolver: Optional[AssetPathResolver] = None
_default_lock = threading.Lock()


def default_resolver() -> AssetPathResolver:
    """Return the process-wide resolver, created exactly once.

    The executable's location cannot change while the process runs, so the
    host directory is computed on first use and reused afterwards.
    """
    global _default_resolver
    if _default_resolver is None:
        with _default_lock:
            if _default_resolver is None:
                host = probe()
                strategy = select_strategy(host.platform)
                _default_resolver = AssetPathResolver(
                    strategy.host_directory(),
                    strategy,
                    host.architecture,
                    runtime_directory=runtime_directory(),
                )
    return _default_resolver


def native_asset_path(version: ProductVersion) -> Optional[Path]:
    """Return the native client path for ``version`` or ``None`` when it is not installed."""
    return default_resolver().resolve(version)


__all__ = ["ASSET_ROOT_NAME", "AssetPathResolver", "default_resolver", "native_asset_path"]
