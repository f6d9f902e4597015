"""Extract downloaded release archives into per-asset unpack directories."""

from __future__ import annotations

import tarfile
import zipfile
from pathlib import Path

from ..logging import get_logger
from .releases import Asset, FirebirdRelease
from .structure import recreate_directory


class AssetUnpacker:
    """Unpacks every archive asset of a release; directory sources are used in place."""

    def __init__(self) -> None:
        self._logger = get_logger("build.unpack")

    def unpack_assets(self, release: FirebirdRelease) -> bool:
        for asset in release.assets:
            if not self.unpack_asset(asset):
                return False
        return True

    def unpack_asset(self, asset: Asset) -> bool:
        if not asset.is_archive:
            if not asset.source.is_dir():
                self._logger.error("Asset source '%s' does not exist", asset.source)
                return False
            self._logger.debug("Using unpacked sources for '%s' from '%s'", asset.rid, asset.source)
            return True

        self._logger.info("Unpacking '%s' to '%s'", asset.source.name, asset.unpack_directory)
        try:
            recreate_directory(asset.unpack_directory)
            extract_archive(asset.source, asset.unpack_directory)
        except (OSError, tarfile.TarError, zipfile.BadZipFile) as exc:
            self._logger.error("Failed to unpack '%s': %s", asset.source, exc)
            return False
        return True


def extract_archive(archive_path: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    if archive_path.name.lower().endswith(".zip"):
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(destination)
    else:
        with tarfile.open(archive_path, "r:*") as archive:
            archive.extractall(destination, filter="data")


__all__ = ["AssetUnpacker", "extract_archive"]
