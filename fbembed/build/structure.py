"""Stage unpacked native files into package directory trees."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import BuildConfig
from ..logging import get_logger
from ..models import Architecture, Platform, ProductVersion
from .releases import Asset, FileDestination, FirebirdRelease, PackageFile

# (source path inside the unpacked release, optional renamed target)
FileEntry = Tuple[str, Optional[str]]

_TZDATA = (
    "tzdata/metaZones.res",
    "tzdata/timezoneTypes.res",
    "tzdata/windowsZones.res",
    "tzdata/zoneinfo64.res",
)


def _plain(*paths: str) -> List[FileEntry]:
    return [(path, None) for path in paths]


_FILE_TABLE: Dict[Tuple[ProductVersion, Platform], List[FileEntry]] = {
    (ProductVersion.V3, Platform.LINUX): _plain(
        "lib/libib_util.so",
        "lib/libfbclient.so.2",
        "plugins/libEngine12.so",
        "intl/fbintl",
        "intl/fbintl.conf",
    ),
    (ProductVersion.V4, Platform.LINUX): _plain(
        "lib/libib_util.so",
        "lib/libfbclient.so.2",
        "lib/libtomcrypt.so.1",
        "plugins/libEngine13.so",
        "intl/fbintl",
        "intl/fbintl.conf",
        *_TZDATA,
    ),
    (ProductVersion.V5, Platform.LINUX): _plain(
        "lib/libib_util.so",
        "lib/libfbclient.so.2",
        "lib/libtomcrypt.so.1",
        "plugins/libEngine13.so",
        "intl/fbintl",
        "intl/fbintl.conf",
        *_TZDATA,
    ),
    (ProductVersion.V5, Platform.OSX): [
        ("lib/libfbclient.dylib", None),
        ("lib/libib_util.dylib", None),
        ("lib/libicudata.71.1.dylib", "lib/libicudata.71.dylib"),
        ("lib/libicui18n.71.1.dylib", "lib/libicui18n.71.dylib"),
        ("lib/libicuuc.71.1.dylib", "lib/libicuuc.71.dylib"),
        ("lib/libtomcrypt.dylib", None),
        ("lib/libtommath.dylib", None),
        ("plugins/libEngine13.dylib", None),
        *_plain(*_TZDATA, "tzdata/ids.dat"),
    ],
    (ProductVersion.V3, Platform.WINDOWS): _plain(
        "fbclient.dll",
        "ib_util.dll",
        "icudt52.dll",
        "icudt52l.dat",
        "icuin52.dll",
        "icuuc52.dll",
        "msvcp100.dll",
        "msvcr100.dll",
        "zlib1.dll",
        "intl/fbintl.dll",
        "intl/fbintl.conf",
        "plugins/engine12.dll",
    ),
    (ProductVersion.V4, Platform.WINDOWS): _plain(
        "fbclient.dll",
        "ib_util.dll",
        "icudt63.dll",
        "icudt63l.dat",
        "icuin63.dll",
        "icuuc63.dll",
        "msvcp140.dll",
        "vcruntime140.dll",
        "zlib1.dll",
        "intl/fbintl.dll",
        "intl/fbintl.conf",
        "plugins/engine13.dll",
        *_TZDATA,
        "tzdata/ids.dat",
    ),
    (ProductVersion.V5, Platform.WINDOWS): _plain(
        "fbclient.dll",
        "ib_util.dll",
        "icudt63.dll",
        "icudt63l.dat",
        "icuin63.dll",
        "icuuc63.dll",
        "msvcp140.dll",
        "vcruntime140.dll",
        "intl/fbintl.dll",
        "intl/fbintl.conf",
        "zlib1.dll",
        "plugins/engine13.dll",
        *_TZDATA,
        "tzdata/ids.dat",
    ),
}

# The x64 MSVC runtime ships an extra library.
_ARCHITECTURE_EXTRAS: Dict[Tuple[ProductVersion, Platform, Architecture], List[FileEntry]] = {
    (ProductVersion.V5, Platform.WINDOWS, Architecture.X64): _plain("vcruntime140_1.dll"),
}


def source_files(
    product: ProductVersion, platform: Platform, architecture: Architecture
) -> List[FileEntry]:
    """Return the native files packaged for one product, platform and architecture."""
    entries = _FILE_TABLE.get((product, platform))
    if entries is None:
        raise ValueError(
            f"No package layout for Firebird {product.value} on {platform.display_name}"
        )
    extras = _ARCHITECTURE_EXTRAS.get((product, platform, architecture), [])
    return [*entries, *extras]


def files_for(asset: Asset) -> List[FileEntry]:
    return source_files(asset.release.product, asset.platform, asset.architecture)


class PackageStructureBuilder:
    """Recreates package roots and copies native, license and icon files into them."""

    def __init__(self, config: BuildConfig, *, templates_only: bool = False) -> None:
        self._config = config
        self._templates_only = templates_only
        self._logger = get_logger("build.structure")

    def build_structures(self, release: FirebirdRelease) -> bool:
        self._logger.info("Building structures for release '%s'", release.name)
        try:
            for asset in release.assets:
                self._create_asset_structure(asset)
            for details in release.packages:
                self._logger.debug("Building structure for package '%s'", details.package_id)
                recreate_directory(details.package_root)
                details.files.clear()
                if not self._templates_only:
                    self._copy_extras(details.files, details.package_root, release)
        except (OSError, ValueError) as exc:
            self._logger.error("Building structures for release '%s' failed: %s", release.name, exc)
            return False
        return True

    def _create_asset_structure(self, asset: Asset) -> None:
        self._logger.debug("Building structure for package '%s'", asset.package_id)
        recreate_directory(asset.package_root)
        asset.files.clear()
        if self._templates_only:
            return

        self._copy_extras(asset.files, asset.package_root, asset.release)
        source_root = asset.files_directory
        target_root = asset.package_root / asset.content_root
        for source, renamed in files_for(asset):
            target = renamed or source
            self._logger.debug("Copying file '%s' to '%s/%s'", source, target_root, target)
            destination = target_root / target
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source_root / source, destination)
            asset.files.append(
                PackageFile(FileDestination.RUNTIME, f"{asset.content_root}/{target}")
            )

    def _copy_extras(
        self, files: List[PackageFile], package_root: Path, release: FirebirdRelease
    ) -> None:
        package = self._config.package
        if package.license_file is not None:
            name = f"LICENSES{release.product.value}{package.license_file.suffix}"
            self._logger.debug("Writing licenses file to '%s'", package_root / name)
            shutil.copyfile(package.license_file, package_root / name)
            files.append(PackageFile(FileDestination.CONTENT, name))
        if package.icon_file is not None:
            name = f"icon{package.icon_file.suffix}"
            shutil.copyfile(package.icon_file, package_root / name)
            files.append(PackageFile(FileDestination.CONTENT, name))


def recreate_directory(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def runtime_files(files: Sequence[PackageFile]) -> List[PackageFile]:
    return [item for item in files if item.destination is FileDestination.RUNTIME]


__all__ = [
    "PackageStructureBuilder",
    "files_for",
    "recreate_directory",
    "runtime_files",
    "source_files",
]
