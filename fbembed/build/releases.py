"""Release manifest loading and the per-package records derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Sequence

import yaml

from ..config import BuildConfig
from ..errors import ConfigError, UnsupportedPlatformError
from ..models import Architecture, Platform, ProductVersion, ReleaseVersion, Rid

ARCHIVE_SUFFIXES = (".tar.xz", ".tar.gz", ".tgz", ".zip")


class FileDestination(Enum):
    """Where a staged file lands inside the package."""

    RUNTIME = "runtime"
    CONTENT = "content"


@dataclass(frozen=True)
class PackageFile:
    """A file staged under a package root, relative to that root."""

    destination: FileDestination
    path: str


@dataclass
class FirebirdRelease:
    """One upstream native release of a product version."""

    product: ProductVersion
    version: ReleaseVersion
    tag: str
    name: str
    notes: str = ""
    publish_date: Optional[datetime] = None
    assets: List["Asset"] = field(default_factory=list)
    packages: List["PackageDetails"] = field(default_factory=list)

    def platforms(self) -> List[Platform]:
        seen: List[Platform] = []
        for asset in self.assets:
            if asset.platform not in seen:
                seen.append(asset.platform)
        return sorted(seen, key=lambda platform: platform.value)

    def assets_for(self, platform: Platform) -> List["Asset"]:
        matching = [asset for asset in self.assets if asset.platform is platform]
        return sorted(matching, key=lambda asset: asset.architecture.value)


@dataclass
class Asset:
    """Native binaries of one release for one platform and architecture."""

    release: FirebirdRelease
    platform: Platform
    architecture: Architecture
    source: Path
    package_id: str
    package_root: Path
    unpack_directory: Path
    archive_root: str = ""
    files: List[PackageFile] = field(default_factory=list)

    @property
    def rid(self) -> Rid:
        return Rid(self.platform, self.architecture)

    @property
    def architectures(self) -> List[Architecture]:
        return [self.architecture]

    @property
    def content_root(self) -> str:
        """Directory of the staged binaries relative to the package root."""
        return f"firebird/{self.rid}/{self.release.product.directory_name}"

    @property
    def is_archive(self) -> bool:
        return self.source.name.lower().endswith(ARCHIVE_SUFFIXES)

    @property
    def files_directory(self) -> Path:
        """Directory holding the unpacked native files."""
        base = self.unpack_directory if self.is_archive else self.source
        return base / self.archive_root if self.archive_root else base


@dataclass
class PackageDetails:
    """Consolidated package carrying every architecture of one platform."""

    release: FirebirdRelease
    platform: Platform
    package_id: str
    package_root: Path
    files: List[PackageFile] = field(default_factory=list)

    @property
    def rid(self) -> Rid:
        return Rid(self.platform)

    @property
    def assets(self) -> List[Asset]:
        return self.release.assets_for(self.platform)

    @property
    def architectures(self) -> List[Architecture]:
        return [asset.architecture for asset in self.assets]


def asset_package_id(config: BuildConfig, product: ProductVersion, rid: Rid) -> str:
    return config.package.package_id(f"Embedded.{product.value}.NativeAssets.{rid.display_name}")


def load_release_manifest(path: Path, config: BuildConfig) -> List[FirebirdRelease]:
    """Read the YAML release manifest and derive assets and consolidated packages."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Release manifest not found: {path}") from exc
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path.name}: {exc}") from exc

    entries = data.get("releases") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigError(f"{path.name} must contain a 'releases' list")

    base = path.parent.resolve()
    releases: List[FirebirdRelease] = []
    seen: set[ProductVersion] = set()
    for index, entry in enumerate(entries):
        release = _parse_release(entry, index, base, config)
        if release.product in seen:
            raise ConfigError(f"Duplicate release entry for {release.product.value}")
        seen.add(release.product)
        releases.append(release)
    return releases


def _parse_release(
    entry: Any, index: int, base: Path, config: BuildConfig
) -> FirebirdRelease:
    if not isinstance(entry, dict):
        raise ConfigError(f"releases[{index}] must be a mapping")
    try:
        product = ProductVersion.parse(str(entry.get("product", "")))
    except ValueError as exc:
        raise ConfigError(f"releases[{index}]: {exc}") from exc

    version_text = str(entry.get("version", ""))
    version = ReleaseVersion.parse(version_text)
    if version is None:
        raise ConfigError(f"releases[{index}]: invalid Firebird version {version_text!r}")

    publish_date = entry.get("publish_date")
    if isinstance(publish_date, str):
        try:
            publish_date = datetime.fromisoformat(publish_date)
        except ValueError as exc:
            raise ConfigError(f"releases[{index}]: invalid publish_date") from exc
    elif not isinstance(publish_date, datetime):
        publish_date = None

    release = FirebirdRelease(
        product=product,
        version=version,
        tag=str(entry.get("tag") or f"v{version.nuget_style()}"),
        name=str(entry.get("name") or f"Firebird {version.nuget_style()}"),
        notes=str(entry.get("notes") or "").strip(),
        publish_date=publish_date,
    )

    assets = entry.get("assets")
    if not isinstance(assets, Sequence) or isinstance(assets, str) or not assets:
        raise ConfigError(f"releases[{index}] must list at least one asset")
    for asset_index, raw in enumerate(assets):
        release.assets.append(
            _parse_asset(raw, f"releases[{index}].assets[{asset_index}]", release, base, config)
        )

    for platform in release.platforms():
        rid = Rid(platform)
        release.packages.append(
            PackageDetails(
                release=release,
                platform=platform,
                package_id=asset_package_id(config, product, rid),
                package_root=config.paths.working
                / product.value
                / f"Firebird-{version}-{platform.rid_prefix}",
            )
        )
    return release


def _parse_asset(
    raw: Any, label: str, release: FirebirdRelease, base: Path, config: BuildConfig
) -> Asset:
    if not isinstance(raw, dict):
        raise ConfigError(f"{label} must be a mapping")
    try:
        platform = Platform.parse(str(raw.get("platform", "")))
        architecture = Architecture.parse(str(raw.get("architecture", "")))
        rid = Rid(platform, architecture)
        rid_text = str(rid)
    except UnsupportedPlatformError as exc:
        raise ConfigError(f"{label}: {exc}") from exc

    source_text = raw.get("source")
    if not isinstance(source_text, str) or not source_text.strip():
        raise ConfigError(f"{label} must define a source path")
    source = Path(source_text).expanduser()
    if not source.is_absolute():
        source = base / source

    if any(asset.rid == rid for asset in release.assets):
        raise ConfigError(f"{label}: duplicate asset for {rid_text}")

    normalized_name = f"Firebird-{release.version}-{platform.value}-{architecture.rid_suffix}"
    product_dir = release.product.value
    return Asset(
        release=release,
        platform=platform,
        architecture=architecture,
        source=source,
        package_id=asset_package_id(config, release.product, rid),
        package_root=config.paths.working / product_dir / normalized_name,
        unpack_directory=config.paths.unpack / product_dir / normalized_name,
        archive_root=str(raw.get("root") or "").strip("/"),
    )


__all__ = [
    "ARCHIVE_SUFFIXES",
    "Asset",
    "FileDestination",
    "FirebirdRelease",
    "PackageDetails",
    "PackageFile",
    "asset_package_id",
    "load_release_manifest",
]
