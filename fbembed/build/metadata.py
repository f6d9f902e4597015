"""Persistent record of the packages already built for each product version."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..errors import UnsupportedPlatformError
from ..logging import get_logger
from ..models import ProductVersion, ReleaseVersion, Rid

_SCHEMA_VERSION = 1

_LOGGER = get_logger("build.metadata")


class PackageRelease:
    """One built package version; build and publish dates are change tracked."""

    def __init__(
        self,
        rid: Rid,
        product: ProductVersion,
        package_version: ReleaseVersion,
        native_version: ReleaseVersion,
        build_date: datetime,
        publish_date: Optional[datetime] = None,
    ) -> None:
        self.rid = rid
        self.product = product
        self.package_version = package_version
        self.native_version = native_version
        self._build_date = build_date
        self._publish_date = publish_date
        self.metadata: Optional[PackageMetadata] = None

    @property
    def build_date(self) -> datetime:
        return self._build_date

    @build_date.setter
    def build_date(self, value: datetime) -> None:
        if value != self._build_date:
            self._build_date = value
            self._notify_change()

    @property
    def publish_date(self) -> Optional[datetime]:
        return self._publish_date

    @publish_date.setter
    def publish_date(self, value: Optional[datetime]) -> None:
        if value != self._publish_date:
            self._publish_date = value
            self._notify_change()

    def next_patch_version(self, build_date: datetime) -> "PackageRelease":
        return PackageRelease(
            self.rid,
            self.product,
            self.package_version.next_patch(),
            self.native_version,
            build_date,
        )

    def next_native_version(
        self, native_version: ReleaseVersion, build_date: datetime
    ) -> "PackageRelease":
        return PackageRelease(
            self.rid,
            self.product,
            self.package_version.next_patch(),
            native_version,
            build_date,
        )

    def sort_key(self) -> tuple:
        return (self.native_version, self.package_version, self.build_date)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "rid": str(self.rid),
            "package_version": self.package_version.nuget_style(),
            "native_version": self.native_version.firebird_style(),
            "build_date": self.build_date.isoformat(),
        }
        if self.publish_date is not None:
            data["publish_date"] = self.publish_date.isoformat()
        return data

    def _notify_change(self) -> None:
        if self.metadata is not None:
            self.metadata.mark_changed()

    def __repr__(self) -> str:
        return (
            f"PackageRelease(rid={self.rid}, product={self.product.value}, "
            f"package_version={self.package_version.nuget_style()}, "
            f"native_version={self.native_version})"
        )


class PackageReleaseHistory:
    """Releases of one product version in insertion order."""

    def __init__(self, metadata: "PackageMetadata", product: ProductVersion) -> None:
        self._metadata = metadata
        self.product = product
        self._releases: List[PackageRelease] = []

    def __iter__(self) -> Iterator[PackageRelease]:
        return iter(self._releases)

    def __len__(self) -> int:
        return len(self._releases)

    def add(self, release: PackageRelease, *, loading: bool = False) -> None:
        if any(existing is release for existing in self._releases):
            return
        release.metadata = self._metadata
        self._releases.append(release)
        if not loading:
            self._metadata.mark_changed()

    def latest(self, rid: Optional[Rid] = None) -> Optional[PackageRelease]:
        candidates = [release for release in self._releases if rid is None or release.rid == rid]
        if not candidates:
            return None
        return max(candidates, key=lambda release: release.sort_key())

    def find(self, package_version: ReleaseVersion, rid: Rid) -> Optional[PackageRelease]:
        for release in self._releases:
            if release.rid == rid and release.package_version == package_version:
                return release
        return None


class PackageMetadata:
    """Release histories for every product version plus a dirty flag."""

    def __init__(self) -> None:
        self._histories: Dict[ProductVersion, PackageReleaseHistory] = {
            product: PackageReleaseHistory(self, product) for product in ProductVersion
        }
        self._changed = False

    @property
    def changed(self) -> bool:
        return self._changed

    def mark_changed(self) -> None:
        self._changed = True

    def mark_persisted(self) -> None:
        self._changed = False

    def history(self, product: ProductVersion) -> PackageReleaseHistory:
        return self._histories[product]

    def add_release(self, release: PackageRelease, *, loading: bool = False) -> None:
        self.history(release.product).add(release, loading=loading)

    def latest_release(
        self, product: ProductVersion, rid: Optional[Rid] = None
    ) -> Optional[PackageRelease]:
        return self.history(product).latest(rid)

    def find_release(
        self, product: ProductVersion, package_version: ReleaseVersion, rid: Rid
    ) -> Optional[PackageRelease]:
        return self.history(product).find(package_version, rid)

    def to_dict(self) -> Dict[str, object]:
        return {
            "schema": _SCHEMA_VERSION,
            "releases": {
                product.value: [release.to_dict() for release in self._histories[product]]
                for product in ProductVersion
            },
        }


def load_metadata(path: Path) -> Optional[PackageMetadata]:
    """Load metadata from ``path``; ``None`` when the file is absent or malformed."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        _LOGGER.error("Package metadata file not found: %s", path)
        return None
    except (OSError, json.JSONDecodeError) as exc:
        _LOGGER.error("Error loading metadata from '%s': %s", path, exc)
        return None

    if not isinstance(data, dict) or data.get("schema") != _SCHEMA_VERSION:
        _LOGGER.error("Unsupported metadata schema in '%s'", path)
        return None
    releases = data.get("releases")
    if not isinstance(releases, dict):
        _LOGGER.error("Metadata '%s' is missing the releases mapping", path)
        return None

    metadata = PackageMetadata()
    for key, entries in releases.items():
        try:
            product = ProductVersion.parse(key)
        except ValueError:
            _LOGGER.error("Metadata '%s' names unknown product version %r", path, key)
            return None
        if not isinstance(entries, list):
            _LOGGER.error("Metadata '%s': releases for %s must be a list", path, key)
            return None
        for entry in entries:
            release = _release_from_dict(entry, product)
            if release is None:
                _LOGGER.error("Metadata '%s': ill-formed release under %s: %r", path, key, entry)
                return None
            metadata.add_release(release, loading=True)
    return metadata


def save_metadata(metadata: PackageMetadata, path: Path) -> bool:
    """Write ``metadata`` as sorted, indented JSON; returns ``False`` on I/O failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(metadata.to_dict(), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        _LOGGER.error("Error saving metadata to '%s': %s", path, exc)
        return False
    metadata.mark_persisted()
    return True


def _release_from_dict(payload: object, product: ProductVersion) -> Optional[PackageRelease]:
    if not isinstance(payload, dict):
        return None
    rid_text = payload.get("rid")
    package_text = payload.get("package_version")
    native_text = payload.get("native_version")
    build_text = payload.get("build_date")
    publish_text = payload.get("publish_date")
    if not all(isinstance(value, str) for value in (rid_text, package_text, native_text, build_text)):
        return None
    if publish_text is not None and not isinstance(publish_text, str):
        return None

    try:
        rid = Rid.parse(rid_text)  # type: ignore[arg-type]
        build_date = datetime.fromisoformat(build_text)  # type: ignore[arg-type]
        publish_date = datetime.fromisoformat(publish_text) if publish_text else None
    except (UnsupportedPlatformError, ValueError):
        return None

    package_version = ReleaseVersion.parse(package_text, nuget=True)  # type: ignore[arg-type]
    native_version = ReleaseVersion.parse(native_text)  # type: ignore[arg-type]
    if package_version is None or native_version is None:
        return None

    return PackageRelease(
        rid,
        product,
        package_version,
        native_version,
        build_date,
        publish_date,
    )


__all__ = [
    "PackageMetadata",
    "PackageRelease",
    "PackageReleaseHistory",
    "load_metadata",
    "save_metadata",
]
