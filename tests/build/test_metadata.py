"""Tests for the package metadata store."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from fbembed.build.metadata import (
    PackageMetadata,
    PackageRelease,
    load_metadata,
    save_metadata,
)
from fbembed.models import Architecture, Platform, ProductVersion, ReleaseVersion, Rid

BUILT = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _release(rid: Rid = Rid(Platform.LINUX, Architecture.X64), patch: int = 0) -> PackageRelease:
    return PackageRelease(
        rid,
        ProductVersion.V5,
        ReleaseVersion(1, 0, patch),
        ReleaseVersion(5, 0, 1, 1469, 0),
        BUILT,
    )


def test_metadata_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "package-metadata.json"
    metadata = PackageMetadata()
    metadata.add_release(_release())
    metadata.add_release(_release(Rid(Platform.LINUX), patch=2))

    assert save_metadata(metadata, path) is True
    loaded = load_metadata(path)

    assert loaded is not None
    assert loaded.changed is False
    assert loaded.to_dict() == metadata.to_dict()
    latest = loaded.latest_release(ProductVersion.V5, Rid(Platform.LINUX))
    assert latest is not None
    assert latest.package_version == ReleaseVersion(1, 0, 2)


def test_saved_file_is_sorted_and_indented(tmp_path: Path) -> None:
    path = tmp_path / "package-metadata.json"
    metadata = PackageMetadata()
    metadata.add_release(_release())

    save_metadata(metadata, path)
    text = path.read_text(encoding="utf-8")

    assert text == json.dumps(json.loads(text), indent=2, sort_keys=True) + "\n"
    assert json.loads(text)["schema"] == 1
    assert sorted(json.loads(text)["releases"]) == ["V3", "V4", "V5"]


def test_dirty_flag_tracks_mutations() -> None:
    metadata = PackageMetadata()
    release = _release()
    assert metadata.changed is False

    metadata.add_release(release)
    assert metadata.changed is True

    metadata.mark_persisted()
    release.build_date = BUILT
    assert metadata.changed is False

    release.build_date = datetime(2024, 6, 1, tzinfo=UTC)
    assert metadata.changed is True

    metadata.mark_persisted()
    release.publish_date = BUILT
    assert metadata.changed is True


def test_adding_the_same_release_twice_is_ignored() -> None:
    metadata = PackageMetadata()
    release = _release()
    metadata.add_release(release)
    metadata.mark_persisted()

    metadata.add_release(release)

    assert metadata.changed is False
    assert len(metadata.history(ProductVersion.V5)) == 1


def test_latest_prefers_native_then_package_version() -> None:
    metadata = PackageMetadata()
    older = _release(patch=5)
    newer = older.next_native_version(ReleaseVersion(5, 0, 2, 1613, 0), BUILT)
    metadata.add_release(newer)
    metadata.add_release(older)

    latest = metadata.latest_release(ProductVersion.V5)

    assert latest is newer
    assert newer.package_version == ReleaseVersion(1, 0, 6)
    assert metadata.latest_release(ProductVersion.V3) is None


def test_load_returns_none_for_missing_or_malformed_files(tmp_path: Path) -> None:
    assert load_metadata(tmp_path / "absent.json") is None

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_metadata(broken) is None

    wrong_schema = tmp_path / "schema.json"
    wrong_schema.write_text(json.dumps({"schema": 99, "releases": {}}), encoding="utf-8")
    assert load_metadata(wrong_schema) is None

    bad_entry = tmp_path / "entry.json"
    bad_entry.write_text(
        json.dumps({"schema": 1, "releases": {"V5": [{"rid": "linux-x64"}]}}), encoding="utf-8"
    )
    assert load_metadata(bad_entry) is None


def test_find_release_matches_version_and_rid() -> None:
    metadata = PackageMetadata()
    x64 = _release()
    consolidated = _release(Rid(Platform.LINUX))
    metadata.add_release(x64)
    metadata.add_release(consolidated)

    assert metadata.find_release(ProductVersion.V5, ReleaseVersion(1, 0, 0), Rid(Platform.LINUX)) is consolidated
    assert metadata.find_release(ProductVersion.V5, ReleaseVersion(1, 0, 0), x64.rid) is x64
    assert metadata.find_release(ProductVersion.V5, ReleaseVersion(1, 0, 1), x64.rid) is None
    assert metadata.find_release(ProductVersion.V4, ReleaseVersion(1, 0, 0), x64.rid) is None
