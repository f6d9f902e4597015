"""End-to-end tests for the package build manager."""

from __future__ import annotations

import zipfile
from datetime import UTC, datetime

from fbembed.build.manager import BuildArgs, BuildManager, calculate_package_release
from fbembed.build.metadata import PackageRelease, load_metadata
from fbembed.build.releases import load_release_manifest
from fbembed.config import BuildType
from fbembed.models import Architecture, Platform, ProductVersion, ReleaseVersion, Rid
from tests._fixtures.asset_tree import BUILD_DATE, AssetTreeBuilder

LATER = datetime(2024, 2, 1, tzinfo=UTC)
V5_1 = ReleaseVersion(5, 0, 1, 1469, 0)
V5_2 = ReleaseVersion(5, 0, 2, 1613, 0)


def _prepare(asset_tree: AssetTreeBuilder, version: str = "5.0.1.1469-0") -> None:
    asset_tree.add_release("V5", version, [("linux", "x64"), ("linux", "arm64")], notes="Notes.")
    asset_tree.write_manifest()


def _existing(rid: Rid, native: ReleaseVersion = V5_1) -> PackageRelease:
    return PackageRelease(rid, ProductVersion.V5, ReleaseVersion(1, 0, 3), native, BUILD_DATE)


def test_calculate_initial_release(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree)
    config = asset_tree.config()
    release = load_release_manifest(config.paths.releases, config)[0]
    rid = Rid(Platform.LINUX)

    created, changed = calculate_package_release(
        None, rid, release, BuildType.NORMAL, build_date=LATER, initial_version=ReleaseVersion(2, 0, 0)
    )

    assert changed is True
    assert created.package_version == ReleaseVersion(2, 0, 0)
    assert created.native_version == V5_1


def test_calculate_version_transitions(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree, "5.0.2.1613-0")
    config = asset_tree.config()
    release = load_release_manifest(config.paths.releases, config)[0]
    rid = Rid(Platform.LINUX, Architecture.X64)
    options = dict(build_date=LATER, initial_version=ReleaseVersion(1, 0, 0))

    bumped, changed = calculate_package_release(_existing(rid), rid, release, BuildType.NORMAL, **options)
    assert changed is True
    assert bumped.package_version == ReleaseVersion(1, 0, 4)
    assert bumped.native_version == V5_2

    current = _existing(rid, V5_2)
    same, changed = calculate_package_release(current, rid, release, BuildType.NORMAL, **options)
    assert changed is False
    assert same is current

    rebuilt, changed = calculate_package_release(current, rid, release, BuildType.REBUILD, **options)
    assert changed is True
    assert rebuilt.package_version == ReleaseVersion(1, 0, 4)

    forced, changed = calculate_package_release(current, rid, release, BuildType.FORCE, **options)
    assert changed is True
    assert forced is current
    assert forced.package_version == ReleaseVersion(1, 0, 3)
    assert forced.build_date == LATER


def test_first_build_writes_packages_and_metadata(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree)
    metadata_path = asset_tree.init_metadata()
    config = asset_tree.config()

    with BuildManager(config) as manager:
        result = manager.run(BuildArgs())

    assert result.success is True
    assert result.metadata_saved is True
    output = sorted(path.name for path in config.paths.output.iterdir())
    assert output == [
        "FirebirdDb.Embedded.V5.NativeAssets.Linux.All.1.0.0.nupkg",
        "FirebirdDb.Embedded.V5.NativeAssets.Linux.Arm64.1.0.0.nupkg",
        "FirebirdDb.Embedded.V5.NativeAssets.Linux.X64.1.0.0.nupkg",
    ]

    with zipfile.ZipFile(config.paths.output / output[0]) as archive:
        names = set(archive.namelist())
    assert "firebird/linux-x64/V5/plugins/libEngine13.so" in names
    assert "firebird/linux-arm64/V5/plugins/libEngine13.so" in names
    assert "build/net48/FirebirdDb.Embedded.V5.NativeAssets.Linux.All.targets" in names
    assert "buildTransitive/netstandard2.0/FirebirdDb.Embedded.V5.NativeAssets.Linux.All.targets" in names
    assert "lib/netstandard2.0/_._" in names
    assert "lib/net48/_._" in names
    assert not any(name.startswith("dummies/") for name in names)
    assert "README.md" in names

    metadata = load_metadata(metadata_path)
    assert metadata is not None
    rids = sorted(str(release.rid) for release in metadata.history(ProductVersion.V5))
    assert rids == ["linux", "linux-arm64", "linux-x64"]


def test_second_normal_build_is_a_no_op(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree)
    metadata_path = asset_tree.init_metadata()
    BuildManager(asset_tree.config()).run(BuildArgs())
    before = metadata_path.read_bytes()
    mtime = metadata_path.stat().st_mtime_ns

    result = BuildManager(asset_tree.config()).run(BuildArgs())

    assert result.success is True
    assert result.metadata_saved is False
    assert metadata_path.read_bytes() == before
    assert metadata_path.stat().st_mtime_ns == mtime


def test_rebuild_bumps_patch_versions(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree)
    metadata_path = asset_tree.init_metadata()
    BuildManager(asset_tree.config()).run(BuildArgs())

    result = BuildManager(asset_tree.config()).run(BuildArgs(build_type=BuildType.REBUILD))

    assert result.metadata_saved is True
    metadata = load_metadata(metadata_path)
    assert metadata is not None
    latest = metadata.latest_release(ProductVersion.V5, Rid(Platform.LINUX, Architecture.X64))
    assert latest is not None
    assert latest.package_version == ReleaseVersion(1, 0, 1)
    assert len(metadata.history(ProductVersion.V5)) == 6


def test_templates_only_never_touches_metadata(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree)
    metadata_path = asset_tree.init_metadata()
    before = metadata_path.read_bytes()
    config = asset_tree.config()

    result = BuildManager(config).run(BuildArgs(templates_only=True))

    assert result.success is True
    assert metadata_path.read_bytes() == before
    assert not config.paths.output.exists() or not any(config.paths.output.iterdir())
    release = load_release_manifest(config.paths.releases, config)[0]
    package = release.packages[0]
    assert (package.package_root / "README.md").is_file()
    assert (
        package.package_root
        / "buildTransitive"
        / "netstandard2.0"
        / f"{package.package_id}.targets"
    ).is_file()


def test_failed_build_does_not_persist(asset_tree: AssetTreeBuilder) -> None:
    _prepare(asset_tree)
    metadata_path = asset_tree.init_metadata()
    before = metadata_path.read_bytes()
    config = asset_tree.config()
    release = load_release_manifest(config.paths.releases, config)[0]
    (release.assets[1].source / "plugins" / "libEngine13.so").unlink()

    result = BuildManager(config).run(BuildArgs())

    assert result.success is False
    assert metadata_path.read_bytes() == before


def test_missing_manifest_fails(asset_tree: AssetTreeBuilder) -> None:
    asset_tree.init_metadata()

    result = BuildManager(asset_tree.config()).run(BuildArgs())

    assert result.success is False
