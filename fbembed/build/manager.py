"""Build NuGet packages for the configured Firebird releases."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from ..config import BuildConfig, BuildType
from ..errors import ConfigError
from ..models import ProductVersion, ReleaseVersion, Rid
from .metadata import PackageRelease
from .nuget import NupkgBuilder, version_range
from .pipeline import PackagePipeline
from .releases import Asset, FirebirdRelease, PackageDetails, load_release_manifest
from .structure import PackageStructureBuilder, runtime_files
from .templates import (
    README_FILE_NAME,
    create_environment,
    readme_input,
    targets_input,
    write_readme,
    write_targets,
)
from .unpack import AssetUnpacker

PLACEHOLDER_DIRECTORY = "dummies"
PLACEHOLDER_FILE_NAME = "_._"

PackageSource = Union[Asset, PackageDetails]


@dataclass
class BuildArgs:
    """Per-run options; ``None`` fields fall back to the configuration."""

    build_type: Optional[BuildType] = None
    templates_only: bool = False
    products: Optional[List[ProductVersion]] = None


def calculate_package_release(
    latest: Optional[PackageRelease],
    rid: Rid,
    release: FirebirdRelease,
    build_type: BuildType,
    *,
    build_date: datetime,
    initial_version: ReleaseVersion,
) -> Tuple[PackageRelease, bool]:
    """Return the package release to build and whether anything needs building."""
    if latest is None:
        created = PackageRelease(rid, release.product, initial_version, release.version, build_date)
        return created, True
    if latest.native_version != release.version:
        # A new native release bumps the patch regardless of build type.
        return latest.next_native_version(release.version, build_date), True
    if build_type is BuildType.REBUILD:
        return latest.next_patch_version(build_date), True
    if build_type is BuildType.FORCE:
        latest.build_date = build_date
        return latest, True
    return latest, False


class BuildManager(PackagePipeline[BuildArgs]):
    """Unpacks release assets, stages package trees and writes ``.nupkg`` files."""

    def __init__(self, config: BuildConfig, *, templates_dir: Optional[Path] = None) -> None:
        super().__init__(config)
        self._environment = create_environment(templates_dir)
        self._unpacker = AssetUnpacker()

    def execute(self, args: BuildArgs) -> bool:
        build_type = args.build_type or self.config.build_type
        try:
            releases = load_release_manifest(self.config.paths.releases, self.config)
        except ConfigError as exc:
            self.logger.error("%s", exc)
            return False

        products = args.products or self.config.products
        releases = [release for release in releases if release.product in products]
        if build_type is BuildType.NORMAL and not args.templates_only:
            releases = self.filter_releases(releases)
        if not releases:
            self.logger.info("All versions current, nothing to build.")
            return True

        structures = PackageStructureBuilder(self.config, templates_only=args.templates_only)
        for release in releases:
            self.logger.info("Processing release '%s'", release.name)
            if not args.templates_only and not self._unpacker.unpack_assets(release):
                return False
            if not structures.build_structures(release):
                return False
            if not self.build_packages(release, build_type, templates_only=args.templates_only):
                return False
        return True

    def filter_releases(self, releases: Sequence[FirebirdRelease]) -> List[FirebirdRelease]:
        """Drop releases whose native version already has a package release."""
        remaining: List[FirebirdRelease] = []
        for release in releases:
            latest = self.metadata.latest_release(release.product)
            if latest is not None and latest.native_version == release.version:
                self.logger.info(
                    "Firebird %s was released in package version %s on %s, excluding from build.",
                    release.version,
                    latest.package_version.nuget_style(),
                    latest.build_date.strftime("%Y-%m-%d %H:%M:%S"),
                )
                continue
            remaining.append(release)
        return remaining

    def build_packages(
        self, release: FirebirdRelease, build_type: BuildType, *, templates_only: bool = False
    ) -> bool:
        try:
            self.config.paths.output.mkdir(parents=True, exist_ok=True)
            for details in release.packages:
                self._build_package(details, build_type, templates_only)
            for asset in release.assets:
                self._build_package(asset, build_type, templates_only)
        except (OSError, ValueError) as exc:
            self.logger.error("Failed to build nuget packages for release '%s': %s", release.name, exc)
            return False
        return True

    def _build_package(self, source: PackageSource, build_type: BuildType, templates_only: bool) -> None:
        frameworks = self.config.package.target_frameworks
        if templates_only:
            write_targets(
                source.package_root,
                targets_input(source, frameworks[0], transitive=True),
                self._environment,
            )
            write_readme(source.package_root, readme_input(source), self._environment)
            return

        latest = self.metadata.latest_release(source.release.product, source.rid)
        package_release, changed = calculate_package_release(
            latest,
            source.rid,
            source.release,
            build_type,
            build_date=self.config.build_date,
            initial_version=self.config.initial_version,
        )
        version = package_release.package_version.nuget_style()
        if not changed:
            self.logger.info("Package '%s' version %s is unchanged, build skipped.", source.package_id, version)
            return

        self.metadata.add_release(package_release)
        builder = self._package_builder(source, version)
        root = source.package_root

        write_readme(root, readme_input(source), self._environment)
        builder.add_file(root / README_FILE_NAME, README_FILE_NAME)

        for item in source.files:
            builder.add_file(root / item.path, item.path)
        if isinstance(source, PackageDetails):
            for asset in source.assets:
                for item in runtime_files(asset.files):
                    builder.add_file(asset.package_root / item.path, item.path)

        for framework in frameworks:
            for transitive in (True, False):
                relative = write_targets(
                    root, targets_input(source, framework, transitive=transitive), self._environment
                )
                builder.add_file(root / relative, relative)
            make_lib_placeholder(root, framework)
        builder.add_directory(root / PLACEHOLDER_DIRECTORY)

        builder.write_nuspec(root)
        self.logger.info("Building package '%s'", builder.file_name)
        builder.write(self.config.paths.output)

    def _package_builder(self, source: PackageSource, version: str) -> NupkgBuilder:
        package = self.config.package
        release = source.release
        architectures = ", ".join(arch.msbuild_name for arch in source.architectures)
        builder = NupkgBuilder(
            package_id=source.package_id,
            version=version,
            description=(
                f"Binary assets for embedded FirebirdSQL {release.product.long_name} "
                f"({release.version}) {source.platform.display_name} {architectures}."
            ),
            authors=list(package.authors),
            tags=list(package.tags),
            license_url=package.license_url,
            project_url=package.project_url,
            readme=README_FILE_NAME,
            icon=f"icon{package.icon_file.suffix}" if package.icon_file else None,
        )
        manager = package.asset_manager
        minimum = manager.version or self.config.initial_version
        dependency_range = version_range(minimum.nuget_style(), minimum.next_major().nuget_style())
        for framework in package.target_frameworks:
            builder.add_dependency(framework, manager.package_id, dependency_range)
        return builder


def make_lib_placeholder(package_root: Path, framework: str) -> Path:
    """Create the empty ``_._`` marker so the package declares support for ``framework``."""
    directory = package_root / PLACEHOLDER_DIRECTORY / "lib" / framework
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / PLACEHOLDER_FILE_NAME
    path.touch()
    return path


__all__ = [
    "BuildArgs",
    "BuildManager",
    "calculate_package_release",
    "make_lib_placeholder",
]
