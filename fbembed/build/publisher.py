"""Push built packages to a NuGet feed and record when each was published."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import BuildConfig
from ..errors import UnsupportedPlatformError
from ..models import Platform, ProductVersion, ReleaseVersion, Rid
from .metadata import PackageRelease
from .pipeline import PackagePipeline

_PACKAGE_FILE_RE = re.compile(
    r"\.(?P<product>V\d)\.NativeAssets\.(?P<platform>[^.]+)\.(?P<arch>[^.]+)"
    r"\.(?P<version>\d+\.\d+\.\d+)\.nupkg$"
)

CommandRunner = Callable[[Sequence[str]], None]


@dataclass(frozen=True)
class PackageFileInfo:
    """Identity of a built ``.nupkg`` recovered from its file name."""

    path: Path
    product: ProductVersion
    rid: Rid
    package_version: ReleaseVersion

    @property
    def name(self) -> str:
        return self.path.stem

    @classmethod
    def parse(cls, path: Path) -> "PackageFileInfo":
        match = _PACKAGE_FILE_RE.search(path.name)
        if match is None:
            raise ValueError(f"Invalid package file name '{path.name}'")
        package_version = ReleaseVersion.parse(match.group("version"), nuget=True)
        try:
            product = ProductVersion.parse(match.group("product"))
            platform = Platform.parse(match.group("platform"))
            arch = match.group("arch")
            rid = Rid(platform) if arch == "All" else Rid.parse(f"{platform.value}-{arch}")
        except (ValueError, UnsupportedPlatformError) as exc:
            raise ValueError(f"Invalid package file name '{path.name}': {exc}") from exc
        if package_version is None:
            raise ValueError(f"Invalid package file name '{path.name}'")
        return cls(path, product, rid, package_version)


@dataclass
class PublishArgs:
    """Per-run options; ``None`` fields fall back to the configuration."""

    force: bool = False
    source: Optional[str] = None
    api_key: Optional[str] = None


def run_command(command: Sequence[str]) -> None:
    subprocess.run(list(command), check=True)


class PackagePublisher(PackagePipeline[PublishArgs]):
    """Pushes packages from the output directory and stamps their publish dates."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        runner: CommandRunner = run_command,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        super().__init__(config)
        self._runner = runner
        self._clock = clock

    def execute(self, args: PublishArgs) -> bool:
        publish = self.config.publish
        source = args.source or publish.source
        api_key = args.api_key or os.environ.get(publish.api_key_env)
        if args.force:
            self.logger.warning("Force publish enabled")

        try:
            packages = self.find_packages(force=args.force)
        except ValueError as exc:
            self.logger.error("%s", exc)
            return False
        if not packages:
            self.logger.info("No unpublished packages found, nothing to publish.")
            return True

        published = 0
        failed = 0
        for package, release in packages:
            # macOS packages are built for inspection but not pushed.
            if package.rid.platform is Platform.OSX:
                self.logger.warning("Skipping macOS package '%s'", package.name)
                continue
            self.logger.info("Publishing package '%s'", package.name)
            started = self._clock()
            try:
                self._runner(self.push_command(package.path, source, api_key))
            except (subprocess.CalledProcessError, OSError) as exc:
                self.logger.error("Publishing package '%s' failed: %s", package.name, exc)
                failed += 1
                continue
            finished = self._clock()
            release.publish_date = finished
            published += 1
            self.logger.info(
                "Published '%s' in %d seconds",
                package.name,
                int((finished - started).total_seconds()),
            )

        if failed:
            self.logger.warning(
                "Publish completed with %d successful and %d failed packages.", published, failed
            )
            return False
        self.logger.info("Published %d packages successfully.", published)
        return True

    def find_packages(self, *, force: bool = False) -> List[Tuple[PackageFileInfo, PackageRelease]]:
        """Pair each ``.nupkg`` in the output directory with its recorded release.

        Packages already carrying a publish date are left out unless ``force``.
        """
        output = self.config.paths.output
        if not output.is_dir():
            return []
        selected: List[Tuple[PackageFileInfo, PackageRelease]] = []
        for path in sorted(output.glob("*.nupkg")):
            package = PackageFileInfo.parse(path)
            release = self.metadata.find_release(package.product, package.package_version, package.rid)
            if release is None:
                raise ValueError(f"No release found for package '{package.name}'")
            if force or release.publish_date is None:
                selected.append((package, release))
        return selected

    def push_command(self, package: Path, source: str, api_key: Optional[str]) -> List[str]:
        command = [
            "dotnet",
            "nuget",
            "push",
            str(package),
            "--source",
            source,
            "--timeout",
            str(self.config.publish.timeout),
            "--skip-duplicate",
        ]
        if api_key:
            command.extend(["--api-key", api_key])
        return command


__all__ = [
    "PackageFileInfo",
    "PackagePublisher",
    "PublishArgs",
    "run_command",
]
