"""Render package READMEs and MSBuild targets from Jinja templates."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .releases import Asset, PackageDetails

TARGETS_EXTENSION = "targets"
README_FILE_NAME = "README.md"

_DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


@dataclass(frozen=True)
class ReadmeInput:
    """Values rendered into a package README."""

    version: str
    platform: str
    architectures: Tuple[str, ...]
    release_notes: str
    tag: str = ""
    release_date: str = ""


@dataclass(frozen=True)
class TargetAsset:
    """One architecture referenced by a targets file."""

    rid: str
    msbuild_architecture: str
    content_root: str


@dataclass(frozen=True)
class TargetsInput:
    """Values rendered into an MSBuild targets descriptor."""

    package_id: str
    framework: str
    product: str
    platform: str
    release_version: str
    assets: Tuple[TargetAsset, ...]
    transitive: bool

    @property
    def relative_path(self) -> str:
        folder = "buildTransitive" if self.transitive else "build"
        return f"{folder}/{self.framework}/{self.package_id}.{TARGETS_EXTENSION}"


@lru_cache(maxsize=None)
def create_environment(templates_dir: Optional[Path] = None) -> Environment:
    """Build a Jinja environment; user templates shadow the bundled ones."""
    directories = []
    if templates_dir is not None:
        directories.append(str(templates_dir))
    directories.append(str(_DEFAULT_TEMPLATES_DIR))
    loader = FileSystemLoader(directories)
    return Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def readme_input(source: Union[Asset, PackageDetails]) -> ReadmeInput:
    """Describe a single-architecture asset or a consolidated package."""
    return ReadmeInput(
        version=str(source.release.version),
        platform=source.platform.display_name,
        architectures=tuple(arch.msbuild_name for arch in source.architectures),
        release_notes=source.release.notes,
        tag=source.release.tag,
        release_date=(
            source.release.publish_date.strftime("%Y-%m-%d") if source.release.publish_date else ""
        ),
    )


def render_readme(data: ReadmeInput, environment: Optional[Environment] = None) -> str:
    env = environment or create_environment()
    rendered = env.get_template("readme.md.j2").render(
        version=data.version,
        platform=data.platform,
        architectures=list(data.architectures),
        release_notes=data.release_notes.strip(),
        tag=data.tag,
        release_date=data.release_date,
    )
    return rendered.strip() + "\n"


def write_readme(
    package_root: Path, data: ReadmeInput, environment: Optional[Environment] = None
) -> Path:
    """Render and write ``README.md`` under ``package_root``, replacing any previous file."""
    package_root.mkdir(parents=True, exist_ok=True)
    path = package_root / README_FILE_NAME
    path.write_text(render_readme(data, environment), encoding="utf-8")
    return path


def targets_input(
    source: Union[Asset, PackageDetails],
    framework: str,
    *,
    transitive: bool,
    assets: Optional[Sequence[Asset]] = None,
) -> TargetsInput:
    """Describe the targets file for ``source``.

    An ``Asset`` references only itself; a ``PackageDetails`` references every
    asset of its platform unless ``assets`` narrows the selection.
    """
    if assets is None:
        assets = [source] if isinstance(source, Asset) else source.assets
    return TargetsInput(
        package_id=source.package_id,
        framework=framework,
        product=source.release.product.value,
        platform=source.platform.display_name,
        release_version=str(source.release.version),
        assets=tuple(_target_assets(assets)),
        transitive=transitive,
    )


def render_targets(data: TargetsInput, environment: Optional[Environment] = None) -> str:
    env = environment or create_environment()
    return env.get_template("targets.xml.j2").render(
        package_id=data.package_id,
        framework=data.framework,
        product=data.product,
        platform=data.platform,
        release_version=data.release_version,
        assets=list(data.assets),
    )


def write_targets(
    package_root: Path, data: TargetsInput, environment: Optional[Environment] = None
) -> str:
    """Write the targets file and return its path relative to ``package_root``."""
    relative = data.relative_path
    path = package_root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_targets(data, environment), encoding="utf-8")
    return relative


def _target_assets(assets: Iterable[Asset]) -> Iterable[TargetAsset]:
    ordered = sorted(assets, key=lambda asset: asset.architecture.value)
    for asset in ordered:
        yield TargetAsset(
            rid=str(asset.rid),
            msbuild_architecture=asset.architecture.msbuild_name,
            content_root=asset.content_root,
        )


__all__ = [
    "README_FILE_NAME",
    "ReadmeInput",
    "TARGETS_EXTENSION",
    "TargetAsset",
    "TargetsInput",
    "create_environment",
    "readme_input",
    "render_readme",
    "render_targets",
    "targets_input",
    "write_readme",
    "write_targets",
]
