"""Configuration loading for fbembed (.fbembed.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .models import ProductVersion, ReleaseVersion

CONFIG_FILE_NAME = ".fbembed.yml"
METADATA_FILE_NAME = "package-metadata.json"


class BuildType(Enum):
    """How package versions move relative to the recorded metadata."""

    # Only build products with a new native release; bumps the package patch.
    NORMAL = "normal"
    # Rebuild every package from existing native releases; bumps the patch.
    REBUILD = "rebuild"
    # Rebuild at the existing version numbers (testing only).
    FORCE = "force"

    @classmethod
    def parse(cls, value: str) -> "BuildType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown build type: {value!r}") from None


@dataclass
class AssetManagerConfig:
    """Managed package every native-asset package depends on."""

    package_id: str = "FirebirdDb.Embedded.NativeAssetManager"
    version: Optional[ReleaseVersion] = None


@dataclass
class PackageConfig:
    """NuGet package identity and manifest fields."""

    prefix: Optional[str] = None
    default_prefix: str = "FirebirdDb"
    authors: List[str] = field(default_factory=lambda: ["fbembed"])
    tags: List[str] = field(
        default_factory=lambda: ["firebird", "firebirdsql", "native", "sql", "embedded"]
    )
    project_url: Optional[str] = None
    license_url: Optional[str] = "https://www.firebirdsql.org/en/licensing"
    target_frameworks: List[str] = field(default_factory=lambda: ["netstandard2.0", "net48"])
    license_file: Optional[Path] = None
    icon_file: Optional[Path] = None
    asset_manager: AssetManagerConfig = field(default_factory=AssetManagerConfig)

    def package_id(self, suffix: str) -> str:
        package_id = f"{self.default_prefix}.{suffix}"
        if self.prefix:
            package_id = f"{self.prefix}.{package_id}"
        return package_id


@dataclass
class PublishConfig:
    """NuGet feed that built packages are pushed to."""

    source: str = "https://api.nuget.org/v3/index.json"
    api_key_env: str = "NUGET_API_KEY"
    timeout: int = 300


@dataclass
class PathsConfig:
    """Absolute working locations for a build."""

    output: Path
    working: Path
    unpack: Path
    metadata: Path
    releases: Path


@dataclass
class BuildConfig:
    """Represents the settings defined in .fbembed.yml."""

    root: Path
    paths: PathsConfig
    package: PackageConfig = field(default_factory=PackageConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    build_type: BuildType = BuildType.NORMAL
    initial_version: ReleaseVersion = ReleaseVersion(1, 0, 0)
    products: List[ProductVersion] = field(default_factory=lambda: list(ProductVersion))
    build_date: datetime = field(default_factory=lambda: datetime.now(UTC))


def default_paths(root: Path) -> PathsConfig:
    return PathsConfig(
        output=root / "output",
        working=root / "build" / "packages",
        unpack=root / "build" / "unpacked",
        metadata=root / METADATA_FILE_NAME,
        releases=root / "releases.yml",
    )


def load_config(config_path: Path) -> BuildConfig:
    """Load configuration from disk; a missing file yields defaults rooted beside it."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return BuildConfig(root=root, paths=default_paths(root))

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")

    paths = default_paths(root)
    paths_data = _as_dict(data.get("paths"))
    for name in ("output", "working", "unpack", "metadata", "releases"):
        value = _as_str(paths_data.get(name))
        if value:
            setattr(paths, name, _rooted(root, value))

    package = PackageConfig()
    package_data = _as_dict(data.get("package"))
    if package_data:
        package.prefix = _as_str(package_data.get("prefix"))
        package.default_prefix = _as_str(package_data.get("default_prefix")) or package.default_prefix
        package.authors = _as_str_list(package_data.get("authors")) or package.authors
        package.tags = _as_str_list(package_data.get("tags")) or package.tags
        package.project_url = _as_str(package_data.get("project_url"))
        if "license_url" in package_data:
            package.license_url = _as_str(package_data.get("license_url"))
        package.target_frameworks = (
            _as_str_list(package_data.get("target_frameworks")) or package.target_frameworks
        )
        license_file = _as_str(package_data.get("license_file"))
        package.license_file = _rooted(root, license_file) if license_file else None
        icon_file = _as_str(package_data.get("icon_file"))
        package.icon_file = _rooted(root, icon_file) if icon_file else None

        manager_data = _as_dict(package_data.get("asset_manager"))
        if manager_data:
            manager = AssetManagerConfig()
            manager.package_id = _as_str(manager_data.get("id")) or manager.package_id
            manager_version = _as_str(manager_data.get("version"))
            if manager_version:
                manager.version = _as_version(manager_version, "package.asset_manager.version")
            package.asset_manager = manager

    config = BuildConfig(root=root, paths=paths, package=package)

    publish_data = _as_dict(data.get("publish"))
    if publish_data:
        publish = config.publish
        publish.source = _as_str(publish_data.get("source")) or publish.source
        publish.api_key_env = _as_str(publish_data.get("api_key_env")) or publish.api_key_env
        timeout = publish_data.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
                raise ConfigError(f"publish.timeout must be a positive integer, got {timeout!r}")
            publish.timeout = timeout

    build_data = _as_dict(data.get("build"))
    if build_data:
        build_type = _as_str(build_data.get("type"))
        if build_type:
            config.build_type = BuildType.parse(build_type)
        initial_version = _as_str(build_data.get("initial_version"))
        if initial_version:
            config.initial_version = _as_version(initial_version, "build.initial_version")
        products = _as_str_list(build_data.get("products"))
        if products:
            try:
                config.products = [ProductVersion.parse(item) for item in products]
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _rooted(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def _as_version(value: str, key: str) -> ReleaseVersion:
    version = ReleaseVersion.parse(value, nuget=True)
    if version is None:
        raise ConfigError(f"Invalid version for {key}: {value!r}")
    return version


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "AssetManagerConfig",
    "BuildConfig",
    "BuildType",
    "CONFIG_FILE_NAME",
    "ConfigError",
    "METADATA_FILE_NAME",
    "PackageConfig",
    "PathsConfig",
    "PublishConfig",
    "default_paths",
    "load_config",
]
