"""Build-time assembly of Firebird native asset NuGet packages."""

from .manager import BuildArgs, BuildManager, calculate_package_release
from .metadata import (
    PackageMetadata,
    PackageRelease,
    PackageReleaseHistory,
    load_metadata,
    save_metadata,
)
from .pipeline import PackagePipeline, PipelineState, ToolResult
from .publisher import PackagePublisher, PublishArgs
from .releases import Asset, FirebirdRelease, PackageDetails, load_release_manifest

__all__ = [
    "Asset",
    "BuildArgs",
    "BuildManager",
    "FirebirdRelease",
    "PackageDetails",
    "PackageMetadata",
    "PackagePipeline",
    "PackageRelease",
    "PackageReleaseHistory",
    "PackagePublisher",
    "PipelineState",
    "PublishArgs",
    "ToolResult",
    "calculate_package_release",
    "load_metadata",
    "load_release_manifest",
    "save_metadata",
]
