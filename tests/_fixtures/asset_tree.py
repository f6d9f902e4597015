"""Helpers for laying out release sources, manifests and configs in tests."""

from __future__ import annotations

import tarfile
import textwrap
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import yaml

from fbembed.build.metadata import PackageMetadata, save_metadata
from fbembed.build.structure import source_files
from fbembed.config import CONFIG_FILE_NAME, METADATA_FILE_NAME, BuildConfig, load_config
from fbembed.models import Architecture, Platform, ProductVersion

BUILD_DATE = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


class AssetTreeBuilder:
    """Writes fake native releases plus the files a build reads."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "workspace"
        self.root.mkdir()
        self.releases: List[Dict[str, Any]] = []

    def write_config(self, content: str = "") -> Path:
        path = self.root / CONFIG_FILE_NAME
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return path

    def add_release(
        self,
        product: str,
        version: str,
        assets: Sequence[Tuple[str, str]],
        *,
        notes: str = "",
        archive: bool = False,
    ) -> None:
        """Create source trees holding every packaged file for ``assets``."""
        entries: List[Dict[str, str]] = []
        for platform_name, arch_name in assets:
            name = f"Firebird-{version}-{platform_name}-{arch_name}"
            source = self.root / "sources" / product / name
            files = source_files(
                ProductVersion.parse(product),
                Platform.parse(platform_name),
                Architecture.parse(arch_name),
            )
            for relative, _ in files:
                path = source / relative
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(f"{product}:{platform_name}-{arch_name}:{relative}", encoding="utf-8")

            entry = {"platform": platform_name, "architecture": arch_name}
            if archive:
                archive_path = source.parent / f"{name}.tar.gz"
                with tarfile.open(archive_path, "w:gz") as handle:
                    handle.add(source, arcname=name)
                entry.update(source=str(archive_path.relative_to(self.root)), root=name)
            else:
                entry["source"] = str(source.relative_to(self.root))
            entries.append(entry)

        self.releases.append(
            {
                "product": product,
                "version": version,
                "notes": notes,
                "assets": entries,
            }
        )

    def write_manifest(self) -> Path:
        path = self.root / "releases.yml"
        path.write_text(yaml.safe_dump({"releases": self.releases}, sort_keys=False), encoding="utf-8")
        return path

    def init_metadata(self) -> Path:
        path = self.root / METADATA_FILE_NAME
        save_metadata(PackageMetadata(), path)
        return path

    def config(self) -> BuildConfig:
        config = load_config(self.root)
        config.build_date = BUILD_DATE
        return config

    def path(self, relative: str) -> Path:
        return self.root / relative


__all__ = ["AssetTreeBuilder", "BUILD_DATE"]
