"""Write NuGet manifests and ``.nupkg`` archives without the dotnet toolchain."""

from __future__ import annotations

import posixpath
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

NUSPEC_NAMESPACE = "http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd"
CONTENT_TYPES_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/content-types"
RELATIONSHIPS_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/relationships"
MANIFEST_RELATIONSHIP = "http://schemas.microsoft.com/packaging/2010/07/manifest"

# Zip entries carry the earliest DOS timestamp so identical inputs give identical bytes.
_FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
_OCTET = "application/octet"
_RELATIONSHIPS_TYPE = "application/vnd.openxmlformats-package.relationships+xml"


@dataclass(frozen=True)
class Dependency:
    package_id: str
    version_range: str


@dataclass
class DependencyGroup:
    target_framework: str
    dependencies: List[Dependency] = field(default_factory=list)


@dataclass
class NupkgBuilder:
    """Collects manifest fields and payload files for one package."""

    package_id: str
    version: str
    description: str
    authors: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    license_url: Optional[str] = None
    project_url: Optional[str] = None
    readme: Optional[str] = None
    icon: Optional[str] = None
    dependency_groups: List[DependencyGroup] = field(default_factory=list)
    files: Dict[str, Path] = field(default_factory=dict)

    @property
    def file_name(self) -> str:
        return f"{self.package_id}.{self.version}.nupkg"

    @property
    def nuspec_name(self) -> str:
        return f"{self.package_id}.nuspec"

    def add_file(self, source: Path, target: str) -> None:
        target = _normalize_target(target)
        if target in self.files:
            raise ValueError(f"Duplicate package entry: {target}")
        self.files[target] = source

    def add_directory(self, root: Path, *, exclude: Iterable[str] = ()) -> None:
        """Add every file below ``root`` using its relative path as target."""
        skipped = {_normalize_target(item) for item in exclude}
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            target = path.relative_to(root).as_posix()
            if target in skipped:
                continue
            self.add_file(path, target)

    def add_dependency(self, target_framework: str, package_id: str, version_range: str) -> None:
        for group in self.dependency_groups:
            if group.target_framework == target_framework:
                group.dependencies.append(Dependency(package_id, version_range))
                return
        self.dependency_groups.append(
            DependencyGroup(target_framework, [Dependency(package_id, version_range)])
        )

    def nuspec_xml(self) -> bytes:
        package = ET.Element("package", xmlns=NUSPEC_NAMESPACE)
        metadata = ET.SubElement(package, "metadata")
        _text(metadata, "id", self.package_id)
        _text(metadata, "version", self.version)
        _text(metadata, "authors", ", ".join(self.authors) or self.package_id)
        _text(metadata, "description", self.description)
        _text(metadata, "requireLicenseAcceptance", "false")
        if self.license_url:
            _text(metadata, "licenseUrl", self.license_url)
        if self.project_url:
            _text(metadata, "projectUrl", self.project_url)
        if self.readme:
            _text(metadata, "readme", self.readme)
        if self.icon:
            _text(metadata, "icon", self.icon)
        if self.tags:
            _text(metadata, "tags", " ".join(self.tags))
        if self.dependency_groups:
            dependencies = ET.SubElement(metadata, "dependencies")
            for group in self.dependency_groups:
                element = ET.SubElement(
                    dependencies, "group", targetFramework=group.target_framework
                )
                for dependency in group.dependencies:
                    ET.SubElement(
                        element,
                        "dependency",
                        id=dependency.package_id,
                        version=dependency.version_range,
                        exclude="Build,Analyzers",
                    )
        return _serialize(package)

    def content_types_xml(self) -> bytes:
        types = ET.Element("Types", xmlns=CONTENT_TYPES_NAMESPACE)
        ET.SubElement(types, "Default", Extension="rels", ContentType=_RELATIONSHIPS_TYPE)
        extensions = {"nuspec"}
        overrides: List[str] = []
        for target in self.files:
            extension = posixpath.splitext(target)[1][1:].lower()
            if extension:
                extensions.add(extension)
            else:
                overrides.append(target)
        for extension in sorted(extensions - {"rels"}):
            ET.SubElement(types, "Default", Extension=extension, ContentType=_OCTET)
        for target in sorted(overrides):
            ET.SubElement(types, "Override", PartName=f"/{target}", ContentType=_OCTET)
        return _serialize(types)

    def relationships_xml(self) -> bytes:
        relationships = ET.Element("Relationships", xmlns=RELATIONSHIPS_NAMESPACE)
        ET.SubElement(
            relationships,
            "Relationship",
            Type=MANIFEST_RELATIONSHIP,
            Target=f"/{self.nuspec_name}",
            Id="manifest",
        )
        return _serialize(relationships)

    def write_nuspec(self, directory: Path) -> Path:
        path = directory / self.nuspec_name
        path.write_bytes(self.nuspec_xml())
        return path

    def write(self, output_dir: Path) -> Path:
        """Write ``{id}.{version}.nupkg`` into ``output_dir`` and return its path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.file_name
        entries: List[Tuple[str, bytes]] = [
            ("[Content_Types].xml", self.content_types_xml()),
            ("_rels/.rels", self.relationships_xml()),
            (self.nuspec_name, self.nuspec_xml()),
        ]
        for target in sorted(self.files):
            if target == self.nuspec_name:
                continue
            entries.append((target, self.files[target].read_bytes()))

        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, payload in entries:
                info = zipfile.ZipInfo(name, date_time=_FIXED_TIMESTAMP)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, payload)
        return path


def version_range(minimum: str, maximum: str) -> str:
    return f"[{minimum}, {maximum})"


def _text(parent: ET.Element, tag: str, value: str) -> None:
    ET.SubElement(parent, tag).text = value


def _serialize(element: ET.Element) -> bytes:
    ET.indent(element)
    return ET.tostring(element, encoding="utf-8", xml_declaration=True) + b"\n"


def _normalize_target(target: str) -> str:
    normalized = posixpath.normpath(target.replace("\\", "/")).lstrip("/")
    if normalized.startswith("../") or normalized in {"", ".", ".."}:
        raise ValueError(f"Invalid package entry: {target!r}")
    return normalized


__all__ = [
    "Dependency",
    "DependencyGroup",
    "NupkgBuilder",
    "version_range",
]
