"""Source, project and solution manifest readers.

Supports:
- Source files: UTF-8 text with an optional byte-order mark
- MSBuild projects (.csproj, .vbproj, .fsproj, .proj): SDK-style and legacy
- Maven projects (pom.xml)
- Visual Studio solutions (.sln)

Manifest members are returned in manifest order. Paths are absolute.
"""

import os
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from polyast.analyzers.base import PolyastError
from polyast.config import DEFAULT_EXCLUDE_DIRS
from polyast.utils.logging import get_logger

_logger = get_logger(__name__)

MSBUILD_SUFFIXES = (".csproj", ".vbproj", ".fsproj", ".proj")
MSBUILD_SOURCE_EXTENSIONS = frozenset({".cs", ".cshtml", ".razor"})
MSBUILD_ITEM_TYPES = ("Compile", "Content", "None")
MAVEN_SOURCE_EXTENSIONS = frozenset({".java"})
MAVEN_SOURCE_ROOTS = ("src/main/java", "src/test/java")

SOLUTION_PROJECT = re.compile(
    r'^Project\("\{(?P<type>[^}]+)\}"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*'
    r'"(?P<path>[^"]*)"\s*,\s*"\{(?P<guid>[^}]+)\}"',
    re.MULTILINE,
)
SOLUTION_FORMAT = re.compile(r"Microsoft Visual Studio Solution File, Format Version\s+(\S+)")
SOLUTION_VS_COMMENT = re.compile(r"^#\s*Visual Studio(?: Version)?\s+(\S+)", re.MULTILINE)
SOLUTION_VS_PROPERTY = re.compile(r"^VisualStudioVersion\s*=\s*(\S+)", re.MULTILINE)


class ManifestError(PolyastError):
    """Raised when a project or solution manifest cannot be read."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Cannot read manifest {path}: {message}")


@dataclass(frozen=True)
class ProjectManifest:
    """Members and dependencies of one project.

    Attributes:
        path: Manifest path
        name: Project name
        kind: "msbuild" or "maven"
        files: Member source files in manifest order
        dependencies: External dependency identifiers
    """

    path: Path
    name: str
    kind: str
    files: tuple[Path, ...] = ()
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class SolutionProject:
    """One ``Project(...)`` entry of a solution."""

    name: str
    path: Path
    type_guid: str
    project_guid: str


@dataclass(frozen=True)
class SolutionManifest:
    """Projects of one solution in declaration order."""

    path: Path
    name: str
    projects: tuple[SolutionProject, ...] = ()
    format_version: str | None = None
    visual_studio_version: str | None = None


# =============================================================================
# Source files
# =============================================================================


def read_source_text(path: Path) -> str:
    """Read a source file as UTF-8, dropping a leading byte-order mark.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the content is not UTF-8
    """
    return Path(path).read_bytes().decode("utf-8-sig")


def discover_sources(
    directory: Path,
    extensions: Iterable[str],
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> list[Path]:
    """Find files with the given extensions under a directory.

    Excluded directory names are pruned at any depth. Results are sorted by
    relative path so discovery order is deterministic.
    """
    wanted = {ext.lower() for ext in extensions}
    excluded = set(exclude_dirs)
    root = Path(directory)
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if name not in excluded]
        current = Path(dirpath)
        for filename in filenames:
            path = current / filename
            if path.suffix.lower() in wanted and path.is_file():
                found.append(path)
    return sorted(found, key=lambda p: p.relative_to(root).as_posix())


# =============================================================================
# Project manifests
# =============================================================================


def read_project_manifest(
    path: Path,
    supported_extensions: Iterable[str],
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> ProjectManifest:
    """Read a project manifest.

    Args:
        path: MSBuild project file or Maven pom.xml
        supported_extensions: Extensions some analyzer handles
        exclude_dirs: Directory names skipped by implicit globs

    Raises:
        ManifestError: If the manifest is missing, malformed or of unknown kind
    """
    path = Path(path).resolve()
    supported = {ext.lower() for ext in supported_extensions}
    root = _parse_xml(path)

    if path.name.lower() == "pom.xml":
        return _read_maven(path, root, supported, exclude_dirs)
    if path.suffix.lower() in MSBUILD_SUFFIXES:
        return _read_msbuild(path, root, supported, exclude_dirs)
    raise ManifestError(str(path), "unknown project manifest type")


def _parse_xml(path: Path) -> ET.Element:
    try:
        content = path.read_bytes()
    except OSError as e:
        raise ManifestError(str(path), str(e)) from e
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise ManifestError(str(path), f"invalid XML: {e}") from e


def _local(tag: str) -> str:
    """Element name without its XML namespace."""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _iter_named(root: ET.Element, name: str) -> list[ET.Element]:
    return [element for element in root.iter() if _local(element.tag) == name]


def _split_items(value: str) -> list[str]:
    """Split an MSBuild item list, normalizing path separators."""
    return [item.strip().replace("\\", "/") for item in value.split(";") if item.strip()]


def _expand(directory: Path, pattern: str) -> list[Path]:
    if any(ch in pattern for ch in "*?["):
        return sorted(p for p in directory.glob(pattern) if p.is_file())
    return [directory / pattern]


def _read_msbuild(
    path: Path,
    root: ET.Element,
    supported: set[str],
    exclude_dirs: Iterable[str],
) -> ProjectManifest:
    directory = path.parent
    extensions = MSBUILD_SOURCE_EXTENSIONS & supported
    files: list[Path] = []

    if root.get("Sdk") or _children(root, "Sdk"):
        files.extend(discover_sources(directory, extensions, exclude_dirs))

    removed: set[Path] = set()
    for item_type in MSBUILD_ITEM_TYPES:
        for item in _iter_named(root, item_type):
            for pattern in _split_items(item.get("Remove", "")):
                removed.update(p.resolve() for p in _expand(directory, pattern))
            for pattern in _split_items(item.get("Include", "")):
                for member in _expand(directory, pattern):
                    if member.suffix.lower() in extensions:
                        files.append(member)

    ordered: list[Path] = []
    seen: set[Path] = set()
    for member in files:
        resolved = member.resolve()
        if resolved in removed or resolved in seen:
            continue
        seen.add(resolved)
        ordered.append(resolved)

    dependencies: list[str] = []
    for reference in _iter_named(root, "PackageReference"):
        name = reference.get("Include") or reference.get("Update")
        if not name:
            continue
        version = reference.get("Version") or _child_text(reference, "Version")
        dependencies.append(f"{name}@{version}" if version else name)
    for reference in _iter_named(root, "ProjectReference"):
        include = reference.get("Include")
        if include:
            stem = Path(include.replace("\\", "/")).stem
            dependencies.append(f"project:{stem}")
    for reference in _iter_named(root, "Reference"):
        include = reference.get("Include")
        if include:
            dependencies.append(f"assembly:{include.split(',', 1)[0].strip()}")

    _logger.debug(f"Read {path.name}: {len(ordered)} files, {len(dependencies)} dependencies")
    return ProjectManifest(
        path=path,
        name=path.stem,
        kind="msbuild",
        files=tuple(ordered),
        dependencies=tuple(dependencies),
    )


def _read_maven(
    path: Path,
    root: ET.Element,
    supported: set[str],
    exclude_dirs: Iterable[str],
) -> ProjectManifest:
    directory = path.parent
    extensions = MAVEN_SOURCE_EXTENSIONS & supported

    source_roots = [directory / r for r in MAVEN_SOURCE_ROOTS if (directory / r).is_dir()]
    if not source_roots:
        source_roots = [directory]
    files = [
        member.resolve()
        for source_root in source_roots
        for member in discover_sources(source_root, extensions, exclude_dirs)
    ]

    dependencies = []
    for section in _children(root, "dependencies"):
        for dependency in _children(section, "dependency"):
            group_id = _child_text(dependency, "groupId")
            artifact_id = _child_text(dependency, "artifactId")
            if not group_id or not artifact_id:
                continue
            version = _child_text(dependency, "version")
            name = f"{group_id}:{artifact_id}"
            dependencies.append(f"{name}@{version}" if version else name)

    name = _child_text(root, "artifactId") or directory.name
    _logger.debug(f"Read {path}: {len(files)} files, {len(dependencies)} dependencies")
    return ProjectManifest(
        path=path,
        name=name,
        kind="maven",
        files=tuple(files),
        dependencies=tuple(dependencies),
    )


# =============================================================================
# Solution manifests
# =============================================================================


def is_project_path(path: str) -> bool:
    lowered = path.lower()
    return lowered.endswith(MSBUILD_SUFFIXES) or lowered.endswith("pom.xml")


def read_solution_manifest(path: Path) -> SolutionManifest:
    """Read a Visual Studio solution file.

    Solution folders and other non-project entries are skipped.

    Raises:
        ManifestError: If the file cannot be read or declares no format
    """
    path = Path(path).resolve()
    try:
        content = path.read_bytes().decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(str(path), str(e)) from e

    format_match = SOLUTION_FORMAT.search(content)
    if format_match is None and SOLUTION_PROJECT.search(content) is None:
        raise ManifestError(str(path), "not a solution file")

    vs_match = SOLUTION_VS_COMMENT.search(content) or SOLUTION_VS_PROPERTY.search(content)

    projects = []
    for match in SOLUTION_PROJECT.finditer(content):
        relative = match.group("path").replace("\\", "/")
        if not is_project_path(relative):
            continue
        projects.append(
            SolutionProject(
                name=match.group("name"),
                path=(path.parent / relative).resolve(),
                type_guid=match.group("type").upper(),
                project_guid=match.group("guid").upper(),
            )
        )

    return SolutionManifest(
        path=path,
        name=path.stem,
        projects=tuple(projects),
        format_version=format_match.group(1) if format_match else None,
        visual_studio_version=vs_match.group(1) if vs_match else None,
    )

