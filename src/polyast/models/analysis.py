"""Analysis result entities.

This module contains the value objects produced by the orchestrator:
- ClassInfo / AsyncPatternInfo: Pattern extractor records
- FileAnalysis: One file's tree plus derived inventories
- FileFailure / FileResult: Per-slot outcome inside a batch
- ProjectAnalysis / ProjectFailure: One project manifest's aggregate
- SolutionAnalysis: One multi-project manifest's aggregate
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from polyast.models.ast import ASTNode


def _utc(value: datetime) -> datetime:
    """Ensure a timestamp is timezone-aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class ClassInfo:
    """Class-like declaration summary.

    Attributes:
        name: Declared name
        file_path: Source file
        line: 1-based line of the declaration
        modifiers: Modifier keywords in source order
        base_types: Base class / implemented interface names
        methods: Method names declared directly in the class body
        properties: Property names declared directly in the class body
    """

    name: str
    file_path: str
    line: int
    modifiers: list[str] = field(default_factory=list)
    base_types: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "file_path": self.file_path,
            "line": self.line,
            "modifiers": self.modifiers,
            "base_types": self.base_types,
            "methods": self.methods,
            "properties": self.properties,
        }


@dataclass
class AsyncPatternInfo:
    """Asynchronous-style method summary.

    Attributes:
        method_name: Method name
        return_type: Declared return type text
        await_count: Number of suspension points in the method body
        has_configure_await: Continuation scheduled without capturing context
        has_when_all: Waits for several concurrent operations
        has_when_any: Waits for the first of several operations
        file_path: Source file
        line: 1-based line of the declaration
    """

    method_name: str
    return_type: str
    await_count: int = 0
    has_configure_await: bool = False
    has_when_all: bool = False
    has_when_any: bool = False
    file_path: str = ""
    line: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "method_name": self.method_name,
            "return_type": self.return_type,
            "await_count": self.await_count,
            "has_configure_await": self.has_configure_await,
            "has_when_all": self.has_when_all,
            "has_when_any": self.has_when_any,
            "file_path": self.file_path,
            "line": self.line,
        }


@dataclass
class FileAnalysis:
    """One file's analysis result.

    Attributes:
        source_path: Path of the analyzed file
        language: Dialect that produced the tree
        root: Root of the generic tree (owned exclusively)
        generated_at: Generation timestamp
        classes: Class/struct/record names
        interfaces: Interface names
        methods: Method names
        enums: Enum names
        properties: Property names
        class_details: Per-class summaries
        async_patterns: Asynchronous method records
        test_classes: Classes recognized as test fixtures
        error_count: Number of recovered syntax errors in the tree
    """

    source_path: str
    language: str
    root: ASTNode
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    classes: list[str] = field(default_factory=list)
    interfaces: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)
    enums: list[str] = field(default_factory=list)
    properties: list[str] = field(default_factory=list)
    class_details: list[ClassInfo] = field(default_factory=list)
    async_patterns: list[AsyncPatternInfo] = field(default_factory=list)
    test_classes: list[ClassInfo] = field(default_factory=list)
    error_count: int = 0

    def __post_init__(self) -> None:
        self.generated_at = _utc(self.generated_at)

    @property
    def has_errors(self) -> bool:
        """Return True if the tree contains recovered syntax errors."""
        return self.error_count > 0

    def structurally_equals(self, other: "FileAnalysis") -> bool:
        """Compare two analyses ignoring the generation timestamp."""
        return self.root == other.root and self._summary() == other._summary()

    def _summary(self) -> dict[str, Any]:
        return {
            "source_path": self.source_path,
            "language": self.language,
            "classes": self.classes,
            "interfaces": self.interfaces,
            "methods": self.methods,
            "enums": self.enums,
            "properties": self.properties,
            "class_details": [c.to_dict() for c in self.class_details],
            "async_patterns": [p.to_dict() for p in self.async_patterns],
            "test_classes": [c.to_dict() for c in self.test_classes],
            "error_count": self.error_count,
        }

    def to_dict(self, include_timestamp: bool = True) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = self._summary()
        result["root"] = self.root.to_dict()
        if include_timestamp:
            result["generated_at"] = self.generated_at.isoformat()
        return result


@dataclass(frozen=True)
class FileFailure:
    """Error marker for a file that produced no analysis.

    Attributes:
        source_path: Path of the failed file
        error_type: "ParseError", "NotSupportedError" or "IOError"
        message: Human-readable reason
    """

    source_path: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source_path": self.source_path,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(frozen=True)
class FileResult:
    """Outcome of one manifest slot.

    Exactly one of ``analysis`` and ``failure`` is set.
    """

    index: int
    source_path: str
    analysis: FileAnalysis | None = None
    failure: FileFailure | None = None

    def __post_init__(self) -> None:
        if (self.analysis is None) == (self.failure is None):
            raise ValueError("FileResult needs exactly one of analysis or failure")

    @property
    def succeeded(self) -> bool:
        """Return True if the file was analyzed."""
        return self.analysis is not None


@dataclass(frozen=True)
class ProjectAnalysis:
    """Aggregate for one project manifest.

    Immutable once built by the orchestrator.

    Attributes:
        project_path: Manifest path
        project_name: Project name (manifest stem)
        generated_at: Generation timestamp
        files: Successful analyses in manifest order
        failures: Failed files in manifest order
        dependencies: External dependency identifiers
        test_classes: Test fixtures across all files
        async_patterns: Asynchronous methods across all files
        cancelled: True if the run stopped before every file was scheduled
    """

    project_path: str
    project_name: str
    generated_at: datetime
    files: tuple[FileAnalysis, ...] = ()
    failures: tuple[FileFailure, ...] = ()
    dependencies: tuple[str, ...] = ()
    test_classes: tuple[ClassInfo, ...] = ()
    async_patterns: tuple[AsyncPatternInfo, ...] = ()
    cancelled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "generated_at", _utc(self.generated_at))

    @property
    def file_count(self) -> int:
        """Number of manifest members processed (successes and failures)."""
        return len(self.files) + len(self.failures)

    @property
    def has_failures(self) -> bool:
        """Return True if any file failed."""
        return bool(self.failures)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "project_path": self.project_path,
            "project_name": self.project_name,
            "generated_at": self.generated_at.isoformat(),
            "files": [f.to_dict() for f in self.files],
            "failures": [f.to_dict() for f in self.failures],
            "dependencies": list(self.dependencies),
            "test_classes": [c.to_dict() for c in self.test_classes],
            "async_patterns": [p.to_dict() for p in self.async_patterns],
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True)
class ProjectFailure:
    """A solution member whose project manifest could not be read."""

    project_path: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"project_path": self.project_path, "message": self.message}


@dataclass(frozen=True)
class SolutionAnalysis:
    """Aggregate for one multi-project manifest.

    Attributes:
        solution_path: Manifest path
        solution_name: Solution name (manifest stem)
        generated_at: Generation timestamp
        projects: Project analyses in solution order
        failures: Projects whose manifests could not be read
        format_version: Solution file format version, if declared
        visual_studio_version: Declared tooling version, if any
        cancelled: True if the run stopped early
    """

    solution_path: str
    solution_name: str
    generated_at: datetime
    projects: tuple[ProjectAnalysis, ...] = ()
    failures: tuple[ProjectFailure, ...] = ()
    format_version: str | None = None
    visual_studio_version: str | None = None
    cancelled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "generated_at", _utc(self.generated_at))

    @property
    def has_failures(self) -> bool:
        """Return True if any project or file failed."""
        return bool(self.failures) or any(p.has_failures for p in self.projects)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "solution_path": self.solution_path,
            "solution_name": self.solution_name,
            "generated_at": self.generated_at.isoformat(),
            "format_version": self.format_version,
            "visual_studio_version": self.visual_studio_version,
            "projects": [p.to_dict() for p in self.projects],
            "failures": [f.to_dict() for f in self.failures],
            "cancelled": self.cancelled,
        }
