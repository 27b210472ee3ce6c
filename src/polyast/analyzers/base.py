"""Abstract base class for language analyzers.

All analyzers MUST implement this interface. Each analyzer:
1. Declares the file and project extensions it handles
2. Parses source text into a generic ``ASTNode`` tree
3. Runs the pattern extractors with its dialect vocabulary
4. Raises ``ParseError`` for input it cannot parse at all

Adding a new dialect MUST NOT require changes outside its analyzer module
and the default registration list.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Any

from polyast.extractors import (
    DialectVocabulary,
    extract_async_patterns,
    extract_declarations,
    extract_test_classes,
)
from polyast.models.analysis import FileAnalysis
from polyast.models.ast import ASTNode

DEFAULT_MAX_ERROR_RATIO = 0.5


@dataclass(frozen=True)
class AnalyzerCapabilities:
    """What an analyzer handles.

    Attributes:
        language: Dialect identifier (e.g. "csharp")
        file_extensions: Lower-case source extensions including the dot
        project_extensions: Lower-case project manifest extensions or file names
        root_type: ``node_type`` of every root this analyzer produces
        name: Display name
        description: One-line summary for listings
    """

    language: str
    file_extensions: frozenset[str]
    project_extensions: frozenset[str] = frozenset()
    root_type: str = ""
    name: str = ""
    description: str = ""

    def supports_file(self, path: str | PurePath) -> bool:
        return PurePath(path).suffix.lower() in self.file_extensions

    def supports_project(self, path: str | PurePath) -> bool:
        pure = PurePath(path)
        return (
            pure.suffix.lower() in self.project_extensions
            or pure.name.lower() in self.project_extensions
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name or self.language,
            "language": self.language,
            "description": self.description,
            "file_extensions": sorted(self.file_extensions),
            "project_extensions": sorted(self.project_extensions),
            "root_type": self.root_type,
        }


class LanguageAnalyzer(ABC):
    """Abstract interface for pluggable language analyzers.

    Implementations hold no per-file state: one instance may analyze many
    files concurrently.

    Attributes:
        capabilities: Extensions and root type handled
        vocabulary: Node vocabulary handed to the pattern extractors
        max_error_ratio: Share of non-whitespace source covered by error
            nodes above which a file is rejected (0.0 rejects any error)
    """

    capabilities: AnalyzerCapabilities
    vocabulary: DialectVocabulary

    def __init__(self, max_error_ratio: float = DEFAULT_MAX_ERROR_RATIO) -> None:
        if not 0.0 <= max_error_ratio <= 1.0:
            raise ValueError(f"max_error_ratio must be within [0, 1], got {max_error_ratio}")
        self.max_error_ratio = max_error_ratio

    @property
    def language(self) -> str:
        return self.capabilities.language

    def supports_file(self, path: str | PurePath) -> bool:
        """Return True if the file extension belongs to this dialect."""
        return self.capabilities.supports_file(path)

    def supports_project(self, path: str | PurePath) -> bool:
        """Return True if the project manifest belongs to this dialect."""
        return self.capabilities.supports_project(path)

    @abstractmethod
    def build_tree(self, path: str, source: bytes) -> tuple[ASTNode, int]:
        """Parse source bytes into a generic tree.

        Args:
            path: Source path (for error messages only)
            source: UTF-8 encoded source

        Returns:
            Tuple of (root node, number of recovered syntax errors)

        Raises:
            ParseError: If the source cannot be parsed
            GrammarUnavailableError: If the grammar cannot be loaded
        """

    def analyze_file(self, path: str | PurePath, source_text: str) -> FileAnalysis:
        """Produce the file analysis for already-read source text.

        Raises:
            NotSupportedError: If the extension belongs to another dialect
            ParseError: If the source cannot be parsed
        """
        file_path = str(path)
        if not self.supports_file(file_path):
            raise NotSupportedError(file_path, f"{self.language} analyzer does not handle {file_path}")

        root, error_count = self.build_tree(file_path, source_text.encode("utf-8"))
        declarations = extract_declarations(root, self.vocabulary, file_path)
        return FileAnalysis(
            source_path=file_path,
            language=self.language,
            root=root,
            generated_at=datetime.now(UTC),
            classes=declarations.classes,
            interfaces=declarations.interfaces,
            methods=declarations.methods,
            enums=declarations.enums,
            properties=declarations.properties,
            class_details=declarations.class_details,
            async_patterns=extract_async_patterns(root, self.vocabulary, file_path),
            test_classes=extract_test_classes(root, self.vocabulary, file_path),
            error_count=error_count,
        )

    def get_metadata(self) -> dict[str, Any]:
        """Get analyzer metadata for logging and listing."""
        return {**self.capabilities.to_dict(), "max_error_ratio": self.max_error_ratio}


class PolyastError(Exception):
    """Base class for all polyast errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotSupportedError(PolyastError):
    """Raised when no analyzer handles a file or project extension."""

    def __init__(self, path: str, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"No analyzer supports: {path}")


class ParseError(PolyastError):
    """Raised when a source file cannot be parsed."""

    def __init__(self, path: str, message: str, error_ratio: float | None = None) -> None:
        self.path = path
        self.error_ratio = error_ratio
        super().__init__(f"Failed to parse {path}: {message}")


class GrammarUnavailableError(PolyastError):
    """Raised when a tree-sitter grammar cannot be loaded."""

    def __init__(self, language: str, message: str | None = None) -> None:
        self.language = language
        super().__init__(message or f"Grammar not available: {language}")
