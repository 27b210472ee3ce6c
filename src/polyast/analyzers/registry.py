"""Analyzer registry for pluggable language dialects.

The registry keeps analyzers in registration order and resolves a path to
the first analyzer whose capabilities claim its extension. The order is part
of the contract: when two analyzers claim the same extension, the one
registered first wins, and ``candidates`` exposes the overlap for audits.

Adding a new dialect:
    1. Implement ``LanguageAnalyzer`` (usually via ``TreeSitterAnalyzer``)
    2. Give it a ``DialectVocabulary`` for the pattern extractors
    3. Register it in ``setup_default_analyzers``
    4. No changes needed to the rest of the codebase

The registry is frozen before any batch is dispatched, after which it is
shared between worker threads without locking.
"""

from pathlib import PurePath
from typing import Any

from polyast.analyzers.base import LanguageAnalyzer, NotSupportedError


class AnalyzerRegistry:
    """Ordered collection of language analyzers.

    Attributes:
        analyzers: Registered analyzers in resolution order
        frozen: True once ``freeze`` has been called
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._analyzers: list[LanguageAnalyzer] = []
        self._frozen = False

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, analyzer: LanguageAnalyzer) -> None:
        """Append an analyzer to the resolution order.

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: If an analyzer for the same language is registered
        """
        if self._frozen:
            raise RuntimeError("Analyzer registry is frozen; register analyzers at startup")
        if any(existing.language == analyzer.language for existing in self._analyzers):
            raise ValueError(f"Analyzer for '{analyzer.language}' already registered")
        self._analyzers.append(analyzer)

    def freeze(self) -> "AnalyzerRegistry":
        """Make the registry read-only. Idempotent."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def analyzers(self) -> tuple[LanguageAnalyzer, ...]:
        return tuple(self._analyzers)

    # =========================================================================
    # Resolution
    # =========================================================================

    def candidates(self, path: str | PurePath) -> list[LanguageAnalyzer]:
        """Return every analyzer claiming the path, in resolution order."""
        return [analyzer for analyzer in self._analyzers if analyzer.supports_file(path)]

    def resolve(self, path: str | PurePath) -> LanguageAnalyzer:
        """Get the analyzer for a source file.

        Raises:
            NotSupportedError: If no analyzer claims the extension
        """
        for analyzer in self._analyzers:
            if analyzer.supports_file(path):
                return analyzer
        available = sorted(self.supported_extensions())
        raise NotSupportedError(
            str(path),
            f"No analyzer supports '{PurePath(path).suffix or path}'. Available: {available}",
        )

    def resolve_project(self, path: str | PurePath) -> LanguageAnalyzer:
        """Get the analyzer owning a project manifest.

        Raises:
            NotSupportedError: If no analyzer claims the manifest
        """
        for analyzer in self._analyzers:
            if analyzer.supports_project(path):
                return analyzer
        raise NotSupportedError(str(path), f"No analyzer supports project: {path}")

    def is_supported(self, path: str | PurePath) -> bool:
        return any(analyzer.supports_file(path) for analyzer in self._analyzers)

    def is_project(self, path: str | PurePath) -> bool:
        return any(analyzer.supports_project(path) for analyzer in self._analyzers)

    # =========================================================================
    # Introspection
    # =========================================================================

    def supported_extensions(self) -> set[str]:
        """Union of all registered file extensions."""
        extensions: set[str] = set()
        for analyzer in self._analyzers:
            extensions.update(analyzer.capabilities.file_extensions)
        return extensions

    def list_languages(self) -> list[str]:
        """Registered language identifiers in resolution order."""
        return [analyzer.language for analyzer in self._analyzers]

    def get_metadata(self) -> dict[str, Any]:
        """Get registry metadata for logging and listings."""
        return {
            "frozen": self._frozen,
            "analyzers": [analyzer.get_metadata() for analyzer in self._analyzers],
        }


# Global registry instance
_registry: AnalyzerRegistry | None = None


def get_registry() -> AnalyzerRegistry:
    """Get the global analyzer registry instance."""
    global _registry
    if _registry is None:
        _registry = AnalyzerRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (primarily for testing)."""
    global _registry
    _registry = None
