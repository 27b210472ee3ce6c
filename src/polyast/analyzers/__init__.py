"""polyast analyzers - one per source dialect.

Analyzers:
- CSharpAnalyzer: C# sources via the tree-sitter csharp grammar
- JavaAnalyzer: Java sources via the tree-sitter java grammar
- RazorAnalyzer: Razor templates (html markup with embedded C#)

All analyzers emit generic ``ASTNode`` trees and are resolved by file
extension through the ``AnalyzerRegistry``.
"""

from polyast.analyzers.base import (
    DEFAULT_MAX_ERROR_RATIO,
    AnalyzerCapabilities,
    GrammarUnavailableError,
    LanguageAnalyzer,
    NotSupportedError,
    ParseError,
    PolyastError,
)
from polyast.analyzers.csharp import CSharpAnalyzer
from polyast.analyzers.java import JavaAnalyzer
from polyast.analyzers.razor import RazorAnalyzer
from polyast.analyzers.registry import AnalyzerRegistry, get_registry, reset_registry

__all__ = [
    "AnalyzerCapabilities",
    "AnalyzerRegistry",
    "CSharpAnalyzer",
    "DEFAULT_MAX_ERROR_RATIO",
    "GrammarUnavailableError",
    "JavaAnalyzer",
    "LanguageAnalyzer",
    "NotSupportedError",
    "ParseError",
    "PolyastError",
    "RazorAnalyzer",
    "get_registry",
    "reset_registry",
    "setup_default_analyzers",
]


def setup_default_analyzers(
    registry: AnalyzerRegistry | None = None,
    max_error_ratio: float = DEFAULT_MAX_ERROR_RATIO,
) -> AnalyzerRegistry:
    """Register the default analyzers in resolution order: C#, Java, Razor.

    Args:
        registry: Registry to populate (uses global if None)
        max_error_ratio: Error tolerance handed to every analyzer

    Returns:
        Populated AnalyzerRegistry
    """
    if registry is None:
        registry = get_registry()

    csharp = CSharpAnalyzer(max_error_ratio)
    registry.register(csharp)
    registry.register(JavaAnalyzer(max_error_ratio))
    registry.register(RazorAnalyzer(max_error_ratio, code_analyzer=csharp))

    return registry
