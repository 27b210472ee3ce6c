"""polyast data models.

- ASTNode: Generic tree node every analyzer emits
- FileAnalysis / FileResult / FileFailure: Per-file outcomes
- ProjectAnalysis / SolutionAnalysis: Aggregates built by the orchestrator
- ClassInfo / AsyncPatternInfo: Pattern extractor records
"""

from polyast.models.analysis import (
    AsyncPatternInfo,
    ClassInfo,
    FileAnalysis,
    FileFailure,
    FileResult,
    ProjectAnalysis,
    ProjectFailure,
    SolutionAnalysis,
)
from polyast.models.ast import ASTNode, PropertyValue

__all__ = [
    "ASTNode",
    "AsyncPatternInfo",
    "ClassInfo",
    "FileAnalysis",
    "FileFailure",
    "FileResult",
    "ProjectAnalysis",
    "ProjectFailure",
    "PropertyValue",
    "SolutionAnalysis",
]
