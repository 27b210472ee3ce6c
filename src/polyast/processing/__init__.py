"""Batch processing: manifests, bounded execution and orchestration."""

from polyast.processing.manifests import (
    ManifestError,
    ProjectManifest,
    SolutionManifest,
    SolutionProject,
    discover_sources,
    read_project_manifest,
    read_solution_manifest,
    read_source_text,
)
from polyast.processing.orchestrator import (
    GenerationOrchestrator,
    OrchestratorOptions,
    ProcessingMode,
)
from polyast.processing.pool import BoundedRun, CancellationToken, run_bounded, run_sequential

__all__ = [
    "BoundedRun",
    "CancellationToken",
    "GenerationOrchestrator",
    "ManifestError",
    "OrchestratorOptions",
    "ProcessingMode",
    "ProjectManifest",
    "SolutionManifest",
    "SolutionProject",
    "discover_sources",
    "read_project_manifest",
    "read_solution_manifest",
    "read_source_text",
    "run_bounded",
    "run_sequential",
]
