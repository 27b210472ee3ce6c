"""Generation orchestrator.

Coordinates analyzers over files, projects and solutions:
1. Resolve each file to an analyzer through the frozen registry
2. Read the source text and analyze it, capturing per-file failures as data
3. Run the jobs sequentially or on a bounded pool
4. Restore manifest order and fold the results into aggregates

Per-file errors (unsupported extension, unreadable file, unparseable source)
never abort a batch. Anything else raised by an analyzer is a programming or
environment error and propagates.
"""

import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from polyast.analyzers import (
    AnalyzerRegistry,
    NotSupportedError,
    ParseError,
    get_registry,
    setup_default_analyzers,
)
from polyast.config import DEFAULT_EXCLUDE_DIRS, PolyastConfig
from polyast.models.analysis import (
    FileFailure,
    FileResult,
    ProjectAnalysis,
    ProjectFailure,
    SolutionAnalysis,
)
from polyast.processing.manifests import (
    ManifestError,
    ProjectManifest,
    discover_sources,
    read_project_manifest,
    read_solution_manifest,
    read_source_text,
)
from polyast.processing.pool import BoundedRun, CancellationToken, run_bounded, run_sequential

logger = logging.getLogger(__name__)

SourceReader = Callable[[Path], str]


class ProcessingMode(str, Enum):
    """How a batch of files is executed."""

    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


@dataclass
class OrchestratorOptions:
    """Options for controlling batch execution.

    Attributes:
        mode: Sequential or concurrent execution
        max_concurrency: Maximum files in flight (None = CPU count)
        exclude_dirs: Directory names skipped when globbing for sources
    """

    mode: ProcessingMode = ProcessingMode.CONCURRENT
    max_concurrency: int | None = None
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))

    def __post_init__(self) -> None:
        self.mode = ProcessingMode(self.mode)
        if self.max_concurrency is None:
            self.max_concurrency = os.cpu_count() or 1
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {self.max_concurrency}")

    @classmethod
    def from_config(cls, config: PolyastConfig) -> "OrchestratorOptions":
        return cls(
            mode=ProcessingMode(config.processing.mode),
            max_concurrency=config.processing.max_concurrency,
            exclude_dirs=list(config.discovery.exclude_dirs),
        )


@dataclass(frozen=True)
class _Job:
    """One file slot inside a batch."""

    index: int
    path: Path


class GenerationOrchestrator:
    """Runs analyzers over batches and builds aggregate analyses.

    The registry is frozen on construction and shared by all worker threads.
    """

    def __init__(
        self,
        registry: AnalyzerRegistry | None = None,
        options: OrchestratorOptions | None = None,
        reader: SourceReader = read_source_text,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            registry: Analyzer registry (global default registry if None)
            options: Execution options (defaults if None)
            reader: Source file reader
        """
        if registry is None:
            registry = get_registry()
            if not registry.analyzers:
                setup_default_analyzers(registry)
        self.registry = registry.freeze()
        self.options = options or OrchestratorOptions()
        self._reader = reader

    # =========================================================================
    # Files
    # =========================================================================

    def analyze_file(self, path: Path) -> FileResult:
        """Analyze one file; failures are returned, not raised."""
        return self._analyze_slot(_Job(0, Path(path)))

    def analyze_files(
        self,
        paths: Sequence[Path],
        cancellation: CancellationToken | None = None,
    ) -> list[FileResult]:
        """Analyze files and return results in input order.

        Files left unscheduled by a cancellation are omitted.
        """
        return self._run([Path(p) for p in paths], cancellation).ordered()

    def _analyze_slot(self, job: _Job) -> FileResult:
        path = job.path
        try:
            analyzer = self.registry.resolve(path)
        except NotSupportedError as e:
            return self._failure(job, "NotSupportedError", e.message)

        try:
            source_text = self._reader(path)
        except (OSError, UnicodeDecodeError) as e:
            return self._failure(job, "IOError", str(e))

        try:
            analysis = analyzer.analyze_file(path, source_text)
        except ParseError as e:
            return self._failure(job, "ParseError", e.message)

        logger.debug(f"Analyzed {path} ({analysis.language}, {analysis.root.node_count} nodes)")
        return FileResult(index=job.index, source_path=str(path), analysis=analysis)

    def _failure(self, job: _Job, error_type: str, message: str) -> FileResult:
        logger.warning(f"{error_type} for {job.path}: {message}")
        return FileResult(
            index=job.index,
            source_path=str(job.path),
            failure=FileFailure(
                source_path=str(job.path), error_type=error_type, message=message
            ),
        )

    def _run(
        self,
        paths: Sequence[Path],
        cancellation: CancellationToken | None,
    ) -> BoundedRun[FileResult]:
        jobs = [
            (lambda job=_Job(index, path): self._analyze_slot(job))
            for index, path in enumerate(paths)
        ]
        if self.options.mode is ProcessingMode.SEQUENTIAL:
            return run_sequential(jobs, cancellation)
        return run_bounded(jobs, self.options.max_concurrency or 1, cancellation)

    # =========================================================================
    # Projects
    # =========================================================================

    def _read_project(self, manifest_path: Path) -> ProjectManifest:
        return read_project_manifest(
            manifest_path,
            self.registry.supported_extensions(),
            self.options.exclude_dirs,
        )

    def analyze_project(
        self,
        manifest_path: Path,
        cancellation: CancellationToken | None = None,
    ) -> ProjectAnalysis:
        """Analyze every member of a project manifest.

        Raises:
            ManifestError: If the manifest cannot be read
        """
        manifest = self._read_project(Path(manifest_path))
        logger.info(f"Analyzing project {manifest.name} ({len(manifest.files)} files)")
        run = self._run(manifest.files, cancellation)
        return self._fold_project(
            project_path=str(manifest.path),
            project_name=manifest.name,
            results=run.ordered(),
            dependencies=manifest.dependencies,
            cancelled=run.cancelled,
        )

    def _fold_project(
        self,
        project_path: str,
        project_name: str,
        results: Sequence[FileResult],
        dependencies: Sequence[str] = (),
        cancelled: bool = False,
    ) -> ProjectAnalysis:
        files = [r.analysis for r in results if r.analysis is not None]
        failures = [r.failure for r in results if r.failure is not None]
        return ProjectAnalysis(
            project_path=project_path,
            project_name=project_name,
            generated_at=datetime.now(UTC),
            files=tuple(files),
            failures=tuple(failures),
            dependencies=tuple(dependencies),
            test_classes=tuple(c for f in files for c in f.test_classes),
            async_patterns=tuple(p for f in files for p in f.async_patterns),
            cancelled=cancelled,
        )

    # =========================================================================
    # Solutions
    # =========================================================================

    def analyze_solution(
        self,
        manifest_path: Path,
        cancellation: CancellationToken | None = None,
    ) -> SolutionAnalysis:
        """Analyze every project of a solution under one concurrency bound.

        Member projects whose manifests cannot be read are recorded as
        ProjectFailure entries.

        Raises:
            ManifestError: If the solution file itself cannot be read
        """
        solution = read_solution_manifest(Path(manifest_path))

        manifests: list[ProjectManifest] = []
        project_failures: list[ProjectFailure] = []
        for project in solution.projects:
            try:
                manifests.append(self._read_project(project.path))
            except ManifestError as e:
                logger.warning(f"Skipping project {project.name}: {e.message}")
                project_failures.append(
                    ProjectFailure(project_path=str(project.path), message=e.message)
                )

        # Flatten every project's files into one job list, then regroup
        owners: list[int] = []
        paths: list[Path] = []
        for owner, manifest in enumerate(manifests):
            owners.extend([owner] * len(manifest.files))
            paths.extend(manifest.files)

        logger.info(
            f"Analyzing solution {solution.name} "
            f"({len(manifests)} projects, {len(paths)} files)"
        )
        run = self._run(paths, cancellation)

        grouped: list[list[FileResult]] = [[] for _ in manifests]
        for result in run.ordered():
            grouped[owners[result.index]].append(result)

        projects = []
        for owner, manifest in enumerate(manifests):
            scheduled = len(grouped[owner])
            projects.append(
                self._fold_project(
                    project_path=str(manifest.path),
                    project_name=manifest.name,
                    results=grouped[owner],
                    dependencies=manifest.dependencies,
                    cancelled=scheduled < len(manifest.files),
                )
            )

        return SolutionAnalysis(
            solution_path=str(solution.path),
            solution_name=solution.name,
            generated_at=datetime.now(UTC),
            projects=tuple(projects),
            failures=tuple(project_failures),
            format_version=solution.format_version,
            visual_studio_version=solution.visual_studio_version,
            cancelled=run.cancelled,
        )

    # =========================================================================
    # Directories
    # =========================================================================

    def analyze_directory(
        self,
        directory: Path,
        cancellation: CancellationToken | None = None,
    ) -> ProjectAnalysis | SolutionAnalysis:
        """Analyze a directory.

        Uses the first solution file found, else the first project manifest,
        else every supported file below the directory.
        """
        directory = Path(directory).resolve()
        entries = sorted(p for p in directory.iterdir() if p.is_file())

        solutions = [p for p in entries if p.suffix.lower() == ".sln"]
        if solutions:
            logger.debug(f"Using solution {solutions[0].name}")
            return self.analyze_solution(solutions[0], cancellation)

        projects = [p for p in entries if self.registry.is_project(p)]
        if projects:
            logger.debug(f"Using project {projects[0].name}")
            return self.analyze_project(projects[0], cancellation)

        files = discover_sources(
            directory, self.registry.supported_extensions(), self.options.exclude_dirs
        )
        logger.info(f"No manifest in {directory}; analyzing {len(files)} discovered files")
        run = self._run(files, cancellation)
        return self._fold_project(
            project_path=str(directory),
            project_name=directory.name,
            results=run.ordered(),
            cancelled=run.cancelled,
        )
