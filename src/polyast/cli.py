"""polyast CLI interface.

Commands:
- analyze: Analyze a source file, project, solution or directory
- languages: List registered analyzers in resolution order
- init: Initialize polyast configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines
- --version: Show version and exit
"""

from pathlib import Path
from typing import Annotated

import typer

from polyast import __version__
from polyast.analyzers import (
    AnalyzerRegistry,
    GrammarUnavailableError,
    setup_default_analyzers,
)
from polyast.config import PolyastConfig, create_default_config, load_config
from polyast.models.analysis import FileResult, ProjectAnalysis, SolutionAnalysis
from polyast.processing import (
    GenerationOrchestrator,
    ManifestError,
    OrchestratorOptions,
    ProcessingMode,
)
from polyast.utils.logging import configure_from_cli, get_logger
from polyast.utils.serialization import dumps_json

# Create Typer app
app = typer.Typer(
    name="polyast",
    help="Multi-language AST normalization and concurrent code analysis",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: PolyastConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"polyast {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON log lines",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """polyast - normalized syntax trees for C#, Java and Razor sources."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except (OSError, ValueError) as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)


def _build_registry(config: PolyastConfig) -> AnalyzerRegistry:
    return setup_default_analyzers(
        AnalyzerRegistry(), max_error_ratio=config.parsing.max_error_ratio
    ).freeze()


# =============================================================================
# analyze command
# =============================================================================


def _print_file(result: FileResult) -> None:
    if result.analysis is not None:
        analysis = result.analysis
        errors = f", {analysis.error_count} recovered error(s)" if analysis.has_errors else ""
        typer.echo(
            f"  ✅ {result.source_path} [{analysis.language}] "
            f"{len(analysis.classes)} classes, {len(analysis.methods)} methods, "
            f"{len(analysis.async_patterns)} async{errors}"
        )
    elif result.failure is not None:
        typer.echo(f"  ❌ {result.source_path}: {result.failure.error_type}: {result.failure.message}")


def _print_project(project: ProjectAnalysis) -> None:
    typer.echo(
        f"\n📦 {project.project_name}: {len(project.files)} analyzed, "
        f"{len(project.failures)} failed"
    )
    for analysis in project.files:
        _print_file(FileResult(index=0, source_path=analysis.source_path, analysis=analysis))
    for failure in project.failures:
        _print_file(FileResult(index=0, source_path=failure.source_path, failure=failure))
    if project.dependencies:
        typer.echo(f"  Dependencies: {', '.join(project.dependencies)}")
    if project.test_classes:
        typer.echo(f"  Test classes: {', '.join(c.name for c in project.test_classes)}")
    if project.cancelled:
        typer.echo("  ⚠️  Cancelled before all files were scheduled")


@app.command()
def analyze(
    path: Annotated[
        Path,
        typer.Argument(
            help="Source file, project manifest, solution file or directory",
            exists=True,
        ),
    ],
    sequential: Annotated[
        bool,
        typer.Option(
            "--sequential",
            help="Analyze files one at a time",
        ),
    ] = False,
    max_concurrency: Annotated[
        int | None,
        typer.Option(
            "--max-concurrency",
            "-j",
            min=1,
            help="Maximum files analyzed concurrently (default: CPU count)",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the full analysis as JSON",
        ),
    ] = False,
) -> None:
    """Analyze sources and print the normalized result.

    Exit codes:
        0: Everything analyzed
        1: Fatal error (unreadable manifest, missing grammar)
        2: Some files or projects failed
    """
    config = _config or PolyastConfig()
    options = OrchestratorOptions.from_config(config)
    if sequential:
        options.mode = ProcessingMode.SEQUENTIAL
    if max_concurrency is not None:
        options.max_concurrency = max_concurrency

    orchestrator = GenerationOrchestrator(_build_registry(config), options)
    _logger.info(f"Analyzing {path} ({options.mode.value}, max {options.max_concurrency})")

    result: FileResult | ProjectAnalysis | SolutionAnalysis
    try:
        if path.is_dir():
            result = orchestrator.analyze_directory(path)
        elif path.suffix.lower() == ".sln":
            result = orchestrator.analyze_solution(path)
        elif orchestrator.registry.is_project(path):
            result = orchestrator.analyze_project(path)
        else:
            result = orchestrator.analyze_file(path)
    except ManifestError as e:
        _logger.error(e.message)
        raise typer.Exit(1)
    except GrammarUnavailableError as e:
        _logger.error(e.message)
        raise typer.Exit(1)

    if isinstance(result, FileResult):
        failed = not result.succeeded
        if json_output:
            payload = result.analysis.to_dict() if result.analysis else result.failure.to_dict()
            typer.echo(dumps_json(payload))
        else:
            _print_file(result)
    else:
        failed = result.has_failures
        if json_output:
            typer.echo(dumps_json(result.to_dict()))
        elif isinstance(result, SolutionAnalysis):
            typer.echo(f"🧩 Solution {result.solution_name} ({len(result.projects)} projects)")
            for project in result.projects:
                _print_project(project)
            for project_failure in result.failures:
                typer.echo(f"  ❌ {project_failure.project_path}: {project_failure.message}")
        else:
            _print_project(result)

    if failed:
        raise typer.Exit(2)


# =============================================================================
# languages command
# =============================================================================


@app.command()
def languages(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON",
        ),
    ] = False,
) -> None:
    """List registered analyzers in resolution order."""
    registry = _build_registry(_config or PolyastConfig())

    if json_output:
        typer.echo(dumps_json(registry.get_metadata()["analyzers"]))
        return

    for position, analyzer in enumerate(registry.analyzers, start=1):
        capabilities = analyzer.capabilities
        projects = ", ".join(sorted(capabilities.project_extensions)) or "-"
        typer.echo(
            f"{position}. {capabilities.name} ({capabilities.language}): "
            f"{', '.join(sorted(capabilities.file_extensions))} "
            f"-> {capabilities.root_type} [projects: {projects}]"
        )


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Initialize polyast configuration in ./.polyast/config.yaml."""
    config_dir = Path(".polyast")
    config_dir.mkdir(exist_ok=True)
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config())
    typer.echo(f"✅ Created {config_file}")
