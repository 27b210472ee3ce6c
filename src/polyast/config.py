"""polyast configuration system.

Configuration is YAML-based with minimal CLI overrides (--sequential,
--max-concurrency). Supports environment variable substitution (${VAR}) in
config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.polyast/config.yaml
3. ./polyast.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

PROCESSING_MODES = ("concurrent", "sequential")

DEFAULT_EXCLUDE_DIRS = ["bin", "obj", ".git", ".vs", "node_modules", "packages"]

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class ProcessingConfig:
    """Batch processing configuration.

    Attributes:
        mode: "concurrent" or "sequential"
        max_concurrency: Maximum jobs in flight (None = CPU count)
    """

    mode: str = "concurrent"
    max_concurrency: int | None = None

    def __post_init__(self) -> None:
        """Validate processing settings."""
        if self.mode not in PROCESSING_MODES:
            raise ValueError(
                f"Invalid processing mode: {self.mode}. Must be one of {PROCESSING_MODES}"
            )
        if self.max_concurrency is not None and (
            isinstance(self.max_concurrency, bool)
            or not isinstance(self.max_concurrency, int)
            or self.max_concurrency < 1
        ):
            raise ValueError(
                f"max_concurrency must be a positive integer, got {self.max_concurrency!r}"
            )


@dataclass
class ParsingConfig:
    """Parser tolerance configuration.

    Attributes:
        max_error_ratio: Share of non-whitespace source that may be covered
            by syntax errors before a file is rejected (0.0 = strict)
    """

    max_error_ratio: float = 0.5

    def __post_init__(self) -> None:
        """Validate parsing settings."""
        if isinstance(self.max_error_ratio, bool) or not isinstance(
            self.max_error_ratio, (int, float)
        ):
            raise ValueError(f"max_error_ratio must be a number, got {self.max_error_ratio!r}")
        if not 0.0 <= self.max_error_ratio <= 1.0:
            raise ValueError(
                f"max_error_ratio must be between 0.0 and 1.0, got {self.max_error_ratio}"
            )
        self.max_error_ratio = float(self.max_error_ratio)


@dataclass
class DiscoveryConfig:
    """Source discovery configuration.

    Attributes:
        exclude_dirs: Directory names skipped when globbing for sources
    """

    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))


@dataclass
class PolyastConfig:
    """Top-level polyast configuration.

    Attributes:
        processing: Batch processing mode and bound
        parsing: Parser error tolerance
        discovery: Directory exclusions
    """

    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax. Example: ``${POLYAST_WORKERS}`` -> value of
    POLYAST_WORKERS.

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


def _coerce_int(value: Any) -> Any:
    """Turn substituted numeric strings back into integers."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _coerce_float(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.polyast/config.yaml
    2. ./polyast.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".polyast" / "config.yaml",
        start_path / "polyast.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> PolyastConfig:
    """Load configuration from a dictionary.

    Raises:
        ValueError: If a value fails validation or a variable is unset
    """
    data = substitute_env_vars(data)

    config = PolyastConfig()

    if data.get("processing"):
        processing_data = data["processing"]
        config.processing = ProcessingConfig(
            mode=str(processing_data.get("mode", config.processing.mode)).lower(),
            max_concurrency=_coerce_int(processing_data.get("max_concurrency")),
        )

    if data.get("parsing"):
        parsing_data = data["parsing"]
        config.parsing = ParsingConfig(
            max_error_ratio=_coerce_float(
                parsing_data.get("max_error_ratio", config.parsing.max_error_ratio)
            ),
        )

    if data.get("discovery"):
        discovery_data = data["discovery"]
        exclude_dirs = discovery_data.get("exclude_dirs", config.discovery.exclude_dirs)
        if not isinstance(exclude_dirs, list):
            raise ValueError(f"exclude_dirs must be a list, got {exclude_dirs!r}")
        config.discovery = DiscoveryConfig(exclude_dirs=[str(d) for d in exclude_dirs])

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> PolyastConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        PolyastConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {found_path}")
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = PolyastConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return """# polyast Configuration

# Batch processing
processing:
  mode: "concurrent"     # concurrent, sequential
  max_concurrency: null  # null = number of CPUs

# Parser tolerance
parsing:
  max_error_ratio: 0.5   # 0.0 rejects any file with syntax errors

# Source discovery
discovery:
  exclude_dirs:
    - bin
    - obj
    - .git
    - .vs
    - node_modules
    - packages
"""
