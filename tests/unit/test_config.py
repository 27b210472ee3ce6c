"""Unit tests for configuration system."""

from pathlib import Path

import pytest
import yaml

from polyast.config import (
    DEFAULT_EXCLUDE_DIRS,
    ParsingConfig,
    PolyastConfig,
    ProcessingConfig,
    create_default_config,
    find_config_file,
    load_config,
    load_config_from_dict,
    substitute_env_vars,
)


class TestSubstituteEnvVars:
    """Tests for environment variable substitution."""

    def test_substitute_string(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test substituting env var in string."""
        monkeypatch.setenv("TEST_VAR", "test_value")

        result = substitute_env_vars("prefix_${TEST_VAR}_suffix")

        assert result == "prefix_test_value_suffix"

    def test_substitute_nested(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test substituting env vars in dictionaries and lists."""
        monkeypatch.setenv("WORKERS", "6")
        monkeypatch.setenv("SKIP", "generated")

        data = {"processing": {"max_concurrency": "${WORKERS}"}, "dirs": ["obj", "${SKIP}"]}
        result = substitute_env_vars(data)

        assert result == {"processing": {"max_concurrency": "6"}, "dirs": ["obj", "generated"]}

    def test_missing_var_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("POLYAST_UNSET_VAR", raising=False)

        with pytest.raises(ValueError, match="POLYAST_UNSET_VAR"):
            substitute_env_vars("${POLYAST_UNSET_VAR}")

    def test_non_string_passthrough(self) -> None:
        assert substitute_env_vars(4) == 4
        assert substitute_env_vars(None) is None


class TestConfigValidation:
    """Tests for dataclass validation."""

    def test_defaults(self) -> None:
        config = PolyastConfig()

        assert config.processing.mode == "concurrent"
        assert config.processing.max_concurrency is None
        assert config.parsing.max_error_ratio == 0.5
        assert config.discovery.exclude_dirs == DEFAULT_EXCLUDE_DIRS
        assert config.config_path is None

    def test_invalid_mode(self) -> None:
        with pytest.raises(ValueError, match="Invalid processing mode"):
            ProcessingConfig(mode="parallel")

    @pytest.mark.parametrize("value", [0, -2, "4", True])
    def test_invalid_concurrency(self, value) -> None:
        with pytest.raises(ValueError, match="max_concurrency"):
            ProcessingConfig(max_concurrency=value)

    @pytest.mark.parametrize("value", [-0.1, 1.5, "half", False])
    def test_invalid_error_ratio(self, value) -> None:
        with pytest.raises(ValueError, match="max_error_ratio"):
            ParsingConfig(max_error_ratio=value)

    def test_integer_ratio_becomes_float(self) -> None:
        config = ParsingConfig(max_error_ratio=1)

        assert isinstance(config.max_error_ratio, float)


class TestLoadConfigFromDict:
    """Tests for loading configuration from dictionaries."""

    def test_full_config(self) -> None:
        config = load_config_from_dict(
            {
                "processing": {"mode": "SEQUENTIAL", "max_concurrency": 2},
                "parsing": {"max_error_ratio": 0.0},
                "discovery": {"exclude_dirs": ["obj", "artifacts"]},
            }
        )

        assert config.processing.mode == "sequential"
        assert config.processing.max_concurrency == 2
        assert config.parsing.max_error_ratio == 0.0
        assert config.discovery.exclude_dirs == ["obj", "artifacts"]

    def test_env_values_coerced(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that substituted strings become numbers where numbers are expected."""
        monkeypatch.setenv("POLYAST_WORKERS", "3")
        monkeypatch.setenv("POLYAST_RATIO", "0.25")

        config = load_config_from_dict(
            {
                "processing": {"max_concurrency": "${POLYAST_WORKERS}"},
                "parsing": {"max_error_ratio": "${POLYAST_RATIO}"},
            }
        )

        assert config.processing.max_concurrency == 3
        assert config.parsing.max_error_ratio == 0.25

    def test_empty_sections_keep_defaults(self) -> None:
        config = load_config_from_dict({"processing": None, "parsing": {}})

        assert config.processing.mode == "concurrent"
        assert config.parsing.max_error_ratio == 0.5

    def test_exclude_dirs_must_be_list(self) -> None:
        with pytest.raises(ValueError, match="exclude_dirs"):
            load_config_from_dict({"discovery": {"exclude_dirs": "obj"}})


class TestFindAndLoadConfig:
    """Tests for config file discovery and loading."""

    def test_find_in_polyast_dir(self, tmp_path: Path) -> None:
        config_dir = tmp_path / ".polyast"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("processing:\n  mode: sequential\n")
        (tmp_path / "polyast.yaml").write_text("{}")

        assert find_config_file(tmp_path) == (config_dir / "config.yaml").resolve()

    def test_find_root_file(self, tmp_path: Path) -> None:
        (tmp_path / "polyast.yaml").write_text("{}")

        assert find_config_file(tmp_path) == (tmp_path / "polyast.yaml").resolve()

    def test_find_nothing(self, tmp_path: Path) -> None:
        assert find_config_file(tmp_path) is None

    def test_load_explicit_file(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("processing:\n  max_concurrency: 5\n")

        config = load_config(config_path=path)

        assert config.processing.max_concurrency == 5
        assert config.config_path == path

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "missing.yaml")

    def test_load_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)

    def test_auto_discover_from_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "polyast.yaml").write_text("parsing:\n  max_error_ratio: 0.1\n")
        monkeypatch.chdir(tmp_path)

        config = load_config()

        assert config.parsing.max_error_ratio == 0.1

    def test_default_config_round_trips(self) -> None:
        """Test that the generated default config loads to the defaults."""
        data = yaml.safe_load(create_default_config())

        config = load_config_from_dict(data)

        assert config.processing == PolyastConfig().processing
        assert config.parsing == PolyastConfig().parsing
        assert config.discovery.exclude_dirs == DEFAULT_EXCLUDE_DIRS
