"""Unit tests for logging setup."""

import io
import json
import logging
import re

from polyast.utils.logging import (
    ROOT_LOGGER_NAME,
    HumanFormatter,
    JSONFormatter,
    LogMode,
    PolyastLogger,
    VerboseFormatter,
    configure_from_cli,
    get_logger,
    setup_logging,
)


def _record(message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("polyast.test", level, __file__, 1, message, (), None)


class TestFormatters:
    """Tests for the output formatters."""

    def test_human_format(self) -> None:
        formatter = HumanFormatter(use_colors=False)

        assert formatter.format(_record("hello")) == "[INFO] hello"

    def test_human_format_colors(self) -> None:
        formatter = HumanFormatter(use_colors=True)

        output = formatter.format(_record("careful", logging.WARNING))

        assert output.startswith("\033[33m[WARNING]")
        assert output.endswith(" careful")

    def test_verbose_format_has_timestamp(self) -> None:
        formatter = VerboseFormatter(use_colors=False)

        output = formatter.format(_record("step"))

        assert re.fullmatch(r"\[INFO\]\[\d{2}:\d{2}:\d{2}\] step", output)

    def test_json_format(self) -> None:
        record = _record("parsed")
        record.extra_data = {"files": 3}

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["msg"] == "parsed"
        assert entry["logger"] == "polyast.test"
        assert entry["files"] == 3
        assert "ts" in entry


class TestSetupLogging:
    """Tests for handler installation."""

    def test_get_logger_is_polyast_logger(self) -> None:
        assert isinstance(get_logger("polyast.something"), PolyastLogger)

    def test_setup_installs_single_handler(self) -> None:
        stream = io.StringIO()
        setup_logging(LogMode.HUMAN, logging.INFO, stream=stream)
        setup_logging(LogMode.HUMAN, logging.INFO, stream=stream)

        get_logger("polyast.processing").info("one file")

        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1
        assert stream.getvalue() == "[INFO] one file\n"

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        setup_logging(LogMode.HUMAN, logging.WARNING, stream=stream)

        logger = get_logger()
        logger.info("hidden")
        logger.warning("shown")

        assert stream.getvalue() == "[WARNING] shown\n"

    def test_structured_json(self) -> None:
        stream = io.StringIO()
        setup_logging(LogMode.JSON, logging.DEBUG, stream=stream)

        get_logger().structured(logging.INFO, "project done", project="Shop.Web", files=4)

        entry = json.loads(stream.getvalue())
        assert entry["msg"] == "project done"
        assert entry["project"] == "Shop.Web"
        assert entry["files"] == 4

    def test_configure_from_cli_levels(self) -> None:
        logger = logging.getLogger(ROOT_LOGGER_NAME)

        configure_from_cli(quiet=True)
        assert logger.level == logging.WARNING

        configure_from_cli(verbose=True)
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, VerboseFormatter)

        configure_from_cli(ci=True)
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
