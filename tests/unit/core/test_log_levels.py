"""Tests for file sink level filtering and line format."""

import re

import pytest

from pacsmith.core.log import ConsoleSink, FileSink, setup_logger


def file_only(tmp_path, name, **sink):
    log_file = tmp_path / name
    logger = setup_logger(
        log_root=tmp_path,
        run_name="test",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file), **sink),
    )
    return logger, log_file


def test_spew_level_includes_all(tmp_path):
    logger, log_file = file_only(tmp_path, "spew.log", level="spew")

    logger.spew("SPEW message")
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.close()

    content = log_file.read_text()
    for word in ("SPEW", "TRACE", "DEBUG", "INFO"):
        assert f"{word} message" in content


def test_trace_level_filters_spew(tmp_path):
    logger, log_file = file_only(tmp_path, "trace.log", level="trace")

    logger.spew("SPEW message")
    logger.trace("TRACE message")
    logger.close()

    content = log_file.read_text()
    assert "SPEW message" not in content
    assert "TRACE message" in content


@pytest.mark.parametrize("level, shown, hidden", [
    ("info", ["INFO", "WARN", "ERROR"], ["DEBUG"]),
    ("error", ["ERROR"], ["DEBUG", "INFO", "WARN"]),
])
def test_threshold(tmp_path, level, shown, hidden):
    logger, log_file = file_only(tmp_path, f"{level}.log", level=level)

    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.warn("WARN message")
    logger.error("ERROR message")
    logger.close()

    content = log_file.read_text()
    for word in shown:
        assert f"{word} message" in content
    for word in hidden:
        assert f"{word} message" not in content


def test_default_line_format(tmp_path):
    logger, log_file = file_only(tmp_path, "format.log", level="debug")

    logger.warning("Attempt 1 for nmap failed")
    logger.close()

    [line] = log_file.read_text().splitlines()
    assert re.match(
        r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[warn\] "
        r"Attempt 1 for nmap failed",
        line,
    )


def test_keyword_attributes_appended(tmp_path):
    logger, log_file = file_only(tmp_path, "attrs.log", level="debug")

    logger.info("Backed up file", package="nmap")
    logger.close()

    assert "package='nmap'" in log_file.read_text()


def test_multiline_output_stays_on_one_line(tmp_path):
    logger, log_file = file_only(tmp_path, "escape.log", level="debug")

    logger.info("first line\nsecond line")
    logger.close()

    lines = log_file.read_text().splitlines()
    assert len(lines) == 1
    assert "first line\\nsecond line" in lines[0]


def test_json_when_no_template(tmp_path):
    logger, log_file = file_only(
        tmp_path, "json.log", level="debug", format_template=None
    )

    logger.info("Test message")
    logger.close()

    content = log_file.read_text()
    assert content.startswith("{")
    assert '"name": "Test message"' in content
