"""Tests for logger cleanup cascade via BaseCloseable."""

import pytest

from pacsmith.core.log import ConsoleSink, FileSink, Logger


def file_logger(path):
    return Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(path)),
    )


def test_logger_closes_file_via_context_manager(tmp_path):
    logger = file_logger(tmp_path / "test.log")
    logger.setup(log_root=tmp_path, run_name="test")

    assert logger.file._file is not None
    assert not logger.file._file.closed

    with logger:
        logger.info("test message")

    assert logger.file._file.closed


def test_logger_closes_on_exception(tmp_path):
    logger = file_logger(tmp_path / "test.log")
    logger.setup(log_root=tmp_path, run_name="test")

    with pytest.raises(ValueError), logger:
        logger.info("before exception")
        raise ValueError("test exception")

    assert logger.file._file.closed


def test_config_cascade_closes_logger(tmp_path):
    """Config.close() cascades to Logger then Sink.close()."""
    from pacsmith.core.config import Config

    config = Config(
        logger=file_logger(tmp_path / "cascade.log"),
        log_root=tmp_path,
    )
    # Config's validator replaced the logger with the global one
    assert config.logger.file._file is not None
    assert not config.logger.file._file.closed

    config.close()

    assert config.logger.file._file.closed


def test_file_path_template_uses_log_root(tmp_path):
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True),
    )
    logger.setup(log_root=tmp_path / "var", run_name="install")
    logger.close()

    assert (tmp_path / "var" / "pacsmith.log").exists()


def test_file_written_and_flushed_on_close(tmp_path):
    log_file = tmp_path / "written.log"
    logger = file_logger(log_file)
    logger.setup(log_root=tmp_path, run_name="write-test")

    with logger:
        logger.info("Installing nmap (attempt 1/2)")

    content = log_file.read_text()
    assert "Installing nmap (attempt 1/2)" in content
    assert "[info]" in content


def test_file_sink_filters_by_level(tmp_path):
    log_file = tmp_path / "filtered.log"
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file), level="warn"),
    )
    logger.setup(log_root=tmp_path, run_name="filter-test")

    with logger:
        logger.debug("hidden detail")
        logger.warning("visible warning")

    content = log_file.read_text()
    assert "visible warning" in content
    assert "hidden detail" not in content
