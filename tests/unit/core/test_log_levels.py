"""Test log level filtering in the file sink."""

import pytest

from yeahbuild.core.log import ConsoleSink, FileSink, setup_logger


def write_all_levels(logger):
    logger.spew("SPEW message")
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.warn("WARN message")
    logger.error("ERROR message")
    logger.close()


@pytest.mark.parametrize(
    ("level", "included", "excluded"),
    [
        ("spew", ["SPEW", "TRACE", "DEBUG", "INFO"], []),
        ("trace", ["TRACE", "DEBUG", "INFO"], ["SPEW"]),
        ("debug", ["DEBUG", "INFO", "WARN"], ["SPEW", "TRACE"]),
        ("info", ["INFO", "WARN", "ERROR"], ["SPEW", "TRACE", "DEBUG"]),
        ("warn", ["WARN", "ERROR"], ["DEBUG", "INFO"]),
        ("error", ["ERROR"], ["INFO", "WARN"]),
    ],
)
def test_file_sink_level(tmp_path, level, included, excluded):
    """Each level keeps itself and everything more severe."""
    log_file = tmp_path / f"{level}.log"

    logger = setup_logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, level=level, path=log_file),
    )
    write_all_levels(logger)

    content = log_file.read_text()
    for name in included:
        assert f"{name} message" in content
    for name in excluded:
        assert f"{name} message" not in content


def test_level_cascades_to_sinks(tmp_path):
    """Sinks without their own level use the logger's level."""
    log_file = tmp_path / "cascade.log"

    logger = setup_logger(
        level="warn",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=log_file),
    )
    write_all_levels(logger)

    content = log_file.read_text()
    assert "INFO message" not in content
    assert "WARN message" in content


def test_log_by_level_name(tmp_path):
    """log() dispatches on a level name, as BuildLog uses it."""
    log_file = tmp_path / "named.log"

    logger = setup_logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, level="debug", path=log_file),
    )
    logger.log("warn", "{text}", text="braces {kept} literally")
    logger.log("trace", "{text}", text="too quiet")
    logger.close()

    content = log_file.read_text()
    assert "braces {kept} literally" in content
    assert "warn" in content
    assert "too quiet" not in content
