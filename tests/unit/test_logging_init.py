from __future__ import annotations

import logging
from io import StringIO

from task_sheet_import.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)


def test_setup_logging_creates_logger_with_single_handler():
    logger = setup_logging()

    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1


def test_labeled_prefixes():
    captured = StringIO()
    logger = logging.getLogger("test_task_sheet_import_labels")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(captured)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "Test summary message")

    lines = captured.getvalue().strip().split("\n")
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY Test summary message",
    ]


def test_child_loggers_share_the_handler(capsys):
    setup_logging()
    logging.getLogger(f"{LOGGER_NAME}.services.pipeline").info("stage A -> B")
    assert "INFO stage A -> B" in capsys.readouterr().out


def test_log_summary_and_debug_toggle(capsys):
    setup_logging()
    log_summary("rows=1 tasks=1")
    get_logger().debug("hidden")
    set_debug(True)
    get_logger().debug("visible")
    set_debug(False)
    out = capsys.readouterr().out
    assert "SUMMARY rows=1 tasks=1" in out
    assert "hidden" not in out
    assert "DEBUG visible" in out
    assert "DEBUG debug mode enabled" in out
    assert get_logger().level == logging.INFO


def test_get_logger_sets_up_on_demand():
    logger = get_logger()
    assert logger.name == LOGGER_NAME
    assert len(logger.handlers) == 1
