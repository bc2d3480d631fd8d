"""Tests for logging helpers."""

import logging

from fingerprint_core.utils.logger import (
    PACKAGE_LOGGER,
    ProgressTracker,
    get_logger,
    log_duration,
    setup_logger
)


def test_get_logger_uses_package_namespace():
    assert get_logger("fingerprint_core.minutiae").name == "fingerprint_core.minutiae"
    assert get_logger("tests").name == "fingerprint_core.tests"


def test_setup_logger_does_not_duplicate_handlers(tmp_path):
    name = "fingerprint_core.test_setup"
    setup_logger(name, level="DEBUG", log_dir=tmp_path)
    logger = setup_logger(name, level="DEBUG", log_dir=tmp_path, file_output=True)

    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG
    assert list(tmp_path.glob("*.log"))

    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


def test_log_duration_reports_stage(caplog):
    logger = get_logger("timing")

    with caplog.at_level(logging.DEBUG, logger=PACKAGE_LOGGER):
        with log_duration(logger, "Skeletonization"):
            pass

    assert any("Skeletonization took" in r.getMessage() for r in caplog.records)


def test_progress_tracker_counts():
    tracker = ProgressTracker(3)
    tracker.update()
    tracker.update(failed=True)
    tracker.update()

    assert tracker.current == 3
    assert tracker.failed == 1
    assert tracker.finish() >= 0.0
