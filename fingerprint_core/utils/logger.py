"""
Logging utilities for the fingerprint matching core.

Library modules log through ``logging.getLogger(__name__)``; applications
call :func:`setup_logger` once to attach console and file handlers to the
package logger.
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Union

from fingerprint_core.utils.config import LoggingConfig


PACKAGE_LOGGER = "fingerprint_core"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: str = "INFO",
    log_dir: Union[str, Path] = "logs",
    console_output: bool = True,
    file_output: bool = False
) -> logging.Logger:
    """
    Configure a logger with the project format.

    Existing handlers on the logger are replaced, so repeated calls do not
    duplicate output.

    Args:
        name: Logger name (defaults to the package logger)
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        console_output: Whether to output to stdout
        file_output: Whether to output to a timestamped log file

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if file_output:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = log_dir / f"{name}_{timestamp}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Configure the package logger from a LoggingConfig."""
    return setup_logger(
        PACKAGE_LOGGER,
        level=config.level,
        log_dir=config.log_dir,
        console_output=config.console_output,
        file_output=config.file_output
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package namespace.

    Args:
        name: Module name, usually ``__name__``

    Returns:
        Logger instance
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


@contextmanager
def log_duration(logger: logging.Logger, stage: str) -> Iterator[None]:
    """
    Log the wall-clock time of a pipeline stage at DEBUG level.

    Args:
        logger: Logger to write to
        stage: Human-readable stage name
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(f"{stage} took {elapsed_ms:.1f}ms")


class ProgressTracker:
    """
    Report progress over a run of reference comparisons.

    Logs roughly every 5 % of the run and a closing summary with the
    number of failed items.
    """

    def __init__(self, total: int, logger: Optional[logging.Logger] = None):
        self.total = total
        self.current = 0
        self.failed = 0
        self.logger = logger
        self._start = time.perf_counter()
        self._step = max(1, total // 20)

    def update(self, n: int = 1, failed: bool = False) -> None:
        """
        Advance by n items.

        Args:
            n: Number of items completed
            failed: Whether these items failed
        """
        self.current += n
        if failed:
            self.failed += n

        if self.logger is None or self.current % self._step:
            return

        elapsed = time.perf_counter() - self._start
        remaining = (self.total - self.current) * elapsed / self.current
        self.logger.info(
            f"Compared {self.current}/{self.total} "
            f"({100 * self.current / max(1, self.total):.0f}%), "
            f"~{remaining:.1f}s left"
        )

    def finish(self) -> float:
        """
        Log the summary of the run.

        Returns:
            Elapsed seconds
        """
        elapsed = time.perf_counter() - self._start
        if self.logger:
            self.logger.info(
                f"Finished {self.current} comparisons "
                f"({self.failed} failed) in {elapsed:.2f}s"
            )
        return elapsed
