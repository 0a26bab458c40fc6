"""
Structured logging configuration for payroll_model.

One place to configure logging for the CLI and any embedding application,
with separate output files per concern.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Set

# Logger names for different concerns
CALCULATION_LOGGER = "payroll_model.calculation"
PERFORMANCE_LOGGER = "payroll_model.performance"
ERROR_LOGGER = "payroll_model.errors"

DEFAULT_LOG_DIR = Path("output_dev/logs")

# Timestamp, logger:line, level, message
LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5

LOG_FILES = [
    "calculation_events.log",
    "performance_metrics.log",
    "warnings_errors.log",
    "debug_detail.log",
    "combined.log",
]

# setup_logging runs once per process unless reset_logging is called
_LOGGING_CONFIGURED = False
_log_files_created: Set[Path] = set()


def clear_logs(log_dir: Path) -> None:
    """Delete the log files written by a previous run from ``log_dir``."""
    for name in LOG_FILES:
        log_file = log_dir / name
        if log_file.exists():
            try:
                log_file.unlink()
            except OSError as e:
                logging.getLogger(__name__).warning(f"Could not delete {log_file}: {e}")


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding='utf-8',
        mode='a'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    _log_files_created.add(path)
    return handler


def _attach(logger_name: str, handler: logging.Handler, level: int) -> None:
    named = logging.getLogger(logger_name)
    for h in named.handlers[:]:
        named.removeHandler(h)
    named.setLevel(level)
    named.addHandler(handler)
    named.propagate = True  # Allow to bubble up to root


def setup_logging(log_dir: Path = DEFAULT_LOG_DIR, debug: bool = False, clear_existing: bool = True) -> None:
    """
    Install console and rotating file handlers, one file per concern:
    - calculation_events.log: payroll, increment and comparison results (INFO+)
    - performance_metrics.log: batch timings (INFO+)
    - warnings_errors.log: everything at WARNING or above
    - debug_detail.log: every DEBUG record (only with debug=True)
    - combined.log: every INFO record from any logger

    Args:
        log_dir: Created when missing.
        debug: Lowers the root level to DEBUG and adds debug_detail.log.
        clear_existing: Delete the previous run's log files first.
    """
    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED:
        return

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    if clear_existing:
        clear_logs(log_dir)

    # Start from a bare root logger
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    file_formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    console_formatter = logging.Formatter("%(levelname)-8s %(message)s")

    # Only warnings reach the terminal
    console = logging.StreamHandler()
    console.setLevel(logging.WARNING)
    console.setFormatter(console_formatter)
    root_logger.addHandler(console)

    root_logger.addHandler(_rotating_handler(log_dir / "combined.log", logging.INFO, file_formatter))
    root_logger.addHandler(_rotating_handler(log_dir / "warnings_errors.log", logging.WARNING, file_formatter))

    _attach(
        CALCULATION_LOGGER,
        _rotating_handler(log_dir / "calculation_events.log", logging.INFO, file_formatter),
        logging.DEBUG if debug else logging.INFO,
    )
    _attach(
        PERFORMANCE_LOGGER,
        _rotating_handler(log_dir / "performance_metrics.log", logging.INFO, file_formatter),
        logging.INFO,
    )

    if debug:
        # Every DEBUG record reaching the root logger
        root_logger.addHandler(_rotating_handler(log_dir / "debug_detail.log", logging.DEBUG, file_formatter))

    _LOGGING_CONFIGURED = True


def reset_logging() -> None:
    """Detach every handler installed by ``setup_logging`` so it can run again."""
    global _LOGGING_CONFIGURED

    for name in (None, CALCULATION_LOGGER, PERFORMANCE_LOGGER):
        named = logging.getLogger(name)
        for h in named.handlers[:]:
            named.removeHandler(h)
            h.close()
    _log_files_created.clear()
    _LOGGING_CONFIGURED = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Named logger, configuring logging with the defaults on first use."""
    if not _LOGGING_CONFIGURED:
        setup_logging(DEFAULT_LOG_DIR, debug=False)
    return logging.getLogger(name)
