"""
Logging Setup
Configures rotating file logging for repo-status runs.
"""
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional

from repo_status.state_paths import resolve_log_dir


def setup_logging(
    name: str = "repo_status",
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    console_output: bool = False,
) -> logging.Logger:
    """
    Setup logging for a repo-status entrypoint.

    Creates rotating file handler and optional console handler. The logger is
    named after the package so every ``logging.getLogger(__name__)`` inside
    ``repo_status`` inherits the handlers.

    Args:
        name: Logger name (also used for the log subdirectory and file name)
        log_dir: Directory for log files (defaults to <state_dir>/logs/{name}/)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether to also log to stderr

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logging("repo_status", console_output=True)
        >>> logger.info("Run started")
    """
    if log_dir is None:
        log_dir = resolve_log_dir() / name.lower()
    else:
        log_dir = os.path.expanduser(log_dir)

    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(name)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    simple_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    log_file = os.path.join(
        log_dir, f"{name.lower()}_{datetime.now().strftime('%Y%m%d')}.log"
    )

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    # stdout is reserved for tables and rendered reports
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

    logger.propagate = False

    logger.debug(f"Log file: {log_file}")

    return logger


def get_logger(name: str = "repo_status") -> logging.Logger:
    """
    Get or create a configured logger.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        setup_logging(name, log_level=os.getenv("LOG_LEVEL", "INFO"))

    return logger
