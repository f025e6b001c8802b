"""
Logging configuration for the parcel tracker.
Uses loguru for enhanced logging capabilities.
"""

import sys
from pathlib import Path
from loguru import logger

from parceltrack.config import TrackerConfig


def setup_logging(config: TrackerConfig, console: bool = True, log_to_file: bool = True) -> None:
    """
    Configure logging for the tracker.

    Args:
        config: Tracker configuration
        console: Whether to output to stderr
        log_to_file: Whether to write rotating log files
    """

    # Remove default handler
    logger.remove()

    # Log format
    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    simple_format = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

    # Console output goes to stderr so `track --json` stays parseable
    if console:
        logger.add(
            sys.stderr,
            format=log_format,
            level=config.log_level,
            colorize=True,
        )

    if not log_to_file:
        return

    # File output
    log_path = Path(config.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(log_path),
        format=simple_format,
        level=config.log_level,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        enqueue=True,  # Thread-safe
    )

    # Error file (separate file for errors only)
    error_log_path = log_path.parent / "error.log"
    logger.add(
        str(error_log_path),
        format=simple_format,
        level="ERROR",
        rotation="10 MB",
        retention="60 days",
        compression="zip",
        enqueue=True,
    )

    logger.info(f"Logging initialized - Level: {config.log_level}, File: {log_path}")


class RequestLogger:
    """Context logger for one tracking request."""

    def __init__(self, request_id: str, carrier: str):
        self.request_id = request_id
        self.carrier = carrier
        self._logger = logger.bind(request_id=request_id, carrier=carrier)

    def _prefix(self, message: str) -> str:
        return f"[Track:{self.request_id[:8]} {self.carrier}] {message}"

    def info(self, message: str, **kwargs):
        self._logger.info(self._prefix(message), **kwargs)

    def debug(self, message: str, **kwargs):
        self._logger.debug(self._prefix(message), **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.warning(self._prefix(message), **kwargs)

    def error(self, message: str, **kwargs):
        self._logger.error(self._prefix(message), **kwargs)

    def exception(self, message: str, **kwargs):
        self._logger.exception(self._prefix(message), **kwargs)
