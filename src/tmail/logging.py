"""
Logging configuration using loguru.

The client logs through the shared ``logger`` unless a caller hands its own
logger-like object to ``TmailClient``. Call ``setup_logging`` once from an
application entry point (the CLI does) to install sinks.
"""

from __future__ import annotations
import sys
from pathlib import Path
from typing import Any, Protocol
from loguru import logger


class LoggerLike(Protocol):
    """Anything with the four level methods, e.g. loguru or ``logging.Logger``."""
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...


def setup_logging(
    log_level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    console_level: str | None = None,
) -> None:
    """
    Configure loguru with a console sink and an optional rotating file sink.

    Args:
        log_level: Level for the file sink (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file. If None, only console logging.
        rotation: Log rotation size (e.g., "10 MB")
        retention: Log retention period (e.g., "7 days")
        console_level: Level for the console. If None, WARNING when a log file
            is configured, otherwise ``log_level``.
    """
    logger.remove()

    if console_level is None:
        console_level = "WARNING" if log_file else log_level

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=console_level,
        colorize=True,
    )

    if not log_file:
        return

    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            catch=True,
        )
        logger.debug(f"Logging to file: {log_path}")
    except OSError as e:
        # Console sink is already installed; keep going without the file.
        logger.warning(f"Failed to set up file logging to {log_path}: {e}. Continuing with console only")


__all__ = ["logger", "setup_logging", "LoggerLike"]
