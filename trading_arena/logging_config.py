"""
Structured logging configuration for Trading Arena.

Provides JSON-formatted logs with contextual information (race id,
contestant id) so long simulation runs can be filtered after the fact.
"""

import logging
import sys
from pythonjsonlogger import jsonlogger


def setup_logging(level: str = "INFO", use_json: bool = True) -> logging.Logger:
    """
    Configure structured logging for the arena.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: If True, output JSON format; if False, use standard text format

    Returns:
        Configured root logger

    Example:
        >>> logger = setup_logging(level="INFO", use_json=True)
        >>> logger.info("trade_executed", extra={"symbol": "BTCUSDT", "side": "BUY"})
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr keeps stdout free for the NDJSON progress stream
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper()))

    if use_json:
        json_formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
            },
        )
        console_handler.setFormatter(json_formatter)
    else:
        text_formatter = logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(text_formatter)

    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class RaceContext:
    """
    Context for race tracing.

    Allows adding race_id to all logs emitted while a race is running.
    """

    _context = {}

    @classmethod
    def set_race_id(cls, race_id: str):
        """Set race ID for current context."""
        cls._context["race_id"] = race_id

    @classmethod
    def get_race_id(cls) -> str | None:
        """Get current race ID."""
        return cls._context.get("race_id")

    @classmethod
    def clear(cls):
        """Clear context."""
        cls._context.clear()

    @classmethod
    def get_extra(cls) -> dict:
        """Get extra dict with race_id for logging."""
        if race_id := cls.get_race_id():
            return {"race_id": race_id}
        return {}
