"""Input validation utilities for run-configuration boundaries.

This module validates everything that enters the arena from outside
(run configuration files, CLI arguments, environment variables) before
any contestant is initialized.

Validation Philosophy:
- Validate at the boundary, fail fast with clear error messages
- Trust internal code, validate external input
- Symbols end up in SQL queries, so they are restricted to a safe alphabet
"""

from datetime import datetime, timezone
from typing import Any, Optional
import re

from .exceptions import InvalidConfigValueError


class ValidationError(InvalidConfigValueError):
    """Raised when input validation fails.

    Subclasses InvalidConfigValueError so callers can catch every boundary
    failure as a ConfigurationError.
    """
    pass


VALID_INTERVALS = [
    '1m', '3m', '5m', '15m', '30m',
    '1h', '2h', '4h', '6h', '12h',
    '1d',
]

CONTESTANT_KINDS = ['dca', 'grid', 'mas', 'llm-solo']

INTELLIGENCE_LEVELS = ['lite', 'indicator', 'strategy', 'scalper']


def validate_symbol(symbol: str) -> str:
    """Validate trading symbol format.

    Args:
        symbol: Trading pair symbol (e.g., "BTCUSDT", "BTC/USDT")

    Returns:
        Validated symbol in uppercase

    Raises:
        ValidationError: If symbol format invalid

    Examples:
        >>> validate_symbol("btcusdt")
        'BTCUSDT'
        >>> validate_symbol("BTC'; DROP TABLE candles")  # Blocked
        ValidationError: Invalid symbol format
    """
    if not symbol or not isinstance(symbol, str):
        raise ValidationError("Symbol must be a non-empty string")

    if not re.match(r'^[A-Z0-9/_-]+$', symbol.upper()):
        raise ValidationError(
            f"Invalid symbol format: {symbol}. "
            f"Only letters, numbers, /, -, and _ allowed."
        )

    if len(symbol) > 20:
        raise ValidationError(f"Symbol too long (max 20 chars): {symbol}")

    return symbol.upper()


def validate_interval(interval: str) -> str:
    """Validate candle interval string.

    Args:
        interval: Candle interval (e.g., "1m", "15m", "1h", "1d")

    Returns:
        Validated interval

    Raises:
        ValidationError: If interval unknown
    """
    if interval not in VALID_INTERVALS:
        raise ValidationError(
            f"Invalid interval: {interval}. "
            f"Must be one of: {', '.join(VALID_INTERVALS)}"
        )

    return interval


def validate_positive_number(value: Any, name: str = "value") -> float:
    """Validate positive number (for capital, amounts, percentages).

    Args:
        value: Number to validate
        name: Parameter name for error messages

    Returns:
        Validated float value

    Raises:
        ValidationError: If not a positive finite number

    Examples:
        >>> validate_positive_number(100.5, "investAmount")
        100.5
        >>> validate_positive_number(-10, "investAmount")  # Blocked
        ValidationError: investAmount must be positive
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got: bool")

    try:
        num = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{name} must be a number, got: {type(value).__name__}"
        )

    if not float('-inf') < num < float('inf'):
        raise ValidationError(f"{name} must be finite, got: {num}")

    if num <= 0:
        raise ValidationError(f"{name} must be positive, got: {num}")

    return num


def validate_positive_int(value: Any, name: str = "value") -> int:
    """Validate a strictly positive integer (levels, minutes, ticks)."""
    num = validate_positive_number(value, name)
    if num != int(num):
        raise ValidationError(f"{name} must be an integer, got: {num}")
    return int(num)


def validate_fraction(value: Any, name: str = "value") -> float:
    """Validate a number in [0, 1]."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{name} must be a number, got: {type(value).__name__}"
        )

    if not 0.0 <= num <= 1.0:
        raise ValidationError(f"{name} must be between 0 and 1, got: {num}")

    return num


def validate_limit(limit: Optional[int], max_limit: int = 100000) -> Optional[int]:
    """Validate result limit parameter for candle queries.

    Args:
        limit: Number of candles to return
        max_limit: Maximum allowed limit

    Returns:
        Validated limit or None

    Raises:
        ValidationError: If limit invalid
    """
    if limit is None:
        return None

    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Limit must be an integer, got: {type(limit).__name__}"
        )

    if limit < 1:
        raise ValidationError(f"Limit must be at least 1, got: {limit}")

    if limit > max_limit:
        raise ValidationError(
            f"Limit cannot exceed {max_limit}, got: {limit}"
        )

    return limit


def parse_timestamp(value: Any, name: str = "timestamp") -> int:
    """Parse an ISO-8601 string, datetime or epoch milliseconds into ms.

    Naive datetimes and ISO strings without an offset are taken as UTC.

    Examples:
        >>> parse_timestamp("2024-01-01T00:00:00Z")
        1704067200000
        >>> parse_timestamp(1704067200000)
        1704067200000
    """
    if value is None or value == "":
        raise ValidationError(f"{name} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a timestamp, got: bool")

    if isinstance(value, (int, float)):
        return int(value)

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{name} is not a valid ISO-8601 timestamp: {value}")
    else:
        raise ValidationError(
            f"{name} must be an ISO string or epoch ms, got: {type(value).__name__}"
        )

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return int(dt.timestamp() * 1000)


def validate_time_range(start_ms: int, end_ms: int) -> tuple[int, int]:
    """Validate that a run's start precedes (or equals) its end."""
    if start_ms > end_ms:
        raise ValidationError(
            f"start ({start_ms}) must not be after end ({end_ms})"
        )
    return start_ms, end_ms


def validate_contestant_kind(kind: str) -> str:
    """Validate contestant kind against the registered strategies."""
    kind_lower = str(kind).lower()

    if kind_lower not in CONTESTANT_KINDS:
        raise ValidationError(
            f"Unknown contestant kind: {kind}. "
            f"Supported: {', '.join(CONTESTANT_KINDS)}"
        )

    return kind_lower


def validate_intelligence_level(level: str) -> str:
    """Validate LLM solo intelligence level."""
    if level not in INTELLIGENCE_LEVELS:
        raise ValidationError(
            f"Invalid intelligence level: {level}. "
            f"Must be one of: {', '.join(INTELLIGENCE_LEVELS)}"
        )

    return level


def validate_step_minutes(step_minutes: Any) -> int:
    """Validate the race step size (1 minute .. 1 day)."""
    step = validate_positive_int(step_minutes, "stepMinutes")

    if step > 1440:
        raise ValidationError(f"stepMinutes cannot exceed 1440, got: {step}")

    return step
