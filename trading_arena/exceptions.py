"""
Custom exception hierarchy for Trading Arena.

All arena exceptions derive from ArenaError for easy catching.
Organized by domain: Configuration, Market Data, Oracle, Race.

Ledger rule violations (insufficient funds, oversell) are NOT exceptions:
VirtualPortfolio.execute_trade() returns False for those so a single
contestant's bad decision can never crash the shared race loop.
"""


class ArenaError(Exception):
    """Base exception for all trading arena errors."""
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(ArenaError):
    """Configuration-related errors (env vars, run parameters)."""
    pass


class MissingParameterError(ConfigurationError):
    """Required run parameter not provided."""
    pass


class InvalidConfigValueError(ConfigurationError):
    """Configuration value invalid or out of range."""
    pass


# ============================================================================
# Market Data Errors
# ============================================================================

class MarketDataError(ArenaError):
    """Market data store errors (connection, schema, malformed rows)."""
    pass


# ============================================================================
# Decision Oracle Errors (external LLM)
# ============================================================================

class OracleError(ArenaError):
    """Decision oracle communication errors."""
    pass


class OracleResponseError(OracleError):
    """Oracle answered, but the response carried no usable completion."""

    def __init__(self, message: str, status_code: int = None, body: str = None):
        """
        Initialize oracle response error with context.

        Args:
            message: Error message
            status_code: HTTP or provider status code, if known
            body: Raw response body (truncated by the caller)
        """
        self.status_code = status_code
        self.body = body

        full_message = message
        if status_code is not None:
            full_message = f"[{status_code}] {message}"

        super().__init__(full_message)


# ============================================================================
# Race Errors (simulation loop)
# ============================================================================

class RaceError(ArenaError):
    """Race controller errors."""
    pass


class BacktestAbortedError(RaceError):
    """Race was aborted by the caller before reaching its end time.

    An aborted race produces no final results.
    """

    def __init__(self, timestamp: int = None):
        self.timestamp = timestamp
        message = "BACKTEST_ABORTED"
        if timestamp is not None:
            message = f"BACKTEST_ABORTED at {timestamp}"
        super().__init__(message)


class RaceStateError(RaceError):
    """Operation not valid in the controller's current state."""
    pass


class ClockError(RaceError):
    """Virtual clock moved backwards."""
    pass
