"""Arena configuration management.

This module provides configuration dataclasses for the arena:

- ArenaConfig: process-level settings loaded from environment variables
  (database URL, logging, oracle credentials).
- RaceConfig: the replay window and cadence of a single race.
- RunConfig / ContestantSpec: a full run request (race + contestant line-up),
  parsed from a JSON document at the boundary.

SECURITY: Oracle credentials are loaded from environment variables only.
See .env.example for configuration template.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from dotenv import load_dotenv

from .exceptions import MissingParameterError
from .validation import (
    parse_timestamp,
    validate_contestant_kind,
    validate_interval,
    validate_positive_number,
    validate_step_minutes,
    validate_symbol,
    validate_time_range,
    ValidationError,
)

# Load .env file if it exists (for local development)
load_dotenv()

DEFAULT_INITIAL_CAPITAL = 10000.0
DEFAULT_STEP_MINUTES = 15


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class ArenaConfig:
    """Process-level configuration loaded from environment variables.

    Always use ArenaConfig.from_env() so credentials never appear in code.
    """

    database_url: str = "sqlite:///data/market.db"
    log_level: str = "INFO"
    log_json: bool = True

    # Ledger parameters
    initial_capital: float = DEFAULT_INITIAL_CAPITAL
    fee_rate: float = 0.0  # Fraction of notional charged per trade

    # Decision oracle (LLM solo contestant)
    minimax_api_key: str = ""
    minimax_group_id: str = ""
    minimax_model: str = "MiniMax-Text-01"
    oracle_timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> "ArenaConfig":
        """Load arena configuration from environment variables.

        Returns:
            ArenaConfig instance with values from environment

        Raises:
            ValidationError: If a numeric variable is malformed

        Example:
            >>> config = ArenaConfig.from_env()
            >>> config.has_oracle_credentials()
            False
        """
        initial_capital = validate_positive_number(
            os.getenv("ARENA_INITIAL_CAPITAL", str(DEFAULT_INITIAL_CAPITAL)),
            "ARENA_INITIAL_CAPITAL",
        )

        try:
            fee_rate = float(os.getenv("ARENA_FEE_RATE", "0.0"))
        except ValueError:
            raise ValidationError("ARENA_FEE_RATE must be a number")
        if not 0.0 <= fee_rate < 1.0:
            raise ValidationError(f"ARENA_FEE_RATE must be in [0, 1), got: {fee_rate}")

        oracle_timeout = validate_positive_number(
            os.getenv("ARENA_ORACLE_TIMEOUT", "60"), "ARENA_ORACLE_TIMEOUT"
        )

        return cls(
            database_url=os.getenv("ARENA_DATABASE_URL", "sqlite:///data/market.db"),
            log_level=os.getenv("ARENA_LOG_LEVEL", "INFO"),
            log_json=_env_bool("ARENA_LOG_JSON", "true"),
            initial_capital=initial_capital,
            fee_rate=fee_rate,
            minimax_api_key=os.getenv("MINIMAX_API_KEY", ""),
            minimax_group_id=os.getenv("MINIMAX_GROUP_ID", ""),
            minimax_model=os.getenv("MINIMAX_MODEL", "MiniMax-Text-01"),
            oracle_timeout_seconds=oracle_timeout,
        )

    def has_oracle_credentials(self) -> bool:
        """Whether a real decision oracle can be contacted."""
        return bool(self.minimax_api_key)

    def __repr__(self) -> str:
        """String representation with masked secrets."""
        masked_key = "***REDACTED***" if self.minimax_api_key else None

        return (
            f"ArenaConfig(database_url={self.database_url}, "
            f"log_level={self.log_level}, "
            f"initial_capital={self.initial_capital}, "
            f"fee_rate={self.fee_rate}, "
            f"minimax_api_key={masked_key}, "
            f"minimax_model={self.minimax_model})"
        )


@dataclass(frozen=True)
class RaceConfig:
    """Replay window and cadence for one race.

    Timestamps are Unix milliseconds; both bounds are inclusive.
    """

    symbol: str
    start: int
    end: int
    step_minutes: int = DEFAULT_STEP_MINUTES
    interval: str = "1m"
    initial_capital: float = DEFAULT_INITIAL_CAPITAL

    @property
    def step_ms(self) -> int:
        return self.step_minutes * 60 * 1000

    @property
    def start_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.start / 1000, tz=timezone.utc)

    @property
    def end_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.end / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class ContestantSpec:
    """One entry of a run's contestant line-up."""

    kind: str
    contestant_id: str
    name: Optional[str] = None
    settings: dict = field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: Any) -> "ContestantSpec":
        """Parse a line-up entry.

        Accepts either a bare preset id ("dca-bot", "grid-bot", "mas-squad",
        "llm-solo", "llm-<level>") or an object
        ``{"id", "type", "name"?, "settings"?}``.
        """
        if isinstance(entry, str):
            return cls(kind=_kind_from_preset(entry), contestant_id=entry)

        if not isinstance(entry, dict):
            raise ValidationError(
                f"Contestant entry must be a string or object, got: {type(entry).__name__}"
            )

        contestant_id = entry.get("id")
        if not contestant_id:
            raise MissingParameterError("Contestant entry is missing 'id'")

        kind = entry.get("type") or _kind_from_preset(contestant_id)
        settings = entry.get("settings") or {}
        if not isinstance(settings, dict):
            raise ValidationError(f"settings for {contestant_id} must be an object")

        return cls(
            kind=validate_contestant_kind(kind),
            contestant_id=str(contestant_id),
            name=entry.get("name"),
            settings=dict(settings),
        )


def _kind_from_preset(contestant_id: str) -> str:
    if contestant_id == "dca-bot":
        return "dca"
    if contestant_id == "grid-bot":
        return "grid"
    if contestant_id == "mas-squad":
        return "mas"
    if contestant_id.startswith("llm-"):
        return "llm-solo"
    raise ValidationError(f"Unknown contestant preset: {contestant_id}")


@dataclass(frozen=True)
class RunConfig:
    """A complete run request: race parameters plus contestant line-up."""

    race: RaceConfig
    contestants: tuple[ContestantSpec, ...]

    @classmethod
    def from_dict(cls, data: dict) -> "RunConfig":
        """Parse and validate a run configuration document.

        Expected shape (camelCase keys, as produced by the dashboard)::

            {"symbol": "BTCUSDT", "interval": "1m",
             "start": "2024-01-01T00:00:00Z", "end": "2024-01-08T00:00:00Z",
             "stepMinutes": 15, "initialCapital": 10000,
             "contestants": ["dca-bot", {"id": "grid-1", "type": "grid"}]}

        Raises:
            MissingParameterError: symbol/start/end missing
            ValidationError: any value malformed or out of range
        """
        missing = [key for key in ("symbol", "start", "end") if not data.get(key)]
        if missing:
            raise MissingParameterError(f"Missing parameters: {', '.join(missing)}")

        start = parse_timestamp(data["start"], "start")
        end = parse_timestamp(data["end"], "end")
        validate_time_range(start, end)

        race = RaceConfig(
            symbol=validate_symbol(data["symbol"]),
            start=start,
            end=end,
            step_minutes=validate_step_minutes(data.get("stepMinutes") or DEFAULT_STEP_MINUTES),
            interval=validate_interval(data.get("interval") or "1m"),
            initial_capital=validate_positive_number(
                data.get("initialCapital") or DEFAULT_INITIAL_CAPITAL, "initialCapital"
            ),
        )

        entries = data.get("contestants")
        if entries is None:
            entries = ["dca-bot", "llm-solo"]
        if not isinstance(entries, list) or not entries:
            raise ValidationError("contestants must be a non-empty list")

        contestants = tuple(ContestantSpec.from_entry(entry) for entry in entries)

        ids = [c.contestant_id for c in contestants]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate contestant ids: {', '.join(duplicates)}")

        return cls(race=race, contestants=contestants)
