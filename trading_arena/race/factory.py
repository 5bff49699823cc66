"""Contestant construction from a run configuration.

Maps each ContestantSpec to a contestant instance, filling in the defaults
a bare preset id ("dca-bot", "grid-bot", "mas-squad", "llm-solo") implies.
"""

import logging
from typing import Callable, Optional

from ..config import ArenaConfig, ContestantSpec, RunConfig
from ..contestants import (
    Contestant,
    DCAContestant,
    GridConfig,
    GridContestant,
    LLMSoloContestant,
    MASContestant,
)
from ..contestants.dca import DEFAULT_INTERVAL_MINUTES
from ..database import MarketDataReader
from ..exceptions import ConfigurationError
from ..llm import DecisionOracle, HeuristicOracle, MiniMaxClient
from ..validation import INTELLIGENCE_LEVELS

logger = logging.getLogger(__name__)

OracleFactory = Callable[[ContestantSpec], DecisionOracle]

# Grid defaults for preset entries; the contestant's own band is wider
GRID_PRESET_SETTINGS = {
    "gridLevels": 3,
    "pivotN": 3,
    "windowDays": 7,
    "volatilityMin": 3,
    "volatilityMax": 5,
    "stopLossPercent": 2,
    "takeProfitPercent": 4,
}

DEFAULT_NAMES = {
    "dca": "DCA Benchmark",
    "grid": "Grid Bot",
    "mas": "MAS Squad",
}


def _default_level(spec: ContestantSpec) -> str:
    # "llm-strategy" style ids imply their level
    suffix = spec.contestant_id.split("-", 1)[-1]
    return suffix if suffix in INTELLIGENCE_LEVELS else "lite"


def build_contestant(
    spec: ContestantSpec,
    run_config: RunConfig,
    reader: MarketDataReader,
    arena_config: Optional[ArenaConfig] = None,
    oracle_factory: Optional[OracleFactory] = None,
) -> Contestant:
    """Build one contestant.

    Args:
        spec: Line-up entry
        run_config: The run the contestant takes part in
        reader: Market data reader
        arena_config: Supplies oracle credentials when no oracle_factory is given
        oracle_factory: Builds the decision oracle of LLM solo entries

    Raises:
        ConfigurationError: Unknown kind or invalid settings
    """
    race = run_config.race
    settings = spec.settings

    if spec.kind == "dca":
        return DCAContestant(
            spec.contestant_id,
            spec.name or DEFAULT_NAMES["dca"],
            reader,
            race.symbol,
            invest_amount=settings.get("investAmount") or race.initial_capital / 20,
            interval_minutes=settings.get("intervalMinutes") or DEFAULT_INTERVAL_MINUTES,
        )

    if spec.kind == "grid":
        return GridContestant(
            spec.contestant_id,
            spec.name or DEFAULT_NAMES["grid"],
            reader,
            race.symbol,
            GridConfig.from_settings({**GRID_PRESET_SETTINGS, **settings}),
        )

    if spec.kind == "mas":
        return MASContestant(
            spec.contestant_id,
            spec.name or DEFAULT_NAMES["mas"],
            reader,
            race.symbol,
            confidence_threshold=float(settings.get("confidenceThreshold") or 70),
        )

    if spec.kind == "llm-solo":
        level = settings.get("intelligenceLevel") or _default_level(spec)
        name = spec.name or f"LLM-{level}"

        if oracle_factory is not None:
            oracle = oracle_factory(spec)
        else:
            arena_config = arena_config or ArenaConfig.from_env()
            if arena_config.has_oracle_credentials():
                oracle = MiniMaxClient(
                    arena_config.minimax_api_key,
                    arena_config.minimax_group_id,
                    model=arena_config.minimax_model,
                    timeout_seconds=arena_config.oracle_timeout_seconds,
                )
            else:
                logger.warning(
                    "oracle_credentials_missing",
                    extra={"contestant": spec.contestant_id, "fallback": "heuristic"},
                )
                oracle = HeuristicOracle()
                name = f"{name} (mock)"

        return LLMSoloContestant(
            spec.contestant_id,
            name,
            reader,
            race.symbol,
            oracle,
            intelligence_level=level,
            custom_system_prompt=settings.get("systemPrompt"),
            include_daily=bool(settings.get("includeDaily", False)),
        )

    raise ConfigurationError(f"Unknown contestant kind: {spec.kind}")


def build_contestants(
    run_config: RunConfig,
    reader: MarketDataReader,
    arena_config: Optional[ArenaConfig] = None,
    oracle_factory: Optional[OracleFactory] = None,
) -> list[Contestant]:
    """Build the whole line-up, in configuration order."""
    return [
        build_contestant(spec, run_config, reader, arena_config, oracle_factory)
        for spec in run_config.contestants
    ]
