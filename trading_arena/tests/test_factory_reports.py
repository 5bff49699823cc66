"""
Tests for contestant construction from run configurations and for
leaderboard / results reporting.
"""

import json

import pytest

from trading_arena.config import ArenaConfig, RunConfig
from trading_arena.exceptions import InvalidConfigValueError
from trading_arena.contestants import (
    DCAContestant,
    GridContestant,
    LLMSoloContestant,
    MASContestant,
)
from trading_arena.database import InMemoryMarketData
from trading_arena.llm import HeuristicOracle, MiniMaxClient
from trading_arena.race import (
    RaceResult,
    build_contestants,
    format_leaderboard,
    rank_results,
    save_results,
)


def _run_config(contestants, capital=20000):
    return RunConfig.from_dict({
        "symbol": "BTCUSDT",
        "start": "2024-01-01T00:00:00Z",
        "end": "2024-01-02T00:00:00Z",
        "initialCapital": capital,
        "contestants": contestants,
    })


def _result(contestant_id, total_return, sharpe=0.5, drawdown=2.0):
    return RaceResult(
        contestant_id=contestant_id,
        name=contestant_id.upper(),
        final_equity=10000 * (1 + total_return),
        total_return=total_return,
        trade_count=4,
        sharpe_ratio=sharpe,
        max_drawdown=drawdown,
    )


# === Factory ===


@pytest.mark.unit
def test_presets_build_expected_contestants():
    run = _run_config(["dca-bot", "grid-bot", "mas-squad", "llm-strategy"])

    dca, grid, mas, llm = build_contestants(run, InMemoryMarketData(), ArenaConfig())

    assert isinstance(dca, DCAContestant)
    assert dca.invest_amount == pytest.approx(1000)
    assert dca.interval_minutes == 7 * 24 * 60
    assert dca.name == "DCA Benchmark"

    assert isinstance(grid, GridContestant)
    assert grid.config.volatility_min == 3
    assert grid.config.volatility_max == 5

    assert isinstance(mas, MASContestant)
    assert mas.confidence_threshold == 70

    assert isinstance(llm, LLMSoloContestant)
    assert llm.intelligence_level == "strategy"
    assert isinstance(llm.oracle, HeuristicOracle)
    assert llm.name == "LLM-strategy (mock)"


@pytest.mark.unit
def test_settings_override_presets():
    run = _run_config([
        {"id": "dca-fast", "type": "dca", "name": "Fast DCA",
         "settings": {"investAmount": 250, "intervalMinutes": 60}},
        {"id": "grid-wide", "type": "grid", "settings": {"gridLevels": 5, "volatilityMax": 50}},
        {"id": "llm-custom", "settings": {"intelligenceLevel": "scalper", "systemPrompt": "Be calm."}},
    ])

    dca, grid, llm = build_contestants(run, InMemoryMarketData(), ArenaConfig())

    assert (dca.name, dca.invest_amount, dca.interval_minutes) == ("Fast DCA", 250, 60)
    assert grid.config.grid_levels == 5
    assert grid.config.volatility_max == 50
    assert grid.config.pivot_n == 3
    assert llm.intelligence_level == "scalper"
    assert llm.custom_system_prompt == "Be calm."


@pytest.mark.unit
def test_invalid_grid_interval_rejected_at_build():
    run = _run_config([{"id": "grid-coarse", "type": "grid", "settings": {"aggregateInterval": "7m"}}])

    with pytest.raises(InvalidConfigValueError, match="aggregation interval"):
        build_contestants(run, InMemoryMarketData(), ArenaConfig())


@pytest.mark.unit
def test_llm_uses_minimax_with_credentials():
    run = _run_config(["llm-solo"])
    arena = ArenaConfig(minimax_api_key="secret", minimax_group_id="g-1")

    [llm] = build_contestants(run, InMemoryMarketData(), arena)

    assert isinstance(llm.oracle, MiniMaxClient)
    assert llm.oracle.group_id == "g-1"
    assert llm.intelligence_level == "lite"
    assert llm.name == "LLM-lite"


@pytest.mark.unit
def test_oracle_factory_takes_precedence(mock_oracle):
    run = _run_config(["llm-indicator"])
    requested = []

    def oracle_factory(spec):
        requested.append(spec.contestant_id)
        return mock_oracle

    [llm] = build_contestants(
        run, InMemoryMarketData(), ArenaConfig(), oracle_factory=oracle_factory
    )

    assert requested == ["llm-indicator"]
    assert llm.oracle is mock_oracle
    assert llm.name == "LLM-indicator"


# === Reports ===


@pytest.mark.unit
def test_rank_results_best_return_first():
    results = [_result("dca", 0.01), _result("grid", 0.05), _result("mas", -0.02)]

    assert [r.contestant_id for r in rank_results(results)] == ["grid", "dca", "mas"]


@pytest.mark.unit
def test_format_leaderboard():
    table = format_leaderboard([_result("dca", 0.01), _result("grid", 0.05)])
    lines = table.strip().splitlines()

    assert lines[0].startswith("| # | Contestant")
    assert lines[2] == "| 1 | GRID | $10,500.00 | +5.00% | 4 | 0.50 | 2.0% |"
    assert lines[3].startswith("| 2 | DCA |")


@pytest.mark.unit
def test_save_results(tmp_path):
    path = tmp_path / "out" / "results.json"

    written = save_results(
        [_result("dca", 0.01), _result("grid", 0.05)], path, metadata={"symbol": "BTCUSDT"}
    )

    payload = json.loads(written.read_text())
    assert payload["leaderboard"] == ["grid", "dca"]
    assert payload["results"][0]["contestant_id"] == "dca"
    assert payload["metadata"] == {"symbol": "BTCUSDT"}
