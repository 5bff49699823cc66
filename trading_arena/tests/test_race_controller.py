"""
Tests for the race controller replay loop.
Covers step timing, progress events, incremental trades, abort and state errors.
"""

import asyncio

import pytest

from trading_arena.config import RaceConfig
from trading_arena.contestants import Contestant, DCAContestant
from trading_arena.exceptions import BacktestAbortedError, RaceStateError
from trading_arena.logging_config import RaceContext
from trading_arena.race import AbortSignal, RaceController, RaceState

START_MS = 1704067200000
MINUTE_MS = 60_000
SYMBOL = "BTCUSDT"


class ClockRecorder(Contestant):
    """Records the time and marked price it sees on every tick."""

    kind = "recorder"

    def __init__(self, contestant_id, reader):
        super().__init__(contestant_id, contestant_id, reader, SYMBOL)
        self.seen = []

    async def on_tick(self):
        self.seen.append((self.clock.now(), self.portfolio.get_last_price(SYMBOL)))
        self.portfolio.take_snapshot()


def _race(reader, minutes=60, step=15):
    config = RaceConfig(SYMBOL, START_MS, START_MS + minutes * MINUTE_MS, step_minutes=step)
    return RaceController(reader, config)


def _dca(reader, contestant_id="dca-bot"):
    return DCAContestant(contestant_id, "DCA", reader, SYMBOL, invest_amount=1000, interval_minutes=30)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_steps_cover_inclusive_window(flat_market):
    race = _race(flat_market)
    recorder = ClockRecorder("recorder", flat_market)
    race.add_contestant(recorder)

    await race.run()

    assert [t for t, _ in recorder.seen] == [START_MS + m * MINUTE_MS for m in (0, 15, 30, 45, 60)]
    assert all(price == 40000.0 for _, price in recorder.seen)
    assert race.clock.now() == START_MS + 60 * MINUTE_MS
    assert race.state == RaceState.FINISHED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_contestants_share_clock_and_tick_in_order(flat_market):
    race = _race(flat_market, minutes=30)
    first, second = ClockRecorder("a", flat_market), ClockRecorder("b", flat_market)
    race.add_contestant(first)
    race.add_contestant(second)

    await race.run()

    assert first.clock is race.clock and second.clock is race.clock
    assert first.seen == second.seen


@pytest.mark.asyncio
@pytest.mark.unit
async def test_progress_events_and_results(flat_market):
    race = _race(flat_market)
    race.add_contestant(_dca(flat_market))
    events = []

    results = await race.run(on_progress=events.append)

    assert len(events) == 5
    timestamps = [e.timestamp for e in events]
    assert timestamps == sorted(set(timestamps))
    assert events[0].progress == 0
    assert events[-1].progress == 100
    assert events[-1].equities["dca-bot"] == pytest.approx(10000)
    assert events[-1].positions["dca-bot"]["balance"] == pytest.approx(7000)

    [result] = results
    assert result.contestant_id == "dca-bot"
    assert result.final_equity == pytest.approx(10000)
    assert result.total_return == pytest.approx(0)
    assert result.trade_count == 3
    assert result.max_drawdown == pytest.approx(0)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_trades_reported_once(flat_market):
    race = _race(flat_market)
    race.add_contestant(_dca(flat_market))
    events = []

    await race.run(on_progress=events.append)

    reported = [t["id"] for e in events for t in e.trades.get("dca-bot", [])]
    assert reported == ["trade-1", "trade-2", "trade-3"]
    assert "trades" not in events[1].to_dict()
    assert events[0].to_dict()["trades"]["dca-bot"][0]["side"] == "BUY"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_logs_drained_into_events(flat_market):
    race = _race(flat_market)
    race.add_contestant(_dca(flat_market))
    events = []

    await race.run(on_progress=events.append)

    assert len(events[0].logs["dca-bot"]) == 1
    assert events[1].logs == {}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_async_progress_callback(flat_market):
    race = _race(flat_market, minutes=15)
    race.add_contestant(_dca(flat_market))
    seen = []

    async def on_progress(event):
        await asyncio.sleep(0)
        seen.append(event.timestamp)

    await race.run(on_progress=on_progress)

    assert seen == [START_MS, START_MS + 15 * MINUTE_MS]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_abort_stops_race(flat_market):
    race = _race(flat_market)
    race.add_contestant(_dca(flat_market))
    abort = AbortSignal()
    events = []

    def on_progress(event):
        events.append(event)
        abort.abort()

    with pytest.raises(BacktestAbortedError) as exc_info:
        await race.run(on_progress=on_progress, abort_signal=abort)

    assert exc_info.value.timestamp == START_MS + 15 * MINUTE_MS
    assert len(events) == 1
    assert race.state == RaceState.ABORTED
    assert RaceContext.get_race_id() is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_abort_accepts_asyncio_event(flat_market):
    race = _race(flat_market)
    race.add_contestant(_dca(flat_market))
    event = asyncio.Event()
    event.set()

    with pytest.raises(BacktestAbortedError):
        await race.run(abort_signal=event)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_race_context_set_during_run_and_cleared(flat_market):
    race = _race(flat_market, minutes=0)
    race_ids = []
    race.add_contestant(_dca(flat_market))

    await race.run(on_progress=lambda e: race_ids.append(RaceContext.get_race_id()))

    assert race_ids == [race.race_id]
    assert race.race_id.startswith("race-")
    assert RaceContext.get_race_id() is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_state_errors(flat_market):
    race = _race(flat_market, minutes=0)
    race.add_contestant(_dca(flat_market))

    with pytest.raises(RaceStateError):
        race.add_contestant(_dca(flat_market))

    await race.run()

    with pytest.raises(RaceStateError):
        await race.run()
    with pytest.raises(RaceStateError):
        race.add_contestant(_dca(flat_market, "dca-2"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fee_rate_applied_to_every_ledger(flat_market):
    config = RaceConfig(SYMBOL, START_MS, START_MS, step_minutes=15)
    race = RaceController(flat_market, config, fee_rate=0.001)
    race.add_contestant(_dca(flat_market))

    [result] = await race.run()

    assert result.final_equity == pytest.approx(10000 - 1)
    assert race.contestants[0].portfolio.total_fees == pytest.approx(1)


class FailingContestant(ClockRecorder):
    """Raises a non-arena error on its second tick."""

    async def on_tick(self):
        await super().on_tick()
        if len(self.seen) == 2:
            raise RuntimeError("indicator blew up")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_contestant_error_fails_race(flat_market):
    race = _race(flat_market)
    race.add_contestant(_dca(flat_market))
    race.add_contestant(FailingContestant("failing", flat_market))
    events = []

    with pytest.raises(RuntimeError, match="indicator blew up"):
        await race.run(on_progress=events.append)

    assert race.state == RaceState.FAILED
    assert len(events) == 1
    assert race.clock.now() == START_MS + 15 * MINUTE_MS
    assert RaceContext.get_race_id() is None

    with pytest.raises(RaceStateError, match="failed"):
        await race.run()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_progress_event_matches_contestant_metrics(flat_market):
    race = _race(flat_market, minutes=30)
    race.add_contestant(_dca(flat_market))
    events = []

    await race.run(on_progress=events.append)

    metrics = race.contestants[0].get_metrics()
    last = events[-1]
    assert last.equities["dca-bot"] == pytest.approx(metrics.total_equity)
    assert last.positions["dca-bot"]["balance"] == pytest.approx(metrics.balance)
    assert metrics.trade_count == 2
    assert metrics.balance == pytest.approx(8000)
