#!/usr/bin/env python3
"""Trading arena CLI.

Commands:
    run         Run a race from a JSON run configuration, streaming NDJSON
    import-csv  Load candles from a CSV file into the market database
    stats       Show stored candle counts per symbol and interval

The run command writes one JSON object per line to stdout:

    {"type": "progress", "data": {...}}   after every step
    {"type": "final", "data": {"results": [...]}}
    {"type": "error", "data": {"message": "..."}}
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

from .config import ArenaConfig, RunConfig
from .database import MarketDatabase, load_candles_csv
from .exceptions import ArenaError, BacktestAbortedError, ConfigurationError
from .logging_config import get_logger, setup_logging
from .race import (
    AbortSignal,
    ProgressEvent,
    RaceController,
    build_contestants,
    format_leaderboard,
    save_results,
)
from .validation import validate_interval, validate_symbol

logger = get_logger(__name__)

EXIT_ABORTED = 130


def emit(event_type: str, data: dict):
    """Write one NDJSON line to stdout."""
    sys.stdout.write(json.dumps({"type": event_type, "data": data}) + "\n")
    sys.stdout.flush()


def _install_abort_handler(abort: AbortSignal) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, abort.abort)
    except (NotImplementedError, RuntimeError):
        # Platforms without loop signal handlers fall back to KeyboardInterrupt
        pass


async def cmd_run(args, arena_config: ArenaConfig) -> int:
    """Run a race and stream its progress."""
    try:
        with open(args.config) as f:
            data = json.load(f)
        data.setdefault("initialCapital", arena_config.initial_capital)
        run_config = RunConfig.from_dict(data)
    except (OSError, json.JSONDecodeError) as e:
        emit("error", {"message": f"Cannot read run configuration: {e}"})
        return 1
    except ConfigurationError as e:
        logger.error("cli_configuration_error", extra={"command": "run", "error": str(e)})
        emit("error", {"message": str(e)})
        return 1

    abort = AbortSignal()
    _install_abort_handler(abort)

    def on_progress(event: ProgressEvent):
        emit("progress", event.to_dict())

    try:
        async with MarketDatabase(args.db or arena_config.database_url) as db:
            contestants = build_contestants(run_config, db, arena_config)
            controller = RaceController(db, run_config.race, fee_rate=arena_config.fee_rate)
            for contestant in contestants:
                controller.add_contestant(contestant)

            results = await controller.run(on_progress=on_progress, abort_signal=abort)

    except BacktestAbortedError as e:
        emit("error", {"message": str(e)})
        return EXIT_ABORTED
    except ArenaError as e:
        logger.error("cli_command_failed", extra={"command": "run", "error": str(e)})
        emit("error", {"message": str(e)})
        return 1

    emit("final", {"results": [r.to_dict() for r in results]})

    if args.output:
        save_results(
            results,
            Path(args.output),
            metadata={
                "symbol": run_config.race.symbol,
                "start": run_config.race.start,
                "end": run_config.race.end,
                "step_minutes": run_config.race.step_minutes,
            },
        )

    if args.leaderboard:
        sys.stderr.write(format_leaderboard(results))

    return 0


async def cmd_import_csv(args, arena_config: ArenaConfig) -> int:
    """Load candles from CSV into the market database."""
    try:
        symbol = validate_symbol(args.symbol)
        interval = validate_interval(args.interval)
        candles = load_candles_csv(args.file, symbol, interval)

        async with MarketDatabase(args.db or arena_config.database_url) as db:
            count = await db.insert_candles(candles, symbol, interval)
            date_range = await db.get_date_range(symbol, interval)

    except ArenaError as e:
        logger.error("cli_command_failed", extra={"command": "import-csv", "error": str(e)})
        print(json.dumps({"success": False, "error": str(e)}))
        return 1

    print(json.dumps({
        "success": True,
        "symbol": symbol,
        "interval": interval,
        "submitted": count,
        "range": list(date_range) if date_range else None,
    }, indent=2))
    return 0


async def cmd_stats(args, arena_config: ArenaConfig) -> int:
    """Print candle counts per symbol and interval."""
    try:
        async with MarketDatabase(args.db or arena_config.database_url) as db:
            stats = await db.get_stats()
    except ArenaError as e:
        print(json.dumps({"success": False, "error": str(e)}))
        return 1

    print(json.dumps({"success": True, "stats": stats}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trading-arena",
        description="Backtest arena: race trading strategies over historical candles",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a race from a JSON configuration")
    run_parser.add_argument("--config", required=True, help="Run configuration file (JSON)")
    run_parser.add_argument("--db", help="Database URL (default: ARENA_DATABASE_URL)")
    run_parser.add_argument("--output", help="Write final results to this JSON file")
    run_parser.add_argument(
        "--leaderboard", action="store_true", help="Print a markdown leaderboard to stderr"
    )

    import_parser = subparsers.add_parser("import-csv", help="Import candles from CSV")
    import_parser.add_argument("--symbol", required=True, help="Trading symbol, e.g. BTCUSDT")
    import_parser.add_argument("--interval", default="1m", help="Candle interval (default 1m)")
    import_parser.add_argument("--file", required=True, help="CSV file path")
    import_parser.add_argument("--db", help="Database URL (default: ARENA_DATABASE_URL)")

    stats_parser = subparsers.add_parser("stats", help="Show stored candle counts")
    stats_parser.add_argument("--db", help="Database URL (default: ARENA_DATABASE_URL)")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    arena_config = ArenaConfig.from_env()
    setup_logging(arena_config.log_level, use_json=arena_config.log_json)

    commands = {
        "run": cmd_run,
        "import-csv": cmd_import_csv,
        "stats": cmd_stats,
    }

    try:
        exit_code = asyncio.run(commands[args.command](args, arena_config))
    except KeyboardInterrupt:
        emit("error", {"message": "BACKTEST_ABORTED"})
        exit_code = EXIT_ABORTED

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
