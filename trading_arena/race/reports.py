"""Race result reporting.

Leaderboard rendering and JSON persistence of race results.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from .controller import RaceResult

logger = logging.getLogger(__name__)


def rank_results(results: Sequence[RaceResult]) -> list[RaceResult]:
    """Results sorted by total return, best first (stable for ties)."""
    return sorted(results, key=lambda r: r.total_return, reverse=True)


def format_leaderboard(results: Sequence[RaceResult]) -> str:
    """Markdown leaderboard.

    Example:
        >>> print(format_leaderboard(results))
        | # | Contestant | Final Equity | Return | Trades | Sharpe | Max DD |
        ...
    """
    table = "| # | Contestant | Final Equity | Return | Trades | Sharpe | Max DD |\n"
    table += "|---|------------|--------------|--------|--------|--------|--------|\n"

    for rank, result in enumerate(rank_results(results), start=1):
        table += (
            f"| {rank} | {result.name} | ${result.final_equity:,.2f} "
            f"| {result.total_return * 100:+.2f}% | {result.trade_count} "
            f"| {result.sharpe_ratio:.2f} | {result.max_drawdown:.1f}% |\n"
        )

    return table


def save_results(
    results: Sequence[RaceResult],
    output_path: Path,
    metadata: Optional[dict] = None,
) -> Path:
    """Write results (and optional run metadata) as JSON.

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "results": [r.to_dict() for r in results],
        "leaderboard": [r.contestant_id for r in rank_results(results)],
    }
    if metadata:
        payload["metadata"] = metadata

    with open(output_path, "w") as f:
        json.dump(payload, f, indent=2)

    logger.info("results_saved", extra={"path": str(output_path), "count": len(results)})
    return output_path
