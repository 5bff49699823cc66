"""Race module.

Replay controller, contestant factory and result reporting.
"""

from ..config import RaceConfig
from .controller import (
    AbortSignal,
    ProgressEvent,
    RaceController,
    RaceResult,
    RaceState,
)
from .factory import build_contestant, build_contestants
from .reports import format_leaderboard, rank_results, save_results

__all__ = [
    "AbortSignal",
    "ProgressEvent",
    "RaceConfig",
    "RaceController",
    "RaceResult",
    "RaceState",
    "build_contestant",
    "build_contestants",
    "format_leaderboard",
    "rank_results",
    "save_results",
]
