"""Contestants module.

Pluggable strategies raced against each other on the same market replay.
"""

from .base import Contestant
from .dca import DCAContestant
from .grid import GridConfig, GridContestant, GridState, build_levels
from .llm_solo import LLMSoloContestant
from .mas import MASContestant

__all__ = [
    "Contestant",
    "DCAContestant",
    "GridConfig",
    "GridContestant",
    "GridState",
    "build_levels",
    "LLMSoloContestant",
    "MASContestant",
]
