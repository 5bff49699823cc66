"""Decision oracle for the LLM solo contestant.

The core treats the oracle as ``chat(prompt, system_prompt) -> text``; the
reply is parsed defensively by parse_decision().
"""

from typing import Protocol, runtime_checkable

from .heuristic import HeuristicOracle
from .minimax import MiniMaxClient
from .parser import parse_decision
from .prompts import SYSTEM_PROMPTS, AccountState, build_prompt, system_prompt_for


@runtime_checkable
class DecisionOracle(Protocol):
    async def chat(self, prompt: str, system_prompt: str) -> str:
        ...


__all__ = [
    "DecisionOracle",
    "HeuristicOracle",
    "MiniMaxClient",
    "parse_decision",
    "SYSTEM_PROMPTS",
    "AccountState",
    "build_prompt",
    "system_prompt_for",
]
