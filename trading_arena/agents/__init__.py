"""Squad agents module.

This module contains the agents of the multi-agent squad contestant: a
technical analyst producing signals and a squad leader deciding on them.
"""

from .base_agent import BaseAgent
from .squad_leader import DecisionExecutor, SquadLeaderAgent
from .tech_analyst import TechnicalAnalystAgent

__all__ = ["BaseAgent", "DecisionExecutor", "SquadLeaderAgent", "TechnicalAnalystAgent"]
