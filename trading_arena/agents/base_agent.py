"""Base agent interface for squad agents.

The multi-agent squad contestant wires a technical analyst to a squad leader;
both inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..clock import Clock
from ..logging_config import get_logger, RaceContext


class BaseAgent(ABC):
    """Base class for all squad agents.

    Provides common functionality and defines the interface that all
    agents must implement. Each agent does ONE thing and reads time only
    from the injected clock.
    """

    def __init__(self, agent_id: str, clock: Clock):
        """Initialize base agent.

        Args:
            agent_id: Identifier, unique within the owning contestant
            clock: Clock shared with the owning contestant
        """
        self.agent_id = agent_id
        self.clock = clock
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        """Execute agent logic.

        This is the main entry point for each agent. Takes a context dictionary
        containing the data available at this tick and returns the agent's
        contribution.

        Args:
            context: Shared context dictionary (symbol, price, signals...)

        Returns:
            Dictionary with the agent's output

        Example:
            >>> agent = TechnicalAnalystAgent("mas-tech", clock, reader)
            >>> result = await agent.execute({"symbol": "BTCUSDT"})
            >>> "signal" in result
            True
        """
        pass

    def get_agent_name(self) -> str:
        """Return agent name.

        Returns:
            Agent class name (e.g., "SquadLeaderAgent")
        """
        return self.__class__.__name__

    def log_decision(self, message: str, level: str = "info", **extra_data) -> None:
        """Log agent decision with structured logging and race context.

        Args:
            message: Log message
            level: Log level ("debug", "info", "warning", "error")
            **extra_data: Additional context fields to include in log
        """
        log_method = getattr(self.logger, level, self.logger.info)

        log_extra = {
            **RaceContext.get_extra(),
            "agent": self.get_agent_name(),
            "agent_id": self.agent_id,
            "sim_time": self.clock.now(),
            **extra_data,
        }

        log_method(message, extra=log_extra)
