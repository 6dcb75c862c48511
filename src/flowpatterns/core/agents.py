"""Typed agent registry."""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .abstractions import IAgent
from .types import UnknownAgentError

logger = logging.getLogger(__name__)


class AgentRegistry:
    """
    Mapping from agent name to agent.

    Workflows resolve the agents they need when they are built, so a missing
    agent fails at build time with ``UnknownAgentError`` instead of inside a
    running step.
    """

    def __init__(self, agents: Optional[Iterable[IAgent]] = None):
        self._agents: Dict[str, IAgent] = {}
        for agent in agents or []:
            self.register(agent)

    def register(self, agent: IAgent) -> "AgentRegistry":
        """Add an agent; re-registering a name replaces the previous agent."""
        if agent.name in self._agents:
            logger.warning(f"Replacing registered agent '{agent.name}'")
        self._agents[agent.name] = agent
        return self

    def get(self, name: str) -> IAgent:
        """
        Look up an agent.

        Raises:
            UnknownAgentError: If no agent has that name
        """
        try:
            return self._agents[name]
        except KeyError:
            raise UnknownAgentError(name, sorted(self._agents)) from None

    def names(self) -> List[str]:
        return sorted(self._agents)

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._agents)
