"""
Agent registry - reuses one QaseAgent per (user, project) pair
"""

from collections import OrderedDict
from typing import Callable, Optional, Tuple

from loguru import logger

from qase_analytics.agents.qase_agent import QaseAgent, QaseAgentConfig
from qase_analytics.config.settings import settings

AgentBuilder = Callable[[QaseAgentConfig], QaseAgent]
AgentKey = Tuple[str, Optional[str]]


def agent_cache_key(user_id: str, project_code: Optional[str] = None) -> AgentKey:
    return (user_id, project_code or None)


class AgentRegistry:
    """
    Keyed by ``(user_id, project_code)``, ``project_code`` None when no
    project is set.

    Holds at most ``max_agents`` entries; the least recently used one is
    dropped when a new agent would exceed that.
    """

    def __init__(self, builder: AgentBuilder, max_agents: Optional[int] = None):
        self._builder = builder
        self.max_agents = max_agents or settings.agent_registry_max_size
        self._agents: "OrderedDict[AgentKey, QaseAgent]" = OrderedDict()

    def get_or_create(self, config: QaseAgentConfig, force_new: bool = False) -> QaseAgent:
        key = agent_cache_key(config.user_id, config.project_code)
        agent = self._agents.get(key)
        if agent is None or force_new:
            agent = self._builder(config)
            self._agents[key] = agent
            logger.debug(f"Created agent {key}")
            self._evict()
        else:
            # Same user and project, but the caller may carry a refreshed token
            agent.config.qase_token = config.qase_token
        self._agents.move_to_end(key)
        return agent

    def _evict(self) -> None:
        while len(self._agents) > self.max_agents:
            key, _ = self._agents.popitem(last=False)
            logger.debug(f"Evicted agent {key}")

    def remove(self, user_id: str, project_code: Optional[str] = None) -> bool:
        return self._agents.pop(agent_cache_key(user_id, project_code), None) is not None

    def remove_user(self, user_id: str) -> int:
        keys = [key for key in self._agents if key[0] == user_id]
        for key in keys:
            del self._agents[key]
        return len(keys)

    def clear(self) -> None:
        self._agents.clear()

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, key: AgentKey) -> bool:
        return key in self._agents
