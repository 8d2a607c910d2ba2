"""
Agents - tool-calling QaseAgent, its registry and the orchestrator
"""

from qase_analytics.agents.qase_agent import AgentResponse, QaseAgent, QaseAgentConfig
from qase_analytics.agents.registry import AgentRegistry, agent_cache_key

__all__ = [
    "AgentRegistry",
    "AgentResponse",
    "QaseAgent",
    "QaseAgentConfig",
    "agent_cache_key",
]
