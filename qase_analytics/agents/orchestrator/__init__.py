"""
Orchestrator - intent routing and project resolution in front of the QaseAgent
"""

from qase_analytics.agents.orchestrator.agent import Orchestrator, get_orchestrator, reset_orchestrator
from qase_analytics.agents.orchestrator.models import (
    IntentClassification,
    OrchestratorConfig,
    OrchestratorResult,
    Project,
    StreamCallbacks,
    StreamEvent,
)

__all__ = [
    "Orchestrator",
    "OrchestratorConfig",
    "OrchestratorResult",
    "IntentClassification",
    "Project",
    "StreamCallbacks",
    "StreamEvent",
    "get_orchestrator",
    "reset_orchestrator",
]
