"""
Orchestrator workflow nodes
"""

from qase_analytics.agents.orchestrator.nodes.analyze_intent import analyze_intent_node
from qase_analytics.agents.orchestrator.nodes.resolve_project import resolve_project_node
from qase_analytics.agents.orchestrator.nodes.ask_project_selection import ask_project_selection_node
from qase_analytics.agents.orchestrator.nodes.execute_agent import execute_agent_node
from qase_analytics.agents.orchestrator.nodes.list_projects import list_projects_node
from qase_analytics.agents.orchestrator.nodes.select_project import select_project_node
from qase_analytics.agents.orchestrator.nodes.general_response import general_response_node
from qase_analytics.agents.orchestrator.nodes.finalize import finalize_node

__all__ = [
    "analyze_intent_node",
    "resolve_project_node",
    "ask_project_selection_node",
    "execute_agent_node",
    "list_projects_node",
    "select_project_node",
    "general_response_node",
    "finalize_node",
]
