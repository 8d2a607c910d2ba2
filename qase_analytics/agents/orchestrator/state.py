"""
Orchestrator workflow state
"""

import operator
from typing import Annotated, List, Optional, TypedDict

from qase_analytics.agents.orchestrator.models import Project


class OrchestratorState(TypedDict, total=False):
    """State for the orchestrator workflow"""
    message: str
    intent: str
    needs_project: bool
    extracted_project_code: Optional[str]
    project_code: Optional[str]  # Project this turn runs against
    persist_project: Optional[str]  # Written to the project context store after the run
    projects: Optional[List[Project]]
    needs_project_selection: bool
    response: Optional[str]
    streamed: bool  # Response already delivered token by token
    error: Optional[str]
    tools_used: Annotated[List[str], operator.add]
