"""
Ask project selection node - terminal state when the user must pick a project
"""

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import NO_PROJECTS_RESPONSE, project_selection_prompt


async def ask_project_selection_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    projects = state.get("projects") or []

    if not projects:
        response = NO_PROJECTS_RESPONSE
        update: OrchestratorState = {"needs_project_selection": False, "projects": None}
    else:
        response = project_selection_prompt(projects)
        update = {"needs_project_selection": True, "projects": projects}

    ctx.remember(state["message"], response)
    update["response"] = response
    return update
