"""
List projects node - answers "which projects do I have" without the agent
"""

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import NO_PROJECTS_RESPONSE, project_list_response
from qase_analytics.tools.base import ToolName
from qase_analytics.utils.errors import QaseAuthError


async def list_projects_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    """Answer directly from the projects tool."""
    result = await ctx.list_projects()

    if not result.success:
        if result.error_kind == "auth":
            raise QaseAuthError(result.error or "Invalid or expired Qase API token")
        response = f"I couldn't list your projects: {result.error}"
    elif not result.projects:
        response = NO_PROJECTS_RESPONSE
    else:
        response = project_list_response(result.total or len(result.projects), result.projects)

    ctx.remember(state["message"], response)
    return {
        "response": response,
        "needs_project_selection": False,
        "tools_used": [ToolName.LIST_PROJECTS.value],
    }
