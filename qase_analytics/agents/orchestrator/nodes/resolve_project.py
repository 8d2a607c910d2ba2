"""
Resolve project node - lists projects when no project is known for the turn
"""

from loguru import logger

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.models import Project
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.tools.base import ToolName
from qase_analytics.utils.errors import QaseAuthError


async def resolve_project_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    """
    One project is auto-selected and persisted, several require the user to
    choose, none lets the turn continue without a project.
    """
    result = await ctx.list_projects()
    update: OrchestratorState = {"tools_used": [ToolName.LIST_PROJECTS.value]}

    if not result.success:
        if result.error_kind == "auth":
            raise QaseAuthError(result.error or "Invalid or expired Qase API token")
        logger.warning(f"Project resolution failed for user {ctx.user_id}: {result.error}")
        update.update({"projects": [], "needs_project_selection": False, "error": result.error})
        return update

    projects = [Project(code=p.code, title=p.title) for p in result.projects]
    update["projects"] = projects

    if len(projects) == 1:
        code = projects[0].code
        logger.info(f"Auto-selected the only project {code} for user {ctx.user_id}")
        update.update({
            "project_code": code,
            "persist_project": code,
            "needs_project_selection": False,
        })
    else:
        update["needs_project_selection"] = len(projects) > 1

    return update
