"""
Select project node - switches the user's active project
"""

from loguru import logger

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import project_selected_response


async def select_project_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    code = state.get("extracted_project_code") or state.get("project_code")
    logger.info(f"User {ctx.user_id} switched to project {code}")

    response = project_selected_response(code)
    ctx.remember(state["message"], response)
    return {
        "project_code": code,
        "persist_project": code,
        "response": response,
        "needs_project_selection": False,
    }
