"""
Finalize node - persists the project chosen during the turn
"""

from loguru import logger

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.state import OrchestratorState


async def finalize_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    """Only explicit switches and single-project auto-selection reach the store."""
    code = state.get("persist_project")
    if code:
        ctx.project_store.set_project(ctx.user_id, code)
        logger.debug(f"Stored project {code} for user {ctx.user_id}")
    return {}
