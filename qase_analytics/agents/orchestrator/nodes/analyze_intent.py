"""
Analyze intent node - classifies the message and picks the project for this turn
"""

from loguru import logger

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.routing import classify_intent
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.config.settings import settings


async def analyze_intent_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    """Classify intent; an in-message project code beats the configured and stored ones for this turn."""
    message = state["message"]
    history = ctx.memory.get_messages()[-settings.classifier_history_messages:]

    classification = await classify_intent(message, history, ctx.classifier_llm())

    project_code = (
        classification.extracted_project_code
        or ctx.config.project_code
        or ctx.project_store.get_project(ctx.user_id)
    )

    logger.info(
        f"Intent: {classification.intent} | needs_project={classification.needs_project} | "
        f"extracted={classification.extracted_project_code} | project={project_code}"
    )

    return {
        "intent": classification.intent,
        "needs_project": classification.needs_project,
        "extracted_project_code": classification.extracted_project_code,
        "project_code": project_code,
    }
