"""
Orchestrator routing - intent classification and edge selection
"""

from typing import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from loguru import logger
from pydantic import ValidationError

from qase_analytics.agents.orchestrator.models import IntentClassification
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import CLASSIFIER_SYSTEM_PROMPT
from qase_analytics.llm.response_utils import extract_text_from_response, parse_json_response


def _history_block(history: Sequence[BaseMessage]) -> str:
    parts = []
    for message in history:
        if isinstance(message, HumanMessage):
            parts.append(f"User: {extract_text_from_response(message)}")
        elif isinstance(message, AIMessage):
            content = extract_text_from_response(message)
            # Long answers add tokens without helping classification
            parts.append(f"Assistant: {content[:300]}")
    if not parts:
        return ""
    return "\n\nRecent conversation context:\n" + "\n".join(parts)


async def classify_intent(
    message: str,
    history: Sequence[BaseMessage],
    llm: BaseChatModel,
) -> IntentClassification:
    """
    Classify a user message.

    Returns the ``general`` fallback when the model reply cannot be parsed;
    errors from the model call itself propagate.
    """
    prompt = [
        SystemMessage(content=CLASSIFIER_SYSTEM_PROMPT + _history_block(history)),
        HumanMessage(content=message),
    ]
    response = await llm.bind(response_format={"type": "json_object"}).ainvoke(prompt)

    parsed = parse_json_response(response)
    if parsed is None:
        return IntentClassification()
    try:
        return IntentClassification.model_validate(parsed)
    except ValidationError as e:
        logger.warning(f"Unusable intent classification {parsed}: {e}")
        return IntentClassification()


def route_after_intent(state: OrchestratorState) -> str:
    """Determine next node after classification."""
    intent = state.get("intent", "general")

    if intent == "list_projects":
        return "list_projects"
    if intent == "change_project":
        if state.get("extracted_project_code"):
            return "select_project"
        return "resolve_project"
    if intent == "query_data":
        if state.get("needs_project") and not state.get("project_code"):
            return "resolve_project"
        return "execute_agent"
    return "general_response"


def route_after_resolve(state: OrchestratorState) -> str:
    """Determine next node after project resolution."""
    if state.get("needs_project_selection"):
        return "ask_project_selection"
    if state.get("intent") == "change_project":
        # Nothing to switch to unless exactly one project was auto-selected
        return "select_project" if state.get("project_code") else "ask_project_selection"
    return "execute_agent"
