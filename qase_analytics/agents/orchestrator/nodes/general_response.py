"""
General response node - small talk and help questions that need no data
"""

from langchain_core.messages import SystemMessage, HumanMessage

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import DEFAULT_RESPONSE, GENERAL_SYSTEM_PROMPT
from qase_analytics.llm.response_utils import extract_text_from_response


async def general_response_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    message = state["message"]
    memory = ctx.memory
    prompt = [SystemMessage(content=GENERAL_SYSTEM_PROMPT), *memory.get_messages(), HumanMessage(content=message)]
    llm = ctx.general_llm()

    if ctx.streaming:
        parts = []
        async for chunk in llm.astream(prompt):
            text = extract_text_from_response(chunk)
            if text:
                parts.append(text)
                await ctx.emit_token(text)
        response = "".join(parts)
    else:
        response = extract_text_from_response(await llm.ainvoke(prompt))

    streamed = ctx.streaming and bool(response)
    response = response or DEFAULT_RESPONSE
    ctx.remember(message, response)
    return {"response": response, "streamed": streamed, "needs_project_selection": False}
