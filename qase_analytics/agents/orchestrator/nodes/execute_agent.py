"""
Execute agent node - delegates data questions to the tool-calling QaseAgent
"""

from loguru import logger

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import DEFAULT_RESPONSE
from qase_analytics.agents.qase_agent import QaseAgentConfig


async def execute_agent_node(state: OrchestratorState, ctx: OrchestratorContext) -> OrchestratorState:
    """Run the agent bound to the project resolved for this turn."""
    project_code = state.get("project_code")
    agent = ctx.agent_registry.get_or_create(
        QaseAgentConfig(
            llm_api_key=ctx.config.llm_api_key,
            qase_token=ctx.config.external_api_token,
            user_id=ctx.user_id,
            project_code=project_code,
            verbose=ctx.config.verbose,
        )
    )

    logger.info(f"Executing QaseAgent for user {ctx.user_id} (project={project_code or 'all'})")

    if ctx.streaming:
        result = await agent.chat_stream(
            state["message"],
            on_token=ctx.emit_token,
            on_tool_start=ctx.emit_tool_start,
            on_tool_end=ctx.emit_tool_end,
        )
    else:
        result = await agent.chat(state["message"])

    logger.info(f"QaseAgent finished in {result.duration_ms}ms using {result.tools_used or 'no tools'}")
    return {
        "response": result.output or DEFAULT_RESPONSE,
        "streamed": ctx.streaming,
        "needs_project_selection": False,
        "projects": None,
        "tools_used": result.tools_used,
    }
