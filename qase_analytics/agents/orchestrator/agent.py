"""
Orchestrator - main LangGraph workflow

Classifies each message, makes sure a project is known when the question
needs one, then answers directly or hands over to the QaseAgent.
"""

import asyncio
import time
from typing import AsyncIterator, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph
from loguru import logger

from qase_analytics.agents.orchestrator.context import OrchestratorContext
from qase_analytics.agents.orchestrator.models import (
    OrchestratorConfig,
    OrchestratorResult,
    StreamCallbacks,
    StreamEvent,
)
from qase_analytics.agents.orchestrator.nodes import (
    analyze_intent_node,
    ask_project_selection_node,
    execute_agent_node,
    finalize_node,
    general_response_node,
    list_projects_node,
    resolve_project_node,
    select_project_node,
)
from qase_analytics.agents.orchestrator.routing import route_after_intent, route_after_resolve
from qase_analytics.agents.orchestrator.state import OrchestratorState
from qase_analytics.agents.prompts import DEFAULT_RESPONSE
from qase_analytics.agents.qase_agent import QaseAgent, QaseAgentConfig
from qase_analytics.agents.registry import AgentRegistry
from qase_analytics.cache.store import CacheStore, get_cache_store
from qase_analytics.clients.qase import QaseClientFactory, create_qase_client
from qase_analytics.llm.client import LLMFactory, create_llm
from qase_analytics.memory.conversation import SessionMemoryStore, get_memory_store
from qase_analytics.memory.project_context import ProjectContextStore, get_project_context_store
from qase_analytics.tools.registry import build_toolset
from qase_analytics.utils.callbacks import invoke_callback
from qase_analytics.utils.errors import describe_error, error_details


_shared_orchestrator: Optional["Orchestrator"] = None


def get_orchestrator(**kwargs) -> "Orchestrator":
    """Get shared orchestrator instance (singleton)."""
    global _shared_orchestrator
    if _shared_orchestrator is None:
        _shared_orchestrator = Orchestrator(**kwargs)
    return _shared_orchestrator


def reset_orchestrator() -> None:
    global _shared_orchestrator
    _shared_orchestrator = None


def _with_context(node):
    """Adapt a ``node(state, ctx)`` function to LangGraph's ``(state, config)`` signature."""
    async def _node(state: OrchestratorState, config: RunnableConfig) -> OrchestratorState:
        ctx: OrchestratorContext = config["configurable"]["ctx"]
        return await node(state, ctx)

    _node.__name__ = node.__name__
    return _node


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class Orchestrator:
    """
    Entry point of the analytics engine.

    Workflow: START → analyze_intent → [resolve_project → ask_project_selection]
    | list_projects | select_project | execute_agent | general_response →
    finalize → END

    The graph is compiled once; per-request credentials, stores and
    streaming callbacks travel in an OrchestratorContext passed through the
    run config.
    """

    def __init__(
        self,
        memory_store: Optional[SessionMemoryStore] = None,
        project_store: Optional[ProjectContextStore] = None,
        cache: Optional[CacheStore] = None,
        llm_factory: LLMFactory = create_llm,
        client_factory: QaseClientFactory = create_qase_client,
        agent_registry: Optional[AgentRegistry] = None,
    ):
        self.memory_store = memory_store if memory_store is not None else get_memory_store()
        self.project_store = project_store if project_store is not None else get_project_context_store()
        self.cache = cache if cache is not None else get_cache_store()
        self.llm_factory = llm_factory
        self.client_factory = client_factory
        self.agent_registry = agent_registry or AgentRegistry(self._build_agent)

        self.workflow = self._build_workflow()
        logger.info(f"Initialized Orchestrator (cache={type(self.cache).__name__})")

    def _build_agent(self, config: QaseAgentConfig) -> QaseAgent:
        return QaseAgent(
            config,
            memory=lambda: self.memory_store.get_session(config.user_id),
            llm_factory=self.llm_factory,
            cache=self.cache,
            client_factory=self.client_factory,
        )

    def _build_workflow(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(OrchestratorState)

        workflow.add_node("analyze_intent", _with_context(analyze_intent_node))
        workflow.add_node("resolve_project", _with_context(resolve_project_node))
        workflow.add_node("ask_project_selection", _with_context(ask_project_selection_node))
        workflow.add_node("list_projects", _with_context(list_projects_node))
        workflow.add_node("select_project", _with_context(select_project_node))
        workflow.add_node("execute_agent", _with_context(execute_agent_node))
        workflow.add_node("general_response", _with_context(general_response_node))
        workflow.add_node("finalize", _with_context(finalize_node))

        workflow.set_entry_point("analyze_intent")
        workflow.add_conditional_edges(
            "analyze_intent",
            route_after_intent,
            {
                "resolve_project": "resolve_project",
                "execute_agent": "execute_agent",
                "list_projects": "list_projects",
                "select_project": "select_project",
                "general_response": "general_response",
            },
        )
        workflow.add_conditional_edges(
            "resolve_project",
            route_after_resolve,
            {
                "ask_project_selection": "ask_project_selection",
                "select_project": "select_project",
                "execute_agent": "execute_agent",
            },
        )
        for node in ("ask_project_selection", "list_projects", "select_project", "execute_agent", "general_response"):
            workflow.add_edge(node, "finalize")
        workflow.add_edge("finalize", END)

        return workflow.compile()

    def _context(self, config: OrchestratorConfig, callbacks: Optional[StreamCallbacks] = None) -> OrchestratorContext:
        toolset = build_toolset(
            token_provider=lambda: config.external_api_token,
            user_id_provider=lambda: config.user_id,
            cache=self.cache,
            client_factory=self.client_factory,
            include_chart=False,
        )
        return OrchestratorContext(
            config=config,
            memory_store=self.memory_store,
            project_store=self.project_store,
            agent_registry=self.agent_registry,
            toolset=toolset,
            llm_factory=self.llm_factory,
            callbacks=callbacks,
        )

    async def _execute(self, ctx: OrchestratorContext, message: str) -> OrchestratorState:
        if ctx.config.verbose:
            logger.info(f"\n{'='*80}\nORCHESTRATOR MESSAGE ({ctx.user_id}): {message}\n{'='*80}")

        initial_state: OrchestratorState = {
            "message": message,
            "needs_project_selection": False,
            "streamed": False,
            "tools_used": [],
        }
        return await self.workflow.ainvoke(initial_state, config={"configurable": {"ctx": ctx}})

    @staticmethod
    def _result(state: OrchestratorState, started: float) -> OrchestratorResult:
        needs_selection = bool(state.get("needs_project_selection"))
        return OrchestratorResult(
            response=state.get("response") or DEFAULT_RESPONSE,
            needs_project_selection=needs_selection,
            projects=state.get("projects") if needs_selection else None,
            tools_used=list(state.get("tools_used") or []),
            duration_ms=_elapsed_ms(started),
        )

    async def run(self, config: OrchestratorConfig, message: str) -> OrchestratorResult:
        """Answer ``message``; errors are turned into a user-facing response."""
        started = time.perf_counter()
        try:
            state = await self._execute(self._context(config), message)
        except Exception as e:
            logger.exception(f"Orchestrator failed for user {config.user_id}: {error_details(e)}")
            return OrchestratorResult(response=describe_error(e), duration_ms=_elapsed_ms(started))

        result = self._result(state, started)
        logger.info(
            f"Orchestrator answered user {config.user_id} in {result.duration_ms}ms "
            f"(tools={result.tools_used}, needs_project_selection={result.needs_project_selection})"
        )
        return result

    async def run_stream(
        self,
        config: OrchestratorConfig,
        message: str,
        callbacks: StreamCallbacks,
    ) -> Optional[OrchestratorResult]:
        """
        Streaming variant of ``run``.

        Exactly one of ``on_done`` (with the result) or ``on_error`` (with a
        user-facing message) is called. Responses that were not generated
        token by token are delivered as a single token.
        """
        started = time.perf_counter()
        try:
            state = await self._execute(self._context(config, callbacks), message)
            result = self._result(state, started)
            if result.needs_project_selection:
                await invoke_callback(callbacks.on_needs_project_selection, result.projects)
            if not state.get("streamed"):
                await invoke_callback(callbacks.on_token, result.response)
        except Exception as e:
            logger.exception(f"Orchestrator stream failed for user {config.user_id}: {error_details(e)}")
            await invoke_callback(callbacks.on_error, describe_error(e))
            return None

        await invoke_callback(callbacks.on_done, result)
        return result

    async def stream_events(self, config: OrchestratorConfig, message: str) -> AsyncIterator[StreamEvent]:
        """
        Pull-based equivalent of ``run_stream``.

        The last event is always ``done`` or ``error``. Closing the iterator
        early cancels the underlying run.
        """
        queue: "asyncio.Queue[Optional[StreamEvent]]" = asyncio.Queue()
        callbacks = StreamCallbacks(
            on_token=lambda token: queue.put_nowait(StreamEvent(event="token", content=token)),
            on_tool_start=lambda name: queue.put_nowait(StreamEvent(event="tool_start", tool=name)),
            on_tool_end=lambda name: queue.put_nowait(StreamEvent(event="tool_end", tool=name)),
            on_needs_project_selection=lambda projects: queue.put_nowait(
                StreamEvent(event="project_selection", projects=projects)
            ),
            on_error=lambda error: queue.put_nowait(StreamEvent(event="error", content=error)),
            on_done=lambda result: queue.put_nowait(StreamEvent(event="done", result=result)),
        )

        async def produce() -> None:
            try:
                await self.run_stream(config, message, callbacks)
            finally:
                queue.put_nowait(None)

        task = asyncio.create_task(produce())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
