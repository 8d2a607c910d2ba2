"""
QaseAgent - tool-calling loop over the closed Qase toolset

The model is bound to the OpenAI schemas of the registered tools. Each turn
it either answers or requests tool calls; requested calls are dispatched by
name through the Toolset and their JSON results fed back as ToolMessages
until the model answers or the iteration cap is reached.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from loguru import logger

from qase_analytics.agents.prompts import FALLBACK_RESPONSE, build_agent_system_prompt
from qase_analytics.cache.store import CacheStore
from qase_analytics.clients.qase import QaseClientFactory, create_qase_client
from qase_analytics.config.settings import settings
from qase_analytics.llm.client import LLMFactory, create_llm
from qase_analytics.llm.response_utils import extract_text_from_response
from qase_analytics.memory.conversation import ConversationMemory
from qase_analytics.tools.registry import (
    Toolset,
    UnknownToolError,
    ValueProvider,
    build_toolset,
    resolve_provider,
)
from qase_analytics.utils.callbacks import MaybeAsyncCallback, invoke_callback
from qase_analytics.utils.errors import QaseAuthError

# A fixed memory, or a getter returning the user's current session
MemoryProvider = Union[ConversationMemory, Callable[[], ConversationMemory]]


@dataclass
class QaseAgentConfig:
    """Context one agent instance is bound to"""
    llm_api_key: str
    qase_token: ValueProvider
    user_id: str
    project_code: Optional[str] = None
    model: str = field(default_factory=lambda: settings.openai_model)
    temperature: float = field(default_factory=lambda: settings.agent_temperature)
    max_iterations: int = field(default_factory=lambda: settings.agent_max_iterations)
    verbose: bool = False


@dataclass
class AgentResponse:
    output: str
    tools_used: List[str]
    duration_ms: int
    chat_history: List[BaseMessage] = field(default_factory=list)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class QaseAgent:
    """
    LLM agent bound to one ``{user_id, project_code, token}`` context.

    Exceptions from the model propagate to the caller; tool failures are
    returned to the model as ``success=false`` payloads, except an invalid
    Qase token which aborts the turn with QaseAuthError.
    """

    def __init__(
        self,
        config: QaseAgentConfig,
        memory: MemoryProvider,
        llm: Optional[BaseChatModel] = None,
        llm_factory: LLMFactory = create_llm,
        toolset: Optional[Toolset] = None,
        cache: Optional[CacheStore] = None,
        client_factory: QaseClientFactory = create_qase_client,
    ):
        self.config = config
        self._memory = memory
        self.llm = llm or llm_factory(
            api_key=config.llm_api_key,
            model=config.model,
            temperature=config.temperature,
            streaming=True,
        )
        self.toolset = toolset or build_toolset(
            token_provider=self._current_token,
            user_id_provider=lambda: self.config.user_id,
            cache=cache,
            client_factory=client_factory,
        )
        self._bound_llm = None

        if config.verbose:
            logger.info(
                f"Initialized QaseAgent (user={config.user_id}, project={config.project_code or 'all'}, "
                f"tools={', '.join(self.toolset.names)})"
            )

    async def _current_token(self) -> str:
        return await resolve_provider(self.config.qase_token)

    @property
    def memory(self) -> ConversationMemory:
        """Resolved on every access so a deleted session is never written to."""
        return self._memory() if callable(self._memory) else self._memory

    @property
    def project_code(self) -> Optional[str]:
        return self.config.project_code

    def _model(self):
        if self._bound_llm is None:
            self._bound_llm = self.llm.bind_tools(self.toolset.openai_schemas())
        return self._bound_llm

    def _build_messages(self, message: str) -> List[BaseMessage]:
        system = SystemMessage(content=build_agent_system_prompt(self.config.user_id, self.project_code))
        return [system, *self.memory.get_messages(), HumanMessage(content=message)]

    def _prepare_arguments(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        prepared = dict(arguments or {})
        tool = self.toolset.get(tool_name)
        if "project_code" in tool.input_model.model_fields and not prepared.get("project_code") and self.project_code:
            prepared["project_code"] = self.project_code
        return prepared

    async def _execute_tool_call(self, call: Dict[str, Any]) -> str:
        name = call["name"]
        try:
            arguments = self._prepare_arguments(name, call.get("args") or {})
        except UnknownToolError:
            logger.warning(f"Model requested unknown tool: {name}")
            return f'{{"success": false, "error": "Unknown tool: {name}"}}'

        result = await self.toolset.call(name, arguments)
        if result.error_kind == "auth":
            raise QaseAuthError(result.error or "Invalid or expired Qase API token")
        return result.to_model_payload()

    async def _stream_turn(self, model, messages: List[BaseMessage], on_token: MaybeAsyncCallback) -> AIMessage:
        aggregate = None
        async for chunk in model.astream(messages):
            text = extract_text_from_response(chunk)
            if text:
                await invoke_callback(on_token, text)
            aggregate = chunk if aggregate is None else aggregate + chunk

        if aggregate is None:
            return AIMessage(content="")
        return AIMessage(content=aggregate.content, tool_calls=aggregate.tool_calls)

    async def _run(
        self,
        message: str,
        on_token: Optional[MaybeAsyncCallback] = None,
        on_tool_start: Optional[MaybeAsyncCallback] = None,
        on_tool_end: Optional[MaybeAsyncCallback] = None,
    ) -> Tuple[str, List[str]]:
        model = self._model()
        messages = self._build_messages(message)
        tools_used: List[str] = []

        for iteration in range(self.config.max_iterations):
            if on_token is None:
                reply = await model.ainvoke(messages)
            else:
                reply = await self._stream_turn(model, messages, on_token)
            messages.append(reply)

            tool_calls = getattr(reply, "tool_calls", None) or []
            if not tool_calls:
                return extract_text_from_response(reply), tools_used

            for call in tool_calls:
                name = call["name"]
                tools_used.append(name)
                if self.config.verbose:
                    logger.info(f"[iteration {iteration + 1}] tool call {name}({call.get('args')})")
                await invoke_callback(on_tool_start, name)
                content = await self._execute_tool_call(call)
                messages.append(ToolMessage(content=content, tool_call_id=call.get("id") or name, name=name))
                await invoke_callback(on_tool_end, name)

        logger.warning(
            f"QaseAgent hit max iterations ({self.config.max_iterations}) for user {self.config.user_id}"
        )
        if on_token is not None:
            await invoke_callback(on_token, FALLBACK_RESPONSE)
        return FALLBACK_RESPONSE, tools_used

    def _remember(self, message: str, output: str) -> None:
        self.memory.add_human_message(message)
        self.memory.add_ai_message(output)

    async def chat(self, message: str) -> AgentResponse:
        """Answer ``message``, calling tools as the model requests."""
        started = time.perf_counter()
        output, tools_used = await self._run(message)
        self._remember(message, output)
        return AgentResponse(
            output=output,
            tools_used=tools_used,
            duration_ms=_elapsed_ms(started),
            chat_history=self.memory.get_messages(),
        )

    async def chat_stream(
        self,
        message: str,
        on_token: MaybeAsyncCallback,
        on_tool_start: Optional[MaybeAsyncCallback] = None,
        on_tool_end: Optional[MaybeAsyncCallback] = None,
    ) -> AgentResponse:
        """Same as ``chat`` but emits text fragments and tool events as they happen."""
        started = time.perf_counter()
        output, tools_used = await self._run(message, on_token, on_tool_start, on_tool_end)
        self._remember(message, output)
        return AgentResponse(
            output=output,
            tools_used=tools_used,
            duration_ms=_elapsed_ms(started),
            chat_history=self.memory.get_messages(),
        )

    def get_info(self) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "user_id": self.config.user_id,
            "project_code": self.project_code,
            "tools_count": len(self.toolset),
            "tool_names": self.toolset.names,
        }

    def set_project(self, project_code: Optional[str]) -> None:
        self.config.project_code = project_code

    def clear_history(self) -> None:
        self.memory.clear()

    def get_history(self) -> List[BaseMessage]:
        return self.memory.get_messages()
