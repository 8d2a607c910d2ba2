"""
Chat service

Caller-facing layer in front of the Orchestrator. Validates the message,
looks up the user's Qase token, runs the orchestrator and keeps the
per-user session operations (history, status, project) in one place.
"""

import inspect
import time
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Literal, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field

from qase_analytics.agents.orchestrator import (
    Orchestrator,
    OrchestratorConfig,
    Project,
    StreamCallbacks,
    get_orchestrator,
)
from qase_analytics.cache.keys import user_cache_patterns
from qase_analytics.config.settings import settings
from qase_analytics.utils.callbacks import invoke_callback
from qase_analytics.utils.errors import MessageValidationError

# Returns the decrypted Qase token for a user, or None when not connected
TokenLookup = Callable[[str], Union[Optional[str], Awaitable[Optional[str]]]]

QASE_NOT_CONNECTED_MESSAGE = "Please connect your Qase account first"
LLM_NOT_CONFIGURED_MESSAGE = "OpenAI API key is not configured"


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tools_used: Optional[List[str]] = None
    duration_ms: Optional[int] = None


class SendMessageResult(BaseModel):
    success: bool
    message: Optional[ChatMessage] = None
    error: Optional[str] = None
    needs_project_selection: bool = False
    projects: Optional[List[Project]] = None
    tools_used: List[str] = Field(default_factory=list)
    duration_ms: int = 0


class ChatHistory(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    project_code: Optional[str] = None


class ChatSessionStatus(BaseModel):
    active: bool
    project_code: Optional[str] = None
    message_count: int = 0


class ProjectChangeResult(BaseModel):
    success: bool
    message: str


def generate_message_id() -> str:
    return f"msg-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"


class ChatService:
    """
    Validates requests and delegates to the Orchestrator.

    ``token_lookup`` may be a plain or coroutine function of the user id.
    """

    def __init__(
        self,
        token_lookup: TokenLookup,
        orchestrator: Optional[Orchestrator] = None,
        llm_api_key: Optional[str] = None,
    ):
        self.token_lookup = token_lookup
        self.orchestrator = orchestrator or get_orchestrator()
        self.llm_api_key = llm_api_key if llm_api_key is not None else settings.openai_api_key

    async def _get_token(self, user_id: str) -> Optional[str]:
        token = self.token_lookup(user_id)
        if inspect.isawaitable(token):
            token = await token
        return token or None

    @staticmethod
    def validate_message(message: Optional[str]) -> str:
        """Raise MessageValidationError unless the message is usable."""
        if not message or not message.strip():
            raise MessageValidationError("Message is required")
        if len(message) > settings.max_message_length:
            raise MessageValidationError(
                f"Message is too long (max {settings.max_message_length} characters)"
            )
        return message

    async def _build_config(self, user_id: str, message: str, project_code: Optional[str]) -> OrchestratorConfig:
        self.validate_message(message)
        token = await self._get_token(user_id)
        if not token:
            raise MessageValidationError(QASE_NOT_CONNECTED_MESSAGE)
        if not self.llm_api_key:
            raise MessageValidationError(LLM_NOT_CONFIGURED_MESSAGE)
        return OrchestratorConfig(
            llm_api_key=self.llm_api_key,
            external_api_token=token,
            user_id=user_id,
            project_code=project_code,
        )

    @staticmethod
    def _warn_if_slow(started: float, user_id: str) -> None:
        elapsed = int((time.perf_counter() - started) * 1000)
        if elapsed > settings.slow_response_threshold_ms:
            logger.warning(
                f"Chat response for user {user_id} took {elapsed}ms "
                f"(> {settings.slow_response_threshold_ms}ms threshold)"
            )

    async def send_message(
        self,
        user_id: str,
        message: str,
        project_code: Optional[str] = None,
    ) -> SendMessageResult:
        started = time.perf_counter()
        try:
            config = await self._build_config(user_id, message, project_code)
        except MessageValidationError as e:
            return SendMessageResult(success=False, error=str(e))

        result = await self.orchestrator.run(config, message)
        self._warn_if_slow(started, user_id)

        return SendMessageResult(
            success=True,
            message=ChatMessage(
                id=generate_message_id(),
                role="assistant",
                content=result.response,
                tools_used=result.tools_used,
                duration_ms=result.duration_ms,
            ),
            needs_project_selection=result.needs_project_selection,
            projects=result.projects,
            tools_used=result.tools_used,
            duration_ms=result.duration_ms,
        )

    async def send_message_stream(
        self,
        user_id: str,
        message: str,
        callbacks: StreamCallbacks,
        project_code: Optional[str] = None,
    ) -> None:
        """Validation failures are reported through ``on_error`` like any other failure."""
        started = time.perf_counter()
        try:
            config = await self._build_config(user_id, message, project_code)
        except MessageValidationError as e:
            await invoke_callback(callbacks.on_error, str(e))
            return

        await self.orchestrator.run_stream(config, message, callbacks)
        self._warn_if_slow(started, user_id)

    def get_chat_history(self, user_id: str) -> ChatHistory:
        memory = self.orchestrator.memory_store.get_session(user_id)
        messages = [
            ChatMessage(
                id=f"msg-{index}",
                role="user" if entry["role"] == "human" else "assistant",
                content=entry["content"],
            )
            for index, entry in enumerate(memory.get_chat_history())
            if entry["role"] in ("human", "ai")
        ]
        return ChatHistory(
            messages=messages,
            project_code=self.orchestrator.project_store.get_project(user_id),
        )

    def clear_chat_history(self, user_id: str) -> None:
        """Forget the conversation and drop the user's cached agents."""
        self.orchestrator.memory_store.get_session(user_id).clear()
        removed = self.orchestrator.agent_registry.remove_user(user_id)
        logger.info(f"Cleared chat history for user {user_id} ({removed} agent(s) dropped)")

    async def get_session_status(self, user_id: str) -> ChatSessionStatus:
        token = await self._get_token(user_id)
        if not token or not self.llm_api_key:
            return ChatSessionStatus(active=False)

        store = self.orchestrator.memory_store
        count = store.get_session(user_id).get_message_count() if store.has_session(user_id) else 0
        return ChatSessionStatus(
            active=True,
            project_code=self.orchestrator.project_store.get_project(user_id),
            message_count=count,
        )

    async def set_project(self, user_id: str, project_code: str) -> ProjectChangeResult:
        if not await self._get_token(user_id):
            return ProjectChangeResult(success=False, message=QASE_NOT_CONNECTED_MESSAGE)
        if not self.llm_api_key:
            return ProjectChangeResult(success=False, message=LLM_NOT_CONFIGURED_MESSAGE)

        code = project_code.strip().upper()
        self.orchestrator.project_store.set_project(user_id, code)
        return ProjectChangeResult(success=True, message=f"Project changed to {code}")

    def clear_project(self, user_id: str) -> bool:
        return self.orchestrator.project_store.clear_project(user_id)

    async def invalidate_cache(
        self,
        user_id: str,
        resource_kind: Optional[str] = None,
        project_code: Optional[str] = None,
    ) -> int:
        """Drop the user's cached Qase payloads, e.g. after data changed in Qase."""
        removed = 0
        for pattern in user_cache_patterns(user_id, resource_kind, project_code):
            removed += await self.orchestrator.cache.delete_pattern(pattern)
        logger.info(
            f"Invalidated {removed} cache entries for user {user_id} "
            f"({resource_kind or 'all kinds'}, {project_code or 'all projects'})"
        )
        return removed

    async def validate_qase_token(self, user_id: str) -> bool:
        """Check the user's stored token against the Qase API."""
        token = await self._get_token(user_id)
        if not token:
            return False
        async with self.orchestrator.client_factory(token) as client:
            return await client.validate_token()
