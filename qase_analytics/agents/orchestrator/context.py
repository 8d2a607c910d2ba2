"""
Orchestrator context - per-request dependencies passed to workflow nodes
"""

from dataclasses import dataclass
from typing import Optional

from langchain_core.language_models import BaseChatModel

from qase_analytics.agents.orchestrator.models import OrchestratorConfig, StreamCallbacks
from qase_analytics.agents.registry import AgentRegistry
from qase_analytics.config.settings import settings
from qase_analytics.llm.client import LLMFactory
from qase_analytics.memory.conversation import ConversationMemory, SessionMemoryStore
from qase_analytics.memory.project_context import ProjectContextStore
from qase_analytics.tools.base import ToolName
from qase_analytics.tools.list_projects import ListProjectsResult
from qase_analytics.tools.registry import Toolset
from qase_analytics.utils.callbacks import invoke_callback


@dataclass
class OrchestratorContext:
    """Context holding dependencies for orchestrator nodes"""

    config: OrchestratorConfig
    memory_store: SessionMemoryStore
    project_store: ProjectContextStore
    agent_registry: AgentRegistry
    toolset: Toolset
    llm_factory: LLMFactory
    callbacks: Optional[StreamCallbacks] = None

    @property
    def user_id(self) -> str:
        return self.config.user_id

    @property
    def memory(self) -> ConversationMemory:
        return self.memory_store.get_session(self.config.user_id)

    @property
    def streaming(self) -> bool:
        return self.callbacks is not None

    def classifier_llm(self) -> BaseChatModel:
        return self.llm_factory(
            api_key=self.config.llm_api_key,
            model=settings.classifier_model,
            temperature=settings.classifier_temperature,
            streaming=False,
        )

    def general_llm(self) -> BaseChatModel:
        return self.llm_factory(
            api_key=self.config.llm_api_key,
            model=settings.classifier_model,
            temperature=settings.general_temperature,
            streaming=self.streaming,
        )

    def remember(self, message: str, response: str) -> None:
        memory = self.memory
        memory.add_human_message(message)
        memory.add_ai_message(response)

    async def emit_token(self, token: str) -> None:
        if self.callbacks:
            await invoke_callback(self.callbacks.on_token, token)

    async def emit_tool_start(self, name: str) -> None:
        if self.callbacks:
            await invoke_callback(self.callbacks.on_tool_start, name)

    async def emit_tool_end(self, name: str) -> None:
        if self.callbacks:
            await invoke_callback(self.callbacks.on_tool_end, name)

    async def list_projects(self) -> ListProjectsResult:
        """Run the list_projects tool (first page of 100) with tool telemetry."""
        name = ToolName.LIST_PROJECTS.value
        await self.emit_tool_start(name)
        result = await self.toolset.call(name, {"limit": 100, "offset": 0})
        await self.emit_tool_end(name)
        return result
