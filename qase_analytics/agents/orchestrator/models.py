"""
Orchestrator request/response models
"""

from dataclasses import dataclass
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from qase_analytics.utils.callbacks import MaybeAsyncCallback

Intent = Literal["list_projects", "query_data", "change_project", "general"]

_INTENT_ALIASES = {"select_project": "change_project"}


class OrchestratorConfig(BaseModel):
    """Per-request credentials and context"""
    llm_api_key: str
    external_api_token: str
    user_id: str
    project_code: Optional[str] = None  # None means "unresolved"
    verbose: bool = False


class Project(BaseModel):
    code: str
    title: str


class OrchestratorResult(BaseModel):
    response: str
    needs_project_selection: bool = False
    projects: Optional[List[Project]] = None
    tools_used: List[str] = Field(default_factory=list)
    duration_ms: int = 0

    @model_validator(mode="after")
    def _projects_only_with_selection(self) -> "OrchestratorResult":
        if self.needs_project_selection and self.projects is None:
            raise ValueError("projects are required when needs_project_selection is true")
        if not self.needs_project_selection and self.projects is not None:
            raise ValueError("projects must be omitted unless needs_project_selection is true")
        return self


class IntentClassification(BaseModel):
    """Classifier output; anything unusable falls back to ``general``"""
    intent: Intent = "general"
    needs_project: bool = Field(default=False, validation_alias=AliasChoices("needs_project", "needsProject"))
    extracted_project_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("extracted_project_code", "extractedProjectCode"),
    )

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: Any) -> str:
        if not isinstance(value, str):
            return "general"
        intent = value.strip().lower()
        intent = _INTENT_ALIASES.get(intent, intent)
        if intent not in ("list_projects", "query_data", "change_project", "general"):
            return "general"
        return intent

    @field_validator("needs_project", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return bool(value) if value is not None else False

    @field_validator("extracted_project_code", mode="before")
    @classmethod
    def _normalize_code(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        code = value.strip().upper()
        return code or None


@dataclass
class StreamCallbacks:
    """Push-style streaming hooks; each may be a plain function or a coroutine function"""
    on_token: MaybeAsyncCallback
    on_tool_start: Optional[MaybeAsyncCallback] = None
    on_tool_end: Optional[MaybeAsyncCallback] = None
    on_needs_project_selection: Optional[MaybeAsyncCallback] = None
    on_error: Optional[MaybeAsyncCallback] = None
    on_done: Optional[MaybeAsyncCallback] = None


class StreamEvent(BaseModel):
    """
    Pull-style equivalent of StreamCallbacks

    Event types:
    - token: content fragment
    - tool_start / tool_end: tool execution boundaries
    - project_selection: user must pick one of ``projects``
    - error: terminal, ``content`` holds the user-facing message
    - done: terminal, ``result`` holds the final OrchestratorResult
    """
    event: Literal["token", "tool_start", "tool_end", "project_selection", "error", "done"]
    content: Optional[str] = None
    tool: Optional[str] = None
    projects: Optional[List[Project]] = None
    result: Optional[OrchestratorResult] = None
