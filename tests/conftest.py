"""
Shared fixtures: scripted chat models and an in-process Qase client
"""

import json
from typing import Any, Callable, Dict, List, Optional

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk

from qase_analytics.cache.store import InMemoryCacheStore
from qase_analytics.clients.models import (
    QaseProjectList,
    QaseTestCaseList,
    QaseTestResultList,
    QaseTestRunList,
)
from qase_analytics.config.settings import settings
from qase_analytics.memory.conversation import SessionMemoryStore
from qase_analytics.memory.project_context import ProjectContextStore


# ---------------------------------------------------------------------------
# Chat models
# ---------------------------------------------------------------------------

def tool_call(name: str, args: Optional[Dict[str, Any]] = None, call_id: Optional[str] = None) -> Dict[str, Any]:
    return {"name": name, "args": args or {}, "id": call_id or f"call_{name}", "type": "tool_call"}


class ScriptedChatModel:
    """
    Stand-in for a LangChain chat model that replays scripted AIMessages.

    Supports the subset the engine uses: ``bind_tools``, ``bind``,
    ``ainvoke`` and ``astream``.
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses: List[Any] = list(responses or [])
        self.calls: List[List[Any]] = []
        self.bound_tools: Optional[List[Dict[str, Any]]] = None
        self.bind_kwargs: Dict[str, Any] = {}

    def queue(self, *responses: Any) -> "ScriptedChatModel":
        self.responses.extend(responses)
        return self

    def bind_tools(self, tools, **kwargs) -> "ScriptedChatModel":
        self.bound_tools = list(tools)
        return self

    def bind(self, **kwargs) -> "ScriptedChatModel":
        self.bind_kwargs.update(kwargs)
        return self

    def _next(self, messages) -> AIMessage:
        self.calls.append(list(messages))
        if not self.responses:
            raise AssertionError("ScriptedChatModel ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return AIMessage(content=response)
        return response

    async def ainvoke(self, messages, **kwargs) -> AIMessage:
        return self._next(messages)

    async def astream(self, messages, **kwargs):
        response = self._next(messages)
        text = response.content if isinstance(response.content, str) else ""
        if text:
            for index, word in enumerate(text.split(" ")):
                yield AIMessageChunk(content=word if index == 0 else " " + word)
        for index, call in enumerate(response.tool_calls):
            yield AIMessageChunk(
                content="",
                tool_call_chunks=[{
                    "name": call["name"],
                    "args": json.dumps(call["args"]),
                    "id": call["id"],
                    "index": index,
                }],
            )


class LLMFactoryStub:
    """
    ``create_llm`` replacement handing out one scripted model per role.

    The role is recognised from the temperature each caller requests.
    """

    def __init__(self):
        self.classifier = ScriptedChatModel()
        self.general = ScriptedChatModel()
        self.agent = ScriptedChatModel()
        self.requests: List[Dict[str, Any]] = []

    def classify_as(self, intent: str, needs_project: bool = False, project_code: Optional[str] = None) -> None:
        self.classifier.queue(json.dumps({
            "intent": intent,
            "needs_project": needs_project,
            "extracted_project_code": project_code,
        }))

    def __call__(self, api_key=None, model=None, temperature=None, streaming=False, **kwargs):
        self.requests.append({"api_key": api_key, "model": model, "temperature": temperature, "streaming": streaming})
        if temperature == settings.classifier_temperature:
            return self.classifier
        if temperature == settings.general_temperature:
            return self.general
        return self.agent


# ---------------------------------------------------------------------------
# Qase client
# ---------------------------------------------------------------------------

def project_payload(code: str, title: str, cases: int = 0) -> Dict[str, Any]:
    return {"code": code, "title": title, "counts": {"cases": cases, "suites": 1, "milestones": 0}}


def list_payload(entities: List[Dict[str, Any]], total: Optional[int] = None) -> Dict[str, Any]:
    count = len(entities)
    return {"total": total if total is not None else count, "filtered": count, "count": count, "entities": entities}


class FakeQaseClient:
    """In-process QaseClient returning canned payloads and recording calls."""

    def __init__(self):
        self.projects: List[Dict[str, Any]] = []
        self.cases: List[Dict[str, Any]] = []
        self.runs: List[Dict[str, Any]] = []
        self.results: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self.tokens: List[str] = []
        self.token_valid = True

    async def __aenter__(self) -> "FakeQaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append((method, kwargs))
        if self.error is not None:
            raise self.error

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def validate_token(self) -> bool:
        self.calls.append(("validate_token", {}))
        return self.token_valid

    async def get_projects(self, limit: int = 100, offset: int = 0) -> QaseProjectList:
        self._record("get_projects", limit=limit, offset=offset)
        return QaseProjectList.model_validate(list_payload(self.projects))

    async def get_test_cases(self, project_code: str, **filters) -> QaseTestCaseList:
        self._record("get_test_cases", project_code=project_code, **filters)
        return QaseTestCaseList.model_validate(list_payload(self.cases))

    async def get_test_runs(self, project_code: str, **filters) -> QaseTestRunList:
        self._record("get_test_runs", project_code=project_code, **filters)
        return QaseTestRunList.model_validate(list_payload(self.runs))

    async def get_test_results(self, project_code: str, **filters) -> QaseTestResultList:
        self._record("get_test_results", project_code=project_code, **filters)
        return QaseTestResultList.model_validate(list_payload(self.results))


@pytest.fixture
def qase_client() -> FakeQaseClient:
    return FakeQaseClient()


@pytest.fixture
def client_factory(qase_client: FakeQaseClient) -> Callable[[str], FakeQaseClient]:
    def factory(token: str) -> FakeQaseClient:
        qase_client.tokens.append(token)
        return qase_client
    return factory


@pytest.fixture
def cache() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def llm_factory() -> LLMFactoryStub:
    return LLMFactoryStub()


@pytest.fixture
def memory_store() -> SessionMemoryStore:
    return SessionMemoryStore(max_messages=20)


@pytest.fixture
def project_store() -> ProjectContextStore:
    return ProjectContextStore()
