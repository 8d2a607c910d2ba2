"""
Tests for the Orchestrator workflow: intent routing, project resolution,
streaming callbacks and the pull-based event stream
"""

import pytest
from langchain_core.messages import AIMessage

from conftest import project_payload, tool_call
from qase_analytics.agents.orchestrator import (
    Orchestrator,
    OrchestratorConfig,
    OrchestratorResult,
    StreamCallbacks,
)
from qase_analytics.agents.orchestrator.models import IntentClassification
from qase_analytics.agents.orchestrator.routing import route_after_intent, route_after_resolve
from qase_analytics.agents.prompts import DEFAULT_RESPONSE, NO_PROJECTS_RESPONSE
from qase_analytics.utils.errors import QaseAuthError, RATE_LIMIT_MESSAGE

USER = "user-1"


@pytest.fixture
def orchestrator(memory_store, project_store, cache, llm_factory, client_factory):
    return Orchestrator(
        memory_store=memory_store,
        project_store=project_store,
        cache=cache,
        llm_factory=llm_factory,
        client_factory=client_factory,
    )


def make_config(project_code=None):
    return OrchestratorConfig(
        llm_api_key="sk-test",
        external_api_token="qase-token",
        user_id=USER,
        project_code=project_code,
    )


class StreamRecorder:
    """Collects every callback invocation in order."""

    def __init__(self):
        self.events = []

    def callbacks(self) -> StreamCallbacks:
        async def on_token(token):
            self.events.append(("token", token))

        return StreamCallbacks(
            on_token=on_token,
            on_tool_start=lambda name: self.events.append(("tool_start", name)),
            on_tool_end=lambda name: self.events.append(("tool_end", name)),
            on_needs_project_selection=lambda projects: self.events.append(("selection", projects)),
            on_error=lambda message: self.events.append(("error", message)),
            on_done=lambda result: self.events.append(("done", result)),
        )

    def of(self, kind):
        return [value for event, value in self.events if event == kind]

    @property
    def text(self):
        return "".join(self.of("token"))


class TestIntentClassification:

    def test_camel_case_and_normalization(self):
        parsed = IntentClassification.model_validate(
            {"intent": "query_data", "needsProject": True, "extractedProjectCode": " gv "}
        )
        assert parsed.needs_project is True
        assert parsed.extracted_project_code == "GV"

    def test_unknown_intent_falls_back(self):
        assert IntentClassification.model_validate({"intent": "hack"}).intent == "general"
        assert IntentClassification.model_validate({"intent": "select_project"}).intent == "change_project"

    def test_empty_code_is_none(self):
        assert IntentClassification.model_validate({"extracted_project_code": ""}).extracted_project_code is None


class TestRouting:

    def test_after_intent(self):
        assert route_after_intent({"intent": "list_projects"}) == "list_projects"
        assert route_after_intent({"intent": "change_project", "extracted_project_code": "GV"}) == "select_project"
        assert route_after_intent({"intent": "change_project"}) == "resolve_project"
        assert route_after_intent({"intent": "query_data", "needs_project": True}) == "resolve_project"
        assert route_after_intent(
            {"intent": "query_data", "needs_project": True, "project_code": "GV"}
        ) == "execute_agent"
        assert route_after_intent({"intent": "query_data", "needs_project": False}) == "execute_agent"
        assert route_after_intent({"intent": "general"}) == "general_response"

    def test_after_resolve(self):
        assert route_after_resolve({"needs_project_selection": True}) == "ask_project_selection"
        assert route_after_resolve({"intent": "change_project", "project_code": "GV"}) == "select_project"
        assert route_after_resolve({"intent": "change_project"}) == "ask_project_selection"
        assert route_after_resolve({"intent": "query_data"}) == "execute_agent"


class TestOrchestratorResult:

    def test_projects_only_with_selection(self):
        with pytest.raises(ValueError):
            OrchestratorResult(response="x", needs_project_selection=True)
        with pytest.raises(ValueError):
            OrchestratorResult(response="x", projects=[])


class TestProjectResolution:

    @pytest.mark.asyncio
    async def test_single_project_is_auto_selected(self, orchestrator, llm_factory, qase_client, project_store):
        qase_client.projects = [project_payload("GV", "Gestão de Vendas")]
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.agent.queue("O projeto GV tem 10 casos.")

        result = await orchestrator.run(make_config(), "quantos casos de teste eu tenho?")

        assert result.needs_project_selection is False
        assert result.projects is None
        assert result.response == "O projeto GV tem 10 casos."
        assert result.tools_used == ["list_projects"]
        assert project_store.get_project(USER) == "GV"
        assert "Selected Project: GV" in llm_factory.agent.calls[0][0].content

    @pytest.mark.asyncio
    async def test_several_projects_require_selection(self, orchestrator, llm_factory, qase_client, project_store):
        qase_client.projects = [project_payload("GV", "Gestão de Vendas"), project_payload("DEMO", "Demo")]
        llm_factory.classify_as("query_data", needs_project=True)

        result = await orchestrator.run(make_config(), "qual a taxa de falha?")

        assert result.needs_project_selection is True
        assert [project.code for project in result.projects] == ["GV", "DEMO"]
        assert "**GV**" in result.response and "**DEMO**" in result.response
        assert result.tools_used == ["list_projects"]
        assert llm_factory.agent.calls == []
        assert project_store.get_project(USER) is None

    @pytest.mark.asyncio
    async def test_no_projects_falls_through_to_agent(self, orchestrator, llm_factory, qase_client):
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.agent.queue("Você ainda não tem projetos.")

        result = await orchestrator.run(make_config(), "mostre meus casos")

        assert result.needs_project_selection is False
        assert result.response == "Você ainda não tem projetos."
        assert "Selected Project: all" in llm_factory.agent.calls[0][0].content

    @pytest.mark.asyncio
    async def test_stored_project_skips_resolution(self, orchestrator, llm_factory, qase_client, project_store):
        project_store.set_project(USER, "GV")
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.agent.queue("ok")

        result = await orchestrator.run(make_config(), "mostre os casos")

        assert qase_client.calls == []
        assert result.tools_used == []

    @pytest.mark.asyncio
    async def test_extracted_code_wins_for_one_turn(self, orchestrator, llm_factory, project_store):
        project_store.set_project(USER, "OLD")
        llm_factory.classify_as("query_data", project_code="gv")
        llm_factory.agent.queue("ok")

        await orchestrator.run(make_config(project_code="CFG"), "casos do projeto GV")

        assert "Selected Project: GV" in llm_factory.agent.calls[0][0].content
        assert project_store.get_project(USER) == "OLD"


class TestIntents:

    @pytest.mark.asyncio
    async def test_list_projects_end_to_end(self, orchestrator, llm_factory, qase_client, memory_store):
        qase_client.projects = [project_payload("GV", "Gestão de Vendas", cases=42)]
        llm_factory.classify_as("list_projects")

        result = await orchestrator.run(make_config(), "Quais são meus projetos?")

        assert result.needs_project_selection is False
        assert "GV" in result.response
        assert "Gestão de Vendas" in result.response
        assert "list_projects" in result.tools_used
        assert memory_store.get_session(USER).get_message_count() == 2

    @pytest.mark.asyncio
    async def test_list_projects_empty(self, orchestrator, llm_factory):
        llm_factory.classify_as("list_projects")
        result = await orchestrator.run(make_config(), "meus projetos")
        assert result.response == NO_PROJECTS_RESPONSE

    @pytest.mark.asyncio
    async def test_change_project_persists(self, orchestrator, llm_factory, project_store, qase_client):
        llm_factory.classify_as("change_project", project_code="DEMO")

        result = await orchestrator.run(make_config(), "use o projeto DEMO")

        assert "DEMO" in result.response
        assert project_store.get_project(USER) == "DEMO"
        assert qase_client.calls == []

    @pytest.mark.asyncio
    async def test_change_project_without_code_asks(self, orchestrator, llm_factory, qase_client, project_store):
        qase_client.projects = [project_payload("GV", "GV"), project_payload("DEMO", "Demo")]
        llm_factory.classify_as("change_project")

        result = await orchestrator.run(make_config(), "quero trocar de projeto")

        assert result.needs_project_selection is True
        assert len(result.projects) == 2
        assert project_store.get_project(USER) is None

    @pytest.mark.asyncio
    async def test_change_project_without_any_project(self, orchestrator, llm_factory):
        llm_factory.classify_as("change_project")
        result = await orchestrator.run(make_config(), "trocar projeto")
        assert result.needs_project_selection is False
        assert result.response == NO_PROJECTS_RESPONSE

    @pytest.mark.asyncio
    async def test_general_reply_uses_history(self, orchestrator, llm_factory, memory_store):
        memory_store.get_session(USER).add_human_message("meu nome é Ana")
        memory_store.get_session(USER).add_ai_message("Olá Ana!")
        llm_factory.classify_as("general")
        llm_factory.general.queue("Seu nome é Ana.")

        result = await orchestrator.run(make_config(), "qual é o meu nome?")

        assert result.response == "Seu nome é Ana."
        sent = [message.content for message in llm_factory.general.calls[0][1:]]
        assert sent == ["meu nome é Ana", "Olá Ana!", "qual é o meu nome?"]
        assert memory_store.get_session(USER).get_message_count() == 4

    @pytest.mark.asyncio
    async def test_unparseable_classification_is_general(self, orchestrator, llm_factory):
        llm_factory.classifier.queue("not json at all")
        llm_factory.general.queue("Posso ajudar com métricas de QA.")

        result = await orchestrator.run(make_config(), "???")
        assert result.response == "Posso ajudar com métricas de QA."

    @pytest.mark.asyncio
    async def test_empty_general_reply_uses_default(self, orchestrator, llm_factory):
        llm_factory.classify_as("general")
        llm_factory.general.queue("")
        result = await orchestrator.run(make_config(), "hm")
        assert result.response == DEFAULT_RESPONSE

    @pytest.mark.asyncio
    async def test_classifier_gets_recent_history(self, orchestrator, llm_factory, memory_store):
        memory = memory_store.get_session(USER)
        for i in range(6):
            memory.add_human_message(f"q{i}")
        llm_factory.classify_as("general")
        llm_factory.general.queue("ok")

        await orchestrator.run(make_config(), "e agora?")

        system_prompt = llm_factory.classifier.calls[0][0].content
        assert "q5" in system_prompt and "q2" in system_prompt
        assert "q1" not in system_prompt
        assert llm_factory.classifier.bind_kwargs["response_format"] == {"type": "json_object"}


class TestSessionLifecycle:

    @pytest.mark.asyncio
    async def test_deleted_session_is_not_reused_by_cached_agent(
        self, orchestrator, llm_factory, project_store, memory_store
    ):
        project_store.set_project(USER, "GV")
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.agent.queue("primeira resposta", "segunda resposta")

        await orchestrator.run(make_config(), "quantos casos?")
        memory_store.delete_session(USER)
        await orchestrator.run(make_config(), "e as execuções?")

        assert memory_store.get_session(USER).get_message_count() == 2
        assert [message.content for message in llm_factory.agent.calls[1][1:]] == ["e as execuções?"]

    @pytest.mark.asyncio
    async def test_clear_all_sessions_reaches_cached_agent(
        self, orchestrator, llm_factory, project_store, memory_store
    ):
        project_store.set_project(USER, "GV")
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.classify_as("query_data", needs_project=True)
        llm_factory.agent.queue("ok", "ok de novo")

        await orchestrator.run(make_config(), "quantos casos?")
        memory_store.clear_all_sessions()
        await orchestrator.run(make_config(), "e as execuções?")

        history = memory_store.get_session(USER).get_chat_history()
        assert [entry["content"] for entry in history] == ["e as execuções?", "ok de novo"]


class TestErrors:

    @pytest.mark.asyncio
    async def test_llm_errors_become_messages(self, orchestrator, llm_factory):
        llm_factory.classifier.queue(RuntimeError("Error code: 429 - rate_limit_exceeded"))
        result = await orchestrator.run(make_config(), "oi")
        assert result.response == RATE_LIMIT_MESSAGE
        assert result.needs_project_selection is False

    @pytest.mark.asyncio
    async def test_auth_failure_in_list_projects(self, orchestrator, llm_factory, qase_client):
        qase_client.error = QaseAuthError()
        llm_factory.classify_as("list_projects")
        result = await orchestrator.run(make_config(), "meus projetos")
        assert "Invalid or expired" in result.response


class TestRunStream:

    @pytest.mark.asyncio
    async def test_auth_failure_during_tool_execution(self, orchestrator, llm_factory, qase_client):
        qase_client.error = QaseAuthError()
        llm_factory.classify_as("query_data")
        llm_factory.agent.queue(AIMessage(content="", tool_calls=[tool_call("get_test_runs", {"project_code": "GV"})]))
        recorder = StreamRecorder()

        result = await orchestrator.run_stream(make_config(project_code="GV"), "últimas execuções", recorder.callbacks())

        assert result is None
        errors = recorder.of("error")
        assert len(errors) == 1
        assert "Invalid or expired" in errors[0]
        assert recorder.of("done") == []

    @pytest.mark.asyncio
    async def test_agent_tokens_and_tools(self, orchestrator, llm_factory, qase_client):
        qase_client.runs = [{"id": 1, "title": "Run 1", "status": 1, "stats": {"total": 10, "passed": 9}}]
        llm_factory.classify_as("query_data")
        llm_factory.agent.queue(
            AIMessage(content="", tool_calls=[tool_call("get_test_runs", {"project_code": "GV"})]),
            "A taxa de sucesso foi 90%",
        )
        recorder = StreamRecorder()

        result = await orchestrator.run_stream(make_config(project_code="GV"), "taxa de sucesso?", recorder.callbacks())

        kinds = [kind for kind, _ in recorder.events]
        assert kinds.index("tool_start") < kinds.index("tool_end") < kinds.index("token")
        assert recorder.text == "A taxa de sucesso foi 90%"
        assert recorder.of("done") == [result]
        assert kinds[-1] == "done"
        assert result.tools_used == ["get_test_runs"]

    @pytest.mark.asyncio
    async def test_static_reply_sent_as_single_token(self, orchestrator, llm_factory, qase_client):
        qase_client.projects = [project_payload("GV", "GV"), project_payload("DEMO", "Demo")]
        llm_factory.classify_as("query_data", needs_project=True)
        recorder = StreamRecorder()

        result = await orchestrator.run_stream(make_config(), "casos?", recorder.callbacks())

        assert recorder.of("token") == [result.response]
        assert [project.code for project in recorder.of("selection")[0]] == ["GV", "DEMO"]
        assert recorder.of("tool_start") == ["list_projects"]
        assert recorder.of("error") == []

    @pytest.mark.asyncio
    async def test_general_reply_streams(self, orchestrator, llm_factory):
        llm_factory.classify_as("general")
        llm_factory.general.queue("Olá, tudo bem?")
        recorder = StreamRecorder()

        await orchestrator.run_stream(make_config(), "oi", recorder.callbacks())

        assert recorder.of("token") == ["Olá,", " tudo", " bem?"]
        assert len(recorder.of("done")) == 1


class TestStreamEvents:

    @pytest.mark.asyncio
    async def test_events_end_with_done(self, orchestrator, llm_factory, qase_client):
        qase_client.projects = [project_payload("GV", "GV")]
        llm_factory.classify_as("list_projects")

        events = [event async for event in orchestrator.stream_events(make_config(), "meus projetos")]

        assert [event.event for event in events] == ["tool_start", "tool_end", "token", "done"]
        assert events[-1].result.tools_used == ["list_projects"]

    @pytest.mark.asyncio
    async def test_events_end_with_error(self, orchestrator, llm_factory):
        llm_factory.classifier.queue(RuntimeError("boom"))

        events = [event async for event in orchestrator.stream_events(make_config(), "oi")]

        assert [event.event for event in events] == ["error"]
        assert events[0].content

    @pytest.mark.asyncio
    async def test_closing_early_cancels(self, orchestrator, llm_factory):
        llm_factory.classify_as("general")
        llm_factory.general.queue("uma resposta longa com muitas palavras")

        stream = orchestrator.stream_events(make_config(), "oi")
        first = await stream.__anext__()
        await stream.aclose()

        assert first.event == "token"
