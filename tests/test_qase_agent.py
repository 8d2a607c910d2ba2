"""
Tests for the QaseAgent tool-calling loop
"""

import json

import pytest
from langchain_core.messages import AIMessage, SystemMessage, ToolMessage

from conftest import ScriptedChatModel, project_payload, tool_call
from qase_analytics.agents.prompts import FALLBACK_RESPONSE
from qase_analytics.agents.qase_agent import QaseAgent, QaseAgentConfig
from qase_analytics.memory.conversation import ConversationMemory
from qase_analytics.utils.errors import QaseAuthError


def make_agent(llm, cache, client_factory, project_code=None, max_iterations=5, token="qase-token"):
    config = QaseAgentConfig(
        llm_api_key="sk-test",
        qase_token=token,
        user_id="user-1",
        project_code=project_code,
        max_iterations=max_iterations,
    )
    return QaseAgent(config, ConversationMemory(max_messages=10), llm=llm, cache=cache, client_factory=client_factory)


class TestChat:

    @pytest.mark.asyncio
    async def test_answer_without_tools(self, cache, client_factory):
        llm = ScriptedChatModel(["Olá! Como posso ajudar?"])
        agent = make_agent(llm, cache, client_factory)

        response = await agent.chat("oi")

        assert response.output == "Olá! Como posso ajudar?"
        assert response.tools_used == []
        assert response.duration_ms >= 0
        assert agent.memory.get_message_count() == 2
        assert isinstance(llm.calls[0][0], SystemMessage)
        assert len(llm.bound_tools) == 5

    @pytest.mark.asyncio
    async def test_tool_round_trip(self, cache, client_factory, qase_client):
        qase_client.projects = [project_payload("GV", "Gestão de Vendas", cases=12)]
        llm = ScriptedChatModel([
            AIMessage(content="", tool_calls=[tool_call("list_projects")]),
            "Você tem 1 projeto: GV.",
        ])
        agent = make_agent(llm, cache, client_factory)

        response = await agent.chat("quais são meus projetos?")

        assert response.tools_used == ["list_projects"]
        assert response.output == "Você tem 1 projeto: GV."
        tool_message = llm.calls[1][-1]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.tool_call_id == "call_list_projects"
        assert json.loads(tool_message.content)["projects"][0]["code"] == "GV"

    @pytest.mark.asyncio
    async def test_tools_used_keeps_order_and_duplicates(self, cache, client_factory, qase_client):
        llm = ScriptedChatModel([
            AIMessage(content="", tool_calls=[
                tool_call("get_test_runs", {"project_code": "GV"}, "c1"),
                tool_call("get_test_runs", {"project_code": "GV", "status": "active"}, "c2"),
            ]),
            AIMessage(content="", tool_calls=[tool_call("get_test_cases", {"project_code": "GV"}, "c3")]),
            "done",
        ])
        response = await make_agent(llm, cache, client_factory).chat("compare")
        assert response.tools_used == ["get_test_runs", "get_test_runs", "get_test_cases"]

    @pytest.mark.asyncio
    async def test_bound_project_fills_missing_argument(self, cache, client_factory, qase_client):
        llm = ScriptedChatModel([
            AIMessage(content="", tool_calls=[tool_call("get_test_cases", {"automation": "automated"})]),
            "ok",
        ])
        await make_agent(llm, cache, client_factory, project_code="GV").chat("casos automatizados")

        method, kwargs = qase_client.calls[0]
        assert method == "get_test_cases"
        assert kwargs["project_code"] == "GV"

    @pytest.mark.asyncio
    async def test_async_token_provider(self, cache, client_factory, qase_client):
        async def token():
            return "fresh-token"

        llm = ScriptedChatModel([AIMessage(content="", tool_calls=[tool_call("list_projects")]), "ok"])
        await make_agent(llm, cache, client_factory, token=token).chat("projetos")
        assert qase_client.tokens == ["fresh-token"]

    @pytest.mark.asyncio
    async def test_unknown_tool_is_reported_to_model(self, cache, client_factory):
        llm = ScriptedChatModel([AIMessage(content="", tool_calls=[tool_call("drop_tables")]), "sorry"])
        response = await make_agent(llm, cache, client_factory).chat("x")

        assert response.output == "sorry"
        assert json.loads(llm.calls[1][-1].content)["success"] is False

    @pytest.mark.asyncio
    async def test_api_error_goes_back_to_model(self, cache, client_factory, qase_client):
        from qase_analytics.utils.errors import QaseApiError
        qase_client.error = QaseApiError("Project not found", 404)
        llm = ScriptedChatModel([
            AIMessage(content="", tool_calls=[tool_call("get_test_cases", {"project_code": "NOPE"})]),
            "Esse projeto não existe.",
        ])
        response = await make_agent(llm, cache, client_factory).chat("casos do NOPE")

        assert response.output == "Esse projeto não existe."
        assert json.loads(llm.calls[1][-1].content)["error"] == "Project not found"

    @pytest.mark.asyncio
    async def test_auth_failure_aborts_turn(self, cache, client_factory, qase_client):
        qase_client.error = QaseAuthError()
        llm = ScriptedChatModel([AIMessage(content="", tool_calls=[tool_call("list_projects")])])
        agent = make_agent(llm, cache, client_factory)

        with pytest.raises(QaseAuthError):
            await agent.chat("projetos")
        assert agent.memory.get_message_count() == 0

    @pytest.mark.asyncio
    async def test_max_iterations_fallback(self, cache, client_factory, qase_client):
        llm = ScriptedChatModel([
            AIMessage(content="", tool_calls=[tool_call("list_projects", call_id=f"c{i}")]) for i in range(2)
        ])
        response = await make_agent(llm, cache, client_factory, max_iterations=2).chat("loop")

        assert response.output == FALLBACK_RESPONSE
        assert response.tools_used == ["list_projects", "list_projects"]

    @pytest.mark.asyncio
    async def test_history_is_sent_to_model(self, cache, client_factory):
        llm = ScriptedChatModel(["first", "second"])
        agent = make_agent(llm, cache, client_factory)
        await agent.chat("q1")
        await agent.chat("q2")

        contents = [message.content for message in llm.calls[1][1:]]
        assert contents == ["q1", "first", "q2"]


class TestChatStream:

    @pytest.mark.asyncio
    async def test_tokens_and_tool_events_in_order(self, cache, client_factory, qase_client):
        qase_client.projects = [project_payload("GV", "GV")]
        llm = ScriptedChatModel([
            AIMessage(content="", tool_calls=[tool_call("list_projects")]),
            "Você tem um projeto",
        ])
        events = []

        async def on_token(token):
            events.append(("token", token))

        response = await make_agent(llm, cache, client_factory).chat_stream(
            "projetos",
            on_token=on_token,
            on_tool_start=lambda name: events.append(("start", name)),
            on_tool_end=lambda name: events.append(("end", name)),
        )

        assert events[:2] == [("start", "list_projects"), ("end", "list_projects")]
        tokens = [value for kind, value in events if kind == "token"]
        assert "".join(tokens) == "Você tem um projeto"
        assert len(tokens) == 4
        assert response.output == "Você tem um projeto"
        assert response.tools_used == ["list_projects"]

    @pytest.mark.asyncio
    async def test_stream_auth_failure_raises(self, cache, client_factory, qase_client):
        qase_client.error = QaseAuthError()
        llm = ScriptedChatModel([AIMessage(content="", tool_calls=[tool_call("list_projects")])])
        ended = []

        with pytest.raises(QaseAuthError):
            await make_agent(llm, cache, client_factory).chat_stream(
                "projetos", on_token=lambda t: None, on_tool_end=ended.append
            )
        assert ended == []


class TestIntrospection:

    def test_get_info(self, cache, client_factory):
        agent = make_agent(ScriptedChatModel(), cache, client_factory)
        info = agent.get_info()

        assert info["user_id"] == "user-1"
        assert info["project_code"] is None
        assert info["tools_count"] == 5
        assert "generate_chart" in info["tool_names"]

    def test_set_project_and_clear_history(self, cache, client_factory):
        agent = make_agent(ScriptedChatModel(), cache, client_factory)
        agent.memory.add_human_message("hello")

        agent.set_project("GV")
        agent.clear_history()

        assert agent.get_info()["project_code"] == "GV"
        assert agent.get_history() == []

    @pytest.mark.asyncio
    async def test_memory_getter_follows_replaced_session(self, cache, client_factory, memory_store):
        config = QaseAgentConfig(llm_api_key="sk-test", qase_token="qase-token", user_id="user-1")
        agent = QaseAgent(
            config,
            memory=lambda: memory_store.get_session("user-1"),
            llm=ScriptedChatModel(["primeira", "segunda"]),
            cache=cache,
            client_factory=client_factory,
        )

        await agent.chat("oi")
        memory_store.delete_session("user-1")
        await agent.chat("de novo")

        assert memory_store.get_session("user-1").get_message_count() == 2
        assert agent.memory is memory_store.get_session("user-1")
