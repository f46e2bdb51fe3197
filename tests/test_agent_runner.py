"""Tests for the two-phase agent run pipeline."""

import random

import pytest

from agents.schemas import AgentConfig
from chat.schemas import (
    ChatRequest,
    ConversationMessage,
    FunctionCall,
    MessageOutputItem,
    ToolCall,
    ToolCallItem,
    ToolCallOutputItem,
)
from chat.service import (
    AgentRunner,
    ConversationLocks,
    ToolPhase,
    apply_tool_call,
    handle_chat,
    render_transcript,
)
from exceptions import AgentNotFoundError, NoCredentialError, UpstreamError, UpstreamErrorKind

# === Helpers ===


def _agent(tools=(), **kwargs) -> AgentConfig:
    return AgentConfig(name="Helper", instructions="You are helpful.", tools=list(tools), **kwargs)


def _call(call_id, name, arguments) -> ToolCall:
    return ToolCall(id=call_id, function=FunctionCall(name=name, arguments=arguments))


# === Single-phase runs ===


class TestPlainRuns:
    @pytest.mark.asyncio
    async def test_no_tools_single_message(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        transport = make_transport(make_completion("Hello!"))
        runner = AgentRunner(credentials_for(transport), agent_store)

        result = await runner.run(_agent(), "Hi")

        assert result.new_items == [MessageOutputItem(content="Hello!")]
        assert result.final_output == "Hello!"
        assert result.output == "Hello!"
        assert result.status == "completed"
        assert result.input == "Hi"
        kwargs = transport.chat.completions.create.await_args.kwargs
        assert "tools" not in kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "You are helpful."},
            {"role": "user", "content": "Hi"},
        ]

    @pytest.mark.asyncio
    async def test_empty_content_falls_back(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        transport = make_transport(make_completion(None))
        runner = AgentRunner(credentials_for(transport), agent_store)
        result = await runner.run(_agent(), "Hi")
        assert result.final_output == "No response generated"

    @pytest.mark.asyncio
    async def test_history_input_uses_last_message(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        transport = make_transport(make_completion("ok"))
        runner = AgentRunner(credentials_for(transport), agent_store)
        history = [{"role": "user", "content": "first"}, {"role": "user", "content": "second"}]

        result = await runner.run(_agent(), history)

        sent = transport.chat.completions.create.await_args.kwargs["messages"]
        assert sent[-1] == {"role": "user", "content": "second"}
        assert result.input == history

    @pytest.mark.asyncio
    async def test_tools_declared_but_unused(
        self, make_transport, make_completion, credentials_for, agent_store, web_search_tool
    ):
        transport = make_transport(make_completion("No search needed."))
        runner = AgentRunner(credentials_for(transport), agent_store)

        result = await runner.run(_agent([web_search_tool]), "Hi")

        kwargs = transport.chat.completions.create.await_args.kwargs
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["tools"][0]["function"]["name"] == "web_search"
        assert transport.chat.completions.create.await_count == 1
        assert result.final_output == "No search needed."


# === Two-phase runs ===


class TestToolRuns:
    @pytest.mark.asyncio
    async def test_weather_search(
        self, make_transport, make_completion, credentials_for, agent_store, web_search_tool
    ):
        transport = make_transport(
            make_completion(None, [("call_1", "web_search", '{"query":"weather in Paris"}')]),
            make_completion("It's sunny in Paris."),
        )
        runner = AgentRunner(credentials_for(transport), agent_store)

        result = await runner.run(_agent([web_search_tool]), "weather in Paris")

        call, output, message = result.new_items
        assert isinstance(call, ToolCallItem)
        assert call.name == "web_search"
        assert call.arguments == '{"query":"weather in Paris"}'
        assert isinstance(output, ToolCallOutputItem)
        assert "Paris" in output.output
        assert message == MessageOutputItem(content="It's sunny in Paris.")
        assert result.final_output == "It's sunny in Paris."

        second = transport.chat.completions.create.await_args_list[1].kwargs
        assert "tools" not in second
        assert "tool_choice" not in second
        roles = [m["role"] for m in second["messages"]]
        assert roles == ["system", "user", "assistant", "tool"]
        assert second["messages"][2]["tool_calls"][0]["id"] == "call_1"
        assert second["messages"][3]["tool_call_id"] == "call_1"
        assert second["messages"][3]["content"] == output.output

    @pytest.mark.asyncio
    async def test_multiple_calls_are_paired_in_order(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        calls = [
            ("call_a", "file_search", '{"query": "budget"}'),
            ("call_b", "web_search", '{"query": "news"}'),
            ("call_c", "lookup", "{}"),
        ]
        transport = make_transport(make_completion(None, calls), make_completion("Done."))
        runner = AgentRunner(credentials_for(transport), agent_store)

        result = await runner.run(_agent(), "do things")

        items = result.new_items
        call_items = [i for i in items if isinstance(i, ToolCallItem)]
        output_items = [i for i in items if isinstance(i, ToolCallOutputItem)]
        assert [i.call_id for i in call_items] == ["call_a", "call_b", "call_c"]
        assert [i.call_id for i in output_items] == ["call_a", "call_b", "call_c"]
        assert [i.type for i in items[-1:]] == ["message_output_item"]
        assert len(items) == 7

        sent = transport.chat.completions.create.await_args_list[1].kwargs["messages"]
        tool_ids = [m.get("tool_call_id") for m in sent if m["role"] == "tool"]
        assert tool_ids == ["call_a", "call_b", "call_c"]
        # each tool result directly follows the assistant message that asked for it
        for i, m in enumerate(sent):
            if m["role"] == "tool":
                assert sent[i - 1]["tool_calls"][0]["id"] == m["tool_call_id"]

    @pytest.mark.asyncio
    async def test_second_phase_empty_content(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        transport = make_transport(
            make_completion(None, [("c1", "lookup", "{}")]),
            make_completion(""),
        )
        runner = AgentRunner(credentials_for(transport), agent_store)
        result = await runner.run(_agent(), "x")
        assert result.final_output == "No response generated"
        assert result.new_items[-1] == MessageOutputItem(content="No response generated")


# === Tool call fold ===


class TestApplyToolCall:
    def test_appends_pair(self):
        start = ToolPhase(messages=(ConversationMessage(role="user", content="q"),))
        state = apply_tool_call(start, _call("c1", "lookup", '{"a": 1}'), rng=random.Random(0))

        assert len(state.messages) == 3
        assistant, tool = state.messages[1:]
        assert assistant.role == "assistant"
        assert assistant.tool_calls[0].id == "c1"
        assert tool.role == "tool"
        assert tool.tool_call_id == "c1"
        assert tool.content == 'Tool lookup was called with arguments: {"a": 1}'
        assert [i.type for i in state.items] == ["tool_call_item", "tool_call_output_item"]

    def test_does_not_mutate_input_state(self):
        start = ToolPhase(messages=())
        apply_tool_call(start, _call("c1", "lookup", "{}"))
        assert start.messages == ()
        assert start.items == ()


# === Failures ===


class TestRunFailures:
    @pytest.mark.asyncio
    async def test_no_credential_makes_no_calls(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        transport = make_transport(make_completion("never"))
        runner = AgentRunner(credentials_for(transport, api_key=None), agent_store)

        with pytest.raises(NoCredentialError):
            await runner.run(_agent(), "Hi")
        assert transport.chat.completions.create.await_count == 0

    @pytest.mark.asyncio
    async def test_unknown_agent_id(self, make_transport, credentials_for, agent_store):
        runner = AgentRunner(credentials_for(make_transport()), agent_store)
        with pytest.raises(AgentNotFoundError) as exc_info:
            await runner.run("agent-missing", "Hi")
        assert exc_info.value.agent_id == "agent-missing"
        assert "agent-missing" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_rate_limited(self, make_transport, credentials_for, agent_store):
        transport = make_transport(Exception("Request failed with status code 429"))
        runner = AgentRunner(credentials_for(transport), agent_store)
        with pytest.raises(UpstreamError) as exc_info:
            await runner.run(_agent(), "Hi")
        assert exc_info.value.kind is UpstreamErrorKind.RATE_LIMITED
        assert "Rate limit exceeded" in exc_info.value.detail


# === Stored agents ===


class TestStoredAgents:
    @pytest.mark.asyncio
    async def test_run_by_id_stamps_last_used(
        self, make_transport, make_completion, credentials_for, agent_store, helpful_agent
    ):
        stored = agent_store.create_agent(helpful_agent)
        before = stored.last_used

        transport = make_transport(make_completion("Hello!"))
        runner = AgentRunner(credentials_for(transport), agent_store)
        result = await runner.run(stored.id, "Hi")

        assert result.agent_id == stored.id
        assert agent_store.get_agent(stored.id).last_used >= before

    @pytest.mark.asyncio
    async def test_persist_failure_is_swallowed(
        self, make_transport, make_completion, credentials_for, agent_store, helpful_agent
    ):
        stored = agent_store.create_agent(helpful_agent)

        def _broken(agent):
            raise OSError("disk full")

        agent_store.touch_last_used = _broken
        transport = make_transport(make_completion("Hello!"))
        runner = AgentRunner(credentials_for(transport), agent_store)

        result = await runner.run(stored.id, "Hi")
        assert result.final_output == "Hello!"

    @pytest.mark.asyncio
    async def test_unsaved_agent_not_persisted(
        self, make_transport, make_completion, credentials_for, agent_store
    ):
        transport = make_transport(make_completion("Hello!"))
        runner = AgentRunner(credentials_for(transport), agent_store)
        await runner.run(_agent(), "Hi")
        assert agent_store.list_agents() == []


# === Chat handling ===


class TestHandleChat:
    @pytest.mark.asyncio
    async def test_error_becomes_system_entry(self, make_transport, credentials_for, agent_store):
        runner = AgentRunner(credentials_for(make_transport(), api_key=None), agent_store)
        request = ChatRequest(agent_id="agent-1", message="Hi")

        response = await handle_chat(runner, ConversationLocks(), request)

        assert response.run is None
        [entry] = response.messages
        assert entry.role == "system"
        assert entry.content.startswith("Error: No API key found")

    @pytest.mark.asyncio
    async def test_malformed_completion_becomes_system_entry(
        self, make_transport, credentials_for, agent_store
    ):
        transport = make_transport({"choices": [{"finish_reason": "stop"}]})
        runner = AgentRunner(credentials_for(transport), agent_store)
        request = ChatRequest(agent=_agent(), message="Hi")

        response = await handle_chat(runner, ConversationLocks(), request)

        assert response.run is None
        [entry] = response.messages
        assert entry.role == "system"
        assert entry.content.startswith("Error: Failed to run agent: Malformed completion response")

    @pytest.mark.asyncio
    async def test_transcript_rendering(
        self, make_transport, make_completion, credentials_for, agent_store, web_search_tool
    ):
        transport = make_transport(
            make_completion(None, [("call_1", "web_search", '{"query": "rust"}')]),
            make_completion("Here is what I found."),
        )
        runner = AgentRunner(credentials_for(transport), agent_store)
        request = ChatRequest(
            agent=_agent([web_search_tool]), message="search rust", conversation_id="c1"
        )

        response = await handle_chat(runner, ConversationLocks(), request)

        entries = response.messages
        assert [(e.role, e.type) for e in entries] == [
            ("assistant", "tool_call"),
            ("tool", "message"),
            ("assistant", "message"),
        ]
        assert entries[0].content == "Using web_search..."
        assert entries[1].tool == "web_search"
        assert 'Search results for "rust"' in entries[1].content
        assert entries[2].content == "Here is what I found."

    def test_render_transcript_uses_normalizer(self):
        from chat.schemas import RunResult

        result = RunResult(id="r", input="q", output="", final_output="", new_items=[])
        assert render_transcript(result)[-1].content == ""

    def test_chat_request_needs_one_agent_source(self):
        with pytest.raises(ValueError):
            ChatRequest(message="Hi")
        with pytest.raises(ValueError):
            ChatRequest(agent_id="a", agent=_agent(), message="Hi")


# === Conversation locks ===


class TestConversationLocks:
    @pytest.mark.asyncio
    async def test_same_conversation_serialized(self):
        import asyncio

        locks = ConversationLocks()
        order = []

        async def job(name, delay):
            async with locks.hold("conv"):
                order.append(f"{name}-start")
                await asyncio.sleep(delay)
                order.append(f"{name}-end")

        await asyncio.gather(job("a", 0.02), job("b", 0))
        assert order == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_no_conversation_id_not_locked(self):
        locks = ConversationLocks()
        async with locks.hold(None):
            async with locks.hold(None):
                pass

    @pytest.mark.asyncio
    async def test_locks_released_after_use(self):
        locks = ConversationLocks()
        for i in range(100):
            async with locks.hold(f"conv-{i}"):
                assert locks.active_count() == 1
        assert locks.active_count() == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_waiters_queued(self):
        import asyncio

        locks = ConversationLocks()
        seen = []

        async def job():
            async with locks.hold("conv"):
                seen.append(locks.active_count())
                await asyncio.sleep(0)

        await asyncio.gather(job(), job(), job())
        assert seen == [1, 1, 1]
        assert locks.active_count() == 0

    @pytest.mark.asyncio
    async def test_lock_released_when_run_fails(self):
        locks = ConversationLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("conv"):
                raise RuntimeError("boom")
        assert locks.active_count() == 0
