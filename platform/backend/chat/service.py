"""Agent run pipeline: two-phase tool-calling completions and transcript rendering."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial, reduce
from typing import Any, NamedTuple

from agents.schemas import AgentConfig
from agents.service import AgentStore
from chat.normalizer import NO_RESPONSE, normalize
from chat.schemas import (
    ChatEntry,
    ChatRequest,
    ChatResponse,
    ConversationMessage,
    MessageOutputItem,
    RunResult,
    ToolCall,
    ToolCallItem,
    ToolCallOutputItem,
)
from credentials.service import CredentialStore
from exceptions import AppException, NoCredentialError
from tools import simulator
from tools.service import build_tool_declarations

logger = logging.getLogger(__name__)


class ToolPhase(NamedTuple):
    """Accumulator threaded through the tool calls of one response."""

    messages: tuple[ConversationMessage, ...]
    items: tuple[Any, ...] = ()


def apply_tool_call(state: ToolPhase, call: ToolCall, rng=None) -> ToolPhase:
    """Simulate one tool call and append its call/result pair to ``state``.

    The assistant message carrying the call and the tool message carrying its
    result are appended together, so the follow-up completion sees every call
    answered in the order the model made them.
    """
    name = call.function.name
    output = simulator.execute(name, call.function.arguments, rng=rng)
    logger.info("Simulated tool %s (call %s)", name, call.id)

    return ToolPhase(
        messages=state.messages
        + (
            ConversationMessage(role="assistant", tool_calls=[call]),
            ConversationMessage(role="tool", tool_call_id=call.id, content=output),
        ),
        items=state.items
        + (
            ToolCallItem(call_id=call.id, name=name, arguments=call.function.arguments),
            ToolCallOutputItem(call_id=call.id, name=name, output=output),
        ),
    )


def _input_text(user_input: str | list[dict[str, Any]]) -> str:
    # A message history is reduced to its latest message
    if isinstance(user_input, str):
        return user_input
    if not user_input:
        return ""
    return str(user_input[-1].get("content") or "")


class AgentRunner:
    """Runs an agent configuration against a single user message."""

    def __init__(self, credentials: CredentialStore, agents: AgentStore, rng=None):
        self._credentials = credentials
        self._agents = agents
        self._rng = rng

    async def run(
        self,
        agent: AgentConfig | str,
        user_input: str | list[dict[str, Any]],
    ) -> RunResult:
        if not self._credentials.has_credential():
            raise NoCredentialError()
        client = self._credentials.build_client()

        if isinstance(agent, str):
            agent = await asyncio.to_thread(self._agents.get_agent, agent)

        run_id = f"run-{uuid.uuid4().hex[:12]}"
        messages = (
            ConversationMessage(role="system", content=agent.instructions),
            ConversationMessage(role="user", content=_input_text(user_input)),
        )
        declarations = build_tool_declarations(agent.tools)

        first = await client.complete(agent.model, messages, agent.model_settings, declarations)

        if not first.tool_calls:
            final_output = first.content or NO_RESPONSE
            items = [MessageOutputItem(content=final_output)]
        else:
            logger.info("Run %s: model requested %d tool call(s)", run_id, len(first.tool_calls))
            state = reduce(
                partial(apply_tool_call, rng=self._rng),
                first.tool_calls,
                ToolPhase(messages=messages),
            )
            # No declarations on the follow-up, so it cannot ask for more tools
            second = await client.complete(agent.model, state.messages, agent.model_settings)
            final_output = second.content or NO_RESPONSE
            items = [*state.items, MessageOutputItem(content=final_output)]

        await self._record_usage(agent)
        logger.info("Run %s completed for agent %s", run_id, agent.id or "<unsaved>")

        return RunResult(
            id=run_id,
            agent_id=agent.id,
            input=user_input,
            output=final_output,
            final_output=final_output,
            new_items=items,
        )

    async def _record_usage(self, agent: AgentConfig) -> None:
        if agent.id is None:
            return
        try:
            await asyncio.to_thread(self._agents.touch_last_used, agent)
        except Exception as exc:
            logger.warning("Could not record last use of agent %s: %s", agent.id, exc)


class ConversationLocks:
    """Serializes runs that belong to the same conversation.

    Requests without a conversation id are not coordinated with each other.
    A lock is kept only while some run holds or waits for it.
    """

    def __init__(self):
        # conversation id -> (lock, number of holders and waiters)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    def active_count(self) -> int:
        """Number of conversations with a run in progress or queued."""
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, conversation_id: str | None) -> AsyncIterator[None]:
        if conversation_id is None:
            yield
            return
        lock, users = self._locks.get(conversation_id, (asyncio.Lock(), 0))
        self._locks[conversation_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[conversation_id]
            if users == 1:
                del self._locks[conversation_id]
            else:
                self._locks[conversation_id] = (lock, users - 1)


def render_transcript(result: RunResult) -> list[ChatEntry]:
    """Turn a run result into the entries shown in the test-harness chat."""
    entries: list[ChatEntry] = []
    for item in result.new_items:
        if isinstance(item, ToolCallItem):
            entries.append(
                ChatEntry(
                    role="assistant",
                    type="tool_call",
                    tool=item.name,
                    content=f"Using {item.name}...",
                )
            )
        elif isinstance(item, ToolCallOutputItem):
            entries.append(
                ChatEntry(
                    role="tool",
                    tool=item.name,
                    content=item.output or "Tool execution completed",
                )
            )
    entries.append(ChatEntry(role="assistant", content=normalize(result)))
    return entries


def render_error(exc: AppException) -> ChatEntry:
    return ChatEntry(role="system", content=f"Error: {exc.detail}")


async def handle_chat(
    runner: AgentRunner,
    locks: ConversationLocks,
    request: ChatRequest,
) -> ChatResponse:
    """Run the requested agent; failures become a trailing system entry."""
    agent = request.agent if request.agent is not None else request.agent_id
    async with locks.hold(request.conversation_id):
        try:
            result = await runner.run(agent, request.message)
        except AppException as exc:
            logger.error("Agent run failed: %s", exc.detail)
            return ChatResponse(run=None, messages=[render_error(exc)])
    return ChatResponse(run=result, messages=render_transcript(result))
