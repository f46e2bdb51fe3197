"""Pydantic models for messages, run results and the chat API."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from agents.schemas import AgentConfig


class FunctionCall(BaseModel):
    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class AssistantMessage(BaseModel):
    """The first choice's message from a chat-completion response."""

    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] = []

    @field_validator("tool_calls", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []


class ConversationMessage(BaseModel):
    """One entry of the message list sent to the completion API."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] | None = None

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Transcript items
# ---------------------------------------------------------------------------

class ToolCallItem(BaseModel):
    type: Literal["tool_call_item"] = "tool_call_item"
    call_id: str
    name: str
    arguments: str


class ToolCallOutputItem(BaseModel):
    type: Literal["tool_call_output_item"] = "tool_call_output_item"
    call_id: str
    name: str
    output: str


class MessageOutputItem(BaseModel):
    type: Literal["message_output_item"] = "message_output_item"
    content: str


TranscriptItem = Annotated[
    Union[ToolCallItem, ToolCallOutputItem, MessageOutputItem],
    Field(discriminator="type"),
]


class RunResult(BaseModel):
    """Outcome of one agent run, ready for the chat UI."""

    id: str
    agent_id: str | None = None
    status: Literal["completed"] = "completed"
    input: str | list[dict[str, Any]]
    output: str
    final_output: str
    new_items: list[TranscriptItem] = []


# ---------------------------------------------------------------------------
# Chat API
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    """Run a stored agent (by id) or an unsaved configuration."""

    agent_id: str | None = None
    agent: AgentConfig | None = None
    message: str = Field(..., min_length=1)
    conversation_id: str | None = None

    @model_validator(mode="after")
    def _one_agent_source(self) -> ChatRequest:
        if (self.agent_id is None) == (self.agent is None):
            raise ValueError("provide exactly one of 'agent_id' or 'agent'")
        return self


class ChatEntry(BaseModel):
    """A rendered line of the test-harness conversation."""

    role: Literal["user", "assistant", "tool", "system"]
    content: str
    type: Literal["message", "tool_call"] = "message"
    tool: str | None = None


class ChatResponse(BaseModel):
    run: RunResult | None = None
    messages: list[ChatEntry]
