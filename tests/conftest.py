"""
Pytest configuration and fixtures for agent-studio tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from openai.types.chat import ChatCompletion

from agents.schemas import AgentCreate, ToolSpec
from agents.service import AgentStore
from chat.client import CompletionClient
from credentials.service import CredentialStore


def _completion(content=None, tool_calls=()):
    """Build a real ChatCompletion with one choice.

    tool_calls is a sequence of (call_id, name, arguments_json) tuples.
    """
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": arguments},
            }
            for call_id, name, arguments in tool_calls
        ]
    return ChatCompletion.model_validate(
        {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "created": 0,
            "model": "gpt-4o",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "tool_calls" if tool_calls else "stop",
                    "message": message,
                    "logprobs": None,
                }
            ],
        }
    )


@pytest.fixture
def make_completion():
    return _completion


@pytest.fixture
def make_transport():
    """Factory for a fake AsyncOpenAI whose completions return/raise in order."""

    def factory(*responses):
        transport = MagicMock()
        transport.chat.completions.create = AsyncMock(side_effect=list(responses))
        transport.close = AsyncMock()
        return transport

    return factory


@pytest.fixture
def agent_store(tmp_path):
    return AgentStore(tmp_path / "agents.json")


@pytest.fixture
def credentials_for():
    """Build a CredentialStore whose client talks to the given transport."""

    def factory(transport, api_key="sk-test"):
        return CredentialStore(
            api_key=api_key,
            client_factory=lambda key: CompletionClient(transport),
        )

    return factory


@pytest.fixture
def web_search_tool():
    return ToolSpec(
        id="websearch",
        name="WebSearchTool",
        category="Built-in",
        description="Search the web for information",
    )


@pytest.fixture
def helpful_agent():
    return AgentCreate(name="Helper", instructions="You are helpful.")
