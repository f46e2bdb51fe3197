"""Pydantic models for agent configurations and agent API requests/responses."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ModelName = Literal["gpt-4o", "o3-mini", "gpt-4o-mini"]

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 1.0
DEFAULT_FREQUENCY_PENALTY = 0.0
DEFAULT_PRESENCE_PENALTY = 0.0


class ModelSettings(BaseModel):
    """Sampling parameters. A field left as None falls back to its default."""

    model_config = ConfigDict(populate_by_name=True)

    temperature: float | None = Field(None, ge=0, le=1)
    top_p: float | None = Field(None, ge=0, le=1, alias="topP")
    frequency_penalty: float | None = Field(None, ge=-2, le=2, alias="frequencyPenalty")
    presence_penalty: float | None = Field(None, ge=-2, le=2, alias="presencePenalty")
    max_tokens: int | None = Field(None, gt=0, alias="maxTokens")

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())

    @classmethod
    def defaults(cls) -> ModelSettings:
        return cls(
            temperature=DEFAULT_TEMPERATURE,
            top_p=DEFAULT_TOP_P,
            frequency_penalty=DEFAULT_FREQUENCY_PENALTY,
            presence_penalty=DEFAULT_PRESENCE_PENALTY,
        )


class ToolSpec(BaseModel):
    """A tool declared on an agent.

    ``parameters`` maps a parameter name to ``{type, description, required}``
    for function tools. Built-in tools may carry plain configuration values
    there instead, so entries are decoded leniently downstream.
    """

    id: str
    name: str
    category: Literal["Built-in", "Function"] = "Function"
    description: str = ""
    parameters: dict[str, Any] = {}


class AgentBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    instructions: str = Field(..., min_length=1)
    model: ModelName = "gpt-4o"
    model_settings: ModelSettings = Field(default_factory=ModelSettings, alias="modelSettings")
    tools: list[ToolSpec] = []
    # Handoffs and guardrails are stored and returned but not executed
    handoffs: list[dict[str, Any]] = []
    guardrails: dict[str, Any] = {}

    @field_validator("tools")
    @classmethod
    def _unique_tool_ids(cls, tools: list[ToolSpec]) -> list[ToolSpec]:
        seen: set[str] = set()
        for tool in tools:
            if tool.id in seen:
                raise ValueError(f"duplicate tool id '{tool.id}'")
            seen.add(tool.id)
        return tools


class AgentCreate(AgentBase):
    """Request body for creating or updating an agent.

    An omitted ``model`` is filled in by the store from its configured default.
    """

    model: ModelName | None = None


class AgentConfig(AgentBase):
    """A stored (or not yet stored) agent configuration."""

    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    last_used: str | None = None


class AgentResponse(AgentConfig):
    """Agent as returned by the API, with a human readable last-used label."""

    last_used_label: str | None = None


class ModelOption(BaseModel):
    value: str
    label: str
    description: str


class ModelOptions(BaseModel):
    models: list[ModelOption]
    default_model: ModelName
    default_settings: ModelSettings
