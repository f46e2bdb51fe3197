"""Pydantic models for the tool catalog and function declarations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ToolSummary(BaseModel):
    """Lightweight tool info for the catalog list view."""

    id: str
    name: str
    description: str
    category: str


class ToolDetail(ToolSummary):
    """Full tool info including its parameter map."""

    parameters: dict[str, Any]


class ParamSpec(BaseModel):
    """One decoded entry of a function tool's parameter map."""

    type: str = "string"
    description: str = ""
    required: bool = False
