"""Tool catalog service: loads catalog, builds function-calling declarations."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from agents.schemas import ToolSpec
from exceptions import NotFoundError
from tools.schemas import ParamSpec

logger = logging.getLogger(__name__)

_catalog: list[dict[str, Any]] = []
_CATALOG_PATH = Path(__file__).parent / "catalog.json"

WEB_SEARCH_TOOL = "WebSearchTool"
FILE_SEARCH_TOOL = "FileSearchTool"

# Built-in tool configuration keys. These are dropped from every generated
# schema, not only FileSearchTool's, so a function tool that declares a
# parameter with one of these names loses it.
RESERVED_PARAM_NAMES = frozenset({"max_num_results", "vector_store_ids"})

_WEB_SEARCH_DECLARATION = {
    "type": "function",
    "function": {
        "name": "web_search",
        "description": "Search the web for information",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query",
                },
            },
            "required": ["query"],
        },
    },
}

_FILE_SEARCH_DECLARATION = {
    "type": "function",
    "function": {
        "name": "file_search",
        "description": "Search through vector stores of documents",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query",
                },
                "max_results": {
                    "type": "number",
                    "description": "Maximum number of results to return",
                },
            },
            "required": ["query"],
        },
    },
}


def load_catalog() -> None:
    """Load tool catalog from catalog.json (called once at startup)."""
    global _catalog
    with open(_CATALOG_PATH, encoding="utf-8") as f:
        data = json.load(f)
    _catalog = data["tools"]
    logger.info("Loaded %d tools from catalog", len(_catalog))


def list_tools() -> list[dict[str, Any]]:
    """Return summary info for all tools."""
    return [
        {
            "id": t["id"],
            "name": t["name"],
            "description": t["description"],
            "category": t["category"],
        }
        for t in _catalog
    ]


def get_tool(tool_id: str) -> dict[str, Any]:
    """Return full tool detail by id."""
    for t in _catalog:
        if t["id"] == tool_id:
            return t
    raise NotFoundError(f"Tool '{tool_id}' not found in catalog")


def decode_param(raw: Any) -> ParamSpec:
    """Leniently decode one parameter entry; anything malformed gets defaults."""
    if not isinstance(raw, dict):
        return ParamSpec()
    param_type = raw.get("type")
    description = raw.get("description")
    return ParamSpec(
        type=param_type if isinstance(param_type, str) and param_type else "string",
        description=description if isinstance(description, str) else "",
        required=bool(raw.get("required")),
    )


def build_parameters_schema(parameters: dict[str, Any] | None) -> dict[str, Any]:
    """Project a tool's parameter map into a JSON-schema object."""
    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, raw in (parameters or {}).items():
        if name in RESERVED_PARAM_NAMES:
            continue
        param = decode_param(raw)
        properties[name] = {"type": param.type, "description": param.description}
        if param.required:
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def build_tool_declaration(tool: ToolSpec) -> dict[str, Any]:
    if tool.name == WEB_SEARCH_TOOL:
        return copy.deepcopy(_WEB_SEARCH_DECLARATION)
    if tool.name == FILE_SEARCH_TOOL:
        return copy.deepcopy(_FILE_SEARCH_DECLARATION)
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description or "",
            "parameters": build_parameters_schema(tool.parameters),
        },
    }


def build_tool_declarations(tools: Sequence[ToolSpec]) -> list[dict[str, Any]]:
    """Convert an agent's tools into chat-completion function declarations.

    An empty tool list yields an empty list; callers must then leave the
    ``tools`` field out of the request altogether rather than send ``[]``.
    """
    return [build_tool_declaration(t) for t in tools]
