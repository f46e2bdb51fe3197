"""Turn the different agent response shapes into one display string.

A response reaching the UI can be a plain string, a ``RunResult`` (or its
dict form), an SDK-style object with ``final_output`` (any object exposing
``output`` / ``final_output`` / ``content`` attributes, dataclasses included),
or something with a nested ``output.content`` / ``output.text`` or a top-level
``content``. Any truthy value is accepted in the last three places; values
that are not strings are shown as pretty-printed JSON.
``decode_response`` picks exactly one variant, in this precedence order:

    string ``output`` > truthy ``final_output`` > ``output.content``
    > ``output.text`` > ``content`` > raw string > "No response generated"

``RunResult`` stores its answer in a string ``output``, so normalizing a
result and then normalizing its canonical ``RunResult`` gives the same text.
"""

from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel

from chat.schemas import MessageOutputItem, RunResult

NO_RESPONSE = "No response generated"

_RESPONSE_ATTRS = ("output", "final_output", "content")
_NESTED_ATTRS = ("content", "text")


def _display(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class OutputText:
    text: str


@dataclass(frozen=True)
class FinalOutput:
    value: Any

    @property
    def text(self) -> str:
        return _display(self.value)


@dataclass(frozen=True)
class NestedOutput:
    field: Literal["content", "text"]
    text: str


@dataclass(frozen=True)
class ContentText:
    text: str


@dataclass(frozen=True)
class NoResponse:
    text: str = NO_RESPONSE


DecodedResponse = Union[PlainText, OutputText, FinalOutput, NestedOutput, ContentText, NoResponse]


def _present(value: Any) -> bool:
    # Empty strings, zero, False and None count as missing
    if value is None or value is False:
        return False
    if isinstance(value, (str, int, float)) and not value:
        return False
    return True


def _as_mapping(raw: Any, attrs: tuple[str, ...]) -> dict[str, Any] | None:
    """View a model, dataclass, dict or attribute-bearing object as a dict."""
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if dataclasses.is_dataclass(raw) and not isinstance(raw, type):
        return dataclasses.asdict(raw)
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (str, bytes, int, float)) or raw is None:
        return None
    if any(hasattr(raw, name) for name in attrs):
        return {name: getattr(raw, name, None) for name in attrs}
    return None


def decode_response(raw: Any) -> DecodedResponse:
    """Classify a raw response into exactly one known shape."""
    if isinstance(raw, str):
        return PlainText(raw)
    data = _as_mapping(raw, _RESPONSE_ATTRS)
    if data is None:
        return NoResponse()

    output = data.get("output")
    if isinstance(output, str):
        return OutputText(output)

    final_output = data.get("final_output")
    if _present(final_output):
        return FinalOutput(final_output)

    nested = _as_mapping(output, _NESTED_ATTRS)
    if nested is not None:
        for field in _NESTED_ATTRS:
            if _present(nested.get(field)):
                return NestedOutput(field, _display(nested[field]))

    if _present(data.get("content")):
        return ContentText(_display(data["content"]))

    return NoResponse()


def normalize(raw: Any) -> str:
    """Resolve any supported response shape to the string shown to the user."""
    return decode_response(raw).text


def as_run_result(
    raw: Any,
    agent_id: str | None = None,
    user_input: str | list[dict[str, Any]] = "",
) -> RunResult:
    """Wrap any supported response shape in the canonical ``RunResult`` form."""
    if isinstance(raw, RunResult):
        return raw
    text = normalize(raw)
    return RunResult(
        id=f"run-{uuid.uuid4().hex[:12]}",
        agent_id=agent_id,
        input=user_input,
        output=text,
        final_output=text,
        new_items=[MessageOutputItem(content=text)],
    )
