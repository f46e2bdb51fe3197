"""Chat-completion client: wraps an OpenAI-compatible API."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Sequence
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from agents.schemas import (
    DEFAULT_FREQUENCY_PENALTY,
    DEFAULT_PRESENCE_PENALTY,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    ModelSettings,
)
from chat.schemas import AssistantMessage, ConversationMessage
from exceptions import NoCredentialError, UpstreamError, UpstreamErrorKind

logger = logging.getLogger(__name__)


def _classify_by_message(message: str) -> UpstreamErrorKind:
    """Best-effort fallback for transports that only give us error text."""
    if "Network Error" in message:
        return UpstreamErrorKind.NETWORK
    if "timeout" in message.lower():
        return UpstreamErrorKind.TIMEOUT
    if "401" in message:
        return UpstreamErrorKind.UNAUTHORIZED
    if "429" in message:
        return UpstreamErrorKind.RATE_LIMITED
    if "500" in message:
        return UpstreamErrorKind.SERVER_ERROR
    return UpstreamErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> UpstreamErrorKind:
    """Map a transport failure to an upstream error kind.

    Typed errors and HTTP status codes win; the message text is only
    inspected when neither is available.
    """
    # APITimeoutError subclasses APIConnectionError, so it goes first
    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException)):
        return UpstreamErrorKind.TIMEOUT
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError)):
        return UpstreamErrorKind.NETWORK
    if isinstance(exc, openai.AuthenticationError):
        return UpstreamErrorKind.UNAUTHORIZED
    if isinstance(exc, openai.RateLimitError):
        return UpstreamErrorKind.RATE_LIMITED
    if isinstance(exc, openai.InternalServerError):
        return UpstreamErrorKind.SERVER_ERROR

    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        if status == 401:
            return UpstreamErrorKind.UNAUTHORIZED
        if status == 429:
            return UpstreamErrorKind.RATE_LIMITED
        if status >= 500:
            return UpstreamErrorKind.SERVER_ERROR

    return _classify_by_message(str(exc))


def build_request(
    model: str,
    messages: Sequence[ConversationMessage],
    sampling: ModelSettings | None = None,
    tool_declarations: Sequence[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Assemble the keyword arguments for ``chat.completions.create``."""
    sampling = sampling or ModelSettings()

    def _or(value, default):
        return default if value is None else value

    request: dict[str, Any] = {
        "model": model,
        "messages": [m.to_request() for m in messages],
        "temperature": _or(sampling.temperature, DEFAULT_TEMPERATURE),
        "top_p": _or(sampling.top_p, DEFAULT_TOP_P),
        "frequency_penalty": _or(sampling.frequency_penalty, DEFAULT_FREQUENCY_PENALTY),
        "presence_penalty": _or(sampling.presence_penalty, DEFAULT_PRESENCE_PENALTY),
    }
    if sampling.max_tokens is not None:
        request["max_completion_tokens"] = sampling.max_tokens

    # An empty tools array would still switch on tool-choice handling
    if tool_declarations:
        request["tools"] = list(tool_declarations)
        request["tool_choice"] = "auto"

    return request


def decode_first_message(response: Any) -> AssistantMessage:
    """Pull the first choice's message out of a raw completion response."""
    data = response.model_dump() if hasattr(response, "model_dump") else response
    try:
        choices = (data or {}).get("choices") or []
        if not choices:
            raise UpstreamError(UpstreamErrorKind.UNKNOWN, "Response contained no choices")
        return AssistantMessage.model_validate(choices[0]["message"])
    except (AttributeError, KeyError, IndexError, TypeError, PydanticValidationError) as exc:
        logger.error("Malformed completion response: %r", exc)
        raise UpstreamError(
            UpstreamErrorKind.UNKNOWN, f"Malformed completion response: {exc!r}"
        ) from exc


class CompletionClient:
    """Handle on the chat-completion API, bound to one credential.

    ``transport`` is anything shaped like ``openai.AsyncOpenAI``. Nothing is
    retried here; retry policy belongs to the caller.
    """

    def __init__(self, transport: Any):
        self._transport = transport

    @classmethod
    def from_credential(
        cls,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> CompletionClient:
        if not api_key:
            raise NoCredentialError()
        kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        if base_url:
            kwargs["base_url"] = base_url
        if timeout is not None:
            kwargs["timeout"] = timeout
        return cls(AsyncOpenAI(**kwargs))

    async def complete(
        self,
        model: str,
        messages: Sequence[ConversationMessage],
        sampling: ModelSettings | None = None,
        tool_declarations: Sequence[dict[str, Any]] | None = None,
    ) -> AssistantMessage:
        request = build_request(model, messages, sampling, tool_declarations)
        logger.info(
            "Chat completion: model=%s messages=%d tools=%d",
            model,
            len(request["messages"]),
            len(request.get("tools", [])),
        )

        try:
            response = await self._transport.chat.completions.create(**request)
        except Exception as exc:
            kind = classify_error(exc)
            logger.error("Chat completion failed (%s): %s", kind.value, exc)
            raise UpstreamError(kind, str(exc)) from exc

        return decode_first_message(response)

    async def list_models(self) -> list[str]:
        """List model ids visible to the credential; used to verify keys."""
        try:
            page = await self._transport.models.list()
        except Exception as exc:
            kind = classify_error(exc)
            logger.error("Listing models failed (%s): %s", kind.value, exc)
            raise UpstreamError(kind, str(exc)) from exc
        return [m.id for m in page.data]

    async def aclose(self) -> None:
        """Release the transport's HTTP connections."""
        close = getattr(self._transport, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result
