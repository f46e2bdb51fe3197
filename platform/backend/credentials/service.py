"""Credential store: holds the API key and builds the completion client."""

from __future__ import annotations

import logging
from collections.abc import Callable

from chat.client import CompletionClient
from exceptions import NoCredentialError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "sk-"


class CredentialStore:
    """In-process holder for the OpenAI API key.

    The client handle is built once per key and reused until the key changes.
    ``client_factory`` receives the key and returns a ``CompletionClient``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client_factory: Callable[[str], CompletionClient] | None = None,
    ):
        self._api_key = api_key or None
        self._client: CompletionClient | None = None
        self._client_factory = client_factory or (
            lambda key: CompletionClient.from_credential(key, base_url=base_url, timeout=timeout)
        )

    def has_credential(self) -> bool:
        return bool(self._api_key)

    async def set_key(self, api_key: str) -> None:
        self._api_key = api_key
        await self.aclose()
        logger.info("API key updated")

    async def clear(self) -> None:
        self._api_key = None
        await self.aclose()
        logger.info("API key cleared")

    async def aclose(self) -> None:
        """Close the cached client, if one was built."""
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def build_client(self) -> CompletionClient:
        if not self._api_key:
            raise NoCredentialError()
        if self._client is None:
            self._client = self._client_factory(self._api_key)
        return self._client

    async def validate_key(self, api_key: str, live: bool = True) -> None:
        """Check the key's format and, when ``live``, make a cheap authenticated call."""
        if not api_key or not api_key.startswith(API_KEY_PREFIX):
            raise ValidationError("Invalid API key format")
        if not live:
            return
        client = self._client_factory(api_key)
        try:
            await client.list_models()
        except UpstreamError as exc:
            raise ValidationError(f"Invalid API key: {exc.upstream_message or exc.detail}") from exc
        finally:
            await client.aclose()
