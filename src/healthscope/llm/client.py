# Anthropic Client - HTTP client for the Messages API (single-shot and streamed).
# Created: 2026-10-04
#
# One outbound request per call. Non-2xx statuses map to ApiError subclasses,
# network failures and timeouts to TransportFailure. The client never retries:
# these are billed calls and only the caller knows whether repeating one is
# acceptable.

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

import httpx

from healthscope.config import Settings
from healthscope.errors import ClientNotConfiguredError, TransportFailure
from healthscope.llm.cancellation import CancellationToken, iterate_until_cancelled
from healthscope.llm.codec import (
    Message,
    MessageResponse,
    build_request_body,
    decode_error,
    decode_message_response,
)
from healthscope.llm.streaming import StreamError, StreamEvent, decode_stream
from healthscope.storage.protocol import SecretStoreProtocol

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.anthropic.com/v1"
API_VERSION = "2023-06-01"


class AnthropicClient:
    """Async client for POST /messages.

    Pass ``http_client`` to share a connection pool (or to inject a mock
    transport); otherwise the client owns one and closes it in ``aclose()``.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = API_BASE_URL,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ClientNotConfiguredError()
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/messages"
        self._timeout = timeout
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> AnthropicClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }

    @staticmethod
    def _validate(model: str, messages: Sequence[Message]) -> None:
        if not model:
            raise ValueError("model is required")
        if not messages:
            raise ValueError("At least one message is required")

    async def send(
        self,
        model: str,
        messages: Sequence[Message],
        system: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> MessageResponse:
        """Send a non-streaming request and decode the complete response."""
        self._validate(model, messages)
        body = build_request_body(model, messages, system=system, metadata=metadata)
        logger.debug("POST %s (model=%s, %d message(s))", self._url, model, len(messages))

        try:
            resp = await self._http.post(
                self._url, json=body, headers=self._headers(), timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            raise TransportFailure(f"Request timed out: {e}", timed_out=True) from e
        except httpx.RequestError as e:
            raise TransportFailure(f"Network error: {e}") from e

        if not resp.is_success:
            error = decode_error(resp.status_code, resp.content)
            logger.warning("Messages API returned %d: %s", resp.status_code, error)
            raise error

        response = decode_message_response(resp.content)
        logger.debug(
            "Received response %s (stop_reason=%s, output_tokens=%d)",
            response.id,
            response.stop_reason,
            response.usage.output_tokens,
        )
        return response

    async def stream(
        self,
        model: str,
        messages: Sequence[Message],
        system: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Send a streaming request and yield events as they arrive.

        A non-2xx status yields a single StreamError and ends the stream.
        Cancelling ``cancel_token`` stops delivery and releases the connection.
        """
        self._validate(model, messages)
        body = build_request_body(model, messages, system=system, metadata=metadata, stream=True)
        logger.debug("POST %s (stream, model=%s, %d message(s))", self._url, model, len(messages))

        try:
            async with self._http.stream(
                "POST", self._url, json=body, headers=self._headers(), timeout=self._timeout
            ) as resp:
                if not resp.is_success:
                    await resp.aread()
                    error = decode_error(resp.status_code, resp.content)
                    logger.warning("Messages API stream returned %d: %s", resp.status_code, error)
                    yield StreamError(error)
                    return

                events = decode_stream(resp.aiter_lines())
                async for event in iterate_until_cancelled(events, cancel_token):
                    yield event

                if cancel_token is not None and cancel_token.cancelled:
                    logger.debug("Stream cancelled by caller")
        except httpx.TimeoutException as e:
            raise TransportFailure(f"Request timed out: {e}", timed_out=True) from e
        except httpx.RequestError as e:
            raise TransportFailure(f"Network error: {e}") from e


def create_client(
    settings: Settings,
    secret_store: SecretStoreProtocol,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> AnthropicClient:
    """Build a client from settings and the stored API key.

    Raises ``ClientNotConfiguredError`` when no key is available.
    """
    api_key = secret_store.get_api_key()
    if not api_key:
        raise ClientNotConfiguredError()
    return AnthropicClient(
        api_key,
        base_url=settings.anthropic_base_url,
        timeout=settings.request_timeout,
        http_client=http_client,
    )
