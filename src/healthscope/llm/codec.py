# Request/response codec for the Anthropic Messages API.
# Created: 2026-10-03
#
# Wire shapes:
#   content block  {"type": "text", "text": ...}
#                  {"type": "image", "source": {"type": "base64", "media_type": ..., "data": ...}}
#   request body   {model, messages: [{role, content: [...]}], system?, max_tokens, metadata?, stream}
#   error payload  {"type": "error", "error": {"type": ..., "message": ...}}
#
# Decoding is defensive: unknown content block shapes are skipped so that new
# server content types never crash the client.

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from healthscope.errors import (
    ApiError,
    ApiResponseError,
    AuthenticationFailedError,
    InvalidResponseError,
    RateLimitExceededError,
    ServerError,
)
from healthscope.llm.json_value import JsonValue

logger = logging.getLogger(__name__)

MAX_TOKENS = 8192


# ============================================================================
# Content blocks
# ============================================================================


@dataclass(frozen=True)
class TextBlock:
    text: str

    type = "text"


@dataclass(frozen=True)
class ImageBlock:
    """Inline image, base64 encoded."""

    media_type: str
    data: str

    type = "image"

    @classmethod
    def from_bytes(cls, image: bytes, media_type: str = "image/jpeg") -> ImageBlock:
        return cls(media_type=media_type, data=base64.b64encode(image).decode("ascii"))

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


ContentBlock = Union[TextBlock, ImageBlock]


@dataclass(frozen=True)
class Message:
    """One conversation turn: a role and an ordered list of content blocks."""

    role: str
    content: tuple[ContentBlock, ...] = ()

    @classmethod
    def user(cls, *blocks: ContentBlock) -> Message:
        return cls(role="user", content=tuple(blocks))

    @classmethod
    def assistant(cls, *blocks: ContentBlock) -> Message:
        return cls(role="assistant", content=tuple(blocks))

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))


def encode_content_block(block: ContentBlock) -> dict[str, Any]:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ImageBlock):
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": block.media_type, "data": block.data},
        }
    raise TypeError(f"Unsupported content block: {block!r}")


def decode_content_block(raw: Any) -> ContentBlock | None:
    """Decode a single wire block; returns None for shapes we don't understand."""
    if not isinstance(raw, Mapping):
        return None
    block_type = raw.get("type")
    if block_type == "text" and isinstance(raw.get("text"), str):
        return TextBlock(text=raw["text"])
    if block_type == "image":
        source = raw.get("source")
        if (
            isinstance(source, Mapping)
            and source.get("type") == "base64"
            and isinstance(source.get("media_type"), str)
            and isinstance(source.get("data"), str)
        ):
            return ImageBlock(media_type=source["media_type"], data=source["data"])
    logger.debug("Skipping unsupported content block type %r", block_type)
    return None


def encode_content(blocks: Sequence[ContentBlock]) -> list[dict[str, Any]]:
    return [encode_content_block(block) for block in blocks]


def decode_content(raw: Any) -> list[ContentBlock]:
    if not isinstance(raw, list):
        return []
    blocks = []
    for item in raw:
        block = decode_content_block(item)
        if block is not None:
            blocks.append(block)
    return blocks


def encode_message(message: Message) -> dict[str, Any]:
    return {"role": message.role, "content": encode_content(message.content)}


def decode_message(raw: Any) -> Message:
    """Decode ``{role, content}``; raises InvalidResponseError without a role."""
    if not isinstance(raw, Mapping) or not isinstance(raw.get("role"), str):
        raise InvalidResponseError()
    return Message(role=raw["role"], content=tuple(decode_content(raw.get("content"))))


def build_request_body(
    model: str,
    messages: Sequence[Message],
    *,
    system: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    stream: bool = False,
) -> dict[str, Any]:
    """Build the JSON body for POST /messages."""
    body: dict[str, Any] = {
        "model": model,
        "messages": [encode_message(m) for m in messages],
        "max_tokens": MAX_TOKENS,
        "stream": stream,
    }
    if system:
        body["system"] = system
    if metadata:
        # Goes through JsonValue so non-JSON values fail here, not on the wire
        body["metadata"] = JsonValue.from_python(dict(metadata)).to_python()
    return body


# ============================================================================
# Responses
# ============================================================================


class Usage(BaseModel):
    """Token accounting reported by the service."""

    model_config = ConfigDict(extra="allow")

    input_tokens: int = 0
    output_tokens: int = 0


_KNOWN_RESPONSE_FIELDS = frozenset(
    {"id", "type", "role", "content", "model", "stop_reason", "stop_sequence", "usage"}
)


@dataclass
class MessageResponse:
    """Decoded non-streaming response."""

    id: str
    role: str
    content: list[ContentBlock]
    model: str
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = field(default_factory=Usage)
    extras: dict[str, JsonValue] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Text of the first text block, or "" when there is none."""
        for block in self.content:
            if isinstance(block, TextBlock):
                return block.text
        return ""

    def to_message(self) -> Message:
        return Message(role=self.role, content=tuple(self.content))


def _parse_json(body: bytes | str) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise InvalidResponseError(f"Invalid response from server: {e}") from e


def decode_message_response(body: bytes | str) -> MessageResponse:
    """Decode a 2xx /messages body; raises InvalidResponseError on malformed input."""
    data = _parse_json(body)
    if not isinstance(data, dict):
        raise InvalidResponseError()
    for key in ("id", "role", "model"):
        if not isinstance(data.get(key), str):
            raise InvalidResponseError(f"Invalid response from server: missing '{key}'")
    try:
        usage = Usage.model_validate(data.get("usage") or {})
    except ValidationError as e:
        raise InvalidResponseError(f"Invalid response from server: {e}") from e

    return MessageResponse(
        id=data["id"],
        role=data["role"],
        content=decode_content(data.get("content")),
        model=data["model"],
        stop_reason=data.get("stop_reason"),
        stop_sequence=data.get("stop_sequence"),
        usage=usage,
        extras={
            key: JsonValue.from_python(value)
            for key, value in data.items()
            if key not in _KNOWN_RESPONSE_FIELDS
        },
    )


# ============================================================================
# Errors
# ============================================================================


class ErrorDetail(BaseModel):
    type: str
    message: str


class ErrorPayload(BaseModel):
    type: str = "error"
    error: ErrorDetail


def decode_error_payload(body: bytes | str | Mapping[str, Any]) -> ErrorDetail | None:
    """Parse ``{type, error: {type, message}}``; None when the body doesn't match."""
    try:
        if isinstance(body, Mapping):
            return ErrorPayload.model_validate(body).error
        return ErrorPayload.model_validate_json(body).error
    except ValidationError:
        return None


def decode_error(status_code: int, body: bytes | str) -> ApiError:
    """Map a non-2xx response to an ApiError.

    The status code decides for 401, 429 and 5xx whatever the body says; other
    codes rely on the error payload and fall back to InvalidResponseError.
    """
    detail = decode_error_payload(body)
    if status_code == 401:
        return AuthenticationFailedError(detail.message if detail else None)
    if status_code == 429:
        return RateLimitExceededError(detail.message if detail else None)
    if 500 <= status_code <= 599:
        return ServerError(detail.message if detail else None, status_code=status_code)
    if detail is None:
        return InvalidResponseError()
    return ApiResponseError(detail.type, detail.message)
