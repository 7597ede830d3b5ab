# Streaming event decoder - SSE lines to typed StreamEvents.
# Created: 2026-10-03
#
# The body arrives as lines; only lines starting with "data: " carry events.
# Each event is a JSON envelope with a "type" discriminant:
#   message_start, content_block_start, content_block_delta,
#   content_block_stop, message_delta, message_stop, error
# Anything else (event:/comment/keep-alive lines, "ping" envelopes, corrupt
# JSON) is dropped line by line; one bad delta never aborts the stream.

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Union

from healthscope.errors import ApiError, ApiResponseError, InvalidResponseError
from healthscope.llm.codec import (
    ContentBlock,
    Message,
    TextBlock,
    decode_content_block,
    decode_error_payload,
    decode_message,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


# ============================================================================
# Events
# ============================================================================


@dataclass(frozen=True)
class MessageStart:
    message: Message
    id: str = ""
    model: str = ""


@dataclass(frozen=True)
class ContentBlockStart:
    index: int
    block: ContentBlock | None  # None for block types this client doesn't model


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ContentBlockDelta:
    index: int
    delta: TextDelta


@dataclass(frozen=True)
class ContentBlockStop:
    index: int


@dataclass(frozen=True)
class MessageDelta:
    stop_reason: str | None = None
    stop_sequence: str | None = None
    output_tokens: int | None = None


@dataclass(frozen=True)
class MessageStop:
    pass


@dataclass(frozen=True)
class StreamError:
    error: ApiError


StreamEvent = Union[
    MessageStart,
    ContentBlockStart,
    ContentBlockDelta,
    ContentBlockStop,
    MessageDelta,
    MessageStop,
    StreamError,
]


# ============================================================================
# Decoding
# ============================================================================


def _index(envelope: dict[str, Any]) -> int:
    index = envelope.get("index")
    if not isinstance(index, int) or isinstance(index, bool):
        raise ValueError("missing block index")
    return index


def _decode_envelope(envelope: dict[str, Any]) -> StreamEvent | None:
    event_type = envelope.get("type")

    if event_type == "message_start":
        raw = envelope.get("message")
        message = decode_message(raw)
        return MessageStart(message=message, id=raw.get("id", ""), model=raw.get("model", ""))

    if event_type == "content_block_start":
        return ContentBlockStart(
            index=_index(envelope), block=decode_content_block(envelope.get("content_block"))
        )

    if event_type == "content_block_delta":
        delta = envelope.get("delta")
        if not isinstance(delta, dict) or not isinstance(delta.get("text"), str):
            logger.debug("Dropping non-text delta: %r", delta)
            return None
        return ContentBlockDelta(index=_index(envelope), delta=TextDelta(text=delta["text"]))

    if event_type == "content_block_stop":
        return ContentBlockStop(index=_index(envelope))

    if event_type == "message_delta":
        delta = envelope.get("delta") or {}
        usage = envelope.get("usage") or {}
        return MessageDelta(
            stop_reason=delta.get("stop_reason"),
            stop_sequence=delta.get("stop_sequence"),
            output_tokens=usage.get("output_tokens"),
        )

    if event_type == "message_stop":
        return MessageStop()

    if event_type == "error":
        detail = decode_error_payload(envelope)
        if detail is None:
            return StreamError(InvalidResponseError())
        return StreamError(ApiResponseError(detail.type, detail.message))

    logger.debug("Ignoring stream event type %r", event_type)
    return None


def decode_event(line: str) -> StreamEvent | None:
    """Decode one body line; None for skipped or malformed lines."""
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    try:
        envelope = json.loads(payload)
        if not isinstance(envelope, dict):
            raise ValueError("event envelope is not an object")
        return _decode_envelope(envelope)
    except (ValueError, TypeError, AttributeError, ApiError) as e:
        # json.JSONDecodeError is a ValueError
        logger.debug("Dropping malformed stream line (%s): %.100s", e, payload)
        return None


async def decode_stream(lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
    """Decode events as lines arrive; stops after message_stop or end of input."""
    async for line in lines:
        event = decode_event(line)
        if event is None:
            continue
        yield event
        if isinstance(event, MessageStop):
            return


# ============================================================================
# Assembly
# ============================================================================


@dataclass
class StreamAccumulator:
    """Applies events in arrival order and assembles the final message.

    Block indices are identifiers: deltas attach to the block opened with the
    same index, and an index is never reopened within one response.
    """

    role: str = "assistant"
    message_id: str = ""
    model: str = ""
    stop_reason: str | None = None
    error: ApiError | None = None
    finished: bool = False
    _blocks: dict[int, list[str]] = field(default_factory=dict)
    _open: set[int] = field(default_factory=set)
    _closed: set[int] = field(default_factory=set)

    def apply(self, event: StreamEvent) -> str | None:
        """Apply ``event``; returns the text it added, if any."""
        if isinstance(event, MessageStart):
            self.role = event.message.role
            self.message_id = event.id
            self.model = event.model
        elif isinstance(event, ContentBlockStart):
            if event.index in self._open or event.index in self._closed:
                logger.warning("Content block index %d reused; ignoring", event.index)
                return None
            self._open.add(event.index)
            initial = event.block.text if isinstance(event.block, TextBlock) else ""
            self._blocks[event.index] = [initial] if initial else []
            return initial or None
        elif isinstance(event, ContentBlockDelta):
            if event.index not in self._open:
                logger.warning("Delta for unopened content block %d dropped", event.index)
                return None
            self._blocks[event.index].append(event.delta.text)
            return event.delta.text
        elif isinstance(event, ContentBlockStop):
            if event.index not in self._open:
                logger.warning("Stop for unopened content block %d ignored", event.index)
                return None
            self._open.discard(event.index)
            self._closed.add(event.index)
        elif isinstance(event, MessageDelta):
            if event.stop_reason is not None:
                self.stop_reason = event.stop_reason
        elif isinstance(event, MessageStop):
            self.finished = True
        elif isinstance(event, StreamError):
            self.error = event.error
            self.finished = True
        return None

    @property
    def text(self) -> str:
        return "".join("".join(self._blocks[index]) for index in sorted(self._blocks))

    def to_message(self) -> Message:
        blocks = tuple(
            TextBlock(text="".join(self._blocks[index]))
            for index in sorted(self._blocks)
            if self._blocks[index]
        )
        return Message(role=self.role, content=blocks)
