"""LLM package for HealthScope: Messages API client, codec and stream decoder."""

from healthscope.llm.cancellation import CancellationToken
from healthscope.llm.client import AnthropicClient, create_client
from healthscope.llm.codec import ImageBlock, Message, MessageResponse, TextBlock
from healthscope.llm.json_value import JsonKind, JsonValue
from healthscope.llm.streaming import StreamAccumulator, StreamEvent, decode_stream

__all__ = [
    "AnthropicClient",
    "CancellationToken",
    "ImageBlock",
    "JsonKind",
    "JsonValue",
    "Message",
    "MessageResponse",
    "StreamAccumulator",
    "StreamEvent",
    "TextBlock",
    "create_client",
    "decode_stream",
]
