# Tests for the Messages API request/response codec
# Created: 2026-10-03

import json

import pytest

from healthscope.errors import (
    ApiResponseError,
    AuthenticationFailedError,
    InvalidResponseError,
    RateLimitExceededError,
    ServerError,
)
from healthscope.llm.codec import (
    MAX_TOKENS,
    ImageBlock,
    Message,
    TextBlock,
    build_request_body,
    decode_content,
    decode_error,
    decode_message_response,
    encode_content,
)
from healthscope.llm.json_value import JsonKind

# ============================================================================
# Helpers
# ============================================================================


def response_body(**overrides) -> bytes:
    body = {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": "Hello"}],
        "model": "claude-3-5-sonnet-latest",
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 12, "output_tokens": 3},
    }
    body.update(overrides)
    return json.dumps(body).encode()


def error_body(error_type: str, message: str) -> bytes:
    return json.dumps({"type": "error", "error": {"type": error_type, "message": message}}).encode()


# ============================================================================
# Requests
# ============================================================================


class TestBuildRequestBody:
    def test_text_and_image_blocks(self):
        message = Message.user(
            TextBlock("What is this?"), ImageBlock.from_bytes(b"\xff\xd8", "image/jpeg")
        )
        body = build_request_body("m", [message], system="sys")

        assert body["model"] == "m"
        assert body["max_tokens"] == MAX_TOKENS
        assert body["stream"] is False
        assert body["system"] == "sys"
        content = body["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "What is this?"}
        assert content[1] == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/jpeg", "data": "/9g="},
        }

    def test_optional_fields_are_omitted(self):
        body = build_request_body("m", [Message.user(TextBlock("hi"))])
        assert "system" not in body
        assert "metadata" not in body

    def test_stream_flag(self):
        body = build_request_body("m", [Message.user(TextBlock("hi"))], stream=True)
        assert body["stream"] is True

    def test_metadata_keeps_null_and_number_kinds(self):
        body = build_request_body(
            "m", [Message.user(TextBlock("hi"))], metadata={"user_id": None, "n": 1, "f": 1.5}
        )
        assert json.loads(json.dumps(body))["metadata"] == {"user_id": None, "n": 1, "f": 1.5}

    def test_metadata_must_be_json(self):
        with pytest.raises(TypeError):
            build_request_body("m", [Message.user(TextBlock("hi"))], metadata={"x": object()})

    def test_content_round_trip(self):
        blocks = [TextBlock(""), ImageBlock("image/gif", "R0lG")]
        assert decode_content(encode_content(blocks)) == blocks
        assert decode_content(encode_content([])) == []

    def test_image_block_bytes(self):
        block = ImageBlock.from_bytes(b"png-bytes", "image/png")
        assert block.to_bytes() == b"png-bytes"


# ============================================================================
# Responses
# ============================================================================


class TestDecodeMessageResponse:
    def test_decodes_fields(self):
        response = decode_message_response(response_body())
        assert response.id == "msg_01"
        assert response.role == "assistant"
        assert response.text == "Hello"
        assert response.stop_reason == "end_turn"
        assert response.usage.input_tokens == 12
        assert response.usage.output_tokens == 3

    def test_unknown_blocks_are_skipped(self):
        response = decode_message_response(
            response_body(
                content=[
                    {"type": "tool_use", "id": "t1", "name": "x", "input": {}},
                    {"type": "text", "text": "kept"},
                ]
            )
        )
        assert response.content == [TextBlock("kept")]
        assert response.text == "kept"

    def test_no_text_block_gives_empty_text(self):
        assert decode_message_response(response_body(content=[])).text == ""

    def test_unknown_top_level_fields_are_preserved(self):
        response = decode_message_response(response_body(container={"id": None, "n": 2}))
        extra = response.extras["container"]
        assert extra.kind is JsonKind.OBJECT
        assert extra.value["id"].is_null
        assert extra.value["n"].kind is JsonKind.INTEGER

    def test_missing_role_is_invalid(self):
        data = json.loads(response_body())
        del data["role"]
        with pytest.raises(InvalidResponseError):
            decode_message_response(json.dumps(data))

    def test_non_json_is_invalid(self):
        with pytest.raises(InvalidResponseError):
            decode_message_response(b"<html>")

    def test_non_list_content_decodes_empty(self):
        assert decode_content({"type": "text"}) == []

    def test_to_message(self):
        message = decode_message_response(response_body()).to_message()
        assert message == Message.assistant(TextBlock("Hello"))


# ============================================================================
# Errors
# ============================================================================


class TestDecodeError:
    def test_429_is_rate_limit(self):
        error = decode_error(429, error_body("rate_limit_error", "slow down"))
        assert isinstance(error, RateLimitExceededError)
        assert error.message == "slow down"

    def test_401_is_authentication(self):
        assert isinstance(decode_error(401, b""), AuthenticationFailedError)

    def test_status_wins_over_body(self):
        error = decode_error(500, error_body("invalid_request_error", "boom"))
        assert isinstance(error, ServerError)
        assert error.status_code == 500

    def test_other_status_uses_payload(self):
        error = decode_error(400, error_body("invalid_request_error", "bad model"))
        assert isinstance(error, ApiResponseError)
        assert error.error_type == "invalid_request_error"
        assert str(error) == "bad model"

    def test_other_status_without_payload_is_invalid(self):
        error = decode_error(404, b"not found")
        assert isinstance(error, InvalidResponseError)
        assert str(error) == "Invalid response from server"
