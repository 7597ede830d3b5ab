# Error taxonomy for the AI layer.
# Created: 2026-10-02
#
# Transport and codec raise these at the seam where the failure happens;
# ChatSessionManager is the only place that turns them into conversation
# content. Nothing here is retried automatically.

from __future__ import annotations


class HealthScopeError(Exception):
    """Base class for every failure surfaced by HealthScope."""

    retryable: bool = False


class ClientNotConfiguredError(HealthScopeError):
    """No API credential is available; raised before any network call."""

    def __init__(self, message: str = "Anthropic API key not configured"):
        super().__init__(message)


class TransportFailure(HealthScopeError):
    """Network-level failure (timeout, DNS, connection reset).

    The caller may retry at its own discretion.
    """

    retryable = True

    def __init__(self, message: str, *, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


class ApiError(HealthScopeError):
    """Protocol-level failure reported by the chat-completion service."""

    kind = "api_error"
    default_message = "API error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidResponseError(ApiError):
    """The response body could not be decoded."""

    kind = "invalid_response"
    default_message = "Invalid response from server"


class ApiResponseError(ApiError):
    """Error payload with a server-supplied type and message."""

    kind = "api_error"

    def __init__(self, error_type: str, message: str):
        super().__init__(message)
        self.error_type = error_type


class RateLimitExceededError(ApiError):
    kind = "rate_limit_exceeded"
    default_message = "Rate limit exceeded"


class AuthenticationFailedError(ApiError):
    kind = "authentication_failed"
    default_message = "Authentication failed"


class ServerError(ApiError):
    kind = "server_error"
    default_message = "Server error occurred"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ExtractionFailedError(HealthScopeError):
    """Model output could not be turned into an AnalysisResult."""

    def __init__(self, reason: str):
        super().__init__(f"Analysis failed: {reason}")
        self.reason = reason


class SendInProgressError(HealthScopeError):
    """A send is already in flight for this conversation."""

    def __init__(self, conversation_id: str):
        super().__init__(f"A message is already being sent in conversation {conversation_id}")
        self.conversation_id = conversation_id


class ConversationNotFoundError(HealthScopeError):
    """No stored conversation has this ID."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Unknown conversation: {conversation_id}")
        self.conversation_id = conversation_id


class StorageError(HealthScopeError):
    """A document could not be written."""


_RECOVERY_SUGGESTIONS: dict[type[HealthScopeError], str] = {
    ClientNotConfiguredError: "Add your key with `healthscope set-key` or HEALTHSCOPE_ANTHROPIC_API_KEY.",
    AuthenticationFailedError: "Check that your Anthropic API key is valid.",
    RateLimitExceededError: "Wait a moment before trying again.",
    ServerError: "The service is having trouble; try again later.",
    TransportFailure: "Check your internet connection and try again.",
    ExtractionFailedError: "Try again; the model did not return structured insights.",
    StorageError: "Check your available disk space.",
    ConversationNotFoundError: "Run `healthscope conversations` to list conversation IDs.",
}


def format_error(error: Exception) -> str:
    """Return a user-facing description of ``error`` with a recovery hint."""
    suggestion = "Please try again later."
    for error_type, hint in _RECOVERY_SUGGESTIONS.items():
        if isinstance(error, error_type):
            suggestion = hint
            break
    return f"{error}\n{suggestion}"
