"""
Chat session manager - conversations, in-flight sends and note analysis.

Created: 2026-10-07

Each send appends the user's message immediately, builds the health context,
calls the model once and appends either the reply or a synthetic assistant
message describing the failure. Conversations are persisted to
conversations.json after every completed turn.

Concurrency: one send per conversation at a time. A second send while the
first is in flight is rejected with SendInProgressError before any state
changes. Cancelling an in-flight send (task cancellation or a
CancellationToken on the streaming path) removes the optimistic user message
and leaves the conversation as it was before the send.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import replace
from enum import Enum
from typing import Any

from healthscope.chat.models import ChatMessage, Conversation, MessageRole
from healthscope.config import DEFAULT_SYSTEM_PROMPT
from healthscope.errors import (
    ClientNotConfiguredError,
    ConversationNotFoundError,
    HealthScopeError,
    SendInProgressError,
    StorageError,
)
from healthscope.health.analyzer import HealthAnalyzer
from healthscope.health.context import ContextBuilder, build_chat_context, compose_chat_prompt
from healthscope.health.models import AnalysisResult, HealthDataPoint, HealthNote
from healthscope.health.protocol import HealthMetricsProviderProtocol, NoteRepositoryProtocol
from healthscope.llm.cancellation import CancellationToken
from healthscope.llm.client import AnthropicClient
from healthscope.llm.codec import ImageBlock, Message, TextBlock
from healthscope.llm.streaming import StreamAccumulator
from healthscope.storage.protocol import DocumentStoreProtocol

logger = logging.getLogger(__name__)

CONVERSATIONS_DOCUMENT = "conversations.json"
ERROR_REPLY_PREFIX = "I apologize, but I encountered an error: "
EMPTY_REPLY_TEXT = "No response received"
# Prior turns replayed to the model, oldest dropped first
MAX_REPLAYED_MESSAGES = 20


class SessionState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"


def error_reply(error: Exception) -> ChatMessage:
    return ChatMessage.assistant(f"{ERROR_REPLY_PREFIX}{error}", is_error=True)


class ChatSessionManager:
    """Owns conversations and routes chat turns through the model client.

    ``client`` may be None (no API key yet); sends then complete with an
    error reply and analysis raises ClientNotConfiguredError.
    """

    def __init__(
        self,
        client: AnthropicClient | None,
        store: DocumentStoreProtocol,
        notes: NoteRepositoryProtocol,
        *,
        model: str,
        metrics: HealthMetricsProviderProtocol | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        metadata: Mapping[str, Any] | None = None,
        context_builder: ContextBuilder | None = None,
    ):
        self._client = client
        self._store = store
        self._notes = notes
        self._metrics = metrics
        self._model = model
        self._system_prompt = system_prompt
        self._metadata = metadata
        self._analyzer = HealthAnalyzer(
            client,
            model,
            context_builder=context_builder,
            system_prompt=system_prompt,
            metadata=metadata,
        )

        self._conversations: dict[str, Conversation] = {}
        self._current: Conversation | None = None
        self._in_flight: set[str] = set()
        # conversation id -> id of the user message awaiting its reply
        self._pending: dict[str, str] = {}
        self._tasks: set[asyncio.Task] = set()
        self._load()

    # =========================================================================
    # Conversations
    # =========================================================================

    def _load(self) -> None:
        for data in self._store.load(CONVERSATIONS_DOCUMENT) or []:
            conversation = Conversation.from_dict(data)
            self._conversations[conversation.id] = conversation
        logger.debug("Loaded %d conversations", len(self._conversations))

    def _persist(self) -> None:
        # Messages of in-flight sends are never written; a cancelled send must
        # not leave an unanswered message on disk.
        pending = set(self._pending.values())
        documents = []
        for conversation in self._conversations.values():
            data = conversation.to_dict()
            data["messages"] = [m for m in data["messages"] if m["id"] not in pending]
            documents.append(data)
        try:
            self._store.save(documents, CONVERSATIONS_DOCUMENT)
        except StorageError as e:
            logger.error("Failed to save conversations: %s", e)

    @property
    def current_conversation(self) -> Conversation | None:
        return self._current

    def start_new_conversation(self) -> Conversation:
        """Start an empty conversation; it is stored once its first turn completes."""
        self._current = Conversation()
        return self._current

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        if self._current is not None and self._current.id == conversation_id:
            return self._current
        return self._conversations.get(conversation_id)

    def list_conversations(self) -> list[Conversation]:
        """Stored conversations, newest first."""
        return sorted(self._conversations.values(), key=lambda c: c.created_at, reverse=True)

    def select_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        self._current = conversation
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        if conversation_id in self._in_flight:
            raise SendInProgressError(conversation_id)
        removed = self._conversations.pop(conversation_id, None)
        if self._current is not None and self._current.id == conversation_id:
            self._current = None
        if removed is None:
            return False
        self._persist()
        return True

    def state(self, conversation_id: str) -> SessionState:
        return SessionState.SENDING if conversation_id in self._in_flight else SessionState.IDLE

    def _resolve(self, conversation_id: str | None) -> Conversation:
        if conversation_id is None:
            return self._current or self.start_new_conversation()
        return self.select_conversation(conversation_id)

    def _begin(self, conversation: Conversation, message: ChatMessage) -> None:
        # Runs synchronously so a competing send can never slip in between
        # the check and the append.
        if conversation.id in self._in_flight:
            raise SendInProgressError(conversation.id)
        self._in_flight.add(conversation.id)
        self._pending[conversation.id] = message.id
        conversation.append(message)

    def _complete(self, conversation: Conversation, reply: ChatMessage) -> None:
        self._pending.pop(conversation.id, None)
        conversation.append(reply)
        self._conversations[conversation.id] = conversation
        self._persist()

    def _rollback(self, conversation: Conversation, message: ChatMessage) -> None:
        self._pending.pop(conversation.id, None)
        conversation.messages = [m for m in conversation.messages if m.id != message.id]
        logger.info("Send rolled back in conversation %s", conversation.id)

    # =========================================================================
    # Requests
    # =========================================================================

    async def _fetch_metrics(self) -> list[HealthDataPoint]:
        if self._metrics is None:
            return []
        try:
            return await self._metrics.fetch_recent()
        except Exception as e:
            logger.warning("Health metrics unavailable, continuing without them: %s", e)
            return []

    async def _build_messages(
        self, conversation: Conversation, message: ChatMessage
    ) -> list[Message]:
        notes = await self._notes.list_notes()
        quick_log_types = await self._notes.list_quick_log_types()
        metrics = await self._fetch_metrics()
        context = build_chat_context(notes, quick_log_types, metrics)

        blocks: list[TextBlock | ImageBlock] = [
            TextBlock(compose_chat_prompt(context, message.content))
        ]
        if message.image_data:
            blocks.append(ImageBlock.from_bytes(message.image_data, message.image_media_type))

        history = [m for m in conversation.messages if m.id != message.id and m.content]
        replayed = [
            Message.user(TextBlock(m.content))
            if m.role is MessageRole.USER
            else Message.assistant(TextBlock(m.content))
            for m in history[-MAX_REPLAYED_MESSAGES:]
        ]
        return [*replayed, Message.user(*blocks)]

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_message(
        self, message: ChatMessage, conversation_id: str | None = None
    ) -> ChatMessage:
        """Send ``message`` and return the assistant reply (or error reply).

        Raises SendInProgressError if the conversation already has a send in
        flight. Task cancellation rolls the user message back and propagates.
        """
        conversation = self._resolve(conversation_id)
        self._begin(conversation, message)
        return await self._run_send(conversation, message)

    def submit_message(
        self, message: ChatMessage, conversation_id: str | None = None
    ) -> asyncio.Task[ChatMessage]:
        """Schedule a send and return its task; cancel the task to abort it.

        The in-flight check and the optimistic append happen before this
        returns.
        """
        conversation = self._resolve(conversation_id)
        self._begin(conversation, message)
        task = asyncio.create_task(self._run_send(conversation, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_send(self, conversation: Conversation, message: ChatMessage) -> ChatMessage:
        try:
            try:
                if self._client is None:
                    raise ClientNotConfiguredError()
                messages = await self._build_messages(conversation, message)
                response = await self._client.send(
                    self._model,
                    messages,
                    system=self._system_prompt,
                    metadata=self._metadata,
                )
                reply = ChatMessage.assistant(response.text or EMPTY_REPLY_TEXT)
            except HealthScopeError as e:
                logger.warning("Chat send failed in %s: %s", conversation.id, e)
                reply = error_reply(e)
        except BaseException:
            self._rollback(conversation, message)
            raise
        else:
            self._complete(conversation, reply)
            return reply
        finally:
            self._in_flight.discard(conversation.id)

    async def stream_message(
        self,
        message: ChatMessage,
        conversation_id: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Send ``message`` and yield reply text as it arrives.

        The full reply is appended to the conversation once the stream ends.
        If ``cancel_token`` is cancelled, or the consumer stops iterating,
        the user message is rolled back and nothing is appended.
        """
        conversation = self._resolve(conversation_id)
        self._begin(conversation, message)
        token = cancel_token or CancellationToken()
        completed = False
        try:
            try:
                if self._client is None:
                    raise ClientNotConfiguredError()
                messages = await self._build_messages(conversation, message)
                accumulator = StreamAccumulator()
                async for event in self._client.stream(
                    self._model,
                    messages,
                    system=self._system_prompt,
                    metadata=self._metadata,
                    cancel_token=token,
                ):
                    delta = accumulator.apply(event)
                    if delta:
                        yield delta
                if token.cancelled:
                    return
                if accumulator.error is not None:
                    raise accumulator.error
                reply = ChatMessage.assistant(accumulator.text or EMPTY_REPLY_TEXT)
            except HealthScopeError as e:
                logger.warning("Chat stream failed in %s: %s", conversation.id, e)
                reply = error_reply(e)
            self._complete(conversation, reply)
            completed = True
        finally:
            if not completed:
                self._rollback(conversation, message)
            self._in_flight.discard(conversation.id)

    # =========================================================================
    # Analysis
    # =========================================================================

    async def analyze_note(self, note: HealthNote) -> AnalysisResult:
        """Analyze ``note`` against the journal and store the result on it.

        Errors propagate unchanged; the stored note is left untouched on
        failure.
        """
        recent = await self._notes.list_notes()
        result = await self._analyzer.analyze(note, recent)
        await self._notes.update_note(replace(note, analysis_results=result))
        return result
