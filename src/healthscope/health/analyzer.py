# Health analyzer - note + history -> prompt -> model -> AnalysisResult.
# Created: 2026-10-06

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from healthscope.config import DEFAULT_SYSTEM_PROMPT
from healthscope.errors import ClientNotConfiguredError
from healthscope.health.context import ContextBuilder
from healthscope.health.extractor import extract_analysis
from healthscope.health.models import AnalysisResult, HealthNote
from healthscope.llm.client import AnthropicClient
from healthscope.llm.codec import Message, TextBlock

logger = logging.getLogger(__name__)


class HealthAnalyzer:
    """Runs one analysis call per note.

    Failures propagate to the caller: ApiError/TransportFailure from the
    client, ExtractionFailedError when the reply has no usable insight.
    """

    def __init__(
        self,
        client: AnthropicClient | None,
        model: str,
        *,
        context_builder: ContextBuilder | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        metadata: Mapping[str, Any] | None = None,
    ):
        self._client = client
        self._model = model
        self._context = context_builder or ContextBuilder()
        self._system_prompt = system_prompt
        self._metadata = metadata

    async def analyze(self, note: HealthNote, recent_notes: list[HealthNote]) -> AnalysisResult:
        if self._client is None:
            raise ClientNotConfiguredError()

        prompt = self._context.build(note, recent_notes)
        response = await self._client.send(
            self._model,
            [Message.user(TextBlock(prompt))],
            system=self._system_prompt,
            metadata=self._metadata,
        )
        result = extract_analysis(response.text)
        logger.info(
            "Analyzed note %s: %d categories, %d insights",
            note.id,
            len(result.categories),
            len(result.insights),
        )
        return result
