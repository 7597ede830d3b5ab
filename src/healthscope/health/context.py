"""
Context builders - turn journal data into prompt text.

Two contexts are produced:
- the analysis prompt for one note (current note + bounded history), and
- the chat context prepended to every chat message.

Every note field is embedded through json.dumps, never by string
interpolation, so quotes, braces and newlines in user text cannot break the
structured region. NaN and infinite numbers are sent as null; JSON has no
spelling for them. History is bounded by count (newest first), not bytes.

Custom analysis prompts support the placeholders {content}, {quicklog},
{tags} and {context}; the response-format instructions are always appended.
"""

import json
import logging
import math
from typing import Any

from healthscope.health.models import HealthDataPoint, HealthNote, QuickLogType

logger = logging.getLogger(__name__)

MAX_HISTORY_NOTES = 10
CHAT_RECENT_NOTES = 5
CHAT_RECENT_METRICS = 20

INPUT_HEADER = "Input Data:"
FORMAT_HEADER = "Expected Response Format:"

ANALYSIS_INSTRUCTIONS = (
    "Analyze this health data and respond ONLY with a JSON object. "
    "Do not include any other text."
)

RESPONSE_FORMAT = """{
    "structuredData": {
        "mood": "positive/negative/neutral",
        "symptoms": ["symptom1", "symptom2"],
        "severity": "mild/moderate/severe",
        "triggers": ["trigger1", "trigger2"]
    },
    "categories": ["category1", "category2"],
    "insights": [
        "Clear observation about patterns or correlations",
        "Important health-related findings",
        "Suggestions based on the data"
    ]
}"""


def _number(value: float) -> float | None:
    return value if math.isfinite(value) else None


def _note_record(note: HealthNote) -> dict[str, Any]:
    record: dict[str, Any] = {
        "timestamp": note.timestamp.isoformat(),
        "content": note.content,
        "quick_logs": [
            {"type": entry.type, "value": _number(entry.value), "unit": entry.unit or ""}
            for entry in note.quick_log_data
        ],
        "tags": sorted(note.tags),
    }
    if note.custom_measurements:
        record["measurements"] = [
            {"name": m.name, "value": _number(m.value), "unit": m.unit}
            for m in note.custom_measurements
        ]
    return record


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)


class ContextBuilder:
    """Builds the analysis prompt for a note."""

    def __init__(self, max_history: int = MAX_HISTORY_NOTES, custom_prompt: str = ""):
        if max_history < 0:
            raise ValueError("max_history must be >= 0")
        self.max_history = max_history
        self.custom_prompt = custom_prompt

    def select_history(self, note: HealthNote, recent_notes: list[HealthNote]) -> list[HealthNote]:
        """Most recent notes other than ``note``, newest first, capped by count."""
        others = [n for n in recent_notes if n.id != note.id]
        others.sort(key=lambda n: n.timestamp, reverse=True)
        return others[: self.max_history]

    def build_payload(self, note: HealthNote, recent_notes: list[HealthNote]) -> dict[str, Any]:
        """The structured region of the prompt, as plain data."""
        total = len({n.id for n in recent_notes} | {note.id})
        history = self.select_history(note, recent_notes)
        if len(history) < total - 1:
            logger.debug("Analysis history truncated to %d of %d notes", len(history), total - 1)
        return {
            "current_note": _note_record(note),
            "historical_data": {
                "total_notes": total,
                "previous_notes": [_note_record(n) for n in history],
            },
        }

    def build(self, note: HealthNote, recent_notes: list[HealthNote]) -> str:
        payload = _dumps(self.build_payload(note, recent_notes))
        if self.custom_prompt.strip():
            intro = self._render_custom_prompt(note, payload)
            return f"{intro}\n\n{FORMAT_HEADER}\n{RESPONSE_FORMAT}"
        return (
            f"{ANALYSIS_INSTRUCTIONS}\n\n"
            f"{INPUT_HEADER}\n{payload}\n\n"
            f"{FORMAT_HEADER}\n{RESPONSE_FORMAT}"
        )

    def _render_custom_prompt(self, note: HealthNote, payload: str) -> str:
        quicklog = [
            {"type": e.type, "value": _number(e.value), "unit": e.unit or ""}
            for e in note.quick_log_data
        ]
        replacements = {
            "{content}": json.dumps(note.content, ensure_ascii=False),
            "{quicklog}": json.dumps(quicklog, ensure_ascii=False, allow_nan=False),
            "{tags}": json.dumps(sorted(note.tags), ensure_ascii=False),
            "{context}": payload,
        }
        prompt = self.custom_prompt
        has_placeholder = False
        for placeholder, value in replacements.items():
            if placeholder in prompt:
                has_placeholder = True
                prompt = prompt.replace(placeholder, value)
        if not has_placeholder:
            # A prompt without placeholders still needs the data
            prompt = f"{prompt}\n\n{INPUT_HEADER}\n{payload}"
        return prompt


def build_chat_context(
    notes: list[HealthNote],
    quick_log_types: list[QuickLogType],
    metrics: list[HealthDataPoint] | None = None,
    recent_count: int = CHAT_RECENT_NOTES,
) -> str:
    """Summary of the user's data sent alongside every chat message."""
    recent = sorted(notes, key=lambda n: n.timestamp, reverse=True)[:recent_count]
    data: dict[str, Any] = {
        "total_notes": len(notes),
        "tracking_metrics": [t.name for t in quick_log_types],
        "recent_notes": [
            {"timestamp": n.timestamp.isoformat(), "content": n.content, "tags": sorted(n.tags)}
            for n in recent
        ],
    }
    if metrics:
        latest = sorted(metrics, key=lambda p: p.timestamp, reverse=True)[:CHAT_RECENT_METRICS]
        data["recent_health_metrics"] = [
            {
                "type": p.type,
                "value": _number(p.value),
                "unit": p.unit,
                "timestamp": p.timestamp.isoformat(),
            }
            for p in latest
        ]
    return f"User Health Data:\n{_dumps(data)}"


def compose_chat_prompt(context: str, user_text: str) -> str:
    """Text block for one chat turn: context followed by the user's message."""
    return f"Context:\n{context}\n\nUser Message: {user_text}"
