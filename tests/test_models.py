# Tests for journal and chat data models
# Created: 2026-10-05

from datetime import UTC, datetime

from healthscope.chat.models import DEFAULT_TITLE, ChatMessage, Conversation, MessageRole
from healthscope.health.models import (
    AnalysisResult,
    CustomMeasurement,
    HealthDataPoint,
    HealthNote,
    QuickLogEntry,
    QuickLogType,
    default_quick_log_types,
)


class TestHealthModels:
    def test_note_round_trip_uses_camel_case(self):
        note = HealthNote(
            timestamp=datetime(2026, 10, 1, 9, 30, tzinfo=UTC),
            content="migraine",
            quick_log_data=[QuickLogEntry(type="Pain Level", value=7, unit="1-10")],
            health_kit_data=[HealthDataPoint(type="heartRate", value=72, unit="bpm")],
            custom_measurements=[CustomMeasurement(name="Temp", value=37.2, unit="C")],
            tags={"head", "pain"},
            analysis_results=AnalysisResult({"severity": "high"}, ["Pain"], ["Hydrate."]),
        )
        data = note.to_dict()
        assert data["timestamp"] == "2026-10-01T09:30:00+00:00"
        assert data["tags"] == ["head", "pain"]
        assert data["quickLogData"][0]["type"] == "Pain Level"
        assert data["analysisResults"]["structuredData"] == {"severity": "high"}

        restored = HealthNote.from_dict(data)
        assert restored.timestamp == note.timestamp
        assert restored.tags == note.tags
        assert restored.analysis_results == note.analysis_results
        assert restored.custom_measurements[0].value == 37.2

    def test_note_without_analysis(self):
        data = HealthNote(content="fine").to_dict()
        assert data["analysisResults"] is None
        assert HealthNote.from_dict(data).analysis_results is None

    def test_default_quick_log_types(self):
        types = default_quick_log_types()
        assert [t.unit for t in types] == ["1-10", "1-5", "1-5", "1-5"]
        assert len({t.id for t in types}) == 4

    def test_quick_log_type_from_dict(self):
        restored = QuickLogType.from_dict({"id": "q", "name": "Water", "icon": "drop"})
        assert restored.unit is None
        assert restored.color == ""


class TestChatModels:
    def test_message_image_is_base64_on_disk(self):
        message = ChatMessage.user("look", b"\x00\x01")
        data = message.to_dict()
        assert data["image_data"] == "AAE="
        assert data["role"] == "user"
        assert ChatMessage.from_dict(data) == message

    def test_assistant_error_flag(self):
        message = ChatMessage.assistant("oops", is_error=True)
        assert message.role is MessageRole.ASSISTANT
        assert ChatMessage.from_dict(message.to_dict()).is_error

    def test_title_set_at_second_message(self):
        conversation = Conversation()
        conversation.append(ChatMessage.user("What helps with sleep?"))
        assert conversation.title == DEFAULT_TITLE
        conversation.append(ChatMessage.assistant("Routine."))
        assert conversation.title == "What helps with sleep?"
        conversation.append(ChatMessage.user("Anything else?"))
        assert conversation.title == "What helps with sleep?"

    def test_image_only_message_keeps_default_title(self):
        conversation = Conversation()
        conversation.append(ChatMessage.user("", b"img"))
        conversation.append(ChatMessage.assistant("A cat."))
        assert conversation.title == DEFAULT_TITLE

    def test_conversation_round_trip(self):
        conversation = Conversation(title="t")
        conversation.append(ChatMessage.user("a"))
        restored = Conversation.from_dict(conversation.to_dict())
        assert restored.id == conversation.id
        assert restored.messages == conversation.messages
