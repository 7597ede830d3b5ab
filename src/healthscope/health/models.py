"""Health journal data models.

Created: 2026-10-05

These models define the journal records the AI layer reads and annotates:
- HealthNote (free text plus quick logs, device metrics, measurements, tags)
- QuickLogType (user-defined tracked metric)
- AnalysisResult (structured insight extracted from model output)

Design notes:
- Dataclasses with to_dict/from_dict for JSON persistence
- IDs are UUID strings
- Timestamps are timezone-aware datetimes, ISO 8601 on disk
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def generate_id() -> str:
    """Generate a unique ID."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO 8601 timestamp, assuming UTC when no offset is given."""
    if not value:
        return utc_now()
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class AnalysisResult:
    """Structured insight for one note. Replaced wholesale on re-analysis."""

    structured_data: dict[str, str] = field(default_factory=dict)
    categories: list[str] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "structuredData": dict(self.structured_data),
            "categories": list(self.categories),
            "insights": list(self.insights),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisResult:
        return cls(
            structured_data=dict(data.get("structuredData", {})),
            categories=list(data.get("categories", [])),
            insights=list(data.get("insights", [])),
        )


@dataclass
class QuickLogEntry:
    type: str
    value: float
    unit: str | None = None
    id: str = field(default_factory=generate_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "value": self.value, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuickLogEntry:
        return cls(
            id=data.get("id", generate_id()),
            type=data.get("type", ""),
            value=float(data.get("value", 0.0)),
            unit=data.get("unit"),
        )


@dataclass
class HealthDataPoint:
    """A device metric sample (heart rate, blood pressure, ...)."""

    type: str
    value: float
    unit: str
    timestamp: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=generate_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthDataPoint:
        return cls(
            id=data.get("id", generate_id()),
            type=data.get("type", ""),
            value=float(data.get("value", 0.0)),
            unit=data.get("unit", ""),
            timestamp=parse_timestamp(data.get("timestamp")),
        )


@dataclass
class CustomMeasurement:
    name: str
    value: float
    unit: str
    id: str = field(default_factory=generate_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "value": self.value, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomMeasurement:
        return cls(
            id=data.get("id", generate_id()),
            name=data.get("name", ""),
            value=float(data.get("value", 0.0)),
            unit=data.get("unit", ""),
        )


@dataclass
class HealthNote:
    """
    A single journal entry.

    Attributes:
        id: Unique identifier
        timestamp: When the note was written
        content: Free-text note body
        quick_log_data: Quick-log values recorded with the note
        health_kit_data: Device metric samples attached to the note
        custom_measurements: Ad-hoc measurements
        tags: User tags
        analysis_results: Latest AI analysis, if any
    """

    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utc_now)
    content: str = ""
    quick_log_data: list[QuickLogEntry] = field(default_factory=list)
    health_kit_data: list[HealthDataPoint] = field(default_factory=list)
    custom_measurements: list[CustomMeasurement] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    analysis_results: AnalysisResult | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "content": self.content,
            "quickLogData": [e.to_dict() for e in self.quick_log_data],
            "healthKitData": [p.to_dict() for p in self.health_kit_data],
            "customMeasurements": [m.to_dict() for m in self.custom_measurements],
            "tags": sorted(self.tags),
            "analysisResults": self.analysis_results.to_dict() if self.analysis_results else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthNote:
        """Create from dictionary."""
        analysis = data.get("analysisResults")
        return cls(
            id=data.get("id", generate_id()),
            timestamp=parse_timestamp(data.get("timestamp")),
            content=data.get("content", ""),
            quick_log_data=[QuickLogEntry.from_dict(e) for e in data.get("quickLogData", [])],
            health_kit_data=[HealthDataPoint.from_dict(p) for p in data.get("healthKitData", [])],
            custom_measurements=[
                CustomMeasurement.from_dict(m) for m in data.get("customMeasurements", [])
            ],
            tags=set(data.get("tags", [])),
            analysis_results=AnalysisResult.from_dict(analysis) if analysis else None,
        )


@dataclass
class QuickLogType:
    """A metric the user tracks with one tap (pain level, mood, ...)."""

    name: str
    icon: str
    color: str
    unit: str | None = None
    id: str = field(default_factory=generate_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "icon": self.icon,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuickLogType:
        return cls(
            id=data.get("id", generate_id()),
            name=data.get("name", ""),
            unit=data.get("unit"),
            icon=data.get("icon", ""),
            color=data.get("color", ""),
        )


def default_quick_log_types() -> list[QuickLogType]:
    """Quick log types seeded on first run."""
    return [
        QuickLogType(name="Pain Level", unit="1-10", icon="flame.fill", color="#ff5e6c"),
        QuickLogType(name="Mood", unit="1-5", icon="face.smiling", color="#ffcf5e"),
        QuickLogType(name="Energy", unit="1-5", icon="bolt.fill", color="#76ff5e"),
        QuickLogType(name="Sleep Quality", unit="1-5", icon="moon.fill", color="#5e5eff"),
    ]
