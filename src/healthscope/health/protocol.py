# Health collaborator protocols - note repository and device metrics.
# Created: 2026-10-05

from typing import Protocol

from healthscope.health.models import HealthDataPoint, HealthNote, QuickLogType


class NoteRepositoryProtocol(Protocol):
    """Read/update access to the user's journal."""

    async def list_notes(self) -> list[HealthNote]:
        """All notes, any order."""
        ...

    async def list_quick_log_types(self) -> list[QuickLogType]:
        ...

    async def update_note(self, note: HealthNote) -> None:
        """Replace a stored note with the same id."""
        ...


class HealthMetricsProviderProtocol(Protocol):
    """Device sensor data source (e.g. a platform health store)."""

    async def fetch_recent(self) -> list[HealthDataPoint]:
        """Samples from the last 24 hours."""
        ...
