"""Journal - notes and quick log types kept in the document store.

Created: 2026-10-06
Implements NoteRepositoryProtocol on top of DocumentStoreProtocol.

Documents:
    healthNotes.json     # All notes
    quickLogTypes.json   # Quick log definitions (defaults seeded on first load)
"""

import logging
from datetime import datetime

from healthscope.health.models import HealthNote, QuickLogType, default_quick_log_types
from healthscope.storage.protocol import DocumentStoreProtocol

logger = logging.getLogger(__name__)

NOTES_DOCUMENT = "healthNotes.json"
QUICK_LOG_TYPES_DOCUMENT = "quickLogTypes.json"


class Journal:
    """In-memory index of notes, persisted on every change."""

    def __init__(self, store: DocumentStoreProtocol):
        self._store = store
        self._notes: dict[str, HealthNote] = {}
        self._quick_log_types: list[QuickLogType] = []
        self._load()

    def _load(self) -> None:
        for data in self._store.load(NOTES_DOCUMENT) or []:
            note = HealthNote.from_dict(data)
            self._notes[note.id] = note

        self._quick_log_types = [
            QuickLogType.from_dict(d) for d in self._store.load(QUICK_LOG_TYPES_DOCUMENT) or []
        ]
        if not self._quick_log_types:
            self._commit_quick_log_types(default_quick_log_types())

        logger.info(
            f"Journal loaded: {len(self._notes)} notes, "
            f"{len(self._quick_log_types)} quick log types"
        )

    # Changes are saved before they replace the in-memory state, so a failed
    # write (StorageError) leaves the journal matching the disk.

    def _commit_notes(self, notes: dict[str, HealthNote]) -> None:
        self._store.save([n.to_dict() for n in notes.values()], NOTES_DOCUMENT)
        self._notes = notes

    def _commit_quick_log_types(self, types: list[QuickLogType]) -> None:
        self._store.save([t.to_dict() for t in types], QUICK_LOG_TYPES_DOCUMENT)
        self._quick_log_types = types

    # =========================================================================
    # Notes
    # =========================================================================

    async def add_note(self, note: HealthNote) -> str:
        self._commit_notes({**self._notes, note.id: note})
        return note.id

    async def get_note(self, note_id: str) -> HealthNote | None:
        return self._notes.get(note_id)

    async def list_notes(self) -> list[HealthNote]:
        """Notes, newest first."""
        return sorted(self._notes.values(), key=lambda n: n.timestamp, reverse=True)

    async def update_note(self, note: HealthNote) -> None:
        if note.id not in self._notes:
            raise KeyError(f"Unknown note: {note.id}")
        self._commit_notes({**self._notes, note.id: note})

    async def delete_note(self, note_id: str) -> bool:
        if note_id not in self._notes:
            return False
        self._commit_notes({nid: n for nid, n in self._notes.items() if nid != note_id})
        return True

    async def delete_notes_before(self, cutoff: datetime) -> int:
        """Delete notes older than ``cutoff``; returns the count removed."""
        kept = {nid: n for nid, n in self._notes.items() if n.timestamp >= cutoff}
        removed = len(self._notes) - len(kept)
        if removed:
            self._commit_notes(kept)
        return removed

    # =========================================================================
    # Quick log types
    # =========================================================================

    async def list_quick_log_types(self) -> list[QuickLogType]:
        return list(self._quick_log_types)

    async def save_quick_log_type(self, quick_log_type: QuickLogType) -> None:
        types = [t for t in self._quick_log_types if t.id != quick_log_type.id]
        self._commit_quick_log_types([*types, quick_log_type])
