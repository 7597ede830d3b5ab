# Tests for the document store, secret store and journal
# Created: 2026-10-04

import json
import stat
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from healthscope.config import Settings
from healthscope.errors import StorageError
from healthscope.health import AnalysisResult, HealthNote, Journal, QuickLogType
from healthscope.storage import FileDocumentStore, FileSecretStore

# ============================================================================
# FileDocumentStore
# ============================================================================


class TestFileDocumentStore:
    def test_save_and_load(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        store.save([{"title": "café"}], "conversations.json")
        assert store.load("conversations.json") == [{"title": "café"}]
        assert not list(tmp_path.glob("*.tmp"))

    def test_missing_document_is_none(self, tmp_path):
        assert FileDocumentStore(tmp_path).load("healthNotes.json") is None

    def test_corrupt_document_is_none(self, tmp_path):
        (tmp_path / "healthNotes.json").write_text("{broken")
        assert FileDocumentStore(tmp_path).load("healthNotes.json") is None

    def test_failed_save_keeps_previous_version(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        store.save({"v": 1}, "doc.json")
        with pytest.raises(StorageError):
            store.save({"v": object()}, "doc.json")
        assert store.load("doc.json") == {"v": 1}
        assert not list(tmp_path.glob("*.tmp"))

    def test_replace_failure_raises_storage_error(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        with patch("healthscope.storage.document_store.os.replace", side_effect=OSError("full")):
            with pytest.raises(StorageError):
                store.save([], "doc.json")

    def test_rejects_path_names(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        with pytest.raises(ValueError):
            store.load("../escape.json")

    def test_delete(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        store.save([], "doc.json")
        assert store.delete("doc.json")
        assert not store.delete("doc.json")

    def test_default_location(self, isolated_home):
        store = FileDocumentStore()
        assert store.base_path == isolated_home / "data"


# ============================================================================
# FileSecretStore
# ============================================================================


class TestFileSecretStore:
    def test_set_and_get(self, tmp_path):
        secrets = FileSecretStore(tmp_path)
        secrets.set_api_key("sk-ant-123")
        assert secrets.get_api_key() == "sk-ant-123"

    def test_key_file_is_owner_only(self, tmp_path):
        FileSecretStore(tmp_path).set_api_key("sk-ant-123")
        mode = stat.S_IMODE((tmp_path / "anthropic.json").stat().st_mode)
        assert mode == 0o600

    def test_falls_back_to_settings(self, tmp_path):
        secrets = FileSecretStore(tmp_path, settings=Settings(anthropic_api_key="sk-env"))
        assert secrets.get_api_key() == "sk-env"

    def test_no_key(self, tmp_path):
        assert FileSecretStore(tmp_path).get_api_key() is None

    def test_delete(self, tmp_path):
        secrets = FileSecretStore(tmp_path)
        secrets.set_api_key("sk")
        assert secrets.delete_api_key()
        assert secrets.get_api_key() is None
        assert not secrets.delete_api_key()

    def test_empty_key_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            FileSecretStore(tmp_path).set_api_key("")


# ============================================================================
# Journal
# ============================================================================


class TestJournal:
    def test_seeds_default_quick_log_types(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        Journal(store)
        names = [t["name"] for t in store.load("quickLogTypes.json")]
        assert names == ["Pain Level", "Mood", "Energy", "Sleep Quality"]

    async def test_notes_persist(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        journal = Journal(store)
        note = HealthNote(content="walked 3 miles", tags={"exercise"})
        await journal.add_note(note)

        reloaded = await Journal(store).get_note(note.id)
        assert reloaded.content == "walked 3 miles"
        assert reloaded.tags == {"exercise"}

    async def test_list_is_newest_first(self, tmp_path):
        journal = Journal(FileDocumentStore(tmp_path))
        base = datetime(2026, 10, 1, tzinfo=UTC)
        for i in range(3):
            await journal.add_note(HealthNote(content=str(i), timestamp=base + timedelta(days=i)))
        assert [n.content for n in await journal.list_notes()] == ["2", "1", "0"]

    async def test_update_replaces_analysis(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        journal = Journal(store)
        note = HealthNote(content="x")
        await journal.add_note(note)
        note.analysis_results = AnalysisResult({"mood": "ok"}, ["Mood"], ["Fine."])
        await journal.update_note(note)

        raw = store.load("healthNotes.json")[0]
        assert raw["analysisResults"] == {
            "structuredData": {"mood": "ok"},
            "categories": ["Mood"],
            "insights": ["Fine."],
        }

    async def test_update_unknown_note(self, tmp_path):
        with pytest.raises(KeyError):
            await Journal(FileDocumentStore(tmp_path)).update_note(HealthNote())

    async def test_delete_notes_before(self, tmp_path):
        journal = Journal(FileDocumentStore(tmp_path))
        now = datetime.now(UTC)
        await journal.add_note(HealthNote(content="old", timestamp=now - timedelta(days=40)))
        await journal.add_note(HealthNote(content="new", timestamp=now))
        assert await journal.delete_notes_before(now - timedelta(days=30)) == 1
        assert [n.content for n in await journal.list_notes()] == ["new"]

    async def test_save_quick_log_type(self, tmp_path):
        journal = Journal(FileDocumentStore(tmp_path))
        custom = QuickLogType(name="Water", icon="drop", color="#00f", unit="glasses")
        await journal.save_quick_log_type(custom)
        assert (await journal.list_quick_log_types())[-1].name == "Water"

    async def test_failed_save_leaves_journal_unchanged(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        journal = Journal(store)
        kept = HealthNote(content="kept")
        await journal.add_note(kept)
        types_before = await journal.list_quick_log_types()

        with patch.object(store, "save", side_effect=StorageError("disk full")):
            with pytest.raises(StorageError):
                await journal.add_note(HealthNote(content="lost"))
            with pytest.raises(StorageError):
                await journal.update_note(replace(kept, content="edited"))
            with pytest.raises(StorageError):
                await journal.delete_note(kept.id)
            with pytest.raises(StorageError):
                await journal.save_quick_log_type(QuickLogType(name="Water", icon="d", color="b"))

        assert [n.content for n in await journal.list_notes()] == ["kept"]
        assert await journal.list_quick_log_types() == types_before
        assert [n.content for n in await Journal(store).list_notes()] == ["kept"]

    def test_loads_legacy_json(self, tmp_path):
        (tmp_path / "healthNotes.json").write_text(
            json.dumps([{"id": "n1", "timestamp": "2026-10-01T08:00:00", "content": "hi"}])
        )
        journal = Journal(FileDocumentStore(tmp_path))
        note = journal._notes["n1"]
        assert note.timestamp.tzinfo is not None
        assert note.tags == set()
