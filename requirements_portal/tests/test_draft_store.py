"""
Tests: checklist bootstrap priority, legacy migration, and draft writes.

Run with:
    pytest requirements_portal/tests/test_draft_store.py -v
"""

import json

import pytest

from requirements_portal.config import Settings
from requirements_portal.models.enums import DraftSource
from requirements_portal.models.schemas import AttachedFile, RequirementItem
from requirements_portal.persistence.draft_store import (
    DEFAULT_TEMPLATE,
    LEGACY_TEXT_KEY,
    DraftStore,
    default_items,
    dump_items,
    items_from_text,
)
from requirements_portal.persistence.kv_store import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    StorageQuotaExceeded,
    create_store,
)
from requirements_portal.services.file_codec import encode_data_uri


def _items(*labels):
    return [RequirementItem(id=f"it-{i}", text=label) for i, label in enumerate(labels)]


def _with_local_file(item):
    return item.model_copy(update={"file": AttachedFile(
        id="local-1", name="a.pdf", size=3, type="application/pdf",
        url=encode_data_uri(b"abc", "application/pdf"),
    )})


class TestBootstrapPriority:
    def test_fresh_store_gives_template(self, store, settings):
        result = DraftStore(store, "student-1", settings).load()
        assert result.source == DraftSource.TEMPLATE
        assert [i.text for i in result.items] == DEFAULT_TEMPLATE
        assert result.items[0].note == settings.letter_note
        assert all(i.file is None for i in result.items)

    def test_user_draft_wins_over_snapshot(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        store.set(drafts.snapshot_key, dump_items(_items("From snapshot")))
        store.set(drafts.draft_key, dump_items(_items("From draft")))

        result = drafts.load()
        assert result.source == DraftSource.USER_DRAFT
        assert [i.text for i in result.items] == ["From draft"]

    def test_snapshot_used_without_draft(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        store.set(drafts.snapshot_key, dump_items(_items("A", "B")))
        assert drafts.load().source == DraftSource.USER_SNAPSHOT

    def test_malformed_draft_falls_through(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        store.set(drafts.draft_key, "{not json")
        store.set(drafts.snapshot_key, dump_items(_items("A")))
        assert drafts.load().source == DraftSource.USER_SNAPSHOT

    def test_duplicate_labels_rejected(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        store.set(drafts.draft_key, dump_items(_items("Same", "Same")))
        assert drafts.load().source == DraftSource.TEMPLATE

    def test_empty_list_rejected(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        store.set(drafts.draft_key, "[]")
        assert drafts.load().source == DraftSource.TEMPLATE

    def test_drafts_are_scoped_per_user(self, store, settings):
        DraftStore(store, "alice", settings).save(_items("Alice only"))
        assert DraftStore(store, "bob", settings).load().source == DraftSource.TEMPLATE
        assert DraftStore(store, "alice", settings).load().items[0].text == "Alice only"


class TestLegacyMigration:
    def test_legacy_draft_moves_to_user_keys(self, store, settings):
        store.set("requirements_items_draft", dump_items(_items("Old label")))
        store.set("requirements_items", dump_items(_items("Older label")))
        drafts = DraftStore(store, "student-1", settings)

        result = drafts.load()
        assert result.source == DraftSource.LEGACY_DRAFT
        assert [i.text for i in result.items] == ["Old label"]
        assert "requirements_items_draft" not in store
        assert "requirements_items" not in store
        assert drafts.load().source == DraftSource.USER_DRAFT

    def test_legacy_snapshot_used_when_no_legacy_draft(self, store, settings):
        store.set("requirements_items", dump_items(_items("Old label")))
        assert DraftStore(store, "student-1", settings).load().source == DraftSource.LEGACY_SNAPSHOT

    def test_legacy_text_imported_once(self, store, settings):
        store.set(LEGACY_TEXT_KEY, "Letter of Application\n  Transcript \n\nTranscript\n")
        drafts = DraftStore(store, "student-1", settings)

        result = drafts.load()
        assert result.source == DraftSource.LEGACY_TEXT
        assert [i.text for i in result.items] == ["Letter of Application", "Transcript"]
        assert result.items[0].note == settings.letter_note
        assert LEGACY_TEXT_KEY not in store

    def test_items_from_text_ids_are_unique(self):
        items = items_from_text("A\nB\nC")
        assert len({i.id for i in items}) == 3
        assert all(i.id.startswith("imp-") for i in items)


class TestWrites:
    def test_snapshot_strips_local_files(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        items = [_with_local_file(default_items(settings)[0])] + default_items(settings)[1:]

        assert drafts.save(items) is None

        snapshot = json.loads(store.get(drafts.snapshot_key))
        draft = json.loads(store.get(drafts.draft_key))
        assert snapshot[0]["file"] is None
        assert draft[0]["file"]["url"].startswith("data:application/pdf;base64,")

    def test_quota_failure_returns_warning(self, settings):
        drafts = DraftStore(MemoryKeyValueStore(quota_bytes=64), "student-1", settings)
        warning = drafts.save(default_items(settings))
        assert warning is not None
        assert "requirements_items_student-1" in warning

    def test_failed_draft_write_drops_stale_draft(self, settings):
        kv = MemoryKeyValueStore(quota_bytes=4000)
        drafts = DraftStore(kv, "student-1", settings)
        assert drafts.save(_items("Old draft")) is None

        big = _items("Resume")[0].model_copy(update={"file": AttachedFile(
            id="local-2", name="big.pdf", size=6000, type="application/pdf",
            url=encode_data_uri(b"x" * 6000, "application/pdf"),
        )})
        assert drafts.save([big]) is not None

        assert not drafts.has_draft()
        result = drafts.load()
        assert result.source == DraftSource.USER_SNAPSHOT
        assert [i.text for i in result.items] == ["Resume"]
        assert result.items[0].file is None

    def test_clear_draft(self, store, settings):
        drafts = DraftStore(store, "student-1", settings)
        drafts.save(_items("A"))
        assert drafts.has_draft()
        drafts.clear_draft()
        assert not drafts.has_draft()
        assert drafts.load().source == DraftSource.USER_SNAPSHOT


class TestKeyValueStores:
    def test_memory_quota(self):
        kv = MemoryKeyValueStore(quota_bytes=10)
        kv.set("k", "12345")
        with pytest.raises(StorageQuotaExceeded):
            kv.set("k2", "123456789")
        assert kv.get("k2") is None
        # Overwriting an entry only counts the new value
        kv.set("k", "123456789")
        assert kv.get("k") == "123456789"

    def test_json_file_store_survives_reopen(self, tmp_path):
        path = tmp_path / "drafts.json"
        first = JsonFileKeyValueStore(path)
        first.set("requirements_items_student-1", "[]")
        first.set("other", "x")
        first.remove("other")

        reopened = JsonFileKeyValueStore(path)
        assert reopened.keys() == ["requirements_items_student-1"]
        assert reopened.get("requirements_items_student-1") == "[]"

    def test_unreadable_store_file_starts_empty(self, tmp_path):
        path = tmp_path / "drafts.json"
        path.write_text("not json", encoding="utf-8")
        assert JsonFileKeyValueStore(path).keys() == []

    def test_create_store_backends(self, tmp_path):
        assert isinstance(create_store(Settings(storage_backend="memory")), MemoryKeyValueStore)
        local = create_store(Settings(
            storage_backend="local", local_storage_path=str(tmp_path / "kv.json")
        ))
        assert isinstance(local, JsonFileKeyValueStore)
