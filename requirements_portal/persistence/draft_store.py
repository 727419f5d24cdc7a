"""
Draft Store — bootstraps the requirement checklist and keeps it in sync
with the key-value store.

Keys (per user, plus the un-scoped legacy equivalents):
  requirements_items_<user>        list with local file content stripped
  requirements_items_<user>_draft  full list, data: URIs included
  requirements_upload_text         legacy newline-delimited labels
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from requirements_portal.config import Settings, get_settings
from requirements_portal.models.enums import DraftSource
from requirements_portal.models.schemas import RequirementItem
from requirements_portal.persistence.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "requirements_items"
DRAFT_SUFFIX = "_draft"
LEGACY_TEXT_KEY = "requirements_upload_text"

DEFAULT_TEMPLATE: list[str] = [
    "Letter of Application",
    "Resume/Curriculum Vitae",
    "Photocopy of Recent Grades",
    "Photocopy of Good Moral Certificate",
    "Photocopy of Barangay Certificate of Indigency/BIR Tax Exemption Certificate of Parent or Guardian",
    "Photocopy of Birth Certificate (NSO/PSA)",
]

_items_adapter = TypeAdapter(list[RequirementItem])


class BootstrapResult(BaseModel):
    items: list[RequirementItem]
    source: DraftSource


# ── List helpers ─────────────────────────────────────────


def default_items(settings: Settings | None = None) -> list[RequirementItem]:
    """The hardcoded six-item template, letter note included."""
    settings = settings or get_settings()
    return annotate_letter(
        [RequirementItem(id=f"tmpl-{i}", text=text) for i, text in enumerate(DEFAULT_TEMPLATE)],
        settings,
    )


def annotate_letter(items: list[RequirementItem], settings: Settings | None = None) -> list[RequirementItem]:
    """Attach the addressee note to the letter item when it has none."""
    settings = settings or get_settings()
    return [
        item.model_copy(update={"note": settings.letter_note})
        if item.text == settings.letter_label and not item.note
        else item
        for item in items
    ]


def strip_local_files(items: list[RequirementItem]) -> list[RequirementItem]:
    """Drop data: URI files so the list stays small enough to store."""
    return [
        item.model_copy(update={"file": None})
        if item.file is not None and item.file.is_local
        else item
        for item in items
    ]


def items_from_text(text: str) -> list[RequirementItem]:
    """Import a newline-delimited list of labels, one item per unique label."""
    items: list[RequirementItem] = []
    seen: set[str] = set()
    for line in text.splitlines():
        label = line.strip()
        if not label or label in seen:
            continue
        seen.add(label)
        items.append(RequirementItem(id=f"imp-{len(items)}-{uuid.uuid4().hex[:8]}", text=label))
    return items


def dump_items(items: list[RequirementItem]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items])


def _is_consistent(items: list[RequirementItem]) -> bool:
    ids = [item.id for item in items]
    labels = [item.text.strip() for item in items]
    return bool(items) and len(set(ids)) == len(ids) and len(set(labels)) == len(labels)


# ── Store ────────────────────────────────────────────────


class DraftStore:
    """Reads and writes one user's checklist snapshots."""

    def __init__(self, store: KeyValueStore, user_key: str, settings: Settings | None = None):
        self.store = store
        self.user_key = user_key
        self.settings = settings or get_settings()

    @property
    def snapshot_key(self) -> str:
        return f"{STORAGE_KEY}_{self.user_key}"

    @property
    def draft_key(self) -> str:
        return f"{self.snapshot_key}{DRAFT_SUFFIX}"

    @property
    def legacy_snapshot_key(self) -> str:
        return STORAGE_KEY

    @property
    def legacy_draft_key(self) -> str:
        return f"{STORAGE_KEY}{DRAFT_SUFFIX}"

    # ── Bootstrap ────────────────────────────────────────

    def load(self) -> BootstrapResult:
        """
        Produce the initial checklist from the highest-priority source
        that holds a usable list. Never raises.
        """
        for key, source in (
            (self.draft_key, DraftSource.USER_DRAFT),
            (self.snapshot_key, DraftSource.USER_SNAPSHOT),
        ):
            items = self._read_items(key)
            if items is not None:
                logger.info(f"Restored {len(items)} items for {self.user_key} from {key}")
                return BootstrapResult(items=annotate_letter(items, self.settings), source=source)

        for key, source in (
            (self.legacy_draft_key, DraftSource.LEGACY_DRAFT),
            (self.legacy_snapshot_key, DraftSource.LEGACY_SNAPSHOT),
        ):
            items = self._read_items(key)
            if items is not None:
                items = annotate_letter(items, self.settings)
                self._migrate_legacy(items)
                return BootstrapResult(items=items, source=source)

        legacy_text = self._safe_get(LEGACY_TEXT_KEY)
        if legacy_text:
            self._safe_remove(LEGACY_TEXT_KEY)
            items = items_from_text(legacy_text)
            if items:
                logger.info(f"Imported {len(items)} items from {LEGACY_TEXT_KEY}")
                return BootstrapResult(
                    items=annotate_letter(items, self.settings), source=DraftSource.LEGACY_TEXT
                )

        return BootstrapResult(items=default_items(self.settings), source=DraftSource.TEMPLATE)

    # ── Writes ───────────────────────────────────────────

    def save(self, items: list[RequirementItem]) -> Optional[str]:
        """
        Persist both keys. Returns a warning message when storage refused
        the write; the in-memory list is unaffected either way.
        """
        warning = self.save_snapshot(items)
        draft_warning = self._write(self.draft_key, dump_items(items))
        if draft_warning:
            # An older draft would win over the fresh snapshot on reload
            self._safe_remove(self.draft_key)
        return warning or draft_warning

    def save_snapshot(self, items: list[RequirementItem]) -> Optional[str]:
        return self._write(self.snapshot_key, dump_items(strip_local_files(items)))

    def clear_draft(self) -> None:
        self._safe_remove(self.draft_key)

    def has_draft(self) -> bool:
        return self._safe_get(self.draft_key) is not None

    # ── Internals ────────────────────────────────────────

    def _migrate_legacy(self, items: list[RequirementItem]) -> None:
        logger.info(f"Migrating legacy requirements list into {self.snapshot_key}")
        if self.save(items) is None:
            self._safe_remove(self.legacy_draft_key)
            self._safe_remove(self.legacy_snapshot_key)

    def _read_items(self, key: str) -> Optional[list[RequirementItem]]:
        raw = self._safe_get(key)
        if raw is None:
            return None
        try:
            items = _items_adapter.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError, TypeError) as exc:
            logger.warning(f"Ignoring malformed list under {key}: {exc}")
            return None
        if not _is_consistent(items):
            logger.warning(f"Ignoring list under {key}: empty or duplicate ids/labels")
            return None
        return items

    def _write(self, key: str, value: str) -> Optional[str]:
        try:
            self.store.set(key, value)
        except (OSError, TypeError, ValueError) as exc:
            message = f"Could not save {key} ({len(value)} chars): {exc}"
            logger.warning(message)
            return message
        return None

    def _safe_get(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except OSError as exc:
            logger.warning(f"Could not read {key}: {exc}")
            return None

    def _safe_remove(self, key: str) -> None:
        try:
            self.store.remove(key)
        except OSError as exc:
            logger.warning(f"Could not remove {key}: {exc}")
