"""
Form state — the single object owned by the requirements engine.

Design rules:
  1. Every component receives this object; none keeps its own copy.
  2. ``items`` is the only part written to durable storage (via DraftStore).
  3. ``raw_files`` and ``staged_removals`` live only for the session.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from .enums import SubmissionMode
from .schemas import RawFile, RequirementItem


class RequirementsFormState(BaseModel):
    # ── Checklist ────────────────────────────────────────
    items: list[RequirementItem] = []

    # ── Session-only maps (keyed by item id) ─────────────
    raw_files: dict[str, RawFile] = {}
    staged_removals: dict[str, str] = {}
    item_versions: dict[str, int] = {}

    # ── Submission lifecycle ─────────────────────────────
    mode: SubmissionMode = SubmissionMode.DRAFT
    upload_progress: Optional[int] = None

    # ── User-visible feedback ────────────────────────────
    errors: dict[str, str] = {}
    form_error: Optional[str] = None
    success_message: Optional[str] = None
    storage_warning: Optional[str] = None
    has_unsaved_changes: bool = False

    # ── Helpers ──────────────────────────────────────────

    def find_item(self, item_id: str) -> Optional[RequirementItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def replace_item(self, item: RequirementItem) -> None:
        self.items = [item if it.id == item.id else it for it in self.items]

    def bump_version(self, item_id: str) -> int:
        version = self.item_versions.get(item_id, 0) + 1
        self.item_versions[item_id] = version
        return version

    @property
    def removal_count(self) -> int:
        return len(self.staged_removals)

    @property
    def is_submitted(self) -> bool:
        """True once a submission exists on the server, resubmit pending or not."""
        return self.mode in (SubmissionMode.SUBMITTED, SubmissionMode.RESUBMIT_PENDING)

    @property
    def is_locked(self) -> bool:
        return self.mode == SubmissionMode.SUBMITTED
