"""
Requirements engine — the single owner of the requirements form state.

Usage:
    engine = RequirementsEngine(identity, api, store)
    await engine.mount()
    await engine.attach("tmpl-0", [SelectedFile.from_path("letter.pdf")])
    await engine.submit()

Every public operation converts failures into state (per-item ``errors``,
``form_error``, ``storage_warning``) and returns whether it took effect.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from requirements_portal.config import Settings, get_settings
from requirements_portal.models.enums import DraftSource
from requirements_portal.models.schemas import SelectedFile
from requirements_portal.models.state import RequirementsFormState
from requirements_portal.orchestration import transitions
from requirements_portal.orchestration.attachments import AttachmentManager
from requirements_portal.orchestration.reconciliation import (
    apply_remote_files,
    reconcile_with_submission,
    submission_from_response,
)
from requirements_portal.orchestration.removals import RemovalStaging
from requirements_portal.orchestration.submission import SubmissionSequencer
from requirements_portal.persistence.draft_store import DraftStore, default_items
from requirements_portal.persistence.kv_store import KeyValueStore
from requirements_portal.services.background_tasks import BackgroundTasks
from requirements_portal.services.event_bus import FormEvents
from requirements_portal.services.identity import IdentityAccessor, resolve_user_key
from requirements_portal.services.requirements_api import (
    RequirementsApiClient,
    RequirementsApiError,
)

logger = logging.getLogger(__name__)


class RequirementsEngine:
    """Draft store, attachments, removal staging and submission behind one object."""

    def __init__(
        self,
        identity: IdentityAccessor,
        api: RequirementsApiClient,
        store: KeyValueStore,
        settings: Settings | None = None,
        events: FormEvents | None = None,
        background: BackgroundTasks | None = None,
    ):
        self.settings = settings or get_settings()
        self.api = api
        self.events = events or FormEvents()
        self.background = background or BackgroundTasks()
        self.user_key = resolve_user_key(identity, self.settings.guest_key)

        self.state = RequirementsFormState()
        self.drafts = DraftStore(store, self.user_key, self.settings)
        self.removals = RemovalStaging(self.state)
        self.attachments = AttachmentManager(
            self.state, self.removals, api, self.background, self.events, self.settings
        )
        self.sequencer = SubmissionSequencer(self.state, self.removals, api, self.settings)
        self.source: Optional[DraftSource] = None

    # ── Mount ────────────────────────────────────────────

    def bootstrap(self) -> DraftSource:
        """Seed the checklist from storage and rebuild pending uploads."""
        result = self.drafts.load()
        self.state.items = result.items
        self.source = result.source
        self.attachments.restore_raw_files()
        self._persist()
        logger.info(f"Bootstrapped {len(self.state.items)} items for {self.user_key} from {result.source.value}")
        return result.source

    async def sync_with_server(self) -> bool:
        """Fetch the remote submission and merge it in. Failures leave the draft as is."""
        try:
            submission = await self.api.fetch_current_submission()
        except RequirementsApiError as exc:
            logger.warning(f"Could not load current submission: {exc}")
            return False
        if not reconcile_with_submission(self.state, submission):
            return False
        self._persist()
        return True

    async def mount(self) -> None:
        self.bootstrap()
        await self.sync_with_server()

    # ── Item operations ──────────────────────────────────

    async def attach(self, item_id: str, files: Sequence[SelectedFile]) -> bool:
        changed = await self.attachments.attach(item_id, files)
        if changed:
            self._persist()
        return changed

    def detach(self, item_id: str) -> bool:
        changed = self.attachments.detach(item_id)
        if changed:
            self._persist()
        return changed

    def undo_removal(self, item_id: str) -> bool:
        return self.removals.undo(item_id)

    def reset(self) -> bool:
        reason = transitions.check_reset_allowed(self.state)
        if reason:
            self.state.form_error = reason
            return False
        state = self.state
        for item in state.items:
            state.bump_version(item.id)
        state.items = default_items(self.settings)
        state.errors = {}
        state.form_error = None
        state.success_message = None
        state.raw_files = {}
        state.staged_removals = {}
        state.has_unsaved_changes = False
        state.upload_progress = None
        self._persist()
        logger.info("Form reset to the default template")
        return True

    # ── Submission ───────────────────────────────────────

    def validate(self) -> dict[str, str]:
        return self.sequencer.validate()

    @property
    def can_submit(self) -> bool:
        return self.sequencer.can_submit()

    async def submit(self, on_progress: Optional[Callable[[int], None]] = None) -> bool:
        accepted = await self.sequencer.submit(on_progress=on_progress)
        if not accepted:
            return False
        submission = submission_from_response(self.sequencer.last_response)
        if submission is not None:
            apply_remote_files(self.state, submission)
        self.state.storage_warning = self.drafts.save_snapshot(self.state.items)
        self.drafts.clear_draft()
        return True

    # ── Misc ─────────────────────────────────────────────

    @property
    def removal_count(self) -> int:
        return self.state.removal_count

    def is_staged(self, item_id: str) -> bool:
        return self.removals.is_staged(item_id)

    async def drain_background(self) -> None:
        await self.background.drain()

    def _persist(self) -> None:
        self.state.storage_warning = self.drafts.save(self.state.items)
