"""
File attachment — turns a selected file into an item's AttachedFile plus a
raw upload handle, and removes files again.

Raw bytes live in ``state.raw_files`` only; the item list carries a data:
URI so the draft can be restored after a reload.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from requirements_portal.config import Settings, get_settings
from requirements_portal.models.schemas import AttachedFile, RawFile, SelectedFile
from requirements_portal.models.state import RequirementsFormState
from requirements_portal.orchestration import transitions
from requirements_portal.orchestration.removals import RemovalStaging
from requirements_portal.services.background_tasks import BackgroundTasks
from requirements_portal.services.event_bus import REMOVE_CLICK, FormEvents
from requirements_portal.services.file_codec import (
    decode_data_uri,
    encode_data_uri,
    format_size,
    new_local_id,
    resolve_public_id,
    size_limit_for,
)
from requirements_portal.services.requirements_api import RequirementsApiClient

logger = logging.getLogger(__name__)


def oversize_message(name: str, label: str, limit: int) -> str:
    return f"{name} is larger than the {format_size(limit)} limit for {label}."


class AttachmentManager:
    def __init__(
        self,
        state: RequirementsFormState,
        removals: RemovalStaging,
        api: RequirementsApiClient,
        background: BackgroundTasks,
        events: FormEvents,
        settings: Settings | None = None,
    ):
        self.state = state
        self.removals = removals
        self.api = api
        self.background = background
        self.events = events
        self.settings = settings or get_settings()

    # ── Attach ───────────────────────────────────────────

    async def attach(self, item_id: str, files: Sequence[SelectedFile]) -> bool:
        """Attach the first selected file to ``item_id``. Returns True when applied."""
        if not files:
            return False
        state = self.state
        item = state.find_item(item_id)
        if item is None:
            logger.warning(f"attach: unknown item {item_id}")
            return False

        reason = transitions.check_attach_allowed(state)
        if reason:
            state.form_error = reason
            return False

        selected = files[0]
        limit = size_limit_for(item.text, self.settings)
        try:
            size = selected.size
        except OSError as exc:
            state.errors[item_id] = f"Could not read {selected.name}."
            logger.warning(f"attach: cannot stat {selected.name}: {exc}")
            return False

        if size > limit:
            self._reject_oversize(item_id, selected.name, item.text, limit, size)
            return False

        version = state.bump_version(item_id)
        try:
            data = await selected.read()
        except (OSError, ValueError) as exc:
            state.errors[item_id] = f"Could not read {selected.name}."
            logger.warning(f"attach: reading {selected.name} failed: {exc}")
            return False

        # Anything may have happened to the item while the read was pending
        current = state.find_item(item_id)
        if current is None or state.item_versions.get(item_id) != version:
            logger.info(f"attach: discarding stale read of {selected.name} for {item_id}")
            return False
        if len(data) > limit:
            self._reject_oversize(item_id, selected.name, current.text, limit, len(data))
            return False

        previous = current.file
        attached = AttachedFile(
            id=new_local_id(),
            name=selected.name,
            size=len(data),
            type=selected.content_type,
            url=encode_data_uri(data, selected.content_type),
        )
        state.replace_item(current.model_copy(update={"file": attached}))
        state.raw_files[item_id] = RawFile(
            name=selected.name, content_type=selected.content_type, data=data
        )
        state.errors.pop(item_id, None)
        state.has_unsaved_changes = True
        logger.info(f"Attached {selected.name} ({len(data)} bytes) to {item_id}")

        if state.is_submitted:
            self._replace_after_submit(item_id, previous)
        return True

    def _reject_oversize(self, item_id: str, name: str, label: str, limit: int, size: int) -> None:
        self.state.errors[item_id] = oversize_message(name, label, limit)
        self.state.raw_files.pop(item_id, None)
        logger.info(f"Rejected {name} for {item_id}: {size} bytes > {limit}")

    def _replace_after_submit(self, item_id: str, previous: Optional[AttachedFile]) -> None:
        if previous is not None and not previous.is_local:
            public_id = resolve_public_id(previous)
            if public_id:
                self.schedule_remote_delete(public_id)
                # Already being deleted; do not send it again with the submit
                self.state.staged_removals.pop(item_id, None)
        self.state.mode = transitions.mode_after_replace(self.state)
        logger.info(f"Changed {item_id} after submit; mode → {self.state.mode.value}")

    def schedule_remote_delete(self, public_id: str) -> None:
        """Fire-and-forget delete of a stored file; failures are only logged."""
        self.background.spawn(
            f"delete {public_id}",
            lambda: self.api.delete_file(public_id),
            attempts=self.settings.delete_retry_attempts,
            backoff_seconds=self.settings.delete_retry_backoff_seconds,
        )

    # ── Detach ───────────────────────────────────────────

    def detach(self, item_id: str) -> bool:
        """
        Local files are cleared at once. Remote files are only staged for
        removal; they disappear when the next submit succeeds.
        """
        state = self.state
        item = state.find_item(item_id)
        if item is None:
            logger.warning(f"detach: unknown item {item_id}")
            return False

        reason = transitions.check_detach_allowed(state)
        if reason:
            state.form_error = reason
            return False
        if item.file is None:
            return False

        if item.file.is_local:
            state.bump_version(item_id)
            state.replace_item(item.model_copy(update={"file": None}))
            state.raw_files.pop(item_id, None)
            state.has_unsaved_changes = bool(state.raw_files or state.staged_removals)
            logger.info(f"Removed local file from {item_id}")
            return True

        self.events.emit(REMOVE_CLICK, {"id": item_id})
        public_id = resolve_public_id(item.file)
        if not public_id:
            logger.warning(f"detach: no storage id for {item.file.url!r}; leaving {item_id} as is")
            return False
        return self.removals.stage(item_id, public_id)

    # ── Reload ───────────────────────────────────────────

    def restore_raw_files(self) -> int:
        """
        Rebuild raw handles from data: URIs restored out of a draft.
        Files that no longer decode or exceed their ceiling are dropped.
        """
        state = self.state
        restored = 0
        items = []
        for item in state.items:
            if item.file is None or not item.file.is_local:
                items.append(item)
                continue
            limit = size_limit_for(item.text, self.settings)
            try:
                data, content_type = decode_data_uri(item.file.url)
            except ValueError as exc:
                logger.warning(f"Dropping undecodable draft file on {item.id}: {exc}")
                items.append(item.model_copy(update={"file": None}))
                continue
            if len(data) > limit:
                state.errors[item.id] = oversize_message(item.file.name, item.text, limit)
                items.append(item.model_copy(update={"file": None}))
                continue
            state.raw_files[item.id] = RawFile(
                name=item.file.name,
                content_type=item.file.type or content_type,
                data=data,
            )
            restored += 1
            items.append(item)
        state.items = items
        if restored:
            state.has_unsaved_changes = True
            logger.info(f"Restored {restored} pending uploads from draft")
        return restored
