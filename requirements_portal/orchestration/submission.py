"""
Submission sequencer — validation, multipart payload, and the submit call.

Modes: DRAFT → SUBMITTING → SUBMITTED → (file replaced) → RESUBMIT_PENDING
       → SUBMITTING → SUBMITTED.  A failed call returns to the mode it
came from and keeps raw files and staged removals for a retry.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel

from requirements_portal.config import Settings, get_settings
from requirements_portal.models.enums import SubmissionMode
from requirements_portal.models.state import RequirementsFormState
from requirements_portal.orchestration import transitions
from requirements_portal.orchestration.attachments import oversize_message
from requirements_portal.orchestration.removals import RemovalStaging
from requirements_portal.persistence.draft_store import strip_local_files
from requirements_portal.services.file_codec import sanitize_filename, size_limit_for
from requirements_portal.services.requirements_api import (
    FilePart,
    RequirementsApiClient,
    RequirementsApiError,
)

logger = logging.getLogger(__name__)


class SubmitPayload(BaseModel):
    """Form fields and file parts for POST /requirements."""
    data: dict[str, str] = {}
    files: list[FilePart] = []


class SubmissionSequencer:
    def __init__(
        self,
        state: RequirementsFormState,
        removals: RemovalStaging,
        api: RequirementsApiClient,
        settings: Settings | None = None,
    ):
        self.state = state
        self.removals = removals
        self.api = api
        self.settings = settings or get_settings()
        self.last_response: dict[str, Any] = {}

    # ── Validation ───────────────────────────────────────

    def validate(self) -> dict[str, str]:
        """
        One error per item without a file. When every item has one, pending
        uploads are re-checked against their ceilings.
        """
        state = self.state
        errors = {
            item.id: transitions.MISSING_FILE for item in state.items if item.file is None
        }
        if errors:
            return errors

        for item in state.items:
            raw = state.raw_files.get(item.id)
            if raw is None:
                if item.file is not None and item.file.is_local:
                    errors[item.id] = transitions.RESELECT_FILE
                continue
            limit = size_limit_for(item.text, self.settings)
            if raw.size > limit:
                errors[item.id] = oversize_message(raw.name, item.text, limit)
        return errors

    def can_submit(self) -> bool:
        return transitions.check_submit_allowed(self.state) is None and not self.validate()

    # ── Payload ──────────────────────────────────────────

    def build_payload(self) -> SubmitPayload:
        state = self.state
        data: dict[str, str] = {}
        files: list[FilePart] = []

        for index, item in enumerate(state.items):
            data[f"items[{index}][label]"] = item.text
            if item.note:
                data[f"items[{index}][note]"] = item.note
            raw = state.raw_files.get(item.id)
            if raw is not None:
                filename = sanitize_filename(raw.name, self.settings.filename_max_length)
                data[f"items[{index}][filename]"] = filename
                files.append(("files", (filename, raw.data, raw.content_type)))

        staged = set(state.staged_removals)
        sanitized = [
            item.model_copy(update={"file": None}) if item.id in staged else item
            for item in strip_local_files(state.items)
        ]
        data["itemsJson"] = json.dumps([item.model_dump(mode="json") for item in sanitized])

        removed = self.removals.pending_ids()
        if removed:
            data["removedPublicIds"] = json.dumps(removed)
        if state.mode == SubmissionMode.RESUBMIT_PENDING:
            data["resubmit"] = "true"

        return SubmitPayload(data=data, files=files)

    # ── Submit ───────────────────────────────────────────

    async def submit(self, on_progress: Optional[Callable[[int], None]] = None) -> bool:
        """
        Validate, send, and settle the outcome into state. Never raises;
        returns whether the server accepted the submission.
        """
        state = self.state
        reason = transitions.check_submit_allowed(state)
        if reason:
            state.form_error = reason
            return False

        state.success_message = None
        errors = self.validate()
        state.errors = errors
        if errors:
            state.form_error = transitions.FIX_ERRORS
            logger.info(f"Submit blocked by {len(errors)} item errors")
            return False

        payload = self.build_payload()
        previous = state.mode
        state.mode = SubmissionMode.SUBMITTING
        state.form_error = None
        state.upload_progress = 0
        logger.info(
            f"Submitting {len(state.items)} items, {len(payload.files)} uploads, "
            f"{state.removal_count} removals (from {previous.value})"
        )

        def report(percent: int) -> None:
            state.upload_progress = percent
            if on_progress:
                on_progress(percent)

        try:
            response = await self.api.submit(payload.data, payload.files, on_progress=report)
        except RequirementsApiError as exc:
            logger.error(f"Submit failed: {exc}")
            state.mode = transitions.mode_after_submit_failure(previous)
            state.form_error = transitions.SUBMIT_FAILED
            state.success_message = None
            state.upload_progress = None
            return False

        self.last_response = response if isinstance(response, dict) else {}
        self.removals.finalize()
        state.raw_files = {}
        state.mode = SubmissionMode.SUBMITTED
        state.errors = {}
        state.form_error = None
        state.success_message = transitions.success_message_for(previous)
        state.has_unsaved_changes = False
        state.upload_progress = 100
        logger.info(f"Submit accepted; mode → {state.mode.value}")
        return True
