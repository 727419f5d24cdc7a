"""
Server reconciliation — fold a remote submission into the local checklist.

The displayed list comes from the draft bootstrap; the remote record
supplies the submitted flag and the stored file of every item whose label
matches (trimmed, exact). A local file still waiting to be uploaded wins
over the remote one, and leaves the form in RESUBMIT_PENDING.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from requirements_portal.models.enums import RemoteStatus, SubmissionMode
from requirements_portal.models.schemas import RemoteSubmission, RemoteSubmissionItem
from requirements_portal.models.state import RequirementsFormState

logger = logging.getLogger(__name__)


def _index_by_label(submission: RemoteSubmission) -> dict[str, RemoteSubmissionItem]:
    index: dict[str, RemoteSubmissionItem] = {}
    for remote in submission.items:
        index.setdefault(remote.label.strip(), remote)
    return index


def apply_remote_files(state: RequirementsFormState, submission: RemoteSubmission) -> tuple[int, int]:
    """
    Copy remote file metadata onto matching items.
    Returns (items matched, items kept local because an upload is pending).
    """
    by_client_id = {r.client_id: r for r in submission.items if r.client_id}
    by_label = _index_by_label(submission)
    matched = 0
    kept_local = 0
    items = []
    for item in state.items:
        remote = by_client_id.get(item.id) or by_label.get(item.text.strip())
        if remote is None:
            items.append(item)
            continue
        if item.file is not None and item.file.is_local and item.id in state.raw_files:
            kept_local += 1
            items.append(item)
            continue
        items.append(item.model_copy(update={"file": remote.to_attached_file()}))
        matched += 1
    state.items = items
    return matched, kept_local


def reconcile_with_submission(state: RequirementsFormState, submission: Optional[RemoteSubmission]) -> bool:
    """
    Mount-time merge. Returns True when a submitted record was applied.
    """
    if submission is None or submission.status != RemoteStatus.SUBMITTED:
        return False

    matched, kept_local = apply_remote_files(state, submission)
    # The old file of a replaced item may already be gone from the record
    pending = sum(
        1 for item in state.items
        if item.file is not None and item.file.is_local and item.id in state.raw_files
    )
    state.mode = SubmissionMode.RESUBMIT_PENDING if pending else SubmissionMode.SUBMITTED
    logger.info(
        f"Reconciled with submission {submission.id or '<no id>'}: "
        f"{matched} remote files, {kept_local} kept local, {pending} pending uploads "
        f"→ {state.mode.value}"
    )
    return True


def submission_from_response(response: dict[str, Any]) -> Optional[RemoteSubmission]:
    """The submission record echoed by a successful submit, when the server sends one."""
    raw = response.get("submission") if isinstance(response, dict) else None
    if not isinstance(raw, dict):
        return None
    try:
        return RemoteSubmission.model_validate(raw)
    except ValidationError as exc:
        logger.debug(f"Submit response has no usable submission: {exc}")
        return None
