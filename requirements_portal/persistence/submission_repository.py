"""
Submission Repository — server-side store of requirements submissions.
Handles save, lookup by user, and the "one submitted record per user" rule.
Uses an in-memory dict; records are copied in and out.
"""

from __future__ import annotations

import logging
from typing import Optional

from requirements_portal.models.enums import RemoteStatus
from requirements_portal.models.schemas import RemoteSubmission

logger = logging.getLogger(__name__)


class SubmissionRepository:
    """Save/load RemoteSubmission records keyed by submission id."""

    def __init__(self):
        self._memory_store: dict[str, RemoteSubmission] = {}

    def save(self, submission: RemoteSubmission) -> RemoteSubmission:
        """Insert or replace a submission and return the stored copy."""
        stored = submission.model_copy(deep=True)
        self._memory_store[stored.id] = stored
        logger.info(
            f"Saved submission {stored.id} for {stored.user_id} "
            f"({len(stored.items)} items, {stored.status.value})"
        )
        return stored.model_copy(deep=True)

    def find_submitted(self, user_id: str) -> Optional[RemoteSubmission]:
        """Return the user's submitted record, if any."""
        for submission in self._memory_store.values():
            if submission.user_id == user_id and submission.status == RemoteStatus.SUBMITTED:
                return submission.model_copy(deep=True)
        return None

    def list_for_user(self, user_id: str) -> list[RemoteSubmission]:
        """All of a user's submissions, newest first."""
        subs = [s for s in self._memory_store.values() if s.user_id == user_id]
        subs.sort(key=lambda s: s.submitted_at.timestamp() if s.submitted_at else 0.0, reverse=True)
        return [s.model_copy(deep=True) for s in subs]

    def count(self) -> int:
        return len(self._memory_store)
