"""
Removal staging — deferred deletion of files that already live on the server.

Per item: Attached → Staged → (Undo → Attached) | (submit → Removed).
The item's ``file`` is never touched while staged, so undo only has to
forget the mapping.
"""

from __future__ import annotations

import logging

from requirements_portal.models.state import RequirementsFormState

logger = logging.getLogger(__name__)


class RemovalStaging:
    def __init__(self, state: RequirementsFormState):
        self.state = state

    def stage(self, item_id: str, public_id: str) -> bool:
        if self.state.staged_removals.get(item_id) == public_id:
            return False
        self.state.staged_removals[item_id] = public_id
        self.state.has_unsaved_changes = True
        logger.info(
            f"Staged {public_id} on {item_id} for removal "
            f"({self.state.removal_count} staged)"
        )
        return True

    def undo(self, item_id: str) -> bool:
        public_id = self.state.staged_removals.pop(item_id, None)
        if public_id is None:
            return False
        self.state.has_unsaved_changes = bool(
            self.state.raw_files or self.state.staged_removals
        )
        logger.info(f"Undid removal of {public_id} on {item_id}")
        return True

    def is_staged(self, item_id: str) -> bool:
        return item_id in self.state.staged_removals

    def pending_ids(self) -> list[str]:
        return list(self.state.staged_removals.values())

    def finalize(self) -> list[str]:
        """
        Called after a successful submit: the server has deleted the staged
        files, so clear them from their items and empty the map.
        """
        removed = self.pending_ids()
        staged_items = set(self.state.staged_removals)
        self.state.items = [
            item.model_copy(update={"file": None})
            if item.id in staged_items and item.file is not None and not item.file.is_local
            else item
            for item in self.state.items
        ]
        self.state.staged_removals = {}
        if removed:
            logger.info(f"Finalized removal of {len(removed)} files")
        return removed
