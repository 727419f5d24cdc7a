"""Orchestration — the requirements engine and the managers it owns."""

from requirements_portal.orchestration.engine import RequirementsEngine
from requirements_portal.orchestration.attachments import AttachmentManager
from requirements_portal.orchestration.removals import RemovalStaging
from requirements_portal.orchestration.submission import SubmissionSequencer, SubmitPayload

__all__ = [
    "AttachmentManager",
    "RemovalStaging",
    "RequirementsEngine",
    "SubmissionSequencer",
    "SubmitPayload",
]
