"""Models — enums, schemas and the engine's form state."""

from .enums import DraftSource, FileOrigin, RemoteStatus, SubmissionMode
from .schemas import (
    AttachedFile,
    RawFile,
    RemoteSubmission,
    RemoteSubmissionItem,
    RequirementItem,
    SelectedFile,
)
from .state import RequirementsFormState

__all__ = [
    "AttachedFile",
    "DraftSource",
    "FileOrigin",
    "RawFile",
    "RemoteStatus",
    "RemoteSubmission",
    "RemoteSubmissionItem",
    "RequirementItem",
    "RequirementsFormState",
    "SelectedFile",
    "SubmissionMode",
]
