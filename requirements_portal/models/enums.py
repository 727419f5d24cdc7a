from enum import Enum


class SubmissionMode(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTING = "SUBMITTING"
    SUBMITTED = "SUBMITTED"
    RESUBMIT_PENDING = "RESUBMIT_PENDING"


class FileOrigin(str, Enum):
    LOCAL = "local"    # data: URI, not yet on the server
    REMOTE = "remote"  # stored by a previous submission


class RemoteStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class DraftSource(str, Enum):
    """Where the initial checklist came from at bootstrap."""
    USER_DRAFT = "user_draft"
    USER_SNAPSHOT = "user_snapshot"
    LEGACY_DRAFT = "legacy_draft"
    LEGACY_SNAPSHOT = "legacy_snapshot"
    LEGACY_TEXT = "legacy_text"
    TEMPLATE = "template"
