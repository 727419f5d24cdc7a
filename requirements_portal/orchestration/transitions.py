"""
Mode rules for the requirements form.

Each ``check_*`` function inspects the current state and returns the
form-level error for a rejected operation, or None when it may proceed.
The ``mode_after_*`` functions name the next SubmissionMode.
"""

from __future__ import annotations

from typing import Optional

from requirements_portal.models.enums import SubmissionMode
from requirements_portal.models.state import RequirementsFormState

ALREADY_SUBMITTED = (
    "Requirements already submitted. Replace a file to resubmit your changes."
)
SUBMISSION_IN_PROGRESS = "Submission in progress. Please wait."
MISSING_FILE = "This item is required. Please upload the required file."
RESELECT_FILE = "Please select this file again before submitting."
FIX_ERRORS = "Please fix the highlighted errors before submitting."
SUBMIT_FAILED = "Failed to submit requirements. Please try again."
SUBMITTED_OK = "Requirements submitted successfully."
RESUBMITTED_OK = "Requirements resubmitted successfully."


# ── Guards ───────────────────────────────────────────────

def check_attach_allowed(state: RequirementsFormState) -> Optional[str]:
    """
    SUBMITTING → rejected.
    SUBMITTED  → allowed: a new file never touches submitted content, it
                 reopens the form for resubmit (see mode_after_replace).
    """
    if state.mode == SubmissionMode.SUBMITTING:
        return SUBMISSION_IN_PROGRESS
    return None


def check_detach_allowed(state: RequirementsFormState) -> Optional[str]:
    if state.mode == SubmissionMode.SUBMITTING:
        return SUBMISSION_IN_PROGRESS
    if state.is_locked:
        return ALREADY_SUBMITTED
    return None


def check_reset_allowed(state: RequirementsFormState) -> Optional[str]:
    return check_detach_allowed(state)


def check_submit_allowed(state: RequirementsFormState) -> Optional[str]:
    """Only DRAFT and RESUBMIT_PENDING may submit."""
    return check_detach_allowed(state)


# ── Next mode ────────────────────────────────────────────

def mode_after_replace(state: RequirementsFormState) -> SubmissionMode:
    """Replacing a file after a submission reopens the form for resubmit."""
    if state.is_submitted:
        return SubmissionMode.RESUBMIT_PENDING
    return state.mode


def mode_after_submit_failure(previous: SubmissionMode) -> SubmissionMode:
    return previous


def success_message_for(previous: SubmissionMode) -> str:
    if previous == SubmissionMode.RESUBMIT_PENDING:
        return RESUBMITTED_OK
    return SUBMITTED_OK
