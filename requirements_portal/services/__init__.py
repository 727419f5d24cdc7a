"""Services — API client, file codec, identity, background tasks, form events."""

from requirements_portal.services.background_tasks import BackgroundTasks
from requirements_portal.services.event_bus import REMOVE_CLICK, FormEvents
from requirements_portal.services.identity import UserIdentity, static_identity
from requirements_portal.services.requirements_api import (
    RequirementsApiClient,
    RequirementsApiError,
)

__all__ = [
    "BackgroundTasks",
    "FormEvents",
    "REMOVE_CLICK",
    "RequirementsApiClient",
    "RequirementsApiError",
    "UserIdentity",
    "static_identity",
]
