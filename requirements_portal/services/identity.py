"""
User identity — the only thing the engine needs from authentication is a
stable key to scope drafts and to tell the server who is asking.
"""

from __future__ import annotations

from typing import Callable, Optional

from pydantic import BaseModel


class UserIdentity(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None

    def storage_key(self, guest_key: str = "guest") -> str:
        """User id, else email, else the guest key."""
        return (self.user_id or "").strip() or (self.email or "").strip() or guest_key


IdentityAccessor = Callable[[], Optional[UserIdentity]]


def static_identity(user_id: str | None = None, email: str | None = None) -> IdentityAccessor:
    """An accessor that always returns the same user (CLI, tests)."""
    identity = UserIdentity(user_id=user_id, email=email)
    return lambda: identity


def resolve_user_key(accessor: IdentityAccessor, guest_key: str = "guest") -> str:
    identity = accessor()
    if identity is None:
        return guest_key
    return identity.storage_key(guest_key)
