"""
Data schemas for requirement items, their attached files, and the records
exchanged with the remote requirements API.
"""

from __future__ import annotations

import asyncio
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import FileOrigin, RemoteStatus

LOCAL_URL_SCHEME = "data:"


# ── Checklist ────────────────────────────────────────────


class AttachedFile(BaseModel):
    """A file shown against a requirement item.

    ``id`` is the remote storage id for submitted files and a generated
    local id for files that only exist in this session.
    """
    id: str = ""
    name: str = ""
    size: int = 0
    type: str = ""
    url: str = ""

    @property
    def origin(self) -> FileOrigin:
        if self.url.startswith(LOCAL_URL_SCHEME):
            return FileOrigin.LOCAL
        return FileOrigin.REMOTE

    @property
    def is_local(self) -> bool:
        return self.origin == FileOrigin.LOCAL


class RequirementItem(BaseModel):
    """One required document in the checklist."""
    id: str
    text: str
    note: Optional[str] = None
    file: Optional[AttachedFile] = None


# ── File selection ───────────────────────────────────────


class SelectedFile(BaseModel):
    """A file picked by the user, either held in memory or on disk."""
    name: str
    content_type: str = "application/octet-stream"
    data: Optional[bytes] = None
    path: Optional[str] = None

    @classmethod
    def from_path(cls, path: str | Path) -> SelectedFile:
        p = Path(path)
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(
            name=p.name,
            content_type=guessed or "application/octet-stream",
            path=str(p),
        )

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        if self.path:
            return Path(self.path).stat().st_size
        return 0

    async def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if not self.path:
            raise ValueError(f"Selected file {self.name!r} has no content")
        return await asyncio.to_thread(Path(self.path).read_bytes)


class RawFile(BaseModel):
    """Raw bytes pending upload for one item. Never persisted."""
    name: str
    content_type: str = "application/octet-stream"
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)


# ── Remote records ───────────────────────────────────────


class RemoteSubmissionItem(BaseModel):
    """A stored requirement file as the server reports it."""
    model_config = ConfigDict(populate_by_name=True)

    label: str
    note: Optional[str] = None
    url: str
    public_id: Optional[str] = Field(default=None, alias="publicId")
    original_name: Optional[str] = Field(default=None, alias="originalName")
    mimetype: Optional[str] = None
    size: int = 0
    client_id: Optional[str] = Field(default=None, alias="clientId")

    def to_attached_file(self) -> AttachedFile:
        return AttachedFile(
            id=self.public_id or "",
            name=self.original_name or self.label,
            size=self.size or 0,
            type=self.mimetype or "",
            url=self.url,
        )


class RemoteSubmission(BaseModel):
    """A requirements submission record."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default="", alias="_id")
    user_id: str = Field(default="", alias="userID")
    status: RemoteStatus = RemoteStatus.DRAFT
    items: list[RemoteSubmissionItem] = []
    submitted_at: Optional[datetime] = Field(default=None, alias="submittedAt")
