"""
Blob Store — storage for uploaded requirement files.
Local filesystem for dev, in-memory for tests.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional

from requirements_portal.utils.hashing import sha256_hash

logger = logging.getLogger(__name__)

PUBLIC_ID_PREFIX = "requirements"


class StoredBlob:
    __slots__ = ("public_id", "content_type", "size", "extension")

    def __init__(self, public_id: str, content_type: str, size: int, extension: str):
        self.public_id = public_id
        self.content_type = content_type
        self.size = size
        self.extension = extension


class BlobStore:
    """Swappable blob storage — memory for tests, local directory for dev."""

    def __init__(self, backend: str = "memory", base_path: str = "./storage/blobs"):
        self.backend = backend
        self._meta: dict[str, StoredBlob] = {}
        self._memory: dict[str, bytes] = {}

        if self.backend == "local":
            self.base_path = Path(base_path)
            self.base_path.mkdir(parents=True, exist_ok=True)
        elif self.backend != "memory":
            raise NotImplementedError(f"Backend '{self.backend}' not implemented")

    def put(self, content: bytes, filename: str, content_type: str) -> StoredBlob:
        """Store a file and return its metadata (public id included)."""
        public_id = f"{PUBLIC_ID_PREFIX}/{uuid.uuid4().hex[:8]}-{sha256_hash(content)[:12]}"
        blob = StoredBlob(
            public_id=public_id,
            content_type=content_type or "application/octet-stream",
            size=len(content),
            extension=PurePosixPath(filename).suffix.lower(),
        )
        if self.backend == "local":
            path = self._path_for(public_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        else:
            self._memory[public_id] = content
        self._meta[public_id] = blob
        logger.info(f"Stored {filename} as {public_id} ({len(content)} bytes)")
        return blob

    def get(self, public_id: str) -> Optional[tuple[bytes, StoredBlob]]:
        blob = self._meta.get(public_id)
        if blob is None:
            return None
        if self.backend == "local":
            return self._path_for(public_id).read_bytes(), blob
        return self._memory[public_id], blob

    def delete(self, public_id: str) -> bool:
        """Remove a blob. Returns whether anything was destroyed."""
        blob = self._meta.pop(public_id, None)
        if blob is None:
            logger.debug(f"Nothing stored under {public_id}")
            return False
        if self.backend == "local":
            self._path_for(public_id).unlink(missing_ok=True)
        else:
            self._memory.pop(public_id, None)
        logger.info(f"Destroyed {public_id}")
        return True

    def exists(self, public_id: str) -> bool:
        return public_id in self._meta

    def _path_for(self, public_id: str) -> Path:
        return self.base_path / public_id
