"""
File codec — data: URI encoding, size ceilings, upload filenames, and
recovering a storage id from a remote file.
"""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

from requirements_portal.config import Settings, get_settings
from requirements_portal.models.schemas import LOCAL_URL_SCHEME, AttachedFile

# Path segments after which a storage URL carries the public id
_PUBLIC_ID_MARKERS = ("upload", "files")
_VERSION_SEGMENT = re.compile(r"^v\d+$")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._() -]+")
_ELLIPSIS = "..."


# ── data: URIs ───────────────────────────────────────────


def encode_data_uri(data: bytes, content_type: str) -> str:
    mime = content_type or "application/octet-stream"
    return f"{LOCAL_URL_SCHEME}{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    """Return (bytes, content type). Raises ValueError on anything malformed."""
    if not uri.startswith(LOCAL_URL_SCHEME):
        raise ValueError("Not a data: URI")
    header, sep, payload = uri[len(LOCAL_URL_SCHEME):].partition(",")
    if not sep:
        raise ValueError("data: URI has no payload separator")
    params = header.split(";")
    content_type = params[0] or "text/plain"
    if "base64" not in params[1:]:
        return unquote(payload).encode("utf-8"), content_type
    try:
        return base64.b64decode(payload, validate=True), content_type
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


def new_local_id() -> str:
    return f"local-{uuid.uuid4().hex}"


# ── Size ceilings ────────────────────────────────────────


def size_limit_for(label: str, settings: Settings | None = None) -> int:
    """Per-item ceiling: the letter of application is capped tighter."""
    settings = settings or get_settings()
    if label == settings.letter_label:
        return settings.letter_max_bytes
    return settings.default_max_bytes


def format_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024:
        value = num_bytes / (1024 * 1024)
        return f"{value:.0f} MB" if value.is_integer() else f"{value:.1f} MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:.0f} KB"
    return f"{num_bytes} B"


# ── Upload filenames ─────────────────────────────────────


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """
    Make a filename safe for multipart upload and at most ``max_length``
    characters. Long names lose characters from the middle of the stem;
    the extension is kept.
    """
    base = PurePosixPath(name.replace("\\", "/")).name
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base)
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" .") or "file"

    if len(cleaned) <= max_length:
        return cleaned

    path = PurePosixPath(cleaned)
    ext = path.suffix if len(path.suffix) < max_length // 2 else ""
    stem = cleaned[: len(cleaned) - len(ext)]
    room = max_length - len(ext) - len(_ELLIPSIS)
    if room < 2:
        return cleaned[:max_length]
    head = (room + 1) // 2
    tail = room - head
    return f"{stem[:head]}{_ELLIPSIS}{stem[len(stem) - tail:] if tail else ''}{ext}"


# ── Remote ids ───────────────────────────────────────────


def resolve_public_id(file: AttachedFile) -> Optional[str]:
    """
    The storage id needed to delete a remote file: the explicit id when
    present, else parsed from the URL path.
    """
    if file.id and not file.is_local:
        return file.id
    return public_id_from_url(file.url)


def public_id_from_url(url: str) -> Optional[str]:
    """
    ``.../upload/v1712/requirements/abc.pdf`` → ``requirements/abc``;
    ``.../files/requirements/abc.pdf``        → ``requirements/abc``;
    otherwise the last path segment without its extension.
    """
    if not url or url.startswith(LOCAL_URL_SCHEME):
        return None
    segments = [unquote(s) for s in urlparse(url).path.split("/") if s]
    if not segments:
        return None

    tail = segments[-1:]
    for marker in _PUBLIC_ID_MARKERS:
        if marker in segments:
            tail = segments[segments.index(marker) + 1:]
            if tail and _VERSION_SEGMENT.match(tail[0]):
                tail = tail[1:]
            break
    if not tail:
        return None

    last = PurePosixPath(tail[-1])
    tail[-1] = last.stem if last.suffix else last.name
    public_id = "/".join(tail)
    return public_id or None
