"""
API routes — in-memory requirements server, the counterpart of the
engine's RequirementsApiClient.

Routes:
  GET  /health                          → API health check
  GET  /api/requirements                → the caller's submissions
  GET  /api/requirements/current        → the caller's submitted record
  POST /api/requirements                → submit / resubmit (multipart)
  POST /api/requirements/file/delete    → remove one stored file by public id
  GET  /files/{public_id}               → download a stored file

The caller is identified by the X-User-Id header.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from requirements_portal.config import get_settings
from requirements_portal.models.enums import RemoteStatus
from requirements_portal.models.schemas import LOCAL_URL_SCHEME, RemoteSubmission, RemoteSubmissionItem
from requirements_portal.persistence.blob_store import BlobStore
from requirements_portal.persistence.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
requirements_router = APIRouter()
files_router = APIRouter()


# ── Request / response schemas ───────────────────────────
class DeleteFileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_id: str = Field(alias="publicId")


class SubmissionEnvelope(BaseModel):
    message: str
    submission: dict[str, Any]


def _repo(request: Request) -> SubmissionRepository:
    return request.app.state.submissions


def _blobs(request: Request) -> BlobStore:
    return request.app.state.blobs


def _dump(submission: RemoteSubmission) -> dict[str, Any]:
    return submission.model_dump(mode="json", by_alias=True)


def _parse_json_list(raw: Any, field: str) -> list[Any]:
    if not raw or not isinstance(raw, str):
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"[requirements] Failed to parse {field}")
        return []
    return value if isinstance(value, list) else []


def _file_url(public_id: str, extension: str) -> str:
    return f"{get_settings().public_files_url.rstrip('/')}/{public_id}{extension}"


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Submissions ──────────────────────────────────────────

@requirements_router.get("")
async def list_submissions(request: Request, x_user_id: str = Header(default="guest")):
    subs = _repo(request).list_for_user(x_user_id)
    return {"submissions": [_dump(s) for s in subs]}


@requirements_router.get("/current")
async def current_submission(request: Request, x_user_id: str = Header(default="guest")):
    submission = _repo(request).find_submitted(x_user_id)
    return {"submitted": _dump(submission) if submission else None, "draft": None}


@requirements_router.post("")
async def create_submission(request: Request, x_user_id: str = Header(default="guest")):
    """
    Create the caller's submission, or replace it when ``resubmit`` is "true".

    Each ``items[i]`` takes the upload named by ``items[i][filename]``; an
    item without one keeps the remote file described in ``itemsJson``.
    Ids in ``removedPublicIds`` are destroyed and never kept.
    """
    form = await request.form()
    blobs = _blobs(request)
    repo = _repo(request)
    is_resubmit = form.get("resubmit") == "true"
    existing_submission = repo.find_submitted(x_user_id)
    if existing_submission is not None and not is_resubmit:
        raise HTTPException(
            status_code=403,
            detail="Requirements already submitted. Use resubmit to update.",
        )
    items_json = _parse_json_list(form.get("itemsJson"), "itemsJson")
    removed_ids = {str(pid) for pid in _parse_json_list(form.get("removedPublicIds"), "removedPublicIds")}
    uploads = [f for f in form.getlist("files") if not isinstance(f, str)]

    if not items_json:
        count = 0
        while f"items[{count}][label]" in form:
            count += 1
        items_json = [{} for _ in range(count)]

    logger.info(
        f"[requirements] Processing submission for {x_user_id}: resubmit={is_resubmit}, "
        f"files={len(uploads)}, items={len(items_json)}, removals={len(removed_ids)}"
    )

    processed: list[RemoteSubmissionItem] = []
    for idx, json_item in enumerate(items_json):
        json_item = json_item if isinstance(json_item, dict) else {}
        label = form.get(f"items[{idx}][label]") or json_item.get("text") or f"Item {idx + 1}"
        note = form.get(f"items[{idx}][note]") or json_item.get("note")
        filename = form.get(f"items[{idx}][filename]")
        upload = next((u for u in uploads if filename and u.filename == filename), None)

        if upload is not None:
            uploads.remove(upload)
            content = await upload.read()
            blob = blobs.put(content, upload.filename or filename, upload.content_type or "")
            processed.append(RemoteSubmissionItem(
                label=label,
                note=note,
                url=_file_url(blob.public_id, blob.extension),
                public_id=blob.public_id,
                original_name=upload.filename,
                mimetype=blob.content_type,
                size=blob.size,
                client_id=json_item.get("id"),
            ))
            continue

        existing = json_item.get("file") or {}
        url = existing.get("url") or ""
        if url and not url.startswith(LOCAL_URL_SCHEME) and existing.get("id") not in removed_ids:
            processed.append(RemoteSubmissionItem(
                label=label,
                note=note,
                url=url,
                public_id=existing.get("id") or None,
                original_name=existing.get("name") or label,
                mimetype=existing.get("type") or None,
                size=existing.get("size") or 0,
                client_id=json_item.get("id"),
            ))
            continue

        logger.warning(f"[requirements] No file at index {idx}: {label}")

    if not processed:
        raise HTTPException(status_code=400, detail="No valid items to submit")

    kept = {item.public_id for item in processed if item.public_id}

    if existing_submission is not None:
        for old in existing_submission.items:
            if old.public_id and old.public_id not in kept:
                blobs.delete(old.public_id)
        for public_id in removed_ids - kept:
            blobs.delete(public_id)
        updated = existing_submission.model_copy(update={
            "items": processed,
            "submitted_at": datetime.now(timezone.utc),
        })
        saved = repo.save(updated)
        logger.info("[requirements] Resubmit successful")
        return SubmissionEnvelope(
            message="Requirements resubmitted successfully", submission=_dump(saved)
        ).model_dump()

    for public_id in removed_ids - kept:
        blobs.delete(public_id)
    saved = repo.save(RemoteSubmission(
        id=uuid.uuid4().hex,
        user_id=x_user_id,
        status=RemoteStatus.SUBMITTED,
        items=processed,
        submitted_at=datetime.now(timezone.utc),
    ))
    logger.info("[requirements] Initial submission successful")
    return JSONResponse(
        status_code=201,
        content=SubmissionEnvelope(
            message="Requirements submitted successfully", submission=_dump(saved)
        ).model_dump(),
    )


@requirements_router.post("/file/delete")
async def delete_file(request: Request, body: DeleteFileRequest, x_user_id: str = Header(default="guest")):
    repo = _repo(request)
    submission = repo.find_submitted(x_user_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="No submission found")

    remaining = [item for item in submission.items if item.public_id != body.public_id]
    if len(remaining) == len(submission.items):
        raise HTTPException(status_code=404, detail="File not found")

    destroyed = _blobs(request).delete(body.public_id)
    saved = repo.save(submission.model_copy(update={"items": remaining}))
    return {
        "message": "File removed successfully",
        "destroyed": destroyed,
        "submission": _dump(saved),
    }


# ── Stored files ─────────────────────────────────────────

@files_router.get("/files/{public_path:path}")
async def download_file(request: Request, public_path: str):
    blobs = _blobs(request)
    # URLs carry the original extension after the public id
    candidates = [public_path, public_path.rsplit(".", 1)[0]]
    for public_id in candidates:
        found = blobs.get(public_id)
        if found is not None:
            content, blob = found
            return Response(content=content, media_type=blob.content_type)
    raise HTTPException(status_code=404, detail="File not found")
