"""
Requirements API client — the three remote calls the engine relies on.

  GET  /requirements              → the user's submissions
  POST /requirements              → multipart submit (progress-reported, no timeout)
  POST /requirements/file/delete  → best-effort removal of one stored file
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Callable, Optional

import httpx
from pydantic import ValidationError

from requirements_portal.config import Settings, get_settings
from requirements_portal.models.enums import RemoteStatus
from requirements_portal.models.schemas import RemoteSubmission
from requirements_portal.services.identity import IdentityAccessor, resolve_user_key

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
FilePart = tuple[str, tuple[str, bytes, str]]

USER_HEADER = "X-User-Id"
UPLOAD_CHUNK_SIZE = 64 * 1024


class RequirementsApiError(Exception):
    """A remote call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequirementsApiClient:
    """Async client for the requirements endpoints."""

    def __init__(
        self,
        identity: IdentityAccessor,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.identity = identity
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self._transport = transport

    # ── Calls ────────────────────────────────────────────

    async def fetch_submissions(self) -> list[RemoteSubmission]:
        payload = await self._request("GET", "/requirements")
        raw = payload.get("submissions", []) if isinstance(payload, dict) else payload
        submissions: list[RemoteSubmission] = []
        for entry in raw or []:
            try:
                submissions.append(RemoteSubmission.model_validate(entry))
            except ValidationError as exc:
                logger.warning(f"Skipping unreadable submission record: {exc}")
        return submissions

    async def fetch_current_submission(self) -> Optional[RemoteSubmission]:
        """The submission whose status is "submitted", if the user has one."""
        for submission in await self.fetch_submissions():
            if submission.status == RemoteStatus.SUBMITTED:
                return submission
        return None

    async def submit(
        self,
        data: dict[str, str],
        files: list[FilePart],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """
        Send the multipart form. The body is encoded once, then streamed in
        chunks so upload progress can be reported. No timeout applies.
        """
        async with self._client(timeout=None) as client:
            encoded = client.build_request("POST", "/requirements", data=data, files=files or None)
            body = encoded.read()
            logger.debug(f"Submitting {len(files)} files, {len(body)} bytes")
            request = client.build_request(
                "POST",
                "/requirements",
                content=_progress_stream(body, on_progress),
                headers={
                    "Content-Type": encoded.headers["Content-Type"],
                    "Content-Length": str(len(body)),
                },
            )
            try:
                response = await client.send(request)
            except httpx.HTTPError as exc:
                raise RequirementsApiError(f"Submit failed: {exc}") from exc
            return _parse(response)

    async def delete_file(self, public_id: str) -> dict[str, Any]:
        payload = await self._request(
            "POST", "/requirements/file/delete", json={"publicId": public_id}
        )
        return payload if isinstance(payload, dict) else {}

    # ── Internals ────────────────────────────────────────

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=timeout,
            headers={USER_HEADER: resolve_user_key(self.identity, self.settings.guest_key)},
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        async with self._client(timeout=self.settings.request_timeout_seconds) as client:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                raise RequirementsApiError(f"{method} {path} failed: {exc}") from exc
            return _parse(response)


async def _progress_stream(body: bytes, on_progress: ProgressCallback | None) -> AsyncIterator[bytes]:
    total = len(body)
    sent = 0
    for start in range(0, total, UPLOAD_CHUNK_SIZE):
        chunk = body[start:start + UPLOAD_CHUNK_SIZE]
        sent += len(chunk)
        if on_progress:
            on_progress(round(sent * 100 / total))
        yield chunk


def _parse(response: httpx.Response) -> Any:
    if response.is_error:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = str(body.get("detail") or body.get("message") or "")
        else:
            detail = response.text[:200]
        raise RequirementsApiError(
            f"{response.request.method} {response.request.url.path} → "
            f"{response.status_code} {detail}".strip(),
            status_code=response.status_code,
        )
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {}
