"""
Tests: RequirementsApiClient against httpx.MockTransport.

Run with:
    pytest requirements_portal/tests/test_requirements_api.py -v
"""

import asyncio
import json

import httpx
import pytest

from requirements_portal.services.identity import static_identity
from requirements_portal.services.requirements_api import (
    RequirementsApiClient,
    RequirementsApiError,
)

BASE_URL = "http://testserver/api"


def _client(handler, settings, identity=None):
    return RequirementsApiClient(
        identity or static_identity(user_id="student-1"),
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
        settings=settings,
    )


class TestFetch:
    def test_current_submission_is_the_submitted_one(self, settings):
        def handler(request):
            assert request.url.path == "/api/requirements"
            return httpx.Response(200, json={"submissions": [
                {"_id": "d1", "status": "draft", "items": []},
                {"bogus": True, "status": "archived"},
                {"_id": "s1", "userID": "student-1", "status": "submitted", "items": [
                    {"label": "Letter of Application", "url": "https://cdn/x.pdf",
                     "publicId": "requirements/x", "originalName": "x.pdf", "size": 9},
                ]},
            ]})

        submission = asyncio.run(_client(handler, settings).fetch_current_submission())

        assert submission.id == "s1"
        assert submission.items[0].public_id == "requirements/x"
        assert submission.items[0].to_attached_file().name == "x.pdf"

    def test_no_submitted_record(self, settings):
        def handler(request):
            return httpx.Response(200, json={"submissions": [{"_id": "d1", "status": "draft"}]})

        assert asyncio.run(_client(handler, settings).fetch_current_submission()) is None

    def test_user_header_sent(self, settings):
        seen = {}

        def handler(request):
            seen["user"] = request.headers.get("X-User-Id")
            return httpx.Response(200, json={"submissions": []})

        asyncio.run(_client(handler, settings).fetch_submissions())
        assert seen["user"] == "student-1"

        asyncio.run(_client(handler, settings, identity=lambda: None).fetch_submissions())
        assert seen["user"] == "guest"


class TestErrors:
    def test_error_detail_surfaces(self, settings):
        def handler(request):
            return httpx.Response(403, json={"detail": "Requirements already submitted."})

        with pytest.raises(RequirementsApiError) as exc_info:
            asyncio.run(_client(handler, settings).fetch_submissions())

        assert exc_info.value.status_code == 403
        assert "already submitted" in str(exc_info.value)

    def test_non_json_error_body(self, settings):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(RequirementsApiError) as exc_info:
            asyncio.run(_client(handler, settings).delete_file("requirements/x"))
        assert exc_info.value.status_code == 502

    def test_transport_failure(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RequirementsApiError) as exc_info:
            asyncio.run(_client(handler, settings).fetch_submissions())
        assert exc_info.value.status_code is None


class TestWrites:
    def test_submit_is_multipart_with_progress(self, settings):
        seen = {}

        def handler(request):
            seen["content_type"] = request.headers["Content-Type"]
            seen["length"] = int(request.headers["Content-Length"])
            seen["body"] = request.content
            return httpx.Response(201, json={"message": "Requirements submitted successfully"})

        progress = []
        data = {"items[0][label]": "Letter of Application", "items[0][filename]": "letter.pdf"}
        files = [("files", ("letter.pdf", b"x" * (200 * 1024), "application/pdf"))]

        result = asyncio.run(_client(handler, settings).submit(data, files, on_progress=progress.append))

        assert result["message"] == "Requirements submitted successfully"
        assert seen["content_type"].startswith("multipart/form-data; boundary=")
        assert seen["length"] == len(seen["body"])
        assert b'name="items[0][filename]"' in seen["body"]
        assert b'filename="letter.pdf"' in seen["body"]
        assert len(progress) > 1
        assert progress[-1] == 100

    def test_submit_failure_raises(self, settings):
        def handler(request):
            return httpx.Response(500, json={"message": "Failed to submit"})

        with pytest.raises(RequirementsApiError):
            asyncio.run(_client(handler, settings).submit({"items[0][label]": "A"}, []))

    def test_delete_posts_public_id(self, settings):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["json"] = json.loads(request.content)
            return httpx.Response(200, json={"destroyed": True})

        result = asyncio.run(_client(handler, settings).delete_file("requirements/abc"))

        assert seen == {"path": "/api/requirements/file/delete", "json": {"publicId": "requirements/abc"}}
        assert result["destroyed"] is True
