"""
Tests: data: URIs, size ceilings, upload filenames, storage id parsing.

Run with:
    pytest requirements_portal/tests/test_file_codec.py -v
"""

import pytest

from requirements_portal.config import Settings
from requirements_portal.models.schemas import AttachedFile
from requirements_portal.services.file_codec import (
    decode_data_uri,
    encode_data_uri,
    format_size,
    public_id_from_url,
    resolve_public_id,
    sanitize_filename,
    size_limit_for,
)


class TestDataUri:
    def test_encoded_file_is_local(self):
        uri = encode_data_uri(b"%PDF-1.7 body", "application/pdf")
        assert uri.startswith("data:application/pdf;base64,")
        assert AttachedFile(name="a.pdf", url=uri).is_local

    def test_decode_returns_bytes_and_type(self):
        data, content_type = decode_data_uri(encode_data_uri(b"\x00\x01\xff", "image/png"))
        assert data == b"\x00\x01\xff"
        assert content_type == "image/png"

    def test_decode_rejects_remote_url(self):
        with pytest.raises(ValueError):
            decode_data_uri("https://cdn.example.com/a.pdf")

    def test_decode_rejects_bad_base64(self):
        with pytest.raises(ValueError):
            decode_data_uri("data:application/pdf;base64,@@not-base64@@")


class TestSizeLimits:
    def test_letter_is_capped_at_5_mb(self):
        settings = Settings()
        assert size_limit_for("Letter of Application", settings) == 5 * 1024 * 1024

    def test_other_items_capped_at_25_mb(self):
        settings = Settings()
        assert size_limit_for("Resume/Curriculum Vitae", settings) == 25 * 1024 * 1024
        # Exact label match only
        assert size_limit_for("letter of application", settings) == 25 * 1024 * 1024

    def test_format_size(self):
        assert format_size(5 * 1024 * 1024) == "5 MB"
        assert format_size(2048) == "2 KB"
        assert format_size(12) == "12 B"


class TestSanitizeFilename:
    def test_short_safe_name_unchanged(self):
        assert sanitize_filename("Birth Certificate.pdf") == "Birth Certificate.pdf"

    def test_unsafe_characters_replaced_and_directories_dropped(self):
        assert sanitize_filename("C:\\Users\\me\\grades?:*.pdf") == "grades_.pdf"

    def test_long_name_truncated_in_the_middle(self):
        name = "start-" + "m" * 200 + "-end.pdf"
        result = sanitize_filename(name, max_length=100)
        assert len(result) == 100
        assert result.startswith("start-")
        assert result.endswith("-end.pdf")
        assert "..." in result

    def test_empty_name_gets_placeholder(self):
        assert sanitize_filename("???") == "_"
        assert sanitize_filename("   ") == "file"


class TestPublicIds:
    def test_cloudinary_style_url(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1712345678/requirements/abc123.pdf"
        assert public_id_from_url(url) == "requirements/abc123"

    def test_files_route_url(self):
        assert public_id_from_url("http://testserver/files/requirements/ab12-cd34.png") == "requirements/ab12-cd34"

    def test_fallback_to_last_segment(self):
        assert public_id_from_url("https://cdn.example.com/scans/grades.jpg") == "grades"

    def test_unresolvable_urls(self):
        assert public_id_from_url("") is None
        assert public_id_from_url("https://cdn.example.com/") is None
        assert public_id_from_url("data:image/png;base64,AAAA") is None

    def test_explicit_id_preferred(self):
        remote = AttachedFile(id="requirements/explicit", url="https://cdn.example.com/x/other.pdf")
        assert resolve_public_id(remote) == "requirements/explicit"

    def test_id_parsed_when_missing(self):
        remote = AttachedFile(url="https://cdn.example.com/upload/v1/requirements/parsed.pdf")
        assert resolve_public_id(remote) == "requirements/parsed"
