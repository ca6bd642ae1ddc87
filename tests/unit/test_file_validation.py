"""Unit tests for attachment file validation and storage keys"""

from datetime import datetime

import pytest

from labintake.domain.submissions.file_validation import (
    build_storage_key,
    guess_content_type,
    is_allowed_extension,
    validate_file_size,
    validate_filename,
)


class TestExtensionSniffing:
    @pytest.mark.parametrize("filename", ["script.pdf", "card.JPG", "id.jpeg", "scan.png", "photo.heic"])
    def test_allowed(self, filename):
        assert is_allowed_extension(filename)

    @pytest.mark.parametrize("filename", ["notes.txt", "macro.docm", "archive.zip", "noextension"])
    def test_rejected(self, filename):
        assert not is_allowed_extension(filename)

    def test_content_type_from_extension_wins(self):
        assert guess_content_type("card.png", "application/octet-stream") == "image/png"

    def test_content_type_falls_back_to_declared(self):
        assert guess_content_type("card.bin", "image/png") == "image/png"


class TestValidateFilename:
    def test_valid(self):
        assert validate_filename("insurance front.jpg") == (True, None)

    def test_empty(self):
        is_valid, error = validate_filename("  ")
        assert not is_valid
        assert "empty" in error

    def test_control_characters(self):
        is_valid, error = validate_filename("bad\x00name.pdf")
        assert not is_valid
        assert "control characters" in error

    def test_too_long(self):
        is_valid, _ = validate_filename("a" * 252 + ".pdf")
        assert not is_valid

    def test_unsupported_extension(self):
        is_valid, error = validate_filename("payload.exe")
        assert not is_valid
        assert ".exe" in error


class TestValidateFileSize:
    def test_empty_file(self):
        assert validate_file_size(0, 100) == (False, "File is empty (0 bytes)")

    def test_too_large(self):
        is_valid, error = validate_file_size(101, 100)
        assert not is_valid
        assert "100" in error

    def test_at_limit(self):
        assert validate_file_size(100, 100) == (True, None)


class TestBuildStorageKey:
    NOW = datetime(2026, 1, 2, 3, 4, 59)

    def test_format(self):
        key = build_storage_key("draft-7", "script", 0, b"x", "a.png", self.NOW)
        assert key == "draft-7/script/202601020304_000_2d711642.png"

    def test_retry_of_identical_upload_is_deterministic(self):
        first = build_storage_key("AbC1", "patient_id", 2, b"same", "id.PDF", self.NOW)
        second = build_storage_key("AbC1", "patient_id", 2, b"same", "id.PDF", self.NOW)
        assert first == second
        assert "_002_" in first
        assert first.endswith(".pdf")

    def test_different_content_gives_different_key(self):
        first = build_storage_key("draft-7", "script", 0, b"one", "a.png", self.NOW)
        second = build_storage_key("draft-7", "script", 0, b"two", "a.png", self.NOW)
        assert first != second
