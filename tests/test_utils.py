"""Unit tests for waypost.utils.utils module."""

from pathlib import Path

from waypost.utils.utils import ensure_output_dir, format_file_size, sanitize_filename


class TestSanitizeFilename:
    """Tests for sanitize_filename function."""

    def test_replaces_unsafe_characters(self):
        assert sanitize_filename("Lost Horse Canyon / Trail") == "Lost_Horse_Canyon_Trail"

    def test_empty_name(self):
        assert sanitize_filename("") == "Untitled"
        assert sanitize_filename("///") == "Untitled"

    def test_long_name_truncated(self):
        assert len(sanitize_filename("x" * 300)) == 200


class TestFormatFileSize:
    """Tests for format_file_size function."""

    def test_bytes(self):
        assert format_file_size(512) == "512 B"

    def test_kilobytes(self):
        assert format_file_size(2048) == "2.0 KB"

    def test_megabytes(self):
        assert format_file_size(3 * 1024 * 1024) == "3.0 MB"


def test_ensure_output_dir_creates_nested(tmp_path: Path):
    target = tmp_path / "a" / "b"
    result = ensure_output_dir(target)
    assert result.is_dir()
    assert result == target.resolve()
