"""Tests for diff creation and application."""

from vibeproxy.utils.diffs import apply_patch, create_patch, normalize_line_endings

ORIGINAL = "line one\nline two\nline three\n"


def test_apply_created_patch():
    """Test applying a patch produced by create_patch."""
    modified = "line one\nline 2\nline three\nline four\n"
    patch = create_patch(ORIGINAL, modified, "notes.txt")

    success, result, error = apply_patch(ORIGINAL, patch)

    assert success
    assert result == modified
    assert error is None


def test_apply_patch_mismatch():
    """Test that a patch for different content is rejected."""
    patch = create_patch("alpha\n", "beta\n", "x.txt")

    success, result, error = apply_patch(ORIGINAL, patch)

    assert not success
    assert result is None
    assert "does not match" in error


def test_apply_empty_patch():
    """Test that text without hunks is rejected."""
    success, _, error = apply_patch(ORIGINAL, "just some words")

    assert not success
    assert error == "Empty patch"


def test_apply_multi_file_patch():
    """Test that patches touching several files are rejected."""
    patch = create_patch("a\n", "b\n", "a.txt") + create_patch("c\n", "d\n", "c.txt")

    success, _, error = apply_patch("a\n", patch)

    assert not success
    assert error == "Patch contains multiple files"


def test_crlf_content_is_normalized():
    """Test that CRLF content still matches an LF patch."""
    patch = create_patch(ORIGINAL, ORIGINAL.replace("two", "2"), "notes.txt")

    success, result, _ = apply_patch(ORIGINAL.replace("\n", "\r\n"), patch)

    assert success
    assert result == "line one\nline 2\nline three\n"


def test_normalize_line_endings():
    """Test line ending normalization."""
    assert normalize_line_endings("a\r\nb\rc\n") == "a\nb\nc\n"
