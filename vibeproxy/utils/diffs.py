"""Utilities for creating and applying diffs/patches."""

import difflib
from typing import Optional

from unidiff import PatchSet
from unidiff.errors import UnidiffParseError


def create_patch(original: str, modified: str, filename: str = "file") -> str:
    """Create a unified diff patch.

    Args:
        original: Original file content
        modified: Modified file content
        filename: Filename to use in patch header

    Returns:
        Unified diff string
    """
    original_lines = original.splitlines(keepends=True)
    modified_lines = modified.splitlines(keepends=True)

    diff = difflib.unified_diff(
        original_lines,
        modified_lines,
        fromfile=f"a/{filename}",
        tofile=f"b/{filename}",
    )

    return "".join(diff)


def apply_patch(content: str, patch_str: str) -> tuple[bool, Optional[str], Optional[str]]:
    """Apply a single-file unified diff to content.

    Args:
        content: Original content
        patch_str: Unified diff string

    Returns:
        Tuple of (success, result_content, error_message)
    """
    try:
        patchset = PatchSet(normalize_line_endings(patch_str))
    except UnidiffParseError as e:
        return False, None, f"Failed to parse patch: {e}"

    if len(patchset) == 0:
        return False, None, "Empty patch"

    if len(patchset) > 1:
        return False, None, "Patch contains multiple files"

    lines = normalize_line_endings(content).splitlines(keepends=True)

    # Apply hunks in reverse order to maintain line numbers
    for hunk in reversed(patchset[0]):
        source_start = max(hunk.source_start - 1, 0)
        expected = [line.value for line in hunk if line.is_context or line.is_removed]
        actual = lines[source_start : source_start + hunk.source_length]

        if [line.rstrip("\n") for line in actual] != [line.rstrip("\n") for line in expected]:
            return False, None, f"Hunk at line {hunk.source_start} does not match file content"

        new_lines = [line.value for line in hunk if line.is_context or line.is_added]
        lines[source_start : source_start + hunk.source_length] = new_lines

    return True, "".join(lines), None


def normalize_line_endings(content: str) -> str:
    """Normalize line endings to LF.

    Args:
        content: Content with potentially mixed line endings

    Returns:
        Content with normalized line endings
    """
    return content.replace("\r\n", "\n").replace("\r", "\n")
