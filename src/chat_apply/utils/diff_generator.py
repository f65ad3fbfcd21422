"""Utilities for rendering proposed changes as unified diffs."""

import difflib

from chat_apply.models import FileState, OriginalFileState


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
    is_new: bool = False,
    is_deleted: bool = False,
) -> str:
    """Generate a git-compatible unified diff.

    Args:
        file_path: Relative path from the workspace root (e.g. "src/app.ts").
        original_content: File content before the change.
        modified_content: File content after the change.
        is_new: Use /dev/null as the from-side.
        is_deleted: Use /dev/null as the to-side.

    Returns:
        Unified diff string with a/ b/ prefixes. Empty string if no changes.
    """
    if original_content == modified_content:
        return ""

    diff_lines = difflib.unified_diff(
        original_content.splitlines(keepends=True),
        modified_content.splitlines(keepends=True),
        fromfile="/dev/null" if is_new else f"a/{file_path}",
        tofile="/dev/null" if is_deleted else f"b/{file_path}",
        lineterm="",
    )
    # Lines keep their own newline from keepends=True; strip it before joining.
    return "\n".join(line[:-1] if line.endswith("\n") else line for line in diff_lines)


def diff_for_state(state: OriginalFileState) -> str:
    """Preview diff between a state's on-disk content and its proposed content."""
    if state.file_state == FileState.DELETED:
        return generate_unified_diff(state.file_path, state.content, "", is_deleted=True)
    return generate_unified_diff(
        state.file_path,
        state.content,
        state.proposed_content or "",
        is_new=state.file_state == FileState.NEW,
    )
