"""Splitting a run of concatenated diff text into per-file patches."""

import logging

from chat_apply.models import DiffItem, PathHint
from chat_apply.parsing.diff_headers import (
    DEV_NULL,
    build_patch_content,
    extract_paths_from_lines,
    find_patch_start_index,
    normalize_header_line,
)
from chat_apply.parsing.exceptions import PathResolutionError
from chat_apply.parsing.paths import resolve_workspace_path

logger = logging.getLogger(__name__)


def _is_main_header(line: str) -> bool:
    return line.startswith("--- ") or line.startswith("diff --git ")


def _starts_new_patch(buffer: list[str], line: str, next_line: str | None) -> bool:
    """Whether ``line`` begins a new patch given the lines collected so far.

    The buffer must already hold a complete header pair. A ``diff --git``
    line then always splits; a ``---`` line splits only once the buffer has
    a hunk and the line is directly followed by ``+++``, so a removed line
    that happens to read ``-- something`` is not mistaken for a header.
    """
    if not buffer or not _is_main_header(line):
        return False
    has_main_header = any(_is_main_header(l) for l in buffer)
    has_to_header = any(l.startswith("+++ ") for l in buffer)
    if not (has_main_header and has_to_header):
        return False
    if line.startswith("diff --git "):
        return True
    has_hunk = any(l.startswith("@@") for l in buffer)
    return has_hunk and next_line is not None and next_line.startswith("+++ ")


def build_diff_item(
    lines: list[str],
    is_single_root: bool = True,
    fallback_hint: PathHint | None = None,
) -> DiffItem | None:
    """Turn one file's collected patch lines into a DiffItem.

    Returns None (after logging) for blank buffers and for buffers whose
    path cannot be determined from headers or ``fallback_hint``.
    """
    if not "\n".join(lines).strip():
        return None

    from_path, to_path = extract_paths_from_lines(lines)
    is_new = from_path == DEV_NULL
    is_deleted = to_path == DEV_NULL
    is_rename = bool(from_path and to_path and from_path != to_path and not is_new and not is_deleted)
    raw_path = from_path if from_path and from_path != DEV_NULL else to_path

    if (not raw_path or raw_path == DEV_NULL) and fallback_hint is not None:
        raw_path = fallback_hint.raw_path
        is_new = fallback_hint.is_new

    if not raw_path or raw_path == DEV_NULL:
        logger.info(
            "Dropping patch without a file path (%d lines, starts %r)",
            len(lines),
            "\n".join(lines)[:200],
        )
        return None

    try:
        resolution = resolve_workspace_path(raw_path, is_single_root)
    except PathResolutionError as exc:
        logger.info("Dropping patch: %s", exc)
        return None

    content = build_patch_content(
        lines,
        resolution.relative_path,
        find_patch_start_index(lines),
        is_single_root=is_single_root,
        is_new=is_new,
    )

    new_file_path: str | None = None
    if is_rename:
        # Both headers name the pre-image; the move is reported separately.
        target_line = normalize_header_line(f"+++ {to_path}", is_single_root)
        source_line = normalize_header_line(f"+++ {from_path}", is_single_root)
        content = content.replace(target_line, source_line, 1)
        new_file_path = resolve_workspace_path(to_path, is_single_root).relative_path

    return DiffItem(
        file_path=resolution.relative_path,
        workspace_name=resolution.workspace_name,
        content=content.rstrip("\n") + "\n",
        new_file_path=new_file_path,
    )


def split_patches(
    lines: list[str],
    is_single_root: bool = True,
    fallback_hint: PathHint | None = None,
) -> list[DiffItem]:
    """Cut a flat list of diff lines into one DiffItem per file.

    Args:
        lines: Diff text split into lines, without surrounding fences.
        is_single_root: Whether the workspace has a single root folder.
        fallback_hint: Path hint used when a patch has hunks but no headers.

    Returns:
        DiffItems in the order their patches appear.
    """
    patches: list[DiffItem] = []
    buffer: list[str] = []

    def flush() -> None:
        item = build_diff_item(buffer, is_single_root, fallback_hint)
        if item is not None:
            patches.append(item)

    for index, line in enumerate(lines):
        next_line = lines[index + 1] if index + 1 < len(lines) else None
        if _starts_new_patch(buffer, line, next_line):
            flush()
            buffer = [line]
            continue
        buffer.append(line)

    if buffer:
        flush()
    return patches
