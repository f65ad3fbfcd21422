"""Canonicalization of unified-diff header lines."""

import logging
import re

from chat_apply.parsing.paths import normalize_path, resolve_workspace_path, strip_quotes

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"

_TIMESTAMP_RE = re.compile(r"\s+\d{4}-\d{2}-\d{2}.*$")
_TAB_SUFFIX_RE = re.compile(r"\t.*$")
_GIT_DIFF_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")
_HUNK_HEADER_RE = re.compile(r"^(@@ -\d+(?:,\d+)? \+\d+(?:,\d+)? @@)(.*)$")


def _clean_header_path(path: str) -> str:
    path = _TIMESTAMP_RE.sub("", path)
    path = _TAB_SUFFIX_RE.sub("", path)
    return strip_quotes(path.strip())


def _strip_side_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def normalize_header_line(line: str, is_single_root: bool = True) -> str:
    """Rewrite a ``---``/``+++`` line to ``--- a/<path>`` / ``+++ b/<path>``.

    Timestamps, tab suffixes, quotes and an existing ``a/``/``b/`` prefix
    are removed and, for multi-root workspaces, the workspace qualifier is
    dropped. ``/dev/null`` is kept as is. Other lines are returned
    unchanged.
    """
    if line.startswith("--- "):
        marker, prefix = "---", "a/"
    elif line.startswith("+++ "):
        marker, prefix = "+++", "b/"
    else:
        return line

    path = _clean_header_path(line[4:])
    if path == DEV_NULL:
        return f"{marker} {DEV_NULL}"
    path = normalize_path(_strip_side_prefix(path, prefix))
    if not is_single_root and path:
        path = resolve_workspace_path(path, is_single_root).relative_path
    return f"{marker} {prefix}{path}"


def extract_paths_from_lines(lines: list[str]) -> tuple[str | None, str | None]:
    """Return the (from_path, to_path) a patch's headers name.

    ``diff --git``, ``---`` and ``+++`` lines ahead of the first hunk are
    consulted; later lines override earlier ones. Quotes, ``a/``/``b/``
    prefixes and tab suffixes are removed; timestamps separated by spaces
    are removed too.
    """
    from_path: str | None = None
    to_path: str | None = None
    for line in lines:
        if line.startswith("@@"):
            break
        git_match = _GIT_DIFF_RE.match(line)
        if git_match:
            from_path, to_path = git_match.group(1), git_match.group(2)
        if line.startswith("--- "):
            from_path = _strip_side_prefix(_clean_header_path(line[4:]), "a/")
        elif line.startswith("+++ "):
            to_path = _strip_side_prefix(_clean_header_path(line[4:]), "b/")
    return from_path or None, to_path or None


def find_patch_start_index(lines: list[str]) -> int:
    """Index of the ``---`` line that starts the patch headers, or -1."""
    for index, line in enumerate(lines):
        if line.startswith("+++ "):
            for back in range(index - 1, -1, -1):
                if lines[back].startswith("--- "):
                    return back
            break

    for index, line in enumerate(lines):
        if not line.startswith("diff --git"):
            continue
        for forward in range(index + 1, len(lines)):
            if lines[forward].startswith("--- "):
                return forward
            if lines[forward].startswith(("diff --git", "@@")):
                break
    return -1


def format_hunk_headers(lines: list[str]) -> list[str]:
    """Move code written after ``@@ ... @@`` onto its own line.

    A bare ``@@`` (no ranges) becomes ``@@ -0,0 +0,0 @@`` so that a
    recounting patch applier can still place the hunk.
    """
    formatted: list[str] = []
    for line in lines:
        match = _HUNK_HEADER_RE.match(line)
        if match:
            formatted.append(match.group(1))
            if match.group(2).strip():
                formatted.append(match.group(2))
        elif line.startswith("@@"):
            formatted.append("@@ -0,0 +0,0 @@")
            context = line[2:].strip().strip("@").strip()
            if context:
                formatted.append(" " + context)
        else:
            formatted.append(line)
    return formatted


def build_patch_content(
    lines: list[str],
    file_path: str,
    patch_start_index: int,
    is_single_root: bool = True,
    is_new: bool = False,
) -> str:
    """Assemble canonical patch text from one file's collected lines.

    When headers exist, anything before them is dropped, only the last
    ``diff --git``/``---``/``+++`` lines ahead of the first hunk are kept
    and header lines are normalized. Without headers, minimal headers are
    synthesized for ``file_path`` (``/dev/null`` on the from-side when
    ``is_new``).
    """
    if patch_start_index >= 0:
        patch_lines = lines[patch_start_index:]
        hunk_index = next(
            (i for i, line in enumerate(patch_lines) if line.startswith("@@")), -1
        )
        if hunk_index > 0:
            header: dict[str, str] = {}
            for line in patch_lines[:hunk_index]:
                for marker in ("diff --git ", "--- ", "+++ "):
                    if line.startswith(marker):
                        header[marker] = line
            ordered = [header[m] for m in ("diff --git ", "--- ", "+++ ") if m in header]
            patch_lines = ordered + patch_lines[hunk_index:]
        return "\n".join(normalize_header_line(line, is_single_root) for line in patch_lines)

    from_header = f"--- {DEV_NULL}" if is_new else f"--- a/{file_path}"
    to_header = f"+++ b/{file_path}"
    hunk_index = next((i for i, line in enumerate(lines) if line.startswith("@@")), -1)
    if hunk_index == -1:
        logger.info("No hunks found for %s, emitting headers only", file_path)
        return f"{from_header}\n{to_header}"
    body = format_hunk_headers(lines[hunk_index:])
    return "\n".join([from_header, to_header, *body])
