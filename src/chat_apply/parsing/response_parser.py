"""Top-level entry point for turning a response into ordered items."""

import logging
import re

from chat_apply.models import FileItem, Item, TextItem
from chat_apply.parsing.completion import parse_code_completion
from chat_apply.parsing.exceptions import PathResolutionError
from chat_apply.parsing.markers import has_real_code
from chat_apply.parsing.patch_splitter import split_patches
from chat_apply.parsing.path_hints import extract_path_from_line_of_code
from chat_apply.parsing.paths import resolve_workspace_path
from chat_apply.parsing.relevant_files import parse_relevant_files
from chat_apply.parsing.segmenter import Segmenter

logger = logging.getLogger(__name__)

_DIFF_HEADER_RE = re.compile(r"^---\s+.+\n\+\+\+\s+.+", re.MULTILINE)
_GIT_DIFF_HEADER_RE = re.compile(r"^diff --git ", re.MULTILINE)


def normalize_line_endings(response: str) -> str:
    return response.replace("\r\n", "\n").replace("\r", "\n")


def parse_file_content_only(response: str, is_single_root: bool = True) -> FileItem | None:
    """Recognize a fence-less answer that is one file led by a path comment."""
    if "```" in response:
        return None
    lines = response.strip().split("\n")
    if len(lines) < 2:
        return None
    raw_path = extract_path_from_line_of_code(lines[0])
    if not raw_path:
        return None
    content = "\n".join(lines[1:])
    if not has_real_code(content) or _DIFF_HEADER_RE.search(content) or _GIT_DIFF_HEADER_RE.search(content):
        return None
    try:
        resolution = resolve_workspace_path(raw_path, is_single_root)
    except PathResolutionError:
        return None
    return FileItem(
        file_path=resolution.relative_path,
        workspace_name=resolution.workspace_name,
        content=content,
    )


def _find_raw_diff_start(lines: list[str]) -> int:
    for index, line in enumerate(lines):
        if line.startswith("diff --git "):
            return index
        if line.startswith("--- ") and index + 1 < len(lines) and lines[index + 1].startswith("+++ "):
            return index
    return -1


def parse_raw_diffs(response: str, is_single_root: bool = True) -> list[Item]:
    """Split a response with bare (unfenced) diff headers into items.

    Prose ahead of the first header becomes a TextItem; everything from
    the first header on is handed to the patch splitter.
    """
    lines = response.split("\n")
    start = _find_raw_diff_start(lines)
    if start == -1:
        return []
    patches = split_patches(lines[start:], is_single_root)
    if not patches:
        return []
    items: list[Item] = []
    preamble = "\n".join(lines[:start]).strip()
    if preamble:
        items.append(TextItem(content=preamble))
    items.extend(patches)
    return items


def parse_response_with_elided_paths(response: str, is_single_root: bool = True) -> tuple[list[Item], list[str]]:
    """Parse a model response into an ordered list of items.

    Checks run in order and the first that matches decides the shape of
    the result:

    1. A fenced block starting with ``<path> <line>:<character>`` makes
       the whole response a single CompletionItem.
    2. A ``**Relevant files:**`` list yields a single RelevantFilesItem.
    3. A fence-less answer led by a path comment is one FileItem.
    4. Bare diff headers outside any fence are split into patches.
    5. Otherwise the Segmenter produces interleaved text, file and diff
       items.

    Args:
        response: Raw response text.
        is_single_root: Whether the workspace has a single root folder.

    Returns:
        Tuple of (items, elided_paths). Items are in the order they appear
        in the response; elided_paths lists files whose block held nothing
        but elision markers and was kept as text.
    """
    text = normalize_line_endings(response)

    completion = parse_code_completion(text, is_single_root)
    if completion is not None:
        return [completion], []

    relevant_files = parse_relevant_files(text)
    if relevant_files is not None:
        return [relevant_files], []

    text = text.replace("``````", "```\n```")

    file_only = parse_file_content_only(text, is_single_root)
    if file_only is not None:
        return [file_only], []

    if "```" not in text and (_DIFF_HEADER_RE.search(text) or _GIT_DIFF_HEADER_RE.search(text)):
        items = parse_raw_diffs(text, is_single_root)
        if items:
            return items, []

    segmenter = Segmenter(text, is_single_root)
    items = segmenter.run()
    logger.debug("Parsed response into %d items", len(items))
    return items, segmenter.elided_paths


def parse_response(response: str, is_single_root: bool = True) -> list[Item]:
    """Parse a model response into an ordered list of items."""
    items, _ = parse_response_with_elided_paths(response, is_single_root)
    return items
