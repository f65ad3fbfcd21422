"""Detection of single-location code completion answers."""

import logging
import re

from chat_apply.models import CompletionItem
from chat_apply.parsing.cleanup import cleanup_api_response
from chat_apply.parsing.exceptions import PathResolutionError
from chat_apply.parsing.paths import looks_like_path, resolve_workspace_path

logger = logging.getLogger(__name__)

# "// src/app.ts 12:5", "# utils.py 3:1", "src/app.ts 12:5"
_COMPLETION_MARKER_RE = re.compile(
    r"^\s*(?:(?://|#|--|<!--)\s*)?\"?(?P<path>[^\"<>\s?*|:]+)\"?\s+"
    r"(?P<line>\d+):(?P<character>\d+)\s*(?:-->)?\s*$"
)


def match_completion_marker(line: str) -> tuple[str, int, int] | None:
    """Return (path, line, character) if ``line`` is a cursor-position marker."""
    match = _COMPLETION_MARKER_RE.match(line)
    if not match or not looks_like_path(match.group("path")):
        return None
    return match.group("path"), int(match.group("line")), int(match.group("character"))


def parse_code_completion(response: str, is_single_root: bool = True) -> CompletionItem | None:
    """Find a fenced block whose first line is ``<path> <line>:<character>``.

    Every fenced block in the response is checked; the first match wins
    and its body (after the marker line) becomes the completion text.
    """
    lines = response.split("\n")
    index = 0
    while index < len(lines):
        if not lines[index].strip().startswith("```"):
            index += 1
            continue

        end = index + 1
        while end < len(lines) and not lines[end].strip().startswith("```"):
            end += 1

        if index + 1 < len(lines):
            marker = match_completion_marker(lines[index + 1])
            if marker:
                path, line, character = marker
                try:
                    resolution = resolve_workspace_path(path, is_single_root)
                except PathResolutionError:
                    logger.debug("Ignoring completion marker with empty path")
                else:
                    body = "\n".join(lines[index + 2:end])
                    return CompletionItem(
                        file_path=resolution.relative_path,
                        workspace_name=resolution.workspace_name,
                        content=cleanup_api_response(body),
                        line=line,
                        character=character,
                    )
        index = end + 1
    return None
