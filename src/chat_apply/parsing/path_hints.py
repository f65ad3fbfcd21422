"""Rules for locating a file-path hint for a code block.

Each PathHintSource has exactly one resolver. The resolvers are tried in
the order given by INSIDE_BLOCK_RULES and PRECEDING_LINE_RULES, so the
precedence between them is data rather than control flow.
"""

import logging
import re
from typing import Callable

from chat_apply.models import PathHint, PathHintSource
from chat_apply.parsing.paths import is_strict_path, looks_like_path, normalize_path

logger = logging.getLogger(__name__)

MAX_HINT_LINES_BACK = 5
MAX_LEADING_HINT_LINES = 2

_COMMENT_PATH_RE = re.compile(
    r"^\s*(?://+|#+|--|;+|/\*+|<!--|\{/\*)\s*"
    r"(?:(?:file|path|filename)\s*:\s*)?"
    r"[\"'`]?(?P<path>[^\s\"'`]+?)[\"'`]?"
    r"\s*(?:\*/\}?|-->)?\s*$",
    re.IGNORECASE,
)
_XML_FILE_TAG_RE = re.compile(r"<(?P<tag>[\w-]+)\s+path=[\"'](?P<path>[^\"']+)[\"'](?P<attrs>[^>]*)>")
_XML_PATH_ELEMENT_RE = re.compile(r"^<[^>]+>(?P<path>[^<]+)</[^>]+>$")
_FENCE_NAMED_PATH_RE = re.compile(r"(?:path|name|file)=(?:\"([^\"]+)\"|'([^']+)'|(\S+))")
_HEADING_RE = re.compile(r"^#{1,6}\s+(?P<text>.+)$")
_BACKTICK_RE = re.compile(r"`([^`]+)`")
_NEW_ATTR_RE = re.compile(r"\bnew(?:=[\"']?(?:true|1|yes)[\"']?)?(?=\s|$)", re.IGNORECASE)


def extract_path_from_line_of_code(line: str) -> str | None:
    """Return the path of a line that is only a comment naming a file.

    Matches forms such as ``// src/app.ts``, ``# utils/io.py``,
    ``<!-- index.html -->`` and ``/* File: styles.css */``.
    """
    if line.lstrip().startswith("#!"):
        return None
    match = _COMMENT_PATH_RE.match(line)
    if not match:
        return None
    path = match.group("path")
    return path if looks_like_path(path) else None


def is_new_file_tag(line: str) -> bool:
    """Return True if an XML file tag carries a ``new`` attribute."""
    match = _XML_FILE_TAG_RE.search(line)
    if not match:
        return False
    return bool(_NEW_ATTR_RE.search(match.group("attrs")))


def match_xml_file_tag(line: str) -> tuple[str, str] | None:
    """Return (tag_name, path) for an opening ``<tag path="...">`` line."""
    stripped = line.strip()
    if not stripped.startswith("<") or stripped.endswith("/>"):
        return None
    match = _XML_FILE_TAG_RE.match(stripped)
    if not match:
        return None
    return match.group("tag"), match.group("path")


# ---------------------------------------------------------------------------
# Resolvers, one per PathHintSource
# ---------------------------------------------------------------------------


def resolve_fence_info(info: str) -> str | None:
    """Path from the text after an opening fence: ```ts:src/a.ts, ```ts src/a.ts, ```ts path=a.ts."""
    info = info.strip()
    if not info:
        return None

    named = _FENCE_NAMED_PATH_RE.search(info)
    if named:
        return next(group for group in named.groups() if group)

    _, sep, rest = info.partition(":")
    if sep and rest.strip() and looks_like_path(rest.strip()):
        return rest.strip()

    tokens = info.split()
    if len(tokens) > 1:
        candidate = " ".join(tokens[1:])
        path = extract_path_from_line_of_code(candidate)
        if path:
            return path
        if is_strict_path(candidate):
            return candidate
    elif "/" in tokens[0] and is_strict_path(tokens[0]):
        return tokens[0]
    return None


def resolve_xml_wrapper(line: str) -> str | None:
    matched = match_xml_file_tag(line)
    return matched[1] if matched else None


def resolve_leading_comment(line: str) -> str | None:
    """Path from one of the first lines of a block body.

    Bare path lines are accepted only when they contain a directory
    separator, since a lone ``setup.py`` could be real content.
    """
    path = extract_path_from_line_of_code(line)
    if path:
        return path
    candidate = line.strip()
    if "/" in normalize_path(candidate) and is_strict_path(candidate):
        return candidate
    return None


def resolve_heading(line: str) -> str | None:
    match = _HEADING_RE.match(line.strip())
    if not match:
        return None
    text = match.group("text").strip()
    for candidate in reversed(_BACKTICK_RE.findall(text)):
        if looks_like_path(candidate.strip()):
            return candidate.strip()
    cleaned = text.strip("`*_ ").rstrip(":").strip("`*_ ")
    for prefix in ("File:", "Path:"):
        if cleaned.lower().startswith(prefix.lower()):
            cleaned = cleaned[len(prefix):].strip("`*_ ")
    if looks_like_path(cleaned):
        return cleaned
    return None


def resolve_comment_line(line: str) -> str | None:
    return extract_path_from_line_of_code(line)


def resolve_xml_tag_line(line: str) -> str | None:
    stripped = line.strip()
    path = resolve_xml_wrapper(stripped)
    if path:
        return path
    match = _XML_PATH_ELEMENT_RE.match(stripped)
    if match:
        candidate = match.group("path").strip()
        if looks_like_path(candidate):
            return candidate
    return None


def resolve_backtick_path(line: str) -> str | None:
    """Path in backticks on a line that introduces the block.

    The line must either end with a colon or carry little other text, so
    that paths mentioned in the middle of a sentence are not picked up.
    """
    stripped = line.strip()
    candidates = [c.strip() for c in _BACKTICK_RE.findall(stripped)]
    candidates = [c for c in candidates if looks_like_path(c)]
    if not candidates:
        return None
    remainder = _BACKTICK_RE.sub("", stripped).strip("*_:- ")
    if stripped.rstrip("*_ ").endswith(":") or len(remainder.split()) <= 3:
        return candidates[-1]
    return None


def resolve_lone_path(line: str) -> str | None:
    candidate = line.strip().strip("*_").rstrip(":").strip("`*_ ")
    if is_strict_path(candidate):
        return candidate
    return None


HINT_RESOLVERS: dict[PathHintSource, Callable[[str], str | None]] = {
    PathHintSource.FENCE_INFO: resolve_fence_info,
    PathHintSource.XML_WRAPPER: resolve_xml_wrapper,
    PathHintSource.LEADING_COMMENT: resolve_leading_comment,
    PathHintSource.HEADING: resolve_heading,
    PathHintSource.COMMENT_LINE: resolve_comment_line,
    PathHintSource.XML_TAG_LINE: resolve_xml_tag_line,
    PathHintSource.BACKTICK_PATH: resolve_backtick_path,
    PathHintSource.LONE_PATH: resolve_lone_path,
}

# Order in which body lines are checked (after the fence info string).
INSIDE_BLOCK_RULES: list[PathHintSource] = [
    PathHintSource.XML_WRAPPER,
    PathHintSource.LEADING_COMMENT,
]

# Order in which each preceding prose line is classified. Across lines a
# heading wins outright; otherwise the nearest match is used.
PRECEDING_LINE_RULES: list[PathHintSource] = [
    PathHintSource.HEADING,
    PathHintSource.COMMENT_LINE,
    PathHintSource.XML_TAG_LINE,
    PathHintSource.LONE_PATH,
    PathHintSource.BACKTICK_PATH,
]

# Prose hint lines of these kinds are removed from the surrounding text.
REMOVABLE_PROSE_SOURCES = frozenset({
    PathHintSource.HEADING,
    PathHintSource.COMMENT_LINE,
    PathHintSource.XML_TAG_LINE,
    PathHintSource.LONE_PATH,
})


def classify_line(line: str, rules: list[PathHintSource]) -> tuple[PathHintSource, str] | None:
    """Return the first rule in ``rules`` that finds a path in ``line``."""
    for source in rules:
        path = HINT_RESOLVERS[source](line)
        if path:
            return source, path
    return None


def find_path_inside_block(info: str, body: list[str]) -> PathHint | None:
    """Look for a path on the opening fence line, then in the first body lines.

    ``line_index`` of the returned hint is -1 for the fence info string and
    the body index otherwise.
    """
    path = resolve_fence_info(info)
    if path:
        return PathHint(source=PathHintSource.FENCE_INFO, raw_path=path, line_index=-1)

    checked = 0
    for index, line in enumerate(body):
        if not line.strip():
            continue
        if checked >= MAX_LEADING_HINT_LINES:
            break
        checked += 1
        found = classify_line(line, INSIDE_BLOCK_RULES)
        if found:
            source, path = found
            return PathHint(
                source=source,
                raw_path=path,
                line_index=index,
                is_new=source == PathHintSource.XML_WRAPPER and is_new_file_tag(line),
            )
    return None


def find_path_before_block(lines: list[str], block_start: int, floor: int = 0) -> PathHint | None:
    """Look up to MAX_HINT_LINES_BACK non-blank lines above ``block_start``.

    Args:
        lines: All response lines.
        block_start: Index of the opening fence line.
        floor: Lowest index that may be inspected (end of the previous block).

    Returns:
        The heading hint nearest the block if any, otherwise the nearest hint
        of any other kind, otherwise None.
    """
    candidate: PathHint | None = None
    inspected = 0
    index = block_start - 1
    while index >= floor and inspected < MAX_HINT_LINES_BACK:
        line = lines[index]
        if line.strip():
            inspected += 1
            found = classify_line(line, PRECEDING_LINE_RULES)
            if found:
                source, path = found
                hint = PathHint(
                    source=source,
                    raw_path=path,
                    line_index=index,
                    is_new=source == PathHintSource.XML_TAG_LINE and is_new_file_tag(line),
                )
                if source == PathHintSource.HEADING:
                    return hint
                if candidate is None:
                    candidate = hint
        index -= 1
    if candidate is not None:
        logger.debug("Path hint %s found %s", candidate.raw_path, candidate.source.value)
    return candidate
