"""Merging conflict-marker edits into existing file content."""

import logging
import re

from pydantic import BaseModel, Field

from chat_apply.parsing.markers import CONFLICT_END, CONFLICT_SEPARATOR, CONFLICT_START
from chat_apply.reconcile.exceptions import ConflictMarkerError

logger = logging.getLogger(__name__)

MAX_CONTEXT_LINES = 5

# Between matched lines allow up to five line breaks with blank/indented lines.
_LINE_SEPARATOR = r"(?:\r?\n[ \t]*){1,5}"


class Segment(BaseModel):
    """A run of lines from conflict-marker content.

    Common segments use ``lines``; conflict segments use ``original_lines``
    and ``updated_lines``.
    """

    is_conflict: bool = False
    lines: list[str] = Field(default_factory=list)
    original_lines: list[str] = Field(default_factory=list)
    updated_lines: list[str] = Field(default_factory=list)


def parse_conflict_segments(content: str) -> list[Segment]:
    """Split content into alternating common and conflict segments.

    A ``>>>>>>>`` line seen before any ``=======`` closes the conflict with
    an empty updated side.
    """
    segments: list[Segment] = []
    common: list[str] = []
    original: list[str] = []
    updated: list[str] = []
    state = "normal"

    for line in content.replace("\r\n", "\n").split("\n"):
        stripped = line.strip()
        if stripped.startswith(CONFLICT_START):
            if state == "normal":
                if common:
                    segments.append(Segment(lines=common))
                    common = []
                state = "original"
                original, updated = [], []
            elif state == "original":
                original.append(line)
            else:
                updated.append(line)
        elif stripped.startswith(CONFLICT_SEPARATOR):
            if state == "original":
                state = "updated"
            elif state == "normal":
                common.append(line)
            else:
                updated.append(line)
        elif stripped.startswith(CONFLICT_END):
            if state == "normal":
                common.append(line)
            else:
                segments.append(
                    Segment(
                        is_conflict=True,
                        original_lines=original,
                        updated_lines=updated if state == "updated" else [],
                    )
                )
                state = "normal"
                original, updated = [], []
        elif state == "normal":
            common.append(line)
        elif state == "original":
            original.append(line)
        else:
            updated.append(line)

    if common:
        segments.append(Segment(lines=common))
    return segments


def _block_pattern(lines: list[str]) -> str:
    return _LINE_SEPARATOR.join(rf"[ \t]*{re.escape(line.strip())}[ \t]*" for line in lines)


def _non_blank(lines: list[str]) -> list[str]:
    return [line for line in lines if line.strip()]


def apply_conflict_markers_to_content(original_content: str, markers_content: str) -> str:
    """Replace each conflict's original side in ``original_content`` with its updated side.

    Matching ignores indentation and blank lines, and uses up to
    MAX_CONTEXT_LINES of surrounding common lines to anchor the region.
    Conflicts are applied in order; each search starts after the previous
    replacement. The original's line ending style is kept.

    Raises:
        ConflictMarkerError: If a conflict's region cannot be found.
    """
    line_ending = "\r\n" if "\r\n" in original_content else "\n"
    current = original_content
    segments = parse_conflict_segments(markers_content)
    cursor = 0

    for index, segment in enumerate(segments):
        if not segment.is_conflict:
            continue

        previous = segments[index - 1] if index > 0 else None
        following = segments[index + 1] if index + 1 < len(segments) else None
        context_before = previous.lines[-MAX_CONTEXT_LINES:] if previous and not previous.is_conflict else []
        context_after = following.lines[:MAX_CONTEXT_LINES] if following and not following.is_conflict else []

        before = _non_blank(context_before)
        original = _non_blank(segment.original_lines)
        after = _non_blank(context_after)

        parts = [f"({_block_pattern(group)})" for group in (before, original, after) if group]
        match = re.compile(_LINE_SEPARATOR.join(parts)).search(current, cursor)
        if match is None:
            search_text = "\n".join([*context_before, *segment.original_lines, *context_after])
            raise ConflictMarkerError(
                f"Could not find content to replace for conflict marker. Context:\n{search_text[:100]}..."
            )

        group = 1
        matched_before = ""
        matched_after = ""
        if before:
            matched_before = match.group(group)
            group += 1
        if original:
            group += 1
        if after:
            matched_after = match.group(group)

        updated_text = line_ending.join(segment.updated_lines)
        replacement_parts = [matched_before] if matched_before else []
        if segment.updated_lines:
            replacement_parts.append(updated_text)
        if matched_after:
            replacement_parts.append(matched_after)
        replacement = line_ending.join(replacement_parts)

        current = current[:match.start()] + replacement + current[match.end():]

        # Leave the trailing context searchable as the next conflict's leading context.
        if matched_after:
            head = f"{matched_before}{line_ending}{updated_text}" if matched_before else updated_text
            cursor = match.start() + len(head)
        else:
            cursor = match.start() + len(replacement)

    return current


def resolve_updated_side(markers_content: str) -> str:
    """Content for a file that does not exist yet: common lines plus updated sides."""
    lines: list[str] = []
    for segment in parse_conflict_segments(markers_content):
        lines.extend(segment.updated_lines if segment.is_conflict else segment.lines)
    return "\n".join(lines)
