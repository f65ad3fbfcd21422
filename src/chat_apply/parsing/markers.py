"""Predicates for elision and conflict marker lines."""

import re

# Comment-prefixed ellipsis standing in for omitted code, e.g. "// ..." or
# "<!-- ... -->" or "{/* ... */}".
ELISION_LINE_RE = re.compile(r"^\s*(?://|#|<!--|;|\{/\*|/\*|\*|--)\s*\.{3,}.*$")

CONFLICT_START = "<<<<<<<"
CONFLICT_SEPARATOR = "======="
CONFLICT_END = ">>>>>>>"


def is_elision_line(line: str) -> bool:
    return bool(ELISION_LINE_RE.match(line))


def has_elision_markers(content: str) -> bool:
    return any(is_elision_line(line) for line in content.split("\n"))


def has_real_code(content: str) -> bool:
    """Return True if content has at least one non-blank, non-elision line."""
    for line in content.split("\n"):
        if line.strip() and not is_elision_line(line):
            return True
    return False


def has_conflict_markers(content: str) -> bool:
    """Return True if all three conflict marker lines are present."""
    seen_start = seen_separator = seen_end = False
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped.startswith(CONFLICT_START):
            seen_start = True
        elif stripped.startswith(CONFLICT_SEPARATOR):
            seen_separator = True
        elif stripped.startswith(CONFLICT_END):
            seen_end = True
    return seen_start and seen_separator and seen_end


_CONFLICT_START_RE = re.compile(r"^<<<<<<<\s*(.*)$")
_CONFLICT_SEPARATOR_RE = re.compile(r"^=======\s*$")
_CONFLICT_END_RE = re.compile(r"^>>>>>>>\s*(.*)$")


def _split_on_ellipsis(lines: list[str]) -> list[list[str]]:
    parts: list[list[str]] = [[]]
    for line in lines:
        if line.strip() == "...":
            parts.append([])
        else:
            parts[-1].append(line)
    return parts


def expand_ellipsis_conflicts(content: str) -> str:
    """Split a conflict whose sides are cut by ``...`` lines into separate conflicts.

    Only applies when both sides have the same number of parts; otherwise
    the conflict is left as written.
    """
    lines = content.split("\n")
    result: list[str] = []
    index = 0
    while index < len(lines):
        start = _CONFLICT_START_RE.match(lines[index])
        if start:
            separator = end = -1
            for ahead in range(index + 1, len(lines)):
                if _CONFLICT_SEPARATOR_RE.match(lines[ahead]):
                    separator = ahead
                elif _CONFLICT_END_RE.match(lines[ahead]):
                    end = ahead
                    break
            if separator != -1 and end != -1:
                original_parts = _split_on_ellipsis(lines[index + 1:separator])
                updated_parts = _split_on_ellipsis(lines[separator + 1:end])
                if len(original_parts) > 1 and len(original_parts) == len(updated_parts):
                    start_line = f"{CONFLICT_START} {start.group(1)}".rstrip()
                    end_line = f"{CONFLICT_END} {_CONFLICT_END_RE.match(lines[end]).group(1)}".rstrip()
                    for original, updated in zip(original_parts, updated_parts):
                        result.extend([start_line, *original, CONFLICT_SEPARATOR, *updated, end_line])
                    index = end + 1
                    continue
        result.append(lines[index])
        index += 1
    return "\n".join(result)
