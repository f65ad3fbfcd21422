"""Parsing of the "Relevant files" selection list."""

import re

from chat_apply.models import RelevantFilesItem

RELEVANT_FILES_HEADING = "**Relevant files:**"

_BULLET_RE = re.compile(r"^\s*[-*+]\s+`?(?P<path>[^`\s]+)`?\s*$")


def parse_relevant_files(response: str) -> RelevantFilesItem | None:
    """Collect the bulleted paths that follow a ``**Relevant files:**`` heading.

    The list ends at the first non-bullet, non-blank line. A heading with
    no bullets under it is not a relevant-files answer.
    """
    lines = response.split("\n")
    for index, line in enumerate(lines):
        if line.strip() != RELEVANT_FILES_HEADING:
            continue

        paths: list[str] = []
        for candidate in lines[index + 1:]:
            if not candidate.strip():
                if paths:
                    break
                continue
            match = _BULLET_RE.match(candidate)
            if not match:
                break
            path = match.group("path").replace("\\", "/")
            if path not in paths:
                paths.append(path)

        if paths:
            return RelevantFilesItem(file_paths=paths)
    return None
