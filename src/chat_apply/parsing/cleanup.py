"""Strip wrappers that models put around a bare code answer."""

import re

_REASONING_TAGS = ("think", "thought")

_OPENING_WRAPPERS = [
    re.compile(r"^```[^\n]*\n"),
    re.compile(r"^<files[^>]*>\s*\n?"),
    re.compile(r"^<file[^>]*>\s*\n?"),
    re.compile(r"^<!\[CDATA\[\s*\n?"),
    re.compile(r"^<!DOCTYPE[^>]*>\s*\n?"),
]
_CLOSING_WRAPPERS = [
    re.compile(r"\s*```\s*$"),
    re.compile(r"\s*</files>\s*$"),
    re.compile(r"\s*</file>\s*$"),
    re.compile(r"\s*\]\]>\s*$"),
]


def _strip_reasoning(content: str) -> str:
    for tag in _REASONING_TAGS:
        if content.startswith(f"<{tag}>"):
            end = content.find(f"</{tag}>")
            if end != -1:
                return content[end + len(tag) + 3:].strip()
            break
    return content


def _unwrap_outer_fence(content: str) -> str:
    """Keep only the inside of a fence that has prose around it."""
    first = content.find("```")
    last = content.rfind("```")
    if first == -1 or first >= last:
        return content
    if not content[:first].strip() and not content[last + 3:].strip():
        return content
    end_of_first_line = content.find("\n", first)
    if -1 < end_of_first_line < last:
        return content[end_of_first_line + 1:last].rstrip()
    return content


def cleanup_api_response(content: str) -> str:
    """Remove reasoning preambles, fences, XML file wrappers and CDATA.

    Opening and closing wrappers are peeled one layer at a time until
    nothing changes, so ``<files><file><![CDATA[...]]></file></files>``
    reduces to the inner text.
    """
    content = _unwrap_outer_fence(_strip_reasoning(content.strip()))

    while True:
        previous = content
        for pattern in _OPENING_WRAPPERS:
            match = pattern.match(content)
            if match:
                content = content[match.end():]
                break
        for pattern in _CLOSING_WRAPPERS:
            match = pattern.search(content)
            if match:
                content = content[:match.start()]
                break
        if content == previous:
            break

    return content.strip()
