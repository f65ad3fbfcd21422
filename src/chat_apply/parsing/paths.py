"""Path normalization and workspace-qualifier resolution."""

import re

from chat_apply.models import PathResolution
from chat_apply.parsing.exceptions import PathResolutionError

_PATH_CHARS_RE = re.compile(r"^[a-zA-Z0-9_./@\\-]+$")
_ALNUM_RE = re.compile(r"[a-zA-Z0-9]")


def normalize_path(path: str) -> str:
    """Convert backslashes to forward slashes."""
    return path.replace("\\", "/")


def strip_quotes(path: str) -> str:
    """Remove one pair of surrounding double or single quotes."""
    if len(path) >= 2 and path[0] == path[-1] and path[0] in "\"'":
        return path[1:-1]
    return path


def looks_like_path(candidate: str) -> bool:
    """Return True if candidate has the shape of a file path.

    A path contains a dot or a slash, has no whitespace, contains at least
    one alphanumeric character and does not end with a separator (which
    would make it a directory) or a dot (end of a sentence).
    """
    if not candidate or candidate.endswith(("/", "\\", ".")):
        return False
    if "." not in candidate and "/" not in candidate and "\\" not in candidate:
        return False
    if any(ch.isspace() for ch in candidate):
        return False
    return bool(_ALNUM_RE.search(candidate))


def is_strict_path(candidate: str) -> bool:
    """Like looks_like_path, restricted to characters common in file names."""
    return looks_like_path(candidate) and bool(_PATH_CHARS_RE.match(candidate))


def resolve_workspace_path(raw_path: str, is_single_root: bool) -> PathResolution:
    """Split an optional leading workspace qualifier from a hinted path.

    In a single-root workspace the path is never split, even when its
    first segment looks like a folder name.

    Args:
        raw_path: Path as written in the response.
        is_single_root: Whether the caller's workspace has a single root folder.

    Returns:
        PathResolution with the relative path and, for multi-root
        workspaces, the workspace name taken from the first segment.

    Raises:
        PathResolutionError: If nothing is left after normalization.
    """
    path = normalize_path(raw_path.strip())
    if path.startswith("/"):
        path = path[1:]
    if not path:
        raise PathResolutionError(f"Empty path: {raw_path!r}")

    if is_single_root or "/" not in path:
        return PathResolution(relative_path=path)

    workspace_name, _, relative_path = path.partition("/")
    if not workspace_name or not relative_path:
        return PathResolution(relative_path=path)
    return PathResolution(workspace_name=workspace_name, relative_path=relative_path)
