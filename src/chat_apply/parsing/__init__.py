"""Parsing of chat responses into ordered edit items."""

from chat_apply.parsing.cleanup import cleanup_api_response
from chat_apply.parsing.completion import parse_code_completion
from chat_apply.parsing.diff_headers import (
    build_patch_content,
    extract_paths_from_lines,
    find_patch_start_index,
    format_hunk_headers,
    normalize_header_line,
)
from chat_apply.parsing.exceptions import ParsingError, PathResolutionError
from chat_apply.parsing.markers import (
    expand_ellipsis_conflicts,
    has_conflict_markers,
    has_elision_markers,
    has_real_code,
    is_elision_line,
)
from chat_apply.parsing.patch_splitter import split_patches
from chat_apply.parsing.paths import resolve_workspace_path
from chat_apply.parsing.relevant_files import parse_relevant_files
from chat_apply.parsing.response_parser import parse_response, parse_response_with_elided_paths
from chat_apply.parsing.segmenter import Segmenter, segment

__all__ = [
    "ParsingError",
    "PathResolutionError",
    "Segmenter",
    "build_patch_content",
    "cleanup_api_response",
    "expand_ellipsis_conflicts",
    "extract_paths_from_lines",
    "find_patch_start_index",
    "format_hunk_headers",
    "has_conflict_markers",
    "has_elision_markers",
    "has_real_code",
    "is_elision_line",
    "normalize_header_line",
    "parse_code_completion",
    "parse_relevant_files",
    "parse_response",
    "parse_response_with_elided_paths",
    "resolve_workspace_path",
    "segment",
    "split_patches",
]
