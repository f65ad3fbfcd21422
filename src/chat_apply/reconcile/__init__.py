"""Reconciliation of parsed items against workspace files."""

from chat_apply.reconcile.completion import apply_completion, insert_at_position
from chat_apply.reconcile.conflict_markers import (
    apply_conflict_markers_to_content,
    parse_conflict_segments,
    resolve_updated_side,
)
from chat_apply.reconcile.exceptions import (
    CompletionError,
    ConflictMarkerError,
    ReconciliationError,
    UnsafePathError,
    WorkspaceError,
)
from chat_apply.reconcile.handlers import (
    handle_conflict_markers,
    handle_fast_replace,
    handle_truncated_edit,
)
from chat_apply.reconcile.modes import create_failed_file_state, reconcile_file_items, select_edit_mode
from chat_apply.reconcile.patches import reconcile_patches
from chat_apply.reconcile.processor import ResponseProcessor
from chat_apply.reconcile.truncation import process_truncated_content
from chat_apply.reconcile.workspace import FileSystem, LocalFileSystem, WorkspaceContext

__all__ = [
    "CompletionError",
    "ConflictMarkerError",
    "FileSystem",
    "LocalFileSystem",
    "ReconciliationError",
    "ResponseProcessor",
    "UnsafePathError",
    "WorkspaceContext",
    "WorkspaceError",
    "apply_completion",
    "apply_conflict_markers_to_content",
    "create_failed_file_state",
    "handle_conflict_markers",
    "handle_fast_replace",
    "handle_truncated_edit",
    "insert_at_position",
    "parse_conflict_segments",
    "process_truncated_content",
    "reconcile_file_items",
    "reconcile_patches",
    "resolve_updated_side",
    "select_edit_mode",
]
