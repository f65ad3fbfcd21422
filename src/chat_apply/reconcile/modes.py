"""Edit-mode selection for responses made of whole-file items."""

import logging
from typing import Callable

from chat_apply.models import EditMode, FileItem, OriginalFileState, ReconciliationResult
from chat_apply.parsing.markers import has_conflict_markers, has_elision_markers
from chat_apply.reconcile.exceptions import ReconciliationError
from chat_apply.reconcile.handlers import handle_conflict_markers, handle_fast_replace, handle_truncated_edit
from chat_apply.reconcile.workspace import WorkspaceContext

logger = logging.getLogger(__name__)

MODE_HANDLERS: dict[EditMode, Callable[[list[FileItem], WorkspaceContext], ReconciliationResult]] = {
    EditMode.CONFLICT_MARKERS: handle_conflict_markers,
    EditMode.TRUNCATED: handle_truncated_edit,
    EditMode.FAST_REPLACE: handle_fast_replace,
}


def select_edit_mode(files: list[FileItem], has_elided_blocks: bool = False) -> EditMode:
    """Pick one strategy for the whole batch.

    Conflict markers in any file win, then elision markers in any file
    (or ``has_elided_blocks``, set when a file block holding nothing but
    elisions was kept as text), then whole-file replace.
    """
    if any(has_conflict_markers(file.content) for file in files):
        return EditMode.CONFLICT_MARKERS
    if any(has_elision_markers(file.content) for file in files):
        return EditMode.TRUNCATED
    if has_elided_blocks:
        return EditMode.TRUNCATED
    return EditMode.FAST_REPLACE


def create_failed_file_state(file: FileItem, workspace: WorkspaceContext) -> OriginalFileState:
    """State for a file that could not be applied: on-disk content plus what failed."""
    content = ""
    try:
        if workspace.exists(file.file_path, file.workspace_name):
            content = workspace.read(file.file_path, file.workspace_name)
    except (OSError, UnicodeError, ReconciliationError) as exc:
        logger.warning("Could not read %s for failure report: %s", file.file_path, exc)
    return OriginalFileState(
        file_path=file.file_path,
        content=content,
        workspace_name=file.workspace_name,
        ai_content=file.content,
        apply_failed=True,
    )


def reconcile_file_items(
    files: list[FileItem],
    workspace: WorkspaceContext,
    has_elided_blocks: bool = False,
) -> ReconciliationResult:
    """Apply whole-file items with the strategy chosen for the batch.

    Args:
        files: File items parsed from one response.
        workspace: Roots and file system to apply them against.
        has_elided_blocks: Whether the response had elision-only file blocks.

    Returns:
        ReconciliationResult with the selected mode and, for every failed
        file, an ``apply_failed`` state in ``failed_states``.
    """
    if not workspace.has_roots:
        logger.error("No workspace root available, nothing applied")
        return ReconciliationResult(success=False)

    mode = select_edit_mode(files, has_elided_blocks)
    logger.info("Selected %s mode for %d file(s)", mode.value, len(files))
    result = MODE_HANDLERS[mode](files, workspace)
    result.mode = mode
    result.failed_states = [create_failed_file_state(file, workspace) for file in result.failed_files]
    return result
