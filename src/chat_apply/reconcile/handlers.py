"""Per-file strategies for applying whole-file items.

Each public handler takes the full batch and returns one
ReconciliationResult. A failure on one file is recorded in
``failed_files`` and never stops the rest of the batch.
"""

import logging
from typing import Callable

from chat_apply.models import FileItem, FileState, OriginalFileState, ReconciliationResult
from chat_apply.parsing.markers import has_conflict_markers, has_real_code
from chat_apply.reconcile.conflict_markers import apply_conflict_markers_to_content, resolve_updated_side
from chat_apply.reconcile.exceptions import ReconciliationError, UnsafePathError
from chat_apply.reconcile.truncation import process_truncated_content
from chat_apply.reconcile.workspace import WorkspaceContext

logger = logging.getLogger(__name__)

FileApplier = Callable[[FileItem, WorkspaceContext], OriginalFileState]


def preserve_trailing_newline(original: str, content: str) -> str:
    if original.endswith("\n") and not content.endswith("\n"):
        return content + "\n"
    return content


def _read_rename_source(file: FileItem, workspace: WorkspaceContext) -> str | None:
    """Content of the file being renamed, or None if there is no rename source on disk."""
    if not file.renamed_from:
        return None
    if not workspace.exists(file.renamed_from, file.workspace_name):
        logger.info("Rename source %s not found, treating %s as a plain edit", file.renamed_from, file.file_path)
        return None
    return workspace.read(file.renamed_from, file.workspace_name)


def _move_renamed(file: FileItem, workspace: WorkspaceContext, source_content: str, new_content: str) -> OriginalFileState:
    workspace.write(file.file_path, new_content, file.workspace_name)
    workspace.delete(file.renamed_from, file.workspace_name)
    logger.info("Renamed %s to %s", file.renamed_from, file.file_path)
    return OriginalFileState(
        file_path=file.file_path,
        content=source_content,
        workspace_name=file.workspace_name,
        file_path_to_restore=file.renamed_from,
        ai_content=file.content,
        proposed_content=new_content,
    )


def _delete(file: FileItem, workspace: WorkspaceContext) -> OriginalFileState:
    original = workspace.read(file.file_path, file.workspace_name)
    workspace.delete(file.file_path, file.workspace_name)
    logger.info("Deleted %s", file.file_path)
    return OriginalFileState(
        file_path=file.file_path,
        content=original,
        workspace_name=file.workspace_name,
        file_state=FileState.DELETED,
    )


def _create(file: FileItem, workspace: WorkspaceContext, content: str) -> OriginalFileState:
    workspace.write(file.file_path, content, file.workspace_name)
    logger.info("Created %s", file.file_path)
    return OriginalFileState(
        file_path=file.file_path,
        content="",
        workspace_name=file.workspace_name,
        file_state=FileState.NEW,
        ai_content=file.content,
        proposed_content=content,
    )


def _replace(file: FileItem, workspace: WorkspaceContext) -> OriginalFileState:
    original = workspace.read(file.file_path, file.workspace_name)
    content = preserve_trailing_newline(original, file.content)
    workspace.write(file.file_path, content, file.workspace_name)
    return OriginalFileState(
        file_path=file.file_path,
        content=original,
        workspace_name=file.workspace_name,
        ai_content=file.content,
        proposed_content=content,
    )


def run_per_file(files: list[FileItem], workspace: WorkspaceContext, apply_file: FileApplier) -> ReconciliationResult:
    """Apply ``apply_file`` to every file, isolating failures.

    Deleted files are removed here for every strategy. Files whose path
    escapes the workspace are skipped with a warning.
    """
    if not workspace.has_roots:
        logger.error("No workspace root available, nothing applied")
        return ReconciliationResult(success=False)

    result = ReconciliationResult(success=True)
    for file in files:
        try:
            if file.is_deleted:
                state = _delete(file, workspace)
            else:
                state = apply_file(file, workspace)
        except UnsafePathError as exc:
            logger.warning("Skipping %s: %s", file.file_path, exc)
            continue
        except (OSError, UnicodeError, ReconciliationError) as exc:
            logger.error("Failed to apply %s: %s", file.file_path, exc)
            result.failed_files.append(file)
            continue
        result.original_states.append(state)
    return result


# ---------------------------------------------------------------------------
# Conflict markers
# ---------------------------------------------------------------------------


def apply_conflict_file(file: FileItem, workspace: WorkspaceContext) -> OriginalFileState:
    has_markers = has_conflict_markers(file.content)

    source = _read_rename_source(file, workspace)
    if source is not None:
        if has_markers:
            new_content = apply_conflict_markers_to_content(source, file.content)
        elif has_real_code(file.content):
            new_content = file.content
        else:
            new_content = source
        return _move_renamed(file, workspace, source, new_content)

    if not workspace.exists(file.file_path, file.workspace_name):
        content = resolve_updated_side(file.content) if has_markers else file.content
        return _create(file, workspace, content)

    if not has_markers:
        return _replace(file, workspace)

    original = workspace.read(file.file_path, file.workspace_name)
    new_content = apply_conflict_markers_to_content(original, file.content)
    if new_content != original:
        workspace.write(file.file_path, new_content, file.workspace_name)
    logger.info("Applied conflict markers to %s", file.file_path)
    return OriginalFileState(
        file_path=file.file_path,
        content=original,
        workspace_name=file.workspace_name,
        ai_content=file.content,
        proposed_content=new_content,
    )


def handle_conflict_markers(files: list[FileItem], workspace: WorkspaceContext) -> ReconciliationResult:
    """Merge conflict-marker edits; files without markers are replaced whole."""
    logger.info("Applying conflict markers to %d file(s)", len(files))
    return run_per_file(files, workspace, apply_conflict_file)


# ---------------------------------------------------------------------------
# Truncated content
# ---------------------------------------------------------------------------


def apply_truncated_file(file: FileItem, workspace: WorkspaceContext) -> OriginalFileState:
    source = _read_rename_source(file, workspace)
    if source is not None:
        new_content = process_truncated_content(file.content, source) if has_real_code(file.content) else source
        return _move_renamed(file, workspace, source, new_content)

    if not workspace.exists(file.file_path, file.workspace_name):
        raise FileNotFoundError(f"Cannot fill elided regions of missing file {file.file_path}")

    original = workspace.read(file.file_path, file.workspace_name)
    new_content = process_truncated_content(file.content, original)
    workspace.write(file.file_path, new_content, file.workspace_name)
    return OriginalFileState(
        file_path=file.file_path,
        content=original,
        workspace_name=file.workspace_name,
        ai_content=file.content,
        proposed_content=new_content,
    )


def handle_truncated_edit(files: list[FileItem], workspace: WorkspaceContext) -> ReconciliationResult:
    """Fill elision markers from existing files; missing files fail individually."""
    logger.info("Filling truncated content for %d file(s)", len(files))
    return run_per_file(files, workspace, apply_truncated_file)


# ---------------------------------------------------------------------------
# Fast replace
# ---------------------------------------------------------------------------


def apply_fast_replace_file(file: FileItem, workspace: WorkspaceContext) -> OriginalFileState:
    source = _read_rename_source(file, workspace)
    if source is not None:
        new_content = preserve_trailing_newline(source, file.content) if has_real_code(file.content) else source
        return _move_renamed(file, workspace, source, new_content)

    if not workspace.exists(file.file_path, file.workspace_name):
        return _create(file, workspace, file.content)
    return _replace(file, workspace)


def handle_fast_replace(files: list[FileItem], workspace: WorkspaceContext) -> ReconciliationResult:
    """Replace each file's content verbatim, creating files that do not exist."""
    logger.info("Replacing %d file(s)", len(files))
    return run_per_file(files, workspace, apply_fast_replace_file)
