"""Facade tying response parsing to reconciliation."""

import logging

from chat_apply.models import (
    CompletionItem,
    DiffItem,
    EditMode,
    FileItem,
    ProcessedResponse,
    ReconciliationResult,
    RelevantFilesItem,
)
from chat_apply.parsing import parse_response_with_elided_paths
from chat_apply.reconcile.completion import apply_completion
from chat_apply.reconcile.exceptions import ReconciliationError
from chat_apply.reconcile.handlers import handle_fast_replace
from chat_apply.reconcile.modes import create_failed_file_state, reconcile_file_items
from chat_apply.reconcile.patches import PatchApplier, reconcile_patches
from chat_apply.reconcile.workspace import WorkspaceContext

logger = logging.getLogger(__name__)


def _merge_results(first: ReconciliationResult, second: ReconciliationResult) -> ReconciliationResult:
    return ReconciliationResult(
        success=first.success and second.success,
        mode=second.mode or first.mode,
        original_states=[*first.original_states, *second.original_states],
        failed_files=[*first.failed_files, *second.failed_files],
        failed_states=[*first.failed_states, *second.failed_states],
    )


class ResponseProcessor:
    """Parse a response and apply its edits to a workspace.

    Args:
        workspace: Roots and file system the edits apply to.
        apply_patch: Collaborator that applies one patch on disk. Required
            only for responses that contain diffs.
    """

    def __init__(self, workspace: WorkspaceContext, apply_patch: PatchApplier | None = None):
        self.workspace = workspace
        self.apply_patch = apply_patch

    def process(self, response: str) -> ProcessedResponse:
        items, elided_paths = parse_response_with_elided_paths(response, self.workspace.is_single_root)
        completions = [item for item in items if isinstance(item, CompletionItem)]
        diffs = [item for item in items if isinstance(item, DiffItem)]
        files = [item for item in items if isinstance(item, FileItem)]

        if any(isinstance(item, RelevantFilesItem) for item in items):
            logger.info("Response is a relevant-files list, nothing to apply")
            return ProcessedResponse(items=items)

        if not self.workspace.has_roots:
            logger.error("No workspace root available, nothing applied")
            return ProcessedResponse(items=items, result=ReconciliationResult(success=False))

        if completions:
            return ProcessedResponse(items=items, result=self._apply_completion(completions[0]))

        if diffs:
            if self.apply_patch is None:
                raise ReconciliationError("Response contains patches but no patch applier was given")
            result = reconcile_patches(diffs, self.workspace, self.apply_patch)
            if files:
                result = _merge_results(result, reconcile_file_items(files, self.workspace))
            return ProcessedResponse(items=items, result=result)

        if files:
            return ProcessedResponse(items=items, result=reconcile_file_items(files, self.workspace, bool(elided_paths)))

        logger.info("Response holds no edits")
        return ProcessedResponse(items=items)

    def _apply_completion(self, item: CompletionItem) -> ReconciliationResult:
        try:
            file = apply_completion(item, self.workspace)
        except (OSError, UnicodeError, ReconciliationError) as exc:
            logger.error("Failed to apply completion to %s: %s", item.file_path, exc)
            failed = FileItem(file_path=item.file_path, content=item.content, workspace_name=item.workspace_name)
            return ReconciliationResult(
                success=True,
                failed_files=[failed],
                failed_states=[create_failed_file_state(failed, self.workspace)],
            )
        result = handle_fast_replace([file], self.workspace)
        result.mode = EditMode.FAST_REPLACE
        result.failed_states = [create_failed_file_state(f, self.workspace) for f in result.failed_files]
        return result
