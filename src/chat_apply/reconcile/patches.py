"""Recording the outcome of externally applied patches."""

import logging
from typing import Callable

from chat_apply.models import DiffItem, FileItem, PatchApplyResult, ReconciliationResult
from chat_apply.reconcile.exceptions import ReconciliationError, UnsafePathError
from chat_apply.reconcile.modes import create_failed_file_state
from chat_apply.reconcile.workspace import WorkspaceContext

logger = logging.getLogger(__name__)

PatchApplier = Callable[[DiffItem, WorkspaceContext], PatchApplyResult]


def reconcile_patches(
    patches: list[DiffItem],
    workspace: WorkspaceContext,
    apply_patch: PatchApplier,
) -> ReconciliationResult:
    """Hand each patch to ``apply_patch`` and annotate the states it returns.

    Successful states get the patch text as ``ai_content``, the fallback
    the applier reports as ``diff_application_method`` and, for renames,
    the target path as ``new_file_path``. Failed patches are reported in
    ``failed_files`` with an ``apply_failed`` state each.
    """
    if not workspace.has_roots:
        logger.error("No workspace root available, nothing applied")
        return ReconciliationResult(success=False)

    result = ReconciliationResult(success=True)
    for patch in patches:
        try:
            outcome = apply_patch(patch, workspace)
        except UnsafePathError as exc:
            logger.warning("Skipping patch for %s: %s", patch.file_path, exc)
            continue
        except (OSError, UnicodeError, ReconciliationError) as exc:
            logger.error("Patch for %s raised: %s", patch.file_path, exc)
            outcome = PatchApplyResult(success=False)

        if not outcome.success:
            failed = FileItem(file_path=patch.file_path, content=patch.content, workspace_name=patch.workspace_name)
            result.failed_files.append(failed)
            result.failed_states.append(create_failed_file_state(failed, workspace))
            continue

        if outcome.diff_application_method is not None:
            logger.info("Patch for %s applied with %s", patch.file_path, outcome.diff_application_method.value)
        for state in outcome.original_states:
            state.ai_content = state.ai_content or patch.content
            state.diff_application_method = outcome.diff_application_method
            if patch.new_file_path:
                state.new_file_path = patch.new_file_path
            result.original_states.append(state)
    return result
