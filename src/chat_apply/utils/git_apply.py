"""Applying patches to a workspace with ``git apply``."""

import logging
import subprocess

from chat_apply.models import (
    DiffApplicationMethod,
    DiffItem,
    FileState,
    OriginalFileState,
    PatchApplyResult,
)
from chat_apply.parsing.diff_headers import DEV_NULL, extract_paths_from_lines
from chat_apply.reconcile.workspace import WorkspaceContext

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 30


class GitPatchApplier:
    """Patch-application collaborator backed by the ``git apply`` command.

    A patch is first checked strictly. If that fails it is retried with
    ``--recount``, which ignores the line counts in hunk headers; success
    on that attempt is reported as the ``recount`` method.

    Args:
        git_executable: Name or path of the git binary.
        timeout: Seconds to wait for each git invocation.
    """

    def __init__(self, git_executable: str = "git", timeout: int = DEFAULT_GIT_TIMEOUT):
        self.git_executable = git_executable
        self.timeout = timeout

    def _run(self, args: list[str], patch_text: str, cwd: str) -> subprocess.CompletedProcess:
        command = [self.git_executable, "apply", *args]
        try:
            return subprocess.run(
                command,
                input=patch_text.encode("utf-8"),
                cwd=cwd,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("git apply timed out after %ss", self.timeout)
            return subprocess.CompletedProcess(command, 1, b"", b"timed out")

    def __call__(self, patch: DiffItem, workspace: WorkspaceContext) -> PatchApplyResult:
        root = str(workspace.root_for(patch.workspace_name).resolve())
        target = workspace.resolve(patch.file_path, patch.workspace_name)
        patch_text = patch.content if patch.content.endswith("\n") else patch.content + "\n"

        from_path, to_path = extract_paths_from_lines(patch_text.split("\n"))
        file_state = None
        if from_path == DEV_NULL:
            file_state = FileState.NEW
        elif to_path == DEV_NULL:
            file_state = FileState.DELETED

        original = ""
        if file_state != FileState.NEW and workspace.file_system.exists(target):
            original = workspace.file_system.read_text(target)

        method = None
        extra_args: list[str] = []
        check = self._run(["--check"], patch_text, root)
        if check.returncode != 0:
            logger.info("Strict apply failed for %s: %s", patch.file_path, check.stderr.decode("utf-8", "replace").strip())
            check = self._run(["--check", "--recount"], patch_text, root)
            if check.returncode != 0:
                logger.warning("Patch for %s does not apply: %s", patch.file_path, check.stderr.decode("utf-8", "replace").strip())
                return PatchApplyResult(success=False)
            method = DiffApplicationMethod.RECOUNT
            extra_args = ["--recount"]

        if not workspace.apply_writes:
            logger.info("Dry run: patch for %s would apply", patch.file_path)
            proposed = None
        else:
            applied = self._run(extra_args, patch_text, root)
            if applied.returncode != 0:
                logger.warning("git apply failed for %s: %s", patch.file_path, applied.stderr.decode("utf-8", "replace").strip())
                return PatchApplyResult(success=False)
            if file_state == FileState.DELETED:
                proposed = ""
            else:
                proposed = workspace.read(patch.file_path, patch.workspace_name)
            if patch.new_file_path:
                workspace.write(patch.new_file_path, proposed, patch.workspace_name)
                workspace.delete(patch.file_path, patch.workspace_name)
                logger.info("Moved %s to %s", patch.file_path, patch.new_file_path)

        state = OriginalFileState(
            file_path=patch.file_path,
            content=original,
            workspace_name=patch.workspace_name,
            file_state=file_state,
            proposed_content=proposed,
        )
        return PatchApplyResult(success=True, original_states=[state], diff_application_method=method)
