"""Workspace roots and the file-system seam used by reconciliation."""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from chat_apply.reconcile.exceptions import UnsafePathError, WorkspaceError

logger = logging.getLogger(__name__)


@runtime_checkable
class FileSystem(Protocol):
    """Read/write access to files, supplied by the caller."""

    def read_text(self, path: Path) -> str:
        """Return the file's text with line endings untouched."""

    def write_text(self, path: Path, content: str) -> None:
        """Create or overwrite the file, creating parent directories."""

    def exists(self, path: Path) -> bool:
        """Return True if the path is an existing file."""

    def delete(self, path: Path) -> None:
        """Remove the file."""


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def read_text(self, path: Path) -> str:
        with open(path, encoding="utf-8", newline="") as handle:
            return handle.read()

    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def delete(self, path: Path) -> None:
        path.unlink()


class WorkspaceContext:
    """Named workspace roots plus the file system used to reach them.

    Args:
        roots: Mapping of workspace name to root directory. The first entry
            is the default root for items without a workspace name.
        file_system: File access implementation (local disk by default).
        apply_writes: When False, writes and deletes are logged and skipped.
    """

    def __init__(
        self,
        roots: dict[str, str | Path],
        file_system: FileSystem | None = None,
        apply_writes: bool = True,
    ):
        self.roots = {name: Path(root) for name, root in roots.items()}
        self.file_system = file_system or LocalFileSystem()
        self.apply_writes = apply_writes

    @property
    def has_roots(self) -> bool:
        return bool(self.roots)

    @property
    def is_single_root(self) -> bool:
        return len(self.roots) <= 1

    def root_for(self, workspace_name: str | None = None) -> Path:
        """Root directory for a workspace name, falling back to the default root."""
        if not self.roots:
            raise WorkspaceError("No workspace roots configured")
        if workspace_name and workspace_name in self.roots:
            return self.roots[workspace_name]
        if workspace_name:
            logger.debug("Unknown workspace %r, using default root", workspace_name)
        return next(iter(self.roots.values()))

    def resolve(self, file_path: str, workspace_name: str | None = None) -> Path:
        """Absolute path of ``file_path`` inside its workspace root.

        Raises:
            UnsafePathError: If the path is absolute, contains ``..`` or
                otherwise resolves outside the root.
        """
        relative = Path(file_path)
        if relative.is_absolute() or ".." in relative.parts:
            raise UnsafePathError(f"Refusing path outside workspace: {file_path}")
        root = self.root_for(workspace_name).resolve()
        resolved = (root / relative).resolve()
        if not resolved.is_relative_to(root):
            raise UnsafePathError(f"Refusing path outside workspace: {file_path}")
        return resolved

    def exists(self, file_path: str, workspace_name: str | None = None) -> bool:
        return self.file_system.exists(self.resolve(file_path, workspace_name))

    def read(self, file_path: str, workspace_name: str | None = None) -> str:
        return self.file_system.read_text(self.resolve(file_path, workspace_name))

    def write(self, file_path: str, content: str, workspace_name: str | None = None) -> None:
        path = self.resolve(file_path, workspace_name)
        if not self.apply_writes:
            logger.info("Dry run: would write %s", path)
            return
        self.file_system.write_text(path, content)

    def delete(self, file_path: str, workspace_name: str | None = None) -> None:
        path = self.resolve(file_path, workspace_name)
        if not self.apply_writes:
            logger.info("Dry run: would delete %s", path)
            return
        self.file_system.delete(path)
