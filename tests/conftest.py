from pathlib import Path

import pytest

from chat_apply.reconcile import WorkspaceContext


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture
def workspace(workspace_root):
    return WorkspaceContext({"app": workspace_root})


@pytest.fixture
def write_file(workspace_root):
    """Create a file under the workspace root, making parent directories."""

    def _write(relative_path: str, content: str) -> Path:
        path = workspace_root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path

    return _write


@pytest.fixture
def multi_root(tmp_path):
    """Two named roots: frontend (default) and backend."""
    frontend = tmp_path / "frontend"
    backend = tmp_path / "backend"
    frontend.mkdir()
    backend.mkdir()
    return WorkspaceContext({"frontend": frontend, "backend": backend})
