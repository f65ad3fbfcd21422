"""Tests for edit-mode selection and whole-file reconciliation."""

from chat_apply.models import EditMode, FileItem, FileState
from chat_apply.reconcile import (
    WorkspaceContext,
    create_failed_file_state,
    handle_conflict_markers,
    handle_fast_replace,
    handle_truncated_edit,
    reconcile_file_items,
    select_edit_mode,
)

CONFLICT = "<<<<<<< SEARCH\nold\n=======\nnew\n>>>>>>> REPLACE"


def file_item(path: str, content: str, **kwargs) -> FileItem:
    return FileItem(file_path=path, content=content, **kwargs)


# ---------------------------------------------------------------------------
# Mode selection
# ---------------------------------------------------------------------------


class TestSelectEditMode:
    def test_conflict_markers_win(self):
        files = [file_item("a.ts", "x\n// ...\n"), file_item("b.ts", CONFLICT)]
        assert select_edit_mode(files) == EditMode.CONFLICT_MARKERS

    def test_elision_in_any_file(self):
        files = [file_item("a.ts", "x"), file_item("b.ts", "y\n# ...")]
        assert select_edit_mode(files) == EditMode.TRUNCATED

    def test_elided_blocks_select_truncated(self):
        assert select_edit_mode([file_item("a.ts", "x")], has_elided_blocks=True) == EditMode.TRUNCATED

    def test_fast_replace(self):
        assert select_edit_mode([file_item("a.ts", "x")]) == EditMode.FAST_REPLACE


# ---------------------------------------------------------------------------
# Fast replace
# ---------------------------------------------------------------------------


class TestFastReplace:
    def test_replaces_and_keeps_trailing_newline(self, workspace, workspace_root, write_file):
        write_file("a.ts", "old\n")
        result = handle_fast_replace([file_item("a.ts", "new")], workspace)
        assert result.success
        assert (workspace_root / "a.ts").read_text() == "new\n"
        (state,) = result.original_states
        assert state.content == "old\n"
        assert state.proposed_content == "new\n"
        assert state.ai_content == "new"

    def test_creates_missing_file(self, workspace, workspace_root):
        result = handle_fast_replace([file_item("src/new.ts", "x")], workspace)
        assert (workspace_root / "src/new.ts").read_text() == "x"
        assert result.original_states[0].file_state == FileState.NEW
        assert result.original_states[0].content == ""

    def test_deleted_file(self, workspace, workspace_root, write_file):
        write_file("gone.ts", "bye")
        result = handle_fast_replace([file_item("gone.ts", "", is_deleted=True)], workspace)
        assert not (workspace_root / "gone.ts").exists()
        assert result.original_states[0].file_state == FileState.DELETED
        assert result.original_states[0].content == "bye"

    def test_rename_without_content_moves_file(self, workspace, workspace_root, write_file):
        write_file("old.ts", "body\n")
        result = handle_fast_replace([file_item("new.ts", "", renamed_from="old.ts")], workspace)
        assert not (workspace_root / "old.ts").exists()
        assert (workspace_root / "new.ts").read_text() == "body\n"
        state = result.original_states[0]
        assert state.file_path == "new.ts"
        assert state.file_path_to_restore == "old.ts"
        assert state.content == "body\n"

    def test_rename_with_new_content(self, workspace, workspace_root, write_file):
        write_file("old.ts", "body\n")
        handle_fast_replace([file_item("new.ts", "changed", renamed_from="old.ts")], workspace)
        assert (workspace_root / "new.ts").read_text() == "changed\n"

    def test_unsafe_path_skipped(self, workspace):
        result = handle_fast_replace([file_item("../x.ts", "x")], workspace)
        assert result.success
        assert result.original_states == []
        assert result.failed_files == []

    def test_no_roots(self):
        result = handle_fast_replace([file_item("a.ts", "x")], WorkspaceContext({}))
        assert not result.success


# ---------------------------------------------------------------------------
# Conflict markers and truncated edits
# ---------------------------------------------------------------------------


class TestConflictMarkers:
    def test_applies_markers(self, workspace, workspace_root, write_file):
        write_file("a.ts", "line1\nold\nline3\n")
        result = handle_conflict_markers([file_item("a.ts", f"line1\n{CONFLICT}\nline3")], workspace)
        assert (workspace_root / "a.ts").read_text() == "line1\nnew\nline3\n"
        assert result.original_states[0].content == "line1\nold\nline3\n"

    def test_missing_file_gets_updated_side(self, workspace, workspace_root):
        handle_conflict_markers([file_item("n.ts", f"a\n{CONFLICT}")], workspace)
        assert (workspace_root / "n.ts").read_text() == "a\nnew"

    def test_failure_is_isolated(self, workspace, workspace_root, write_file):
        write_file("a.ts", "nothing to match\n")
        write_file("b.ts", "old\n")
        files = [file_item("a.ts", CONFLICT), file_item("b.ts", CONFLICT)]
        result = handle_conflict_markers(files, workspace)
        assert [f.file_path for f in result.failed_files] == ["a.ts"]
        assert [s.file_path for s in result.original_states] == ["b.ts"]
        assert (workspace_root / "b.ts").read_text() == "new\n"


class TestTruncatedEdit:
    def test_fills_elisions(self, workspace, workspace_root, write_file):
        write_file("a.ts", "import a\nmid\nend\n")
        handle_truncated_edit([file_item("a.ts", "import a\n// ...\nend")], workspace)
        assert (workspace_root / "a.ts").read_text() == "import a\nmid\nend\n"

    def test_missing_file_fails(self, workspace):
        result = handle_truncated_edit([file_item("missing.ts", "a\n// ...")], workspace)
        assert [f.file_path for f in result.failed_files] == ["missing.ts"]


# ---------------------------------------------------------------------------
# Batch entry point
# ---------------------------------------------------------------------------


class TestReconcileFileItems:
    def test_sets_mode_and_failed_states(self, workspace, write_file):
        write_file("a.ts", "unrelated\n")
        result = reconcile_file_items([file_item("a.ts", CONFLICT)], workspace)
        assert result.mode == EditMode.CONFLICT_MARKERS
        (failed,) = result.failed_states
        assert failed.apply_failed
        assert failed.content == "unrelated\n"
        assert failed.ai_content == CONFLICT
        assert result.all_states() == [failed]

    def test_no_roots(self):
        result = reconcile_file_items([file_item("a.ts", "x")], WorkspaceContext({}))
        assert not result.success
        assert result.mode is None

    def test_create_failed_file_state_for_missing_file(self, workspace):
        state = create_failed_file_state(file_item("nope.ts", "x"), workspace)
        assert state.content == ""
        assert state.apply_failed


class TestBatchBehaviour:
    def test_elision_file_replaced_whole_in_conflict_batch(self, workspace, workspace_root, write_file):
        write_file("a.ts", "old\n")
        write_file("b.ts", "b1\nb2\n")
        files = [file_item("a.ts", CONFLICT), file_item("b.ts", "b1\n// ...")]
        result = reconcile_file_items(files, workspace)
        assert result.mode == EditMode.CONFLICT_MARKERS
        assert (workspace_root / "a.ts").read_text() == "new\n"
        assert (workspace_root / "b.ts").read_text() == "b1\n// ...\n"

    def test_missing_file_in_truncated_batch(self, workspace, workspace_root, write_file):
        write_file("one.ts", "a\nb\n")
        write_file("three.ts", "x\ny\n")
        files = [
            file_item("one.ts", "a\n// ..."),
            file_item("two.ts", "p\n// ..."),
            file_item("three.ts", "// ...\ny"),
        ]
        result = reconcile_file_items(files, workspace)
        assert result.success
        assert result.mode == EditMode.TRUNCATED
        assert [s.file_path for s in result.original_states] == ["one.ts", "three.ts"]
        assert [f.file_path for f in result.failed_files] == ["two.ts"]
        assert (workspace_root / "one.ts").read_text() == "a\nb\n"
        assert (workspace_root / "three.ts").read_text() == "x\ny\n"
