"""Tests for the Segmenter state machine."""

from chat_apply.models import DiffItem, FileItem, TextItem
from chat_apply.parsing import Segmenter, segment
from chat_apply.parsing.segmenter import (
    CodeBlock,
    looks_like_diff,
    new_file_diff_content,
    strip_cdata,
    strip_markdown_code_block,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_looks_like_diff(self):
        assert looks_like_diff(["", "--- a/x", "+++ b/x"])
        assert looks_like_diff(["diff --git a/x b/x"])
        assert not looks_like_diff(["--- not a header", "text"])

    def test_strip_cdata(self):
        assert strip_cdata(["<![CDATA[", "a", "]]>"]) == ["a"]
        assert strip_cdata(["<![CDATA[a]]>"]) == ["a"]
        assert strip_cdata(["a", "b"]) == ["a", "b"]

    def test_strip_markdown_code_block(self):
        assert strip_markdown_code_block("```ts\nx\n```") == "x"
        assert strip_markdown_code_block("x\ny") == "x\ny"

    def test_new_file_diff_content(self):
        assert new_file_diff_content("b.ts", "x\ny") == (
            "--- /dev/null\n+++ b/b.ts\n@@ -0,0 +1,2 @@\n+x\n+y\n"
        )

    def test_code_block_language(self):
        assert CodeBlock(start=0, info="diff").is_diff_tagged
        assert CodeBlock(start=0, info="ts:src/a.ts").language == "ts"
        assert not CodeBlock(start=0, info="").is_diff_tagged


# ---------------------------------------------------------------------------
# Ordering and prose
# ---------------------------------------------------------------------------


class TestOrdering:
    """Items come out in the order they appear."""

    def test_text_and_files_interleave(self):
        response = "\n".join([
            "Intro text.",
            "",
            "```ts src/a.ts",
            "const a = 1;",
            "```",
            "",
            "Middle text.",
            "",
            "```py",
            "# src/b.py",
            "x = 1",
            "```",
            "",
            "Outro.",
        ])
        items = segment(response)
        assert [type(i) for i in items] == [TextItem, FileItem, TextItem, FileItem, TextItem]
        assert items[0].content == "Intro text."
        assert items[1].file_path == "src/a.ts"
        assert items[1].content == "const a = 1;"
        assert items[3].file_path == "src/b.py"
        assert items[3].content == "x = 1"
        assert items[4].content == "Outro."

    def test_non_edit_block_stays_in_text(self):
        response = "Run this:\n```bash\nnpm install\n```\nDone."
        items = segment(response)
        assert len(items) == 1
        assert isinstance(items[0], TextItem)
        assert items[0].content == response

    def test_heading_hint_removed_from_text(self):
        items = segment("### src/app.ts\n```ts\nconst a = 1;\n```")
        assert len(items) == 1
        assert items[0].file_path == "src/app.ts"

    def test_elision_only_block_kept_as_text(self):
        response = "### src/a.ts\n```ts\n// ...\n```"
        items = segment(response)
        assert len(items) == 1
        assert isinstance(items[0], TextItem)
        assert items[0].content == response

    def test_elision_only_block_records_path(self):
        segmenter = Segmenter("### src/a.ts\n```ts\n// ...\n```")
        segmenter.run()
        assert segmenter.elided_paths == ["src/a.ts"]

    def test_elision_snippet_without_path_not_recorded(self):
        segmenter = Segmenter("For example:\n```ts\n// ...\nregister(app)\n```")
        (item,) = segmenter.run()
        assert isinstance(item, TextItem)
        assert segmenter.elided_paths == []

    def test_unterminated_block_is_closed(self):
        items = segment("```ts src/a.ts\nconst a = 1;")
        assert items[0].content == "const a = 1;"


# ---------------------------------------------------------------------------
# Fences
# ---------------------------------------------------------------------------


class TestFences:
    def test_nested_fence_in_file(self):
        response = "```md README.md\n# Title\n```bash\nnpm i\n```\n```"
        (item,) = segment(response)
        assert item.file_path == "README.md"
        assert item.content == "# Title\n```bash\nnpm i\n```"

    def test_fence_lines_inside_diff_block(self):
        response = "\n".join([
            "```diff",
            "--- a/README.md",
            "+++ b/README.md",
            "@@ -1,3 +1,3 @@",
            " ```py",
            "-a",
            "+b",
            " ```",
            "```",
        ])
        (item,) = segment(response)
        assert isinstance(item, DiffItem)
        assert item.content.endswith(" ```py\n-a\n+b\n ```\n")

    def test_duplicate_files_merged(self):
        response = "```ts src/a.ts\nline1\n```\n```ts src/a.ts\nline2\n```"
        (item,) = segment(response)
        assert item.content == "line1\n\nline2"

    def test_duplicate_diffs_concatenated(self):
        patch = "--- a/a.ts\n+++ b/a.ts\n@@ -1 +1 @@\n-a\n+b"
        (item,) = segment(f"```diff\n{patch}\n```\n```diff\n{patch}\n```")
        assert item.content == f"{patch}\n{patch}\n"

    def test_separately_fenced_diffs_for_two_files(self):
        response = "\n".join([
            "A",
            "```diff",
            "--- a/x.ts",
            "+++ b/x.ts",
            "@@ -1 +1 @@",
            "-a",
            "+b",
            "```",
            "B",
            "```diff",
            "--- a/y.ts",
            "+++ b/y.ts",
            "@@ -1 +1 @@",
            "-c",
            "+d",
            "```",
            "C",
        ])
        items = segment(response)
        assert [type(i) for i in items] == [TextItem, DiffItem, TextItem, DiffItem, TextItem]
        assert [i.content for i in items[::2]] == ["A", "B", "C"]
        assert items[1].file_path == "x.ts"
        assert items[1].content == "--- a/x.ts\n+++ b/x.ts\n@@ -1 +1 @@\n-a\n+b\n"
        assert items[3].file_path == "y.ts"
        assert items[3].content == "--- a/y.ts\n+++ b/y.ts\n@@ -1 +1 @@\n-c\n+d\n"


# ---------------------------------------------------------------------------
# XML blocks
# ---------------------------------------------------------------------------


class TestXmlBlocks:
    def test_cdata_file(self):
        response = '<file path="src/a.ts">\n<![CDATA[\nconst a = 1;\n]]>\n</file>'
        (item,) = segment(response)
        assert isinstance(item, FileItem)
        assert item.file_path == "src/a.ts"
        assert item.content == "const a = 1;"

    def test_new_file_hunks(self):
        response = '<file path="src/n.ts" new="true">\n@@ -0,0 +1 @@\n+x\n</file>'
        (item,) = segment(response)
        assert isinstance(item, DiffItem)
        assert item.content == "--- /dev/null\n+++ b/src/n.ts\n@@ -0,0 +1 @@\n+x\n"


# ---------------------------------------------------------------------------
# Renames, deletions and mixed responses
# ---------------------------------------------------------------------------


class TestFileHeadings:
    def test_rename_heading_with_block(self):
        response = "### Renamed file: `old.ts` → `new.ts`\n```ts\nconst a = 1;\n```"
        (item,) = segment(response)
        assert item.file_path == "new.ts"
        assert item.renamed_from == "old.ts"
        assert item.content == "const a = 1;"

    def test_deleted_heading(self):
        items = segment("Cleanup:\n### Deleted file: `old.ts`\n")
        assert isinstance(items[0], TextItem)
        assert items[0].content == "Cleanup:"
        assert items[1].file_path == "old.ts"
        assert items[1].is_deleted

    def test_deleted_heading_is_not_a_hint(self):
        items = segment("### Deleted file: `old.ts`\n```ts\nconst a = 1;\n```")
        assert len(items) == 2
        assert items[0].is_deleted
        assert isinstance(items[1], TextItem)


class TestMixedResponses:
    def test_patch_wins_and_other_files_become_new_file_patches(self):
        response = "\n".join([
            "```diff",
            "--- a/a.ts",
            "+++ b/a.ts",
            "@@ -1 +1 @@",
            "-a",
            "+b",
            "```",
            "```ts a.ts",
            "whole",
            "```",
            "```ts b.ts",
            "x",
            "```",
        ])
        items = segment(response)
        assert [type(i) for i in items] == [DiffItem, DiffItem]
        assert items[0].file_path == "a.ts"
        assert items[1].file_path == "b.ts"
        assert items[1].content == "--- /dev/null\n+++ b/b.ts\n@@ -0,0 +1,1 @@\n+x\n"


class TestMultiRoot:
    def test_workspace_from_first_segment(self):
        (item,) = Segmenter("```ts frontend/src/index.ts\nx\n```", is_single_root=False).run()
        assert item.workspace_name == "frontend"
        assert item.file_path == "src/index.ts"
