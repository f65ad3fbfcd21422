"""Unit tests for the CLI module (chat_apply.cli.main)."""

from __future__ import annotations

import io
import json
import pytest
from unittest.mock import patch, MagicMock

from chat_apply.cli.main import (
    build_parser,
    determine_exit_code,
    format_result_json,
    main,
    parse_workspace_args,
    EXIT_SUCCESS,
    EXIT_INVALID_INPUT,
    EXIT_PARSE_ERROR,
    EXIT_RECONCILE_ERROR,
    EXIT_PARTIAL_FAILURE,
    EXIT_UNEXPECTED,
    EXIT_KEYBOARD_INTERRUPT,
)
from chat_apply.models import FileItem, ProcessedResponse, ReconciliationResult, TextItem
from chat_apply.parsing import ParsingError
from chat_apply.reconcile import ReconciliationError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_response(tmp_path, text: str) -> str:
    path = tmp_path / "response.md"
    path.write_text(text, encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# TestBuildParser
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_parse_command(self):
        args = build_parser().parse_args(["parse", "r.md", "--multi-root", "--output-json"])
        assert args.command == "parse"
        assert args.multi_root
        assert args.output_json

    def test_apply_command_repeats_workspace(self):
        args = build_parser().parse_args(
            ["apply", "r.md", "--workspace", "a=/x", "--workspace", "b=/y", "--dry-run", "--verbose"]
        )
        assert args.workspace == ["a=/x", "b=/y"]
        assert args.dry_run
        assert args.verbose

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ---------------------------------------------------------------------------
# TestHelpers
# ---------------------------------------------------------------------------

class TestParseWorkspaceArgs:
    def test_named_and_bare_paths(self, tmp_path):
        named = tmp_path / "one"
        bare = tmp_path / "two"
        named.mkdir()
        bare.mkdir()
        roots = parse_workspace_args([f"web={named}", str(bare)])
        assert list(roots) == ["web", "two"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            parse_workspace_args([f"web={tmp_path / 'missing'}"])
        assert excinfo.value.code == EXIT_INVALID_INPUT


class TestFormatResultJson:
    def test_serializes_models_and_lists(self):
        output = format_result_json({"items": [TextItem(content="hi")], "result": None})
        assert json.loads(output) == {"items": [{"type": "text", "content": "hi"}], "result": None}


class TestDetermineExitCode:
    def test_nothing_applied(self):
        assert determine_exit_code(ProcessedResponse()) == EXIT_SUCCESS

    def test_batch_failure(self):
        processed = ProcessedResponse(result=ReconciliationResult(success=False))
        assert determine_exit_code(processed) == EXIT_RECONCILE_ERROR

    def test_partial_failure(self):
        result = ReconciliationResult(success=True, failed_files=[FileItem(file_path="a", content="")])
        assert determine_exit_code(ProcessedResponse(result=result)) == EXIT_PARTIAL_FAILURE


# ---------------------------------------------------------------------------
# TestMain
# ---------------------------------------------------------------------------

class TestMainParse:
    def test_parse_json(self, tmp_path, capsys):
        response = _write_response(tmp_path, "Intro\n```ts src/a.ts\nx\n```")
        assert main(["parse", response, "--output-json"]) == EXIT_SUCCESS
        items = json.loads(capsys.readouterr().out)["items"]
        assert [item["type"] for item in items] == ["text", "file"]
        assert items[1]["file_path"] == "src/a.ts"

    def test_parse_human(self, tmp_path, capsys):
        response = _write_response(tmp_path, "```ts src/a.ts\nx\n```")
        assert main(["parse", response]) == EXIT_SUCCESS
        assert "file: src/a.ts" in capsys.readouterr().out

    def test_parse_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("**Relevant files:**\n- a.py"))
        assert main(["parse", "-"]) == EXIT_SUCCESS
        assert "relevant files: a.py" in capsys.readouterr().out

    def test_missing_response_file(self, tmp_path, capsys):
        assert main(["parse", str(tmp_path / "none.md")]) == EXIT_INVALID_INPUT
        assert "not a readable file" in capsys.readouterr().err


class TestMainApply:
    def test_apply_writes_file(self, tmp_path, workspace_root):
        (workspace_root / "a.ts").write_text("old\n")
        response = _write_response(tmp_path, "```ts a.ts\nnew\n```")
        assert main(["apply", response, "--workspace", f"app={workspace_root}"]) == EXIT_SUCCESS
        assert (workspace_root / "a.ts").read_text() == "new\n"

    def test_dry_run(self, tmp_path, workspace_root, capsys):
        (workspace_root / "a.ts").write_text("old\n")
        response = _write_response(tmp_path, "```ts a.ts\nnew\n```")
        assert main(["apply", response, "--workspace", str(workspace_root), "--dry-run"]) == EXIT_SUCCESS
        assert (workspace_root / "a.ts").read_text() == "old\n"
        out = capsys.readouterr().out
        assert "(dry run)" in out
        assert "+new" in out

    def test_partial_failure(self, tmp_path, workspace_root):
        (workspace_root / "a.ts").write_text("unrelated\n")
        markers = "<<<<<<< SEARCH\nold\n=======\nnew\n>>>>>>> REPLACE"
        response = _write_response(tmp_path, f"```ts a.ts\n{markers}\n```")
        assert main(["apply", response, "--workspace", str(workspace_root)]) == EXIT_PARTIAL_FAILURE

    def test_json_output(self, tmp_path, workspace_root, capsys):
        response = _write_response(tmp_path, "```ts n.ts\nx\n```")
        assert main(["apply", response, "--workspace", str(workspace_root), "--output-json"]) == EXIT_SUCCESS
        payload = json.loads(capsys.readouterr().out)
        assert payload["result"]["mode"] == "fast_replace"
        assert payload["result"]["original_states"][0]["file_state"] == "new"

    def test_workspace_required(self, tmp_path):
        response = _write_response(tmp_path, "text")
        assert main(["apply", response]) == EXIT_INVALID_INPUT


class TestMainErrors:
    def _run_with(self, tmp_path, workspace_root, side_effect):
        response = _write_response(tmp_path, "text")
        processor = MagicMock()
        processor.process.side_effect = side_effect
        with patch("chat_apply.cli.main.ResponseProcessor", return_value=processor):
            return main(["apply", response, "--workspace", str(workspace_root)])

    def test_reconciliation_error(self, tmp_path, workspace_root, capsys):
        code = self._run_with(tmp_path, workspace_root, ReconciliationError("no applier"))
        assert code == EXIT_RECONCILE_ERROR
        assert "Reconciliation error: no applier" in capsys.readouterr().err

    def test_parsing_error(self, tmp_path, workspace_root):
        assert self._run_with(tmp_path, workspace_root, ParsingError("bad")) == EXIT_PARSE_ERROR

    def test_keyboard_interrupt(self, tmp_path, workspace_root):
        assert self._run_with(tmp_path, workspace_root, KeyboardInterrupt()) == EXIT_KEYBOARD_INTERRUPT

    def test_unexpected_error(self, tmp_path, workspace_root):
        assert self._run_with(tmp_path, workspace_root, RuntimeError("boom")) == EXIT_UNEXPECTED
