"""CLI entry point for chat-apply."""
import argparse
from dotenv import load_dotenv
import json
import logging
import os
import sys
import traceback
from pathlib import Path

from chat_apply.models import ProcessedResponse, TextItem
from chat_apply.parsing import ParsingError, parse_response
from chat_apply.reconcile import ReconciliationError, ResponseProcessor, WorkspaceContext
from chat_apply.utils import GitPatchApplier, diff_for_state

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_PARSE_ERROR = 2
EXIT_RECONCILE_ERROR = 3
EXIT_PARTIAL_FAILURE = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

# Defaults
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVEL_ENV_VAR = "CHAT_APPLY_LOG_LEVEL"
DEFAULT_WORKSPACE_NAME = "workspace"


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chat-apply",
        description="Parse chat-model code-editing responses and apply them to a workspace",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", help="Enable verbose output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser(
        "parse", parents=[common], help="Print the items found in a response"
    )
    parse_cmd.add_argument("response", type=str, help="Response file, or - for stdin")
    parse_cmd.add_argument(
        "--multi-root",
        action="store_true",
        help="Treat the first path segment as a workspace name",
    )
    parse_cmd.add_argument("--output-json", action="store_true", help="Output items as JSON")

    apply_cmd = subparsers.add_parser(
        "apply", parents=[common], help="Apply a response to workspace files"
    )
    apply_cmd.add_argument("response", type=str, help="Response file, or - for stdin")
    apply_cmd.add_argument(
        "--workspace",
        action="append",
        default=[],
        metavar="NAME=PATH",
        help=(
            "Workspace root; repeat for multi-root workspaces. The first one is "
            "the default root. A bare PATH is named after its directory."
        ),
    )
    apply_cmd.add_argument(
        "--dry-run", action="store_true", help="Compute changes and print diffs without writing"
    )
    apply_cmd.add_argument("--output-json", action="store_true", help="Output results as JSON")
    return parser


def configure_logging(verbose: bool) -> None:
    """Configure root logging from --verbose or the CHAT_APPLY_LOG_LEVEL variable."""
    level_name = "DEBUG" if verbose else os.getenv(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def parse_workspace_args(raw_values: list[str]) -> dict[str, str]:
    """Turn ``NAME=PATH`` (or bare ``PATH``) values into a roots mapping.

    Raises:
        SystemExit: If a path is not an existing directory.
    """
    roots: dict[str, str] = {}
    for raw in raw_values:
        name, sep, path = raw.partition("=")
        if not sep:
            path = raw
            name = Path(raw).resolve().name or DEFAULT_WORKSPACE_NAME
        resolved = Path(path).resolve()
        if not resolved.is_dir():
            print(f"Error: '{path}' is not a valid directory.", file=sys.stderr)
            raise SystemExit(EXIT_INVALID_INPUT)
        roots[name] = str(resolved)
    return roots


def read_response(source: str) -> str:
    """Read the response text from a file path or ``-`` for stdin.

    Raises:
        SystemExit: If the file cannot be read.
    """
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.is_file():
        print(f"Error: '{source}' is not a readable file.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return path.read_text(encoding="utf-8")


def format_result_json(result: dict) -> str:
    """Serialize result dict to JSON string.

    Calls .model_dump() on Pydantic model values (and lists of them).
    Falls back to str() for other non-serializable types via default=str.
    """

    def _serialize(obj):
        if obj is None:
            return None
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        if isinstance(obj, list):
            return [_serialize(item) for item in obj]
        return obj

    prepared = {k: _serialize(v) for k, v in result.items()}
    return json.dumps(prepared, indent=2, default=str)


def print_items_human(items: list) -> None:
    """Print parsed items in human-readable format."""
    print(f"\n{'='*60}")
    print(f"Parsed items ({len(items)})")
    print(f"{'='*60}")
    for index, item in enumerate(items, start=1):
        if isinstance(item, TextItem):
            preview = item.content.splitlines()[0] if item.content else ""
            print(f"{index:>3}. text: {preview[:70]}")
        elif item.type == "relevant-files":
            print(f"{index:>3}. relevant files: {', '.join(item.file_paths)}")
        else:
            location = f"{item.workspace_name}:{item.file_path}" if item.workspace_name else item.file_path
            extra = ""
            if item.type == "diff" and item.new_file_path:
                extra = f" -> {item.new_file_path}"
            elif item.type == "completion":
                extra = f" @ {item.line}:{item.character}"
            elif item.type == "file" and item.is_deleted:
                extra = " (deleted)"
            elif item.type == "file" and item.renamed_from:
                extra = f" (renamed from {item.renamed_from})"
            print(f"{index:>3}. {item.type}: {location}{extra}")
    print(f"{'='*60}")


def print_processed_human(processed: ProcessedResponse, dry_run: bool) -> None:
    """Print reconciliation results in human-readable format."""
    print(f"\n{'='*60}")
    print("Chat Apply Results" + (" (dry run)" if dry_run else ""))
    print(f"{'='*60}")

    result = processed.result
    if result is None:
        print("\nNothing to apply.")
        print(f"\n{'='*60}")
        return

    if result.mode is not None:
        print(f"\nMode: {result.mode.value}")
    print(f"Applied: {len(result.original_states)}")
    for state in result.original_states:
        marker = f" [{state.file_state.value}]" if state.file_state else ""
        method = f" ({state.diff_application_method.value})" if state.diff_application_method else ""
        print(f"  - {state.file_path}{marker}{method}")
        if dry_run:
            preview = diff_for_state(state)
            if preview:
                print(preview)

    if result.failed_files:
        print(f"\nFailed ({len(result.failed_files)}):")
        for file in result.failed_files:
            print(f"  - {file.file_path}")

    print(f"\n{'='*60}")


def determine_exit_code(processed: ProcessedResponse) -> int:
    """Determine the exit code from a processed response."""
    result = processed.result
    if result is None:
        return EXIT_SUCCESS
    if not result.success:
        return EXIT_RECONCILE_ERROR
    if result.failed_files:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def _run_parse(args: argparse.Namespace, response: str) -> int:
    items = parse_response(response, is_single_root=not args.multi_root)
    if args.output_json:
        print(format_result_json({"items": items}))
    else:
        print_items_human(items)
    return EXIT_SUCCESS


def _run_apply(args: argparse.Namespace, response: str) -> int:
    roots = parse_workspace_args(args.workspace)
    if not roots:
        print("Error: at least one --workspace is required.", file=sys.stderr)
        return EXIT_INVALID_INPUT

    workspace = WorkspaceContext(roots, apply_writes=not args.dry_run)
    processor = ResponseProcessor(workspace, apply_patch=GitPatchApplier())
    processed = processor.process(response)

    if args.output_json:
        print(format_result_json({"items": processed.items, "result": processed.result}))
    else:
        print_processed_human(processed, args.dry_run)
    return determine_exit_code(processed)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        response = read_response(args.response)
        if args.command == "parse":
            return _run_parse(args, response)
        return _run_apply(args, response)

    except SystemExit as exc:
        return exc.code

    except ParsingError as exc:
        return _handle_error("Parsing error", exc, args.verbose, EXIT_PARSE_ERROR)

    except ReconciliationError as exc:
        return _handle_error("Reconciliation error", exc, args.verbose, EXIT_RECONCILE_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)
