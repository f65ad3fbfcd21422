"""Splicing a completion into its target file."""

from chat_apply.models import CompletionItem, FileItem
from chat_apply.reconcile.exceptions import CompletionError
from chat_apply.reconcile.workspace import WorkspaceContext


def insert_at_position(original: str, text: str, line: int, character: int) -> str:
    """Insert ``text`` at a 1-based line and character in ``original``.

    Raises:
        CompletionError: If the position lies outside the content.
    """
    lines = original.split("\n")
    if line < 1 or line > len(lines):
        raise CompletionError(f"Line {line} is outside a {len(lines)}-line file")
    target = lines[line - 1]
    if character < 1 or character > len(target) + 1:
        raise CompletionError(f"Character {character} is outside line {line}")
    column = character - 1
    lines[line - 1] = target[:column] + text + target[column:]
    return "\n".join(lines)


def apply_completion(item: CompletionItem, workspace: WorkspaceContext) -> FileItem:
    """Whole-file item holding the target's content with the completion inserted."""
    if not workspace.exists(item.file_path, item.workspace_name):
        raise CompletionError(f"Completion target {item.file_path} does not exist")
    original = workspace.read(item.file_path, item.workspace_name)
    return FileItem(
        file_path=item.file_path,
        workspace_name=item.workspace_name,
        content=insert_at_position(original, item.content, item.line, item.character),
    )
