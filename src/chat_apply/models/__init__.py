"""Data models for chat-apply."""

from chat_apply.models.item_models import (
    CompletionItem,
    DiffItem,
    FileItem,
    Item,
    RelevantFilesItem,
    TextItem,
)
from chat_apply.models.path_models import PathHint, PathHintSource, PathResolution
from chat_apply.models.state_models import (
    DiffApplicationMethod,
    EditMode,
    FileState,
    OriginalFileState,
    PatchApplyResult,
    ProcessedResponse,
    ReconciliationResult,
)

__all__ = [
    "CompletionItem",
    "DiffApplicationMethod",
    "DiffItem",
    "EditMode",
    "FileItem",
    "FileState",
    "Item",
    "OriginalFileState",
    "PatchApplyResult",
    "PathHint",
    "PathHintSource",
    "PathResolution",
    "ProcessedResponse",
    "ReconciliationResult",
    "RelevantFilesItem",
    "TextItem",
]
