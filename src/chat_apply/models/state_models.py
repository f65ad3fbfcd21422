"""Models for reconciliation results handed back to callers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chat_apply.models.item_models import FileItem, Item


class FileState(str, Enum):
    """Lifecycle marker for a file touched by a response."""

    NEW = "new"
    DELETED = "deleted"


class DiffApplicationMethod(str, Enum):
    """Fallback a patch-application collaborator reports having used."""

    RECOUNT = "recount"
    SEARCH_AND_REPLACE = "search_and_replace"


class EditMode(str, Enum):
    """Strategy chosen for a batch of whole-file items."""

    CONFLICT_MARKERS = "conflict_markers"
    TRUNCATED = "truncated"
    FAST_REPLACE = "fast_replace"


class OriginalFileState(BaseModel):
    """Pre-change snapshot of one file affected by a response."""

    model_config = ConfigDict(frozen=False)

    file_path: str
    content: str  # On-disk content before the change, empty for new files
    workspace_name: str | None = None
    ai_content: str | None = None  # Raw content from the response
    proposed_content: str | None = None  # Content after reconciliation
    file_state: FileState | None = None
    diff_application_method: DiffApplicationMethod | None = None
    apply_failed: bool = False
    file_path_to_restore: str | None = None  # Rename source to recreate on undo
    new_file_path: str | None = None  # Rename target reported by a patch


class ReconciliationResult(BaseModel):
    """Outcome of reconciling a batch of items against the workspace."""

    model_config = ConfigDict(frozen=False)

    success: bool
    mode: EditMode | None = None
    original_states: list[OriginalFileState] = Field(default_factory=list)
    failed_files: list[FileItem] = Field(default_factory=list)
    failed_states: list[OriginalFileState] = Field(default_factory=list)

    def all_states(self) -> list[OriginalFileState]:
        """Return successful states followed by failed ones."""
        return [*self.original_states, *self.failed_states]


class PatchApplyResult(BaseModel):
    """Result contract of an external patch-application collaborator."""

    model_config = ConfigDict(frozen=False)

    success: bool
    original_states: list[OriginalFileState] = Field(default_factory=list)
    diff_application_method: DiffApplicationMethod | None = None


class ProcessedResponse(BaseModel):
    """Parsed items of a response together with the outcome of applying them."""

    model_config = ConfigDict(frozen=False)

    items: list[Item] = Field(default_factory=list)
    result: ReconciliationResult | None = None  # None when nothing was applied
