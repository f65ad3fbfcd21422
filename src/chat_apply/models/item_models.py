"""Models for the ordered items produced by parsing a chat response."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TextItem(BaseModel):
    """Prose outside any recognized edit block."""

    model_config = ConfigDict(frozen=False)

    type: Literal["text"] = "text"
    content: str


class FileItem(BaseModel):
    """Full replacement content for one file."""

    model_config = ConfigDict(frozen=False)

    type: Literal["file"] = "file"
    file_path: str
    content: str
    workspace_name: str | None = None
    renamed_from: str | None = None  # Source path of a "Renamed file" heading
    is_deleted: bool = False  # Set by a "Deleted file" heading

    @property
    def key(self) -> tuple[str, str]:
        return (self.workspace_name or "", self.file_path)


class DiffItem(BaseModel):
    """One canonical unified-diff patch.

    For renames ``file_path`` is the pre-image path and ``new_file_path``
    carries the post-image path.
    """

    model_config = ConfigDict(frozen=False)

    type: Literal["diff"] = "diff"
    file_path: str
    content: str
    workspace_name: str | None = None
    new_file_path: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.workspace_name or "", self.file_path)


class CompletionItem(BaseModel):
    """Text to splice into a file at a single cursor location.

    ``line`` and ``character`` are 1-based, as written by the model.
    """

    model_config = ConfigDict(frozen=False)

    type: Literal["completion"] = "completion"
    file_path: str
    content: str
    line: int
    character: int
    workspace_name: str | None = None


class RelevantFilesItem(BaseModel):
    """List of files the model considers relevant to the request."""

    model_config = ConfigDict(frozen=False)

    type: Literal["relevant-files"] = "relevant-files"
    file_paths: list[str] = Field(default_factory=list)


Item = Annotated[
    Union[TextItem, FileItem, DiffItem, CompletionItem, RelevantFilesItem],
    Field(discriminator="type"),
]
