"""Models describing where a file path was found and how it resolves."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class PathResolution(BaseModel):
    """A raw path split into an optional workspace qualifier and a relative path."""

    model_config = ConfigDict(frozen=True)

    workspace_name: str | None = None
    relative_path: str


class PathHintSource(str, Enum):
    """Where a file-path hint for a code block was found."""

    FENCE_INFO = "fence_info"  # ```ts src/app.ts
    XML_WRAPPER = "xml_wrapper"  # <file path="..."> inside the block
    LEADING_COMMENT = "leading_comment"  # // src/app.ts as the block's first line
    HEADING = "heading"  # ### src/app.ts above the block
    COMMENT_LINE = "comment_line"  # // src/app.ts above the block
    XML_TAG_LINE = "xml_tag_line"  # <file path="..."> above the block
    BACKTICK_PATH = "backtick_path"  # `src/app.ts` above the block
    LONE_PATH = "lone_path"  # src/app.ts alone on a line above the block


class PathHint(BaseModel):
    """A file path found near or inside a code block."""

    model_config = ConfigDict(frozen=False)

    source: PathHintSource
    raw_path: str
    line_index: int  # Index into the response lines, or into the block body
    is_new: bool = False
