"""Single-pass segmentation of a response into ordered items.

The Segmenter walks the response line by line as a small state machine:
``TEXT`` collects prose, ``FENCE`` collects the body of a triple-backtick
block (tracking nested fences), and ``XML`` collects the body of a
top-level ``<file path="...">`` element. Each closed block is classified
as a patch, a whole file, or prose that merely contains a code sample.
"""

import logging
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chat_apply.models import DiffItem, FileItem, PathHint, PathHintSource, TextItem
from chat_apply.parsing.exceptions import PathResolutionError
from chat_apply.parsing.markers import expand_ellipsis_conflicts, has_real_code
from chat_apply.parsing.patch_splitter import split_patches
from chat_apply.parsing.path_hints import (
    REMOVABLE_PROSE_SOURCES,
    find_path_before_block,
    find_path_inside_block,
    is_new_file_tag,
    match_xml_file_tag,
)
from chat_apply.parsing.paths import resolve_workspace_path

logger = logging.getLogger(__name__)

DIFF_LANGUAGES = frozenset({"diff", "patch"})
DIFF_SNIFF_LINES = 5

_RENAMED_FILE_RE = re.compile(r"^#{2,6}\s+Renamed file:\s*`([^`]+)`.*?`([^`]+)`", re.IGNORECASE)
_DELETED_FILE_RE = re.compile(r"^#{2,6}\s+Deleted file:\s*`([^`]+)`\s*$", re.IGNORECASE)
_LANGUAGE_SPLIT_RE = re.compile(r"[:\s{]")


class SegmenterState(str, Enum):
    """Scanner states of the Segmenter."""

    TEXT = "text"
    FENCE = "fence"
    XML = "xml"


class CodeBlock(BaseModel):
    """A fenced or XML-wrapped block collected by the Segmenter."""

    model_config = ConfigDict(frozen=False)

    start: int  # Line index of the opening fence or tag
    end: int = -1  # Line index of the closing line, len(lines) if unclosed
    info: str = ""  # Text after the opening backticks
    body: list[str] = Field(default_factory=list)
    nesting: int = 1
    xml_tag: str | None = None
    xml_path: str | None = None
    xml_is_new: bool = False

    @property
    def language(self) -> str:
        return _LANGUAGE_SPLIT_RE.split(self.info.strip(), maxsplit=1)[0].lower()

    @property
    def is_diff_tagged(self) -> bool:
        return self.language in DIFF_LANGUAGES

    def raw_lines(self, lines: list[str]) -> list[str]:
        """The block as written, fences included."""
        return lines[self.start:min(self.end + 1, len(lines))]


def looks_like_diff(body: list[str]) -> bool:
    """Return True if the first non-blank lines carry diff headers."""
    sniffed = [line for line in body if line.strip()][:DIFF_SNIFF_LINES]
    for index, line in enumerate(sniffed):
        if line.startswith("diff --git "):
            return True
        if line.startswith("--- ") and index + 1 < len(sniffed) and sniffed[index + 1].startswith("+++ "):
            return True
    return False


def strip_cdata(lines: list[str]) -> list[str]:
    """Return the lines inside a ``<![CDATA[ ... ]]>`` section, if any."""
    start = next((i for i, line in enumerate(lines) if line.strip().startswith("<![CDATA[")), -1)
    end = next(
        (i for i in range(len(lines) - 1, -1, -1) if lines[i].rstrip().endswith("]]>")), -1
    )
    if start == -1 or end == -1 or end < start:
        return lines

    if start == end:
        inner = lines[start].strip()[len("<![CDATA["):]
        return [inner[: -len("]]>")]]

    head = lines[start].strip()[len("<![CDATA["):]
    tail = lines[end].rstrip()[: -len("]]>")]
    result = [head] if head.strip() else []
    result.extend(lines[start + 1:end])
    if tail.strip():
        result.append(tail)
    return result


def strip_markdown_code_block(content: str) -> str:
    """Remove one fence wrapped around the whole of ``content``."""
    trimmed = content.strip()
    lines = trimmed.split("\n")
    if len(lines) >= 2 and lines[0].strip().startswith("```") and lines[-1].strip() == "```":
        return "\n".join(lines[1:-1])
    return trimmed


def new_file_diff_content(file_path: str, content: str) -> str:
    """Patch text that creates ``file_path`` with ``content``."""
    body = content.split("\n")
    added = [f"+{line}" for line in body]
    return "\n".join(["--- /dev/null", f"+++ b/{file_path}", f"@@ -0,0 +1,{len(body)} @@", *added]) + "\n"


class Segmenter:
    """Turn one response into ordered Text, File and Diff items.

    Args:
        response: Response text with ``\\n`` line endings.
        is_single_root: Whether the workspace has a single root folder.
    """

    def __init__(self, response: str, is_single_root: bool = True):
        self.lines = response.split("\n")
        self.is_single_root = is_single_root
        self.state = SegmenterState.TEXT
        self.items: list[TextItem | FileItem | DiffItem] = []
        self.elided_paths: list[str] = []  # files whose block held only elision markers
        self._prose: list[tuple[int, str]] = []
        self._files: dict[tuple[str, str], FileItem] = {}
        self._diffs: dict[tuple[str, str], DiffItem] = {}
        self._floor = 0

    def run(self) -> list[TextItem | FileItem | DiffItem]:
        block: CodeBlock | None = None
        for index, line in enumerate(self.lines):
            if self.state == SegmenterState.TEXT:
                block = self._scan_text(index, line)
            elif self.state == SegmenterState.FENCE:
                if self._scan_fence(block, index, line):
                    block = None
            elif self.state == SegmenterState.XML:
                if self._scan_xml(block, index, line):
                    block = None

        if block is not None:
            logger.debug("Closing unterminated block opened at line %d", block.start)
            block.end = len(self.lines)
            self._close_block(block)

        self._flush_prose()
        self._resolve_mixed_items()
        return self.items

    # ------------------------------------------------------------------
    # Scanner states
    # ------------------------------------------------------------------

    def _scan_text(self, index: int, line: str) -> CodeBlock | None:
        stripped = line.strip()
        if stripped.startswith("```"):
            self.state = SegmenterState.FENCE
            return CodeBlock(start=index, info=stripped[3:].strip())

        xml_tag = match_xml_file_tag(line)
        if xml_tag:
            tag, path = xml_tag
            self.state = SegmenterState.XML
            return CodeBlock(
                start=index,
                xml_tag=tag,
                xml_path=path,
                xml_is_new=is_new_file_tag(line),
            )

        renamed = _RENAMED_FILE_RE.match(stripped)
        deleted = _DELETED_FILE_RE.match(stripped)
        if renamed or deleted:
            try:
                for raw_path in (renamed or deleted).groups():
                    resolve_workspace_path(raw_path, self.is_single_root)
            except PathResolutionError as exc:
                logger.info("Ignoring file heading: %s", exc)
            else:
                self._flush_prose()
                if renamed:
                    self._register_file(renamed.group(2), "", renamed_from=renamed.group(1))
                else:
                    self._register_file(deleted.group(1), "", is_deleted=True)
                    self._floor = index + 1
                return None

        self._prose.append((index, line))
        return None

    def _scan_fence(self, block: CodeBlock, index: int, line: str) -> bool:
        """Feed one line to an open fence; return True once it is closed."""
        stripped = line.strip()
        if block.is_diff_tagged and line[:1] in ("+", "-", " ") and stripped.startswith("```"):
            block.body.append(line)
            return False
        if stripped.startswith("```"):
            if stripped == "```":
                block.nesting -= 1
                if block.nesting == 0:
                    block.end = index
                    self._close_block(block)
                    return True
            else:
                block.nesting += 1
        block.body.append(line)
        return False

    def _scan_xml(self, block: CodeBlock, index: int, line: str) -> bool:
        if line.strip().startswith(f"</{block.xml_tag}>"):
            block.end = index
            self._close_block(block)
            return True
        block.body.append(line)
        return False

    # ------------------------------------------------------------------
    # Block classification
    # ------------------------------------------------------------------

    def _close_block(self, block: CodeBlock) -> None:
        self.state = SegmenterState.TEXT
        if block.xml_tag is not None:
            handled = self._close_xml_block(block)
        else:
            handled = self._close_fence_block(block)

        if not handled:
            self._prose.extend(
                (block.start + offset, raw) for offset, raw in enumerate(block.raw_lines(self.lines))
            )
        self._floor = block.end + 1

    def _close_xml_block(self, block: CodeBlock) -> bool:
        content = strip_markdown_code_block("\n".join(strip_cdata(block.body)))
        hint = PathHint(
            source=PathHintSource.XML_TAG_LINE,
            raw_path=block.xml_path,
            line_index=block.start,
            is_new=block.xml_is_new,
        )
        lines = content.split("\n")
        if looks_like_diff(lines) or lines[0].startswith("@@"):
            return self._emit_diffs(lines, hint, from_prose=False)
        return self._emit_file(hint, content, from_prose=False)

    def _close_fence_block(self, block: CodeBlock) -> bool:
        body = list(block.body)
        hint = find_path_inside_block(block.info, body)
        from_prose = False
        if hint is not None and hint.source == PathHintSource.XML_WRAPPER:
            body = self._unwrap_xml(body, hint.line_index)
        elif hint is not None and hint.source == PathHintSource.LEADING_COMMENT:
            del body[hint.line_index]
        elif hint is None:
            hint = find_path_before_block(self.lines, block.start, self._floor)
            from_prose = hint is not None

        if block.is_diff_tagged or looks_like_diff(body):
            return self._emit_diffs(body, hint, from_prose)

        if hint is None:
            logger.debug("Block at line %d has no file path, keeping it as text", block.start)
            return False
        return self._emit_file(hint, "\n".join(body), from_prose)

    @staticmethod
    def _unwrap_xml(body: list[str], tag_index: int) -> list[str]:
        tag_line = body[tag_index].strip()
        tag = tag_line[1:].split()[0]
        close = next(
            (i for i in range(len(body) - 1, tag_index, -1) if body[i].strip().startswith(f"</{tag}>")),
            len(body),
        )
        return strip_cdata(body[tag_index + 1:close])

    # ------------------------------------------------------------------
    # Item construction
    # ------------------------------------------------------------------

    def _emit_diffs(self, body: list[str], hint: PathHint | None, from_prose: bool) -> bool:
        patches = split_patches(body, self.is_single_root, fallback_hint=hint)
        if not patches:
            logger.info("Diff block yielded no usable patches, keeping it as text")
            return False
        self._consume_hint(hint, from_prose)
        self._flush_prose()
        for patch in patches:
            existing = self._diffs.get(patch.key)
            if existing is not None:
                existing.content += patch.content
                if patch.new_file_path and not existing.new_file_path:
                    existing.new_file_path = patch.new_file_path
                continue
            self._diffs[patch.key] = patch
            self.items.append(patch)
        return True

    def _emit_file(self, hint: PathHint, content: str, from_prose: bool) -> bool:
        try:
            resolution = resolve_workspace_path(hint.raw_path, self.is_single_root)
        except PathResolutionError as exc:
            logger.info("Dropping file block: %s", exc)
            return False
        if not has_real_code(content):
            logger.debug("Block for %s holds only elision markers, keeping it as text", hint.raw_path)
            self.elided_paths.append(resolution.relative_path)
            return False
        self._consume_hint(hint, from_prose)
        self._flush_prose()
        self._register_file(hint.raw_path, content)
        return True

    def _register_file(
        self,
        raw_path: str,
        content: str,
        renamed_from: str | None = None,
        is_deleted: bool = False,
    ) -> None:
        """Add a FileItem, or merge into an earlier one with the same key."""
        resolution = resolve_workspace_path(raw_path, self.is_single_root)
        content = expand_ellipsis_conflicts(content)
        item = FileItem(
            file_path=resolution.relative_path,
            workspace_name=resolution.workspace_name,
            content=content,
            is_deleted=is_deleted,
        )
        if renamed_from:
            item.renamed_from = resolve_workspace_path(renamed_from, self.is_single_root).relative_path

        existing = self._files.get(item.key)
        if existing is None:
            self._files[item.key] = item
            self.items.append(item)
            return

        if not existing.content:
            existing.content = content
        elif content:
            existing.content = f"{existing.content}\n\n{content}"
        existing.renamed_from = existing.renamed_from or item.renamed_from
        existing.is_deleted = existing.is_deleted or is_deleted

    def _consume_hint(self, hint: PathHint | None, from_prose: bool) -> None:
        if hint is None or not from_prose or hint.source not in REMOVABLE_PROSE_SOURCES:
            return
        self._prose = [(index, line) for index, line in self._prose if index != hint.line_index]

    def _flush_prose(self) -> None:
        text = "\n".join(line for _, line in self._prose).strip()
        self._prose = []
        if not text:
            return
        if self.items and isinstance(self.items[-1], TextItem):
            self.items[-1].content = f"{self.items[-1].content}\n\n{text}"
        else:
            self.items.append(TextItem(content=text))

    def _resolve_mixed_items(self) -> None:
        """Let patches win over whole-file content in a response that has both.

        A file item for a path that also has a patch is dropped. Other file
        items with content become new-file patches; rename and delete
        placeholders without content are kept for the reconciliation layer.
        """
        if not self._diffs:
            return
        resolved: list[TextItem | FileItem | DiffItem] = []
        for item in self.items:
            if not isinstance(item, FileItem):
                resolved.append(item)
            elif item.key in self._diffs:
                logger.info("Dropping whole-file content for %s in favour of its patch", item.file_path)
            elif item.content and not item.is_deleted and not item.renamed_from:
                resolved.append(
                    DiffItem(
                        file_path=item.file_path,
                        workspace_name=item.workspace_name,
                        content=new_file_diff_content(item.file_path, item.content),
                    )
                )
            else:
                resolved.append(item)
        self.items = resolved


def segment(response: str, is_single_root: bool = True) -> list[TextItem | FileItem | DiffItem]:
    """Split a response into ordered Text, File and Diff items."""
    return Segmenter(response, is_single_root).run()
