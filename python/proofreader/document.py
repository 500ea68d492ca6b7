"""
Plain-text host document: the editor-side service the proofreading core
reads from and writes to.

Offsets are absolute string indices. Line/column positions are zero-based,
with ``ch`` counted in characters from the start of the line.
"""

import re
from bisect import bisect_right
from pathlib import Path
from typing import List, NamedTuple, Optional

import structlog

from proofreader.models import Scope

logger = structlog.get_logger(__name__)

# Leading YAML metadata block: '---' line, anything, closing '---' line.
_FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(?:.*?\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


class Position(NamedTuple):
    line: int
    ch: int


class TextDocument:
    def __init__(self, text: str, identity: Optional[str] = None, path: Optional[Path] = None):
        self.path = path
        self.identity = identity or (str(path.resolve()) if path else f"untitled-{id(self)}")
        self.cursor = 0
        self.version = 0
        self._text = text
        self._line_starts = _compute_line_starts(text)

    @classmethod
    def from_path(cls, path: Path) -> "TextDocument":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, "r", encoding="utf-8", newline="") as f:
            return cls(f.read(), path=path)

    def save(self, path: Optional[Path] = None) -> Path:
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError("Document has no path; pass one to save().")
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(self._text)
        return target

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    # --- Reading & writing ---

    def read(self, scope: Scope) -> str:
        self._check_range(scope.start, scope.end)
        return self._text[scope.start : scope.end]

    def replace(self, scope: Scope, new_text: str) -> Scope:
        """Replaces the scope's text; returns the scope now covering ``new_text``."""
        self.replace_range(scope.start, scope.end, new_text)
        return scope.shifted(len(new_text))

    def replace_range(self, start: int, end: int, new_text: str):
        self._check_range(start, end)
        self._text = self._text[:start] + new_text + self._text[end:]
        self._line_starts = _compute_line_starts(self._text)
        self.version += 1
        logger.debug("Document updated", identity=self.identity, start=start, end=end, length=len(new_text))

    # --- Coordinates ---

    def offset_to_pos(self, offset: int) -> Position:
        self._check_range(offset, offset)
        line = bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])

    def pos_to_offset(self, pos: Position) -> int:
        if pos.line < 0 or pos.line >= len(self._line_starts):
            raise ValueError(f"Line {pos.line} is out of range (document has {len(self._line_starts)} lines)")
        start, end = self._line_bounds(pos.line)
        return min(start + max(pos.ch, 0), end)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def get_line(self, line: int) -> str:
        start, end = self._line_bounds(line)
        return self._text[start:end]

    # --- Scopes ---

    def body_start(self) -> int:
        """Offset just after a leading front-matter block (0 if there is none)."""
        match = _FRONTMATTER.match(self._text)
        return match.end() if match else 0

    def body_scope(self) -> Scope:
        return Scope(self.body_start(), len(self._text), "Document")

    def line_scope(self, line: int) -> Scope:
        start, end = self._line_bounds(line)
        return Scope(start, end, "Paragraph")

    def selection_scope(self, start: int, end: int) -> Scope:
        start, end = min(start, end), max(start, end)
        self._check_range(start, end)
        return Scope(start, end, "Selection")

    def scope_for(self, cursor: int, selection: Optional[Scope] = None) -> Scope:
        """The selection if it is non-empty, otherwise the cursor's line."""
        if selection is not None and selection.end > selection.start:
            return selection
        return self.line_scope(self.offset_to_pos(cursor).line)

    # --- Internals ---

    def _line_bounds(self, line: int):
        if line < 0 or line >= len(self._line_starts):
            raise ValueError(f"Line {line} is out of range (document has {len(self._line_starts)} lines)")
        start = self._line_starts[line]
        if line + 1 < len(self._line_starts):
            end = self._line_starts[line + 1] - 1
            if end > start and self._text[end - 1] == "\r":
                end -= 1
        else:
            end = len(self._text)
        return start, end

    def _check_range(self, start: int, end: int):
        if start < 0 or end > len(self._text) or start > end:
            raise ValueError(f"Range [{start}, {end}) is outside the document (length {len(self._text)})")


def _compute_line_starts(text: str) -> List[int]:
    starts = [0]
    for match in re.finditer("\n", text):
        starts.append(match.end())
    return starts
