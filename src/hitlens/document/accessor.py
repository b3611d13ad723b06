"""The text-buffer interface the analysis engine reads documents through."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from hitlens.models.errors import Position


@runtime_checkable
class DocumentAccessor(Protocol):
    """A text buffer addressed by rows and columns.

    Editor integrations wrap their own document type in this interface; the
    engine never touches storage or editor APIs directly.
    """

    def get_path(self) -> str: ...

    def get_line_count(self) -> int: ...

    def get_text_for_row(self, row: int) -> str: ...

    def get_text_in_range(self, start: Position, end: Position) -> str: ...


@dataclass
class TextDocument:
    """In-memory ``DocumentAccessor`` over a plain string."""

    text: str = ""
    path: str = "<string>"

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")

    def get_path(self) -> str:
        return self.path

    def get_line_count(self) -> int:
        return len(self.lines)

    def get_text_for_row(self, row: int) -> str:
        lines = self.lines
        if 0 <= row < len(lines):
            return lines[row]
        return ""

    def get_text_in_range(self, start: Position, end: Position) -> str:
        if end < start:
            raise ValueError(f"range end {end.as_tuple()} is before start {start.as_tuple()}")
        lines = self.lines
        if start.row >= len(lines):
            return ""
        if start.row == end.row:
            return lines[start.row][start.column : end.column]
        out = [lines[start.row][start.column :]]
        out.extend(lines[start.row + 1 : end.row])
        if end.row < len(lines):
            out.append(lines[end.row][: end.column])
        return "\n".join(out)
