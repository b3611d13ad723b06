"""Line-level tokens of the bracket-delimited input dialect."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from hitlens.document.accessor import DocumentAccessor

_OPEN_TOP = re.compile(r"\[([^./\]][^/\]]*)\]")
_CLOSE_TOP = re.compile(r"\[\]")
_OPEN_SUB = re.compile(r"\[\./([^./\]][^/\]]*)\]")
_CLOSE_SUB = re.compile(r"\[\.\./\]")
_PARAM = re.compile(r"([^\s=\[\]#]+)\s*=\s*(.*)")
_VALUE_TOKEN = re.compile(r"[^\s'\"]+")


class LineType(StrEnum):
    OPEN_TOP = "open_top"
    CLOSE_TOP = "close_top"
    OPEN_SUB = "open_sub"
    CLOSE_SUB = "close_sub"
    PARAM = "param"
    COMMENT = "comment"
    BLANK = "blank"
    OTHER = "other"


@dataclass
class LineToken:
    """One classified line.

    ``indent`` is the column of the first content character and ``end`` the
    column just past the last one, with any comment removed.
    """

    type: LineType
    row: int
    indent: int
    end: int
    name: str | None = None
    name_start: int | None = None
    value: str | None = None
    value_start: int | None = None

    @property
    def is_tag(self) -> bool:
        return self.type in (
            LineType.OPEN_TOP,
            LineType.CLOSE_TOP,
            LineType.OPEN_SUB,
            LineType.CLOSE_SUB,
        )


def strip_comment(line: str) -> str:
    return line.split("#", 1)[0]


def lex_line(row: int, line: str) -> LineToken:
    content = strip_comment(line).rstrip()
    stripped = content.lstrip()
    indent = len(content) - len(stripped)
    end = len(content)

    if not stripped:
        if line.strip():
            comment_at = len(line) - len(line.lstrip())
            return LineToken(LineType.COMMENT, row, comment_at, len(line.rstrip()))
        return LineToken(LineType.BLANK, row, 0, 0)

    if match := _OPEN_TOP.match(stripped):
        return LineToken(
            LineType.OPEN_TOP, row, indent, end, name=match.group(1), name_start=indent + 1
        )
    if _CLOSE_TOP.match(stripped):
        return LineToken(LineType.CLOSE_TOP, row, indent, end)
    if match := _OPEN_SUB.match(stripped):
        return LineToken(
            LineType.OPEN_SUB, row, indent, end, name=match.group(1), name_start=indent + 3
        )
    if _CLOSE_SUB.match(stripped):
        return LineToken(LineType.CLOSE_SUB, row, indent, end)
    if match := _PARAM.fullmatch(stripped):
        value = match.group(2).strip() or None
        return LineToken(
            LineType.PARAM,
            row,
            indent,
            end,
            name=match.group(1),
            name_start=indent,
            value=value,
            value_start=indent + match.start(2) if value is not None else None,
        )
    return LineToken(LineType.OTHER, row, indent, end)


def lex_document(doc: DocumentAccessor) -> Iterator[LineToken]:
    for row in range(doc.get_line_count()):
        yield lex_line(row, doc.get_text_for_row(row))


def unquote(value: str | None) -> str:
    if value is None:
        return ""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value.strip("'\"")


def value_tokens(token: LineToken) -> list[tuple[str, int]]:
    """Split a parameter value into whitespace-separated words with their columns."""
    if token.value is None or token.value_start is None:
        return []
    return [
        (match.group(0), token.value_start + match.start())
        for match in _VALUE_TOKEN.finditer(token.value)
    ]
