"""Resolve the block path that applies at a cursor position."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field

from hitlens.document.accessor import DocumentAccessor
from hitlens.document.lexer import strip_comment
from hitlens.models.errors import Position

_BLOCK_TAG = re.compile(r"^\s*\[([^\]]*)\]")
_BLOCK_TYPE = re.compile(r"^\s*type\s*=\s*([^#\s]+)")


@dataclass
class CursorContext:
    """Effective block path at a cursor and the ``type`` chosen for that block."""

    config_path: list[str] = field(default_factory=list)
    explicit_type: str | None = None


@dataclass
class _TypeLine:
    name: str
    config: list[str] = field(default_factory=list)


def normalize_path(segments: list[str]) -> list[str]:
    """Collapse ``.``/``..`` tag segments: ``Kernels/./a/../`` -> ``Kernels``."""
    if not segments:
        return []
    joined = posixpath.normpath("/".join(segments))
    return [part for part in joined.split("/") if part and part != "."]


def resolve_config_path(doc: DocumentAccessor, position: Position) -> CursorContext:
    """Scan upward from *position* collecting block tags until a top-level tag.

    A ``[]`` close tag, or reaching the top of the document without one,
    means the cursor is outside every block.  ``type = X`` lines met on the
    way count as the explicit type only when they belong to the block the
    cursor ends up in.
    """
    config_path: list[str] = []
    types: list[_TypeLine] = []
    row = position.row
    line = strip_comment(doc.get_text_in_range(Position(row=row, column=0), position))

    while True:
        tag = _BLOCK_TAG.match(line)
        if tag is not None:
            content = tag.group(1).split("/")
            if content == [""]:
                return CursorContext()
            config_path[:0] = content
            for type_line in types:
                type_line.config[:0] = content
            if content[0] not in (".", ".."):
                break
        elif (type_match := _BLOCK_TYPE.match(line)) is not None:
            types.append(_TypeLine(name=type_match.group(1)))

        row -= 1
        if row < 0:
            return CursorContext()
        line = strip_comment(doc.get_text_for_row(row))

    config_path = normalize_path(config_path)
    explicit_type = None
    for type_line in types:
        if normalize_path(type_line.config) == config_path:
            explicit_type = type_line.name
    return CursorContext(config_path=config_path, explicit_type=explicit_type)
