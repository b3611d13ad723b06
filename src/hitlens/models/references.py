"""Definition/reference graph and cursor lookups."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from hitlens.models.errors import Position
from hitlens.models.syntax import ParamNode, SyntaxNode


class Definition(BaseModel):
    """The declaring occurrence of a named entity, keyed ``<Block>/<name>``."""

    key: str
    position: Position
    description: str = ""
    type: str | None = None
    file: str | None = None

    @property
    def identifier(self) -> str:
        return self.key.split("/", 1)[-1]

    @property
    def namespace(self) -> str:
        return self.key.split("/", 1)[0]


class ReferenceEntry(BaseModel):
    definition: Definition
    refs: list[Position] = []


class TokenKind(StrEnum):
    BLOCK = "block"
    SUBBLOCK = "subblock"
    TYPE = "type"
    PARAMETER = "parameter"
    VALUE = "value"


class CursorMatch(BaseModel):
    """The token under the cursor and what it resolves to.

    ``refs`` is always empty; it is reserved for the reference-to-definition
    direction.
    """

    kind: TokenKind
    path: list[str]
    start: Position
    end: Position
    description: str = ""
    syntax_node: SyntaxNode | None = None
    param: ParamNode | None = None
    definition: Definition | None = None
    refs: list[Position] = []
