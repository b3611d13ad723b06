"""Outline tree of an input document."""

from __future__ import annotations

from pydantic import BaseModel

from hitlens.models.errors import Diagnostic, Position


class OutlineParamItem(BaseModel):
    """A ``key = value`` line inside a block."""

    name: str
    value: str | None = None
    description: str = ""
    start: Position
    end: Position


class OutlineBlockItem(BaseModel):
    """An opened block: ``[Name]`` (level 1) or ``[./name]`` (level 2).

    ``end`` stays ``None`` until the matching close tag is seen or the block
    is force-closed.  ``inactive`` lists the children switched off by an
    ``active``/``inactive`` parameter.
    """

    name: str
    level: int
    description: str = ""
    start: Position
    end: Position | None = None
    children: list[OutlineBlockItem] = []
    parameters: list[OutlineParamItem] = []
    inactive: list[str] = []

    @property
    def header_end(self) -> Position:
        """End of the opening tag: ``[name]`` or ``[./name]``."""
        width = len(self.name) + (2 if self.level == 1 else 4)
        return Position(row=self.start.row, column=self.start.column + width)

    def find_parameter(self, name: str) -> OutlineParamItem | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


class AnalysisResult(BaseModel):
    """Outline plus every diagnostic from one full-document pass."""

    outline: list[OutlineBlockItem] = []
    errors: list[Diagnostic] = []


OutlineBlockItem.model_rebuild()
