"""Schema types: the block/parameter grammar dumped by the simulation application."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ParamNode(BaseModel):
    """A parameter accepted by a schema block."""

    name: str
    required: bool = False
    default: str | None = None
    structural_type: str = Field("", alias="cpp_type")
    group_name: str | None = None
    description: str = ""
    options: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("required", mode="before")
    @classmethod
    def _coerce_required(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("yes", "true", "1")
        return bool(value)

    @field_validator("default", "options", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, bool):
            return "1" if value else "0"
        return str(value)

    @field_validator("structural_type", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def option_list(self) -> list[str]:
        return self.options.split() if self.options else []


class SyntaxNode(BaseModel):
    """A block in the schema tree.

    ``name`` is the slash-separated schema path with a leading slash
    (``/Kernels/*``).  A ``None`` sub-block list marks a leaf, such as the
    node of a concrete object type; an empty list is a block that may hold
    sub-blocks but has none registered.
    """

    name: str
    description: str = ""
    parameters: list[ParamNode] = []
    subblocks: list[SyntaxNode] | None = None
    source_file: str | None = Field(None, alias="file")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("parameters", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def path(self) -> str:
        return self.name.lstrip("/")

    @property
    def segments(self) -> list[str]:
        return self.path.split("/")

    @property
    def children(self) -> list[SyntaxNode]:
        return self.subblocks or []


class NodeMatch(BaseModel):
    """A schema node matched against a concrete config path."""

    node: SyntaxNode
    fuzz: int
    fuzzy_on_last: bool


class NodeMetadata(BaseModel):
    """Supplementary per-node data from the secondary (JSON) schema source."""

    description: str | None = None
    register_file: str | None = None


SyntaxNode.model_rebuild()
