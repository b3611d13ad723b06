"""Completion items, discriminated by ``kind``."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class InsertText(BaseModel):
    type: Literal["text", "snippet"] = "text"
    value: str


class _CompletionBase(BaseModel):
    display_text: str
    insert_text: InsertText
    description: str = ""
    replacement_prefix: str = ""


class BlockCompletion(_CompletionBase):
    """A block name inside ``[...]``, or a declared sub-block name offered as a value."""

    kind: Literal["block"] = "block"


class ClosingCompletion(_CompletionBase):
    """The ``[../]`` sub-block close shortcut."""

    kind: Literal["closing"] = "closing"


class ParameterCompletion(_CompletionBase):
    kind: Literal["parameter"] = "parameter"
    required: bool = False


class TypeCompletion(_CompletionBase):
    """An object type valid for ``type =``, or the ``type`` parameter name itself."""

    kind: Literal["type"] = "type"


class ValueCompletion(_CompletionBase):
    kind: Literal["value"] = "value"


Completion = Annotated[
    BlockCompletion | ClosingCompletion | ParameterCompletion | TypeCompletion | ValueCompletion,
    Field(discriminator="kind"),
]
