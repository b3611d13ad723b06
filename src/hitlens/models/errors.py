"""Structured diagnostic models with document position tracking."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, model_validator


class Position(BaseModel):
    """Zero-based location in a document: ``row`` is the line, ``column`` the character."""

    row: int
    column: int

    model_config = {"frozen": True}

    def __lt__(self, other: Position) -> bool:
        return (self.row, self.column) < (other.row, other.column)

    def __le__(self, other: Position) -> bool:
        return (self.row, self.column) <= (other.row, other.column)

    def as_tuple(self) -> tuple[int, int]:
        return (self.row, self.column)


class DiagnosticType(StrEnum):
    CLOSURE = "closure"
    DUPLICATION = "duplication"
    DBCHECK = "dbcheck"
    REFCHECK = "refcheck"
    FORMAT = "format"


class Correction(BaseModel):
    """An automatic fix: replace the diagnostic's span, or insert text around it."""

    replace: str | None = None
    insertion_before: str | None = None
    insertion_after: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> Correction:
        given = [
            v for v in (self.replace, self.insertion_before, self.insertion_after) if v is not None
        ]
        if len(given) != 1:
            raise ValueError("a correction carries exactly one of replace/insertion_before/insertion_after")
        return self


class Diagnostic(BaseModel):
    """A structural, schema, reference or formatting problem found in a document."""

    type: DiagnosticType
    start: Position
    end: Position
    msg: str
    correction: Correction | None = None
