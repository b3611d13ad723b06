"""Pydantic data models produced and consumed by hitlens."""

from hitlens.models.completion import (
    BlockCompletion,
    ClosingCompletion,
    Completion,
    InsertText,
    ParameterCompletion,
    TypeCompletion,
    ValueCompletion,
)
from hitlens.models.errors import Correction, Diagnostic, DiagnosticType, Position
from hitlens.models.outline import AnalysisResult, OutlineBlockItem, OutlineParamItem
from hitlens.models.references import CursorMatch, Definition, ReferenceEntry, TokenKind
from hitlens.models.syntax import NodeMatch, NodeMetadata, ParamNode, SyntaxNode

__all__ = [
    "AnalysisResult",
    "BlockCompletion",
    "ClosingCompletion",
    "Completion",
    "Correction",
    "CursorMatch",
    "Definition",
    "Diagnostic",
    "DiagnosticType",
    "InsertText",
    "NodeMatch",
    "NodeMetadata",
    "OutlineBlockItem",
    "OutlineParamItem",
    "ParamNode",
    "ParameterCompletion",
    "Position",
    "ReferenceEntry",
    "SyntaxNode",
    "TokenKind",
    "TypeCompletion",
    "ValueCompletion",
]
