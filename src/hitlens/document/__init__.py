"""Analysis of input documents: outline, diagnostics, completion and references."""

from hitlens.document.accessor import DocumentAccessor, TextDocument
from hitlens.document.completion import CompletionEngine
from hitlens.document.context import CursorContext, resolve_config_path
from hitlens.document.formatter import DocumentFormatter, apply_corrections
from hitlens.document.outline import OutlineAssessor, OutlineParser
from hitlens.document.references import (
    DefinitionExtractor,
    MaterialExtractor,
    ReferenceResolver,
    SubBlockNameExtractor,
)

__all__ = [
    "CompletionEngine",
    "CursorContext",
    "DefinitionExtractor",
    "DocumentAccessor",
    "DocumentFormatter",
    "MaterialExtractor",
    "OutlineAssessor",
    "OutlineParser",
    "ReferenceResolver",
    "SubBlockNameExtractor",
    "TextDocument",
    "apply_corrections",
    "resolve_config_path",
]
