"""Per-document facade over the analysis engines."""

from __future__ import annotations

from hitlens.document.accessor import DocumentAccessor
from hitlens.document.completion import CompletionEngine
from hitlens.document.context import CursorContext, resolve_config_path
from hitlens.document.outline import OutlineAssessor
from hitlens.document.references import ReferenceResolver
from hitlens.models.completion import Completion
from hitlens.models.errors import Position
from hitlens.models.outline import AnalysisResult
from hitlens.models.references import CursorMatch, ReferenceEntry
from hitlens.syntax.database import SyntaxDatabase


class InputDocument:
    """One input document bound to a schema database.

    Holds no analysis state between calls: every request re-reads the
    document through its accessor.
    """

    def __init__(self, doc: DocumentAccessor, syntax_db: SyntaxDatabase, tab_width: int = 4) -> None:
        self.doc = doc
        self.syntax_db = syntax_db
        self.tab_width = tab_width
        self._assessor = OutlineAssessor(syntax_db)
        self._completer = CompletionEngine(syntax_db)
        self._resolver = ReferenceResolver(syntax_db)

    async def assess_outline(self, check_format: bool = True) -> AnalysisResult:
        """Outline plus all diagnostics; formatting checks unless *check_format* is off."""
        return await self._assessor.assess(self.doc, self.tab_width if check_format else None)

    async def find_completions(self, position: Position) -> list[Completion]:
        return await self._completer.find_completions(self.doc, position)

    def resolve_config_path(self, position: Position) -> CursorContext:
        return resolve_config_path(self.doc, position)

    async def find_references(self) -> dict[str, ReferenceEntry]:
        return await self._resolver.find_references(self.doc)

    async def find_definition_key(self, key: str) -> ReferenceEntry | None:
        return await self._resolver.find_definition_key(self.doc, key)

    async def find_current_node(self, position: Position) -> CursorMatch | None:
        return await self._resolver.find_current_node(self.doc, position)
