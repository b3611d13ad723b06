"""Analysis service: composes the schema database and per-document analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from hitlens.document.accessor import DocumentAccessor, TextDocument
from hitlens.document.formatter import DocumentFormatter, apply_corrections
from hitlens.models.errors import Diagnostic
from hitlens.service.document import InputDocument
from hitlens.settings import Settings
from hitlens.syntax.cache import CacheState
from hitlens.syntax.database import SyntaxDatabase

logger = logging.getLogger("hitlens.service")

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class SchemaStatus:
    """Where the schema comes from and whether it is usable."""

    state: CacheState
    primary_path: Path | None
    secondary_path: Path | None
    errors: list[str] = field(default_factory=list)


@dataclass
class FormatResult:
    """Formatting edits for a document and the text with all of them applied."""

    edits: list[Diagnostic]
    text: str


# ---------------------------------------------------------------------------
# AnalysisService
# ---------------------------------------------------------------------------


class AnalysisService:
    """Entry point for editor integrations.

    Owns one ``SyntaxDatabase`` configured from ``Settings`` and collects the
    schema errors reported through its error channel.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self._errors: list[str] = []
        self.syntax_db = SyntaxDatabase.from_settings(self.settings, on_error=self._record_error)

    def _record_error(self, error: Exception) -> None:
        self._errors.append(str(error))

    # -- schema --------------------------------------------------------------

    def set_schema(self, primary: str | Path, secondary: str | Path | None = None) -> bool:
        """Point the service at new schema files; ``False`` if a path is missing."""
        return self.syntax_db.set_source(primary, secondary)

    async def schema_status(self) -> SchemaStatus:
        await self.syntax_db.is_loaded()
        return SchemaStatus(
            state=self.syntax_db.state,
            primary_path=self.syntax_db.primary_path,
            secondary_path=self.syntax_db.secondary_path,
            errors=list(self._errors),
        )

    # -- documents -----------------------------------------------------------

    def open_document(self, doc: DocumentAccessor | str, path: str = "<string>") -> InputDocument:
        """Wrap *doc* (an accessor or plain text) for analysis."""
        if isinstance(doc, str):
            doc = TextDocument(text=doc, path=path)
        return InputDocument(doc, self.syntax_db, tab_width=self.settings.tab_spaces)

    async def diagnostics(self, doc: DocumentAccessor | str) -> list[Diagnostic]:
        """All enabled diagnostics for *doc*, ordered by position."""
        document = self.open_document(doc)
        enabled = set(self.settings.diagnostics)
        result = await document.assess_outline(check_format="format" in enabled)
        errors = [error for error in result.errors if error.type in enabled]
        logger.debug("%s: %d diagnostics", document.doc.get_path(), len(errors))
        return errors

    def format_document(self, doc: DocumentAccessor | str) -> FormatResult:
        """Indentation and blank-line edits for *doc*."""
        if isinstance(doc, str):
            doc = TextDocument(text=doc)
        edits = DocumentFormatter(self.settings.tab_spaces).check(doc)
        lines = [doc.get_text_for_row(row) for row in range(doc.get_line_count())]
        return FormatResult(edits=edits, text=apply_corrections("\n".join(lines), edits))
