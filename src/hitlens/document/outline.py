"""Outline extraction and structural/schema diagnostics for input documents."""

from __future__ import annotations

import logging
from enum import IntEnum

from hitlens.document.accessor import DocumentAccessor
from hitlens.document.formatter import DocumentFormatter
from hitlens.document.lexer import LineToken, LineType, lex_document, lex_line, unquote, value_tokens
from hitlens.models.errors import Correction, Diagnostic, DiagnosticType, Position
from hitlens.models.outline import AnalysisResult, OutlineBlockItem, OutlineParamItem
from hitlens.models.syntax import ParamNode
from hitlens.syntax.database import SyntaxDatabase

logger = logging.getLogger("hitlens.document")

# parameters interpreted by the engine itself, accepted in every block
ALWAYS_ALLOWED = frozenset({"active", "inactive"})


class ParseState(IntEnum):
    OUTSIDE = 0
    IN_TOP = 1
    IN_SUB = 2


def _tag_span(token: LineToken) -> tuple[Position, Position]:
    return Position(row=token.row, column=token.indent), Position(row=token.row, column=token.end)


class _OutlinePass:
    """One-pass state machine over the document lines.

    The open-block stack doubles as the parse state: its depth is the
    current level (``ParseState``).
    """

    def __init__(self, doc: DocumentAccessor) -> None:
        self.doc = doc
        self.outline: list[OutlineBlockItem] = []
        self.errors: list[Diagnostic] = []
        self.stack: list[OutlineBlockItem] = []
        self.last_content: Position | None = None

    @property
    def state(self) -> ParseState:
        return ParseState(len(self.stack))

    def run(self) -> tuple[list[OutlineBlockItem], list[Diagnostic]]:
        handlers = {
            LineType.OPEN_TOP: self._open_top,
            LineType.CLOSE_TOP: self._close_top,
            LineType.OPEN_SUB: self._open_sub,
            LineType.CLOSE_SUB: self._close_sub,
            LineType.PARAM: self._param,
        }
        for token in lex_document(self.doc):
            handler = handlers.get(token.type)
            if handler is not None:
                handler(token)
            if token.type is not LineType.BLANK:
                self.last_content = Position(row=token.row, column=len(self.doc.get_text_for_row(token.row)))
        self._finish()
        return self.outline, self.errors

    # -- helpers -------------------------------------------------------------

    def _error(
        self,
        kind: DiagnosticType,
        start: Position,
        end: Position,
        msg: str,
        correction: Correction | None = None,
    ) -> None:
        self.errors.append(Diagnostic(type=kind, start=start, end=end, msg=msg, correction=correction))

    def _row_end(self, row: int) -> Position:
        row = max(row, 0)
        return Position(row=row, column=len(self.doc.get_text_for_row(row)))

    def _close(self, count: int, at: Position) -> None:
        for _ in range(min(count, len(self.stack))):
            self.stack.pop().end = at

    def _push(self, token: LineToken, siblings: list[OutlineBlockItem], level: int) -> None:
        start, end = _tag_span(token)
        name = token.name or ""
        if any(sibling.name == name for sibling in siblings):
            self._error(DiagnosticType.DUPLICATION, start, end, f"duplicate block name '{name}'")
        block = OutlineBlockItem(name=name, level=level, start=start)
        siblings.append(block)
        self.stack.append(block)

    # -- transitions ---------------------------------------------------------

    def _open_top(self, token: LineToken) -> None:
        start, end = _tag_span(token)
        level = len(self.stack)
        if level > 0:
            self._error(
                DiagnosticType.CLOSURE, start, end, "block opened before previous closed",
                Correction(insertion_before="[../]\n" * (level - 1) + "[]\n"),
            )
            self._close(level, self._row_end(token.row - 1))
        self._push(token, self.outline, 1)

    def _close_top(self, token: LineToken) -> None:
        start, end = _tag_span(token)
        state = self.state
        if state is ParseState.OUTSIDE:
            self._error(DiagnosticType.CLOSURE, start, end, "closed block before opening one")
            return
        if state is ParseState.IN_SUB:
            self._error(
                DiagnosticType.CLOSURE, start, end, "closed parent block before closing children",
                Correction(insertion_before="[../]\n"),
            )
        self._close(len(self.stack), end)

    def _open_sub(self, token: LineToken) -> None:
        start, end = _tag_span(token)
        state = self.state
        if state is ParseState.OUTSIDE:
            self._error(DiagnosticType.CLOSURE, start, end, "opening sub-block before main block")
            implicit = OutlineBlockItem(name="", level=1, start=start)
            self.outline.append(implicit)
            self.stack.append(implicit)
        elif state is ParseState.IN_SUB:
            # the dialect never nests deeper than two levels
            self._error(
                DiagnosticType.CLOSURE, start, end, "sub-block opened before previous sub-block closed",
                Correction(insertion_before="[../]\n"),
            )
            self._close(1, self._row_end(token.row - 1))
        self._push(token, self.stack[-1].children, 2)

    def _close_sub(self, token: LineToken) -> None:
        start, end = _tag_span(token)
        state = self.state
        if state is ParseState.OUTSIDE:
            self._error(DiagnosticType.CLOSURE, start, end, "closing sub-block when outside blocks")
        elif state is ParseState.IN_TOP:
            self._error(DiagnosticType.CLOSURE, start, end, "closing sub-block when inside main block")
        else:
            self._close(1, end)

    def _param(self, token: LineToken) -> None:
        if not self.stack:
            return
        block = self.stack[-1]
        name = token.name or ""
        start = Position(row=token.row, column=token.name_start or token.indent)
        end = Position(row=token.row, column=token.end)
        if block.find_parameter(name) is not None:
            self._error(
                DiagnosticType.DUPLICATION, start,
                Position(row=token.row, column=start.column + len(name)),
                f"duplicate parameter name '{name}'",
            )
        block.parameters.append(OutlineParamItem(name=name, value=token.value, start=start, end=end))

    def _finish(self) -> None:
        level = len(self.stack)
        if level == 0:
            return
        eof = self.last_content or Position(row=0, column=0)
        self._error(
            DiagnosticType.CLOSURE, Position(row=eof.row, column=0), eof, "block(s) unclosed",
            Correction(insertion_after="\n[../]" * (level - 1) + "\n[]"),
        )
        self._close(level, eof)


class OutlineParser:
    """Builds the block outline and structural (closure/duplication) diagnostics.

    Blocks left open at the end of the document are closed at the end of
    the last non-blank line.
    """

    def parse(self, doc: DocumentAccessor) -> tuple[list[OutlineBlockItem], list[Diagnostic]]:
        return _OutlinePass(doc).run()


class OutlineAssessor:
    """Full-document pass: outline, structural, schema and reference diagnostics."""

    def __init__(self, syntax_db: SyntaxDatabase, parser: OutlineParser | None = None) -> None:
        self._db = syntax_db
        self._parser = parser or OutlineParser()

    async def assess(self, doc: DocumentAccessor, tab_width: int | None = None) -> AnalysisResult:
        """Analyse *doc*; with a *tab_width* the formatting checks run as well."""
        outline, errors = self._parser.parse(doc)
        if await self._db.is_loaded():
            for block in outline:
                await self._check_block(doc, block, [], errors, tab_width or 4)
        else:
            logger.debug("no schema loaded; skipping schema checks for %s", doc.get_path())
        for block in outline:
            self._check_active(doc, block, errors)
        if tab_width:
            errors.extend(DocumentFormatter(tab_width).check(doc))
        errors.sort(key=lambda error: error.start.as_tuple())
        return AnalysisResult(outline=outline, errors=errors)

    async def _check_block(
        self,
        doc: DocumentAccessor,
        block: OutlineBlockItem,
        parent_path: list[str],
        errors: list[Diagnostic],
        tab_width: int,
    ) -> None:
        if block.level == 1 and block.name == "":
            # implicit block synthesised for a stray sub-block; already reported
            return
        config_path = [*parent_path, block.name]
        match = await self._db.match_path(config_path)
        if match is None:
            errors.append(
                Diagnostic(
                    type=DiagnosticType.DBCHECK,
                    start=block.start,
                    end=block.header_end,
                    msg=f"block name does not exist: {'/'.join(config_path)}",
                )
            )
        else:
            block.description = match.node.description
            await self._check_parameters(doc, block, config_path, errors, tab_width)

        for child in block.children:
            await self._check_block(doc, child, config_path, errors, tab_width)

    async def _check_parameters(
        self,
        doc: DocumentAccessor,
        block: OutlineBlockItem,
        config_path: list[str],
        errors: list[Diagnostic],
        tab_width: int,
    ) -> None:
        type_item = block.find_parameter("type")
        explicit_type = unquote(type_item.value) if type_item is not None and type_item.value else None

        known_type = True
        if type_item is not None and explicit_type:
            types = await self._db.list_types(config_path)
            if types and explicit_type not in {node.segments[-1] for node in types}:
                known_type = False
                token = lex_line(type_item.start.row, doc.get_text_for_row(type_item.start.row))
                value_start = token.value_start if token.value_start is not None else type_item.start.column
                errors.append(
                    Diagnostic(
                        type=DiagnosticType.DBCHECK,
                        start=Position(row=type_item.start.row, column=value_start),
                        end=type_item.end,
                        msg=f"type name does not exist: {explicit_type}",
                    )
                )

        known: dict[str, ParamNode] = {}
        for param in await self._db.list_parameters(config_path, explicit_type):
            known.setdefault(param.name, param)

        for item in block.parameters:
            schema_param = known.get(item.name)
            if schema_param is not None:
                item.description = schema_param.description
            elif known_type and item.name not in ALWAYS_ALLOWED:
                errors.append(
                    Diagnostic(
                        type=DiagnosticType.DBCHECK,
                        start=item.start,
                        end=Position(row=item.start.row, column=item.start.column + len(item.name)),
                        msg=f"parameter name not found: {item.name}",
                    )
                )

        if not known_type:
            return
        missing = [
            param for param in known.values()
            if param.required and block.find_parameter(param.name) is None
        ]
        if missing:
            indent = " " * (tab_width * block.level)
            snippet = "".join(f"\n{indent}{param.name} = {param.default or ''}" for param in missing)
            errors.append(
                Diagnostic(
                    type=DiagnosticType.DBCHECK,
                    start=block.start,
                    end=block.header_end,
                    msg="required parameter(s) missing: " + ", ".join(p.name for p in missing),
                    correction=Correction(insertion_after=snippet),
                )
            )

    def _check_active(
        self, doc: DocumentAccessor, block: OutlineBlockItem, errors: list[Diagnostic]
    ) -> None:
        """Mark children switched off by ``active``/``inactive``; flag names that do not exist."""
        child_names = [child.name for child in block.children]
        for param_name in ("active", "inactive"):
            item = block.find_parameter(param_name)
            if item is None or item.value is None:
                continue
            names = unquote(item.value).split()
            token = lex_line(item.start.row, doc.get_text_for_row(item.start.row))
            columns = dict(reversed([(text.strip("'\""), col) for text, col in value_tokens(token)]))
            for name in names:
                if name in child_names:
                    continue
                column = columns.get(name, item.start.column)
                errors.append(
                    Diagnostic(
                        type=DiagnosticType.REFCHECK,
                        start=Position(row=item.start.row, column=column),
                        end=Position(row=item.start.row, column=column + len(name)),
                        msg=f"{param_name} block does not exist: {name}",
                    )
                )
            if param_name == "active":
                switched_off = [child for child in child_names if child not in names]
            else:
                switched_off = [child for child in child_names if child in names]
            for child in switched_off:
                if child not in block.inactive:
                    block.inactive.append(child)

        for child in block.children:
            self._check_active(doc, child, errors)
