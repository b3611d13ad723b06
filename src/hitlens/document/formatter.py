"""Indentation and blank-line style checks with automatic corrections."""

from __future__ import annotations

from collections.abc import Iterable

from hitlens.document.accessor import DocumentAccessor
from hitlens.document.lexer import LineType, lex_document
from hitlens.models.errors import Correction, Diagnostic, DiagnosticType, Position


class DocumentFormatter:
    """Checks the layout of a document against a fixed tab width.

    Block tags sit at ``(level - 1) * tab_width`` (a close tag lines up with
    its open tag); parameter and comment lines sit one tab deeper than their
    block.  Lines the lexer cannot classify, such as continuations of a
    quoted multi-line value, are left alone.
    """

    def __init__(self, tab_width: int = 4) -> None:
        self.tab_width = tab_width

    def check(self, doc: DocumentAccessor) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        depth = 0
        blank_run: list[int] = []

        for token in lex_document(doc):
            if token.type is LineType.BLANK:
                blank_run.append(token.row)
                continue
            self._flush_blank_run(doc, blank_run, errors)
            blank_run = []

            if token.type is LineType.OPEN_TOP:
                expected, depth = 0, 1
            elif token.type is LineType.CLOSE_TOP:
                expected, depth = 0, 0
            elif token.type is LineType.OPEN_SUB:
                expected, depth = 1, 2
            elif token.type is LineType.CLOSE_SUB:
                expected, depth = (1 if depth > 0 else 0), min(depth, 1)
            elif token.type in (LineType.PARAM, LineType.COMMENT):
                expected = depth
            else:
                continue

            line = doc.get_text_for_row(token.row)
            indent = line[: len(line) - len(line.lstrip())]
            wanted = " " * (expected * self.tab_width)
            if indent != wanted:
                errors.append(
                    Diagnostic(
                        type=DiagnosticType.FORMAT,
                        start=Position(row=token.row, column=0),
                        end=Position(row=token.row, column=len(indent)),
                        msg=f"indentation should be {len(wanted)} spaces",
                        correction=Correction(replace=wanted),
                    )
                )

        self._flush_blank_run(doc, blank_run, errors)
        return errors

    @staticmethod
    def _flush_blank_run(doc: DocumentAccessor, rows: list[int], errors: list[Diagnostic]) -> None:
        if len(rows) < 2:
            return
        first, last = rows[0], rows[-1]
        errors.append(
            Diagnostic(
                type=DiagnosticType.FORMAT,
                start=Position(row=first, column=len(doc.get_text_for_row(first))),
                end=Position(row=last, column=len(doc.get_text_for_row(last))),
                msg="multiple blank lines",
                correction=Correction(replace=""),
            )
        )


def apply_corrections(text: str, diagnostics: Iterable[Diagnostic]) -> str:
    """Apply every diagnostic's correction to *text*, last position first."""
    lines = text.split("\n")
    offsets = [0]
    for line in lines:
        offsets.append(offsets[-1] + len(line) + 1)

    def offset(position: Position) -> int:
        return offsets[position.row] + position.column

    fixes = [diagnostic for diagnostic in diagnostics if diagnostic.correction is not None]
    fixes.sort(key=lambda diagnostic: diagnostic.start.as_tuple(), reverse=True)
    for diagnostic in fixes:
        correction = diagnostic.correction
        start, end = offset(diagnostic.start), offset(diagnostic.end)
        if correction.replace is not None:
            text = text[:start] + correction.replace + text[end:]
        elif correction.insertion_before is not None:
            text = text[:start] + correction.insertion_before + text[start:]
        elif correction.insertion_after is not None:
            text = text[:end] + correction.insertion_after + text[end:]
    return text
