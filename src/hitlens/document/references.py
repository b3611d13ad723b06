"""Definition/reference graph over an input document and cursor lookups."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from hitlens.document.accessor import DocumentAccessor
from hitlens.document.completion import vector_element_type
from hitlens.document.context import resolve_config_path
from hitlens.document.lexer import LineType, lex_line, unquote, value_tokens
from hitlens.document.outline import OutlineParser
from hitlens.models.errors import Position
from hitlens.models.outline import OutlineBlockItem
from hitlens.models.references import CursorMatch, Definition, ReferenceEntry, TokenKind
from hitlens.models.syntax import ParamNode
from hitlens.syntax.database import SyntaxDatabase, typed_path

logger = logging.getLogger("hitlens.document")

# value type -> namespaces (top-level block names) its values refer to
NAMESPACES_BY_TYPE: dict[str, tuple[str, ...]] = {
    "VariableName": ("Variables", "AuxVariables"),
    "NonlinearVariableName": ("Variables",),
    "AuxVariableName": ("AuxVariables",),
    "FunctionName": ("Functions",),
    "PostprocessorName": ("Postprocessors",),
    "UserObjectName": ("UserObjects", "Postprocessors"),
    "VectorPostprocessorName": ("VectorPostprocessors",),
    "MaterialPropertyName": ("Materials",),
}

_NON_REFERENCE_PARAMS = frozenset({"type", "active", "inactive"})
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DERIVATIVE = re.compile(r"^D\[\s*([^,\]\s]+)")
_CALL = re.compile(r"^([^(\s]+)\(")


@dataclass
class Declaration:
    """A definition key found in a block, before schema details are attached."""

    key: str
    block: OutlineBlockItem
    explicit: bool = True


class DefinitionExtractor(Protocol):
    """Turns the sub-blocks of one kind of top-level block into definitions."""

    namespaces: tuple[str, ...]
    defining_params: frozenset[str]

    def extract(self, namespace: str, block: OutlineBlockItem) -> Iterator[Declaration]: ...


class SubBlockNameExtractor:
    """The sub-block name is the definition: ``[Variables] [./u]`` defines ``Variables/u``."""

    namespaces = (
        "Variables",
        "AuxVariables",
        "Functions",
        "Postprocessors",
        "UserObjects",
        "VectorPostprocessors",
    )
    defining_params: frozenset[str] = frozenset()

    def extract(self, namespace: str, block: OutlineBlockItem) -> Iterator[Declaration]:
        yield Declaration(key=f"{namespace}/{block.name}", block=block)


def material_property_names(expression: str) -> list[str]:
    """Base property names used by a ``material_property_names`` value.

    Entries may be plain names, ``alias:=name``, derivatives ``D[name,var]``
    or dependent properties ``name(args)``; only valid identifiers survive.
    """
    names: list[str] = []
    for entry in unquote(expression).split():
        if ":=" in entry:
            entry = entry.split(":=", 1)[1]
        if (match := _DERIVATIVE.match(entry)) is not None:
            entry = match.group(1)
        elif (match := _CALL.match(entry)) is not None:
            entry = match.group(1)
        if _IDENTIFIER.match(entry) and entry not in names:
            names.append(entry)
    return names


class MaterialExtractor:
    """Materials declare properties through naming parameters.

    ``f_name``/``function_name`` name one property, ``prop_names`` lists
    several.  Without either the block name is the property.  Names used
    by a ``material_property_names`` expression are declared as well, but
    never ahead of an explicit declaration.
    """

    namespaces = ("Materials",)
    defining_params = frozenset({"f_name", "function_name", "prop_names", "material_property_names"})

    def extract(self, namespace: str, block: OutlineBlockItem) -> Iterator[Declaration]:
        named = False
        for param in ("f_name", "function_name", "prop_names"):
            item = block.find_parameter(param)
            if item is None or not item.value:
                continue
            for name in unquote(item.value).split():
                named = True
                yield Declaration(key=f"{namespace}/{name}", block=block)
        if not named:
            yield Declaration(key=f"{namespace}/{block.name}", block=block)

        expression = block.find_parameter("material_property_names")
        if expression is not None and expression.value:
            for name in material_property_names(expression.value):
                yield Declaration(key=f"{namespace}/{name}", block=block, explicit=False)


DEFAULT_EXTRACTORS: tuple[DefinitionExtractor, ...] = (SubBlockNameExtractor(), MaterialExtractor())


class ReferenceResolver:
    """Builds the definition-key -> ``ReferenceEntry`` map of a document.

    The first declaration of a key wins; later declarations of the same key
    are left to the duplication diagnostics.  Values of parameters whose
    schema type does not name a namespace are not references; parameters
    unknown to the schema may refer to any namespace.
    """

    def __init__(
        self,
        syntax_db: SyntaxDatabase,
        extractors: tuple[DefinitionExtractor, ...] = DEFAULT_EXTRACTORS,
        parser: OutlineParser | None = None,
    ) -> None:
        self._db = syntax_db
        self._extractors = extractors
        self._parser = parser or OutlineParser()

    def _extractor_for(self, namespace: str) -> DefinitionExtractor | None:
        for extractor in self._extractors:
            if namespace in extractor.namespaces:
                return extractor
        return None

    # -- public API ----------------------------------------------------------

    async def find_references(self, doc: DocumentAccessor) -> dict[str, ReferenceEntry]:
        outline, _ = self._parser.parse(doc)
        entries = await self._collect_definitions(doc, outline)

        by_identifier: dict[str, list[ReferenceEntry]] = {}
        for entry in entries.values():
            by_identifier.setdefault(entry.definition.identifier, []).append(entry)

        for block in outline:
            await self._collect_refs(doc, block, [], by_identifier)
        for entry in entries.values():
            entry.refs.sort(key=Position.as_tuple)
        return entries

    async def find_definition_key(self, doc: DocumentAccessor, key: str) -> ReferenceEntry | None:
        return (await self.find_references(doc)).get(key)

    async def find_current_node(self, doc: DocumentAccessor, position: Position) -> CursorMatch | None:
        """Identify the token under *position* and resolve what it stands for."""
        line = doc.get_text_for_row(position.row)
        token = lex_line(position.row, line)
        column = position.column
        context = resolve_config_path(doc, Position(row=position.row, column=len(line)))
        path = context.config_path

        if token.type in (LineType.OPEN_TOP, LineType.OPEN_SUB):
            if not token.indent <= column <= token.end:
                return None
            kind = TokenKind.BLOCK if token.type is LineType.OPEN_TOP else TokenKind.SUBBLOCK
            match = await self._db.match_path(path)
            definition = None
            if kind is TokenKind.SUBBLOCK and len(path) == 2:
                entry = (await self.find_references(doc)).get("/".join(path))
                definition = entry.definition if entry is not None else None
            return CursorMatch(
                kind=kind,
                path=path,
                start=Position(row=position.row, column=token.indent),
                end=Position(row=position.row, column=token.end),
                description=match.node.description if match is not None else "",
                syntax_node=match.node if match is not None else None,
                definition=definition,
            )

        if token.type is not LineType.PARAM or token.name is None or token.name_start is None:
            return None

        name_end = token.name_start + len(token.name)
        param = await self._find_param(path, context.explicit_type, token.name)
        if token.name_start <= column <= name_end:
            return CursorMatch(
                kind=TokenKind.PARAMETER,
                path=path,
                start=Position(row=position.row, column=token.name_start),
                end=Position(row=position.row, column=name_end),
                description=param.description if param is not None else "",
                param=param,
            )

        for word, start in value_tokens(token):
            if not start <= column <= start + len(word):
                continue
            span = (
                Position(row=position.row, column=start),
                Position(row=position.row, column=start + len(word)),
            )
            if token.name == "type":
                base = await self._db.match_path(path)
                typed = None
                if base is not None:
                    typed = await self._db.match_path(typed_path(path, word, base.fuzzy_on_last))
                return CursorMatch(
                    kind=TokenKind.TYPE,
                    path=path,
                    start=span[0],
                    end=span[1],
                    description=typed.node.description if typed is not None else "",
                    syntax_node=typed.node if typed is not None else None,
                    param=param,
                )
            definition = None
            namespaces = self._namespaces_for(token.name, param)
            if namespaces:
                entries = await self.find_references(doc)
                for namespace in namespaces:
                    entry = entries.get(f"{namespace}/{word}")
                    if entry is not None:
                        definition = entry.definition
                        break
            return CursorMatch(
                kind=TokenKind.VALUE,
                path=path,
                start=span[0],
                end=span[1],
                description=definition.description if definition is not None else "",
                param=param,
                definition=definition,
            )
        return None

    # -- internals -----------------------------------------------------------

    async def _collect_definitions(
        self, doc: DocumentAccessor, outline: list[OutlineBlockItem]
    ) -> dict[str, ReferenceEntry]:
        explicit: list[Declaration] = []
        derived: list[Declaration] = []
        for top in outline:
            extractor = self._extractor_for(top.name)
            if extractor is None:
                continue
            for child in top.children:
                for declaration in extractor.extract(top.name, child):
                    (explicit if declaration.explicit else derived).append(declaration)

        entries: dict[str, ReferenceEntry] = {}
        for declaration in [*explicit, *derived]:
            if declaration.key in entries:
                logger.debug("keeping first declaration of %s in %s", declaration.key, doc.get_path())
                continue
            entries[declaration.key] = ReferenceEntry(definition=await self._define(declaration))
        return entries

    async def _define(self, declaration: Declaration) -> Definition:
        block = declaration.block
        namespace = declaration.key.split("/", 1)[0]
        type_item = block.find_parameter("type")
        type_name = unquote(type_item.value) if type_item is not None and type_item.value else None

        path = [namespace, block.name]
        node = None
        base = await self._db.match_path(path)
        if base is not None:
            node = base.node
            if type_name:
                typed = await self._db.match_path(typed_path(path, type_name, base.fuzzy_on_last))
                if typed is not None:
                    node = typed.node
        return Definition(
            key=declaration.key,
            position=block.start,
            description=node.description if node is not None else "",
            type=type_name,
            file=node.source_file if node is not None else None,
        )

    async def _collect_refs(
        self,
        doc: DocumentAccessor,
        block: OutlineBlockItem,
        parent_path: list[str],
        by_identifier: dict[str, list[ReferenceEntry]],
    ) -> None:
        path = [*parent_path, block.name]
        type_item = block.find_parameter("type")
        explicit_type = unquote(type_item.value) if type_item is not None and type_item.value else None
        known: dict[str, ParamNode] = {}
        for param in await self._db.list_parameters(path, explicit_type):
            known.setdefault(param.name, param)

        extractor = self._extractor_for(path[0]) if len(path) == 2 else None
        defining = extractor.defining_params if extractor is not None else frozenset()

        for item in block.parameters:
            if item.value is None or item.name in defining:
                continue
            namespaces = self._namespaces_for(item.name, known.get(item.name))
            if not namespaces:
                continue
            token = lex_line(item.start.row, doc.get_text_for_row(item.start.row))
            for word, column in value_tokens(token):
                for entry in by_identifier.get(word, []):
                    if entry.definition.namespace in namespaces:
                        entry.refs.append(Position(row=item.start.row, column=column))

        for child in block.children:
            await self._collect_refs(doc, child, path, by_identifier)

    def _namespaces_for(self, name: str, param: ParamNode | None) -> tuple[str, ...]:
        if name in _NON_REFERENCE_PARAMS:
            return ()
        if param is None or not param.structural_type:
            return tuple(ns for extractor in self._extractors for ns in extractor.namespaces)
        structural_type = param.structural_type
        element_type = vector_element_type(structural_type)
        return NAMESPACES_BY_TYPE.get(structural_type) or NAMESPACES_BY_TYPE.get(element_type or "", ())

    async def _find_param(
        self, path: list[str], explicit_type: str | None, name: str
    ) -> ParamNode | None:
        for param in await self._db.list_parameters(path, explicit_type):
            if param.name == name:
                return param
        return None
