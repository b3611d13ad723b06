"""Context-aware completions for the cursor position in an input document."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from hitlens.document.accessor import DocumentAccessor
from hitlens.document.context import resolve_config_path
from hitlens.document.lexer import unquote
from hitlens.document.outline import OutlineParser
from hitlens.models.completion import (
    BlockCompletion,
    ClosingCompletion,
    Completion,
    InsertText,
    ParameterCompletion,
    TypeCompletion,
    ValueCompletion,
)
from hitlens.models.errors import Position
from hitlens.models.syntax import ParamNode
from hitlens.syntax.database import WILDCARD, SyntaxDatabase

logger = logging.getLogger("hitlens.document")

_INSIDE_BLOCK_TAG = re.compile(r"^\s*\[([^\]#\s]*)$")
_TYPE_PARAMETER = re.compile(r"^\s*type\s*=\s*[^\s#=\]]*$")
_PARAMETER_NAME = re.compile(r"^\s*[^\s#=\]]*$")
_PARAMETER_VALUE = re.compile(r"^\s*([^\s#=\]]+)\s*=\s*('\s*[^\s'#=\]]*(\s?)[^'#=\]]*|[^\s#=\]]*)$")
_PREFIX = re.compile(r"[\w\-./\[]+$")
# gcc and clang spell vectors differently: std::vector<T, std::allocator<T> >, std::__1::vector<T>
_STD_VECTOR = re.compile(r"^std::((?:[^:]+::)?)vector<([a-zA-Z0-9_]+)(,\s?std::\1allocator<\2>\s?)?>$")

OUTPUT_NAMES = ("exodus", "csv", "console", "gmv", "gnuplot", "nemesis", "tecplot", "vtk", "xda", "xdr")

# value type -> (top-level blocks declaring candidates, parameters shown as description)
_SUBBLOCK_VALUE_TYPES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "NonlinearVariableName": (("Variables",), ("order", "family")),
    "AuxVariableName": (("AuxVariables",), ("order", "family")),
    "VariableName": (("Variables", "AuxVariables"), ("order", "family")),
    "FunctionName": (("Functions",), ("type",)),
    "PostprocessorName": (("Postprocessors",), ("type",)),
    "UserObjectName": (("Postprocessors", "UserObjects"), ("type",)),
    "VectorPostprocessorName": (("VectorPostprocessors",), ("type",)),
}


def vector_element_type(structural_type: str) -> str | None:
    """Return ``T`` for a ``std::vector<T>`` type name, else ``None``."""
    match = _STD_VECTOR.match(structural_type)
    return match.group(2) if match is not None else None


def line_prefix(line: str) -> str:
    match = _PREFIX.search(line)
    return match.group(0) if match is not None else ""


class CompletionEngine:
    """Produces the completion list for a cursor position.

    The text on the cursor row up to the cursor decides the branch: an open
    bracket pair, a ``type =`` value, a parameter name or a parameter value.
    """

    def __init__(self, syntax_db: SyntaxDatabase) -> None:
        self._db = syntax_db

    async def find_completions(self, doc: DocumentAccessor, position: Position) -> list[Completion]:
        line = doc.get_text_in_range(Position(row=position.row, column=0), position)
        prefix = line_prefix(line)
        context = resolve_config_path(doc, position)
        config_path, explicit_type = context.config_path, context.explicit_type

        completions: list[Completion] = []
        if _INSIDE_BLOCK_TAG.match(line):
            completions = await self._complete_block(doc, position, config_path)
        elif _TYPE_PARAMETER.match(line):
            completions = await self._complete_type(doc, line, config_path, explicit_type)
        elif _PARAMETER_NAME.match(line):
            completions = await self._complete_parameter(config_path, explicit_type)
        elif (match := _PARAMETER_VALUE.match(line)) is not None:
            param = await self._find_parameter(config_path, explicit_type, match.group(1))
            if param is not None:
                completions = self._complete_value(
                    doc, param, is_quoted=match.group(2).startswith("'"), has_space=bool(match.group(3))
                )

        for completion in completions:
            completion.replacement_prefix = prefix
        return completions

    # -- branches ------------------------------------------------------------

    async def _complete_block(
        self, doc: DocumentAccessor, position: Position, config_path: list[str]
    ) -> list[Completion]:
        following = doc.get_text_in_range(
            position, Position(row=position.row, column=position.column + 1)
        )
        postfix = "" if following.startswith("]") else "]"
        opener = "[./" if config_path else "["

        completions: list[Completion] = []
        if config_path:
            completions.append(
                ClosingCompletion(display_text="..", insert_text=InsertText(value=f"[../{postfix}"))
            )

        seen: set[str] = set()
        depth = len(config_path)
        for path in await self._db.list_subblock_paths(config_path):
            segments = path.split("/")
            if len(segments) <= depth:
                continue
            name = segments[depth]
            if not name or name in seen:
                continue
            seen.add(name)
            if name == WILDCARD:
                insert = InsertText(type="snippet", value=opener + "${1:name}" + postfix)
            else:
                insert = InsertText(value=opener + name + postfix)
            completions.append(BlockCompletion(display_text=name, insert_text=insert))
        return completions

    async def _complete_type(
        self, doc: DocumentAccessor, line: str, config_path: list[str], explicit_type: str | None
    ) -> list[Completion]:
        types = await self._db.list_types(config_path)
        if types:
            return [
                TypeCompletion(
                    display_text=node.segments[-1],
                    insert_text=InsertText(value=node.segments[-1]),
                    description=node.description,
                )
                for node in types
            ]

        # ``type`` may be an ordinary enum parameter (Executioner/Quadrature)
        param = await self._find_parameter(config_path, explicit_type, "type")
        if param is None:
            return []
        match = _PARAMETER_VALUE.match(line)
        is_quoted = match is not None and match.group(2).startswith("'")
        return self._complete_value(doc, param, is_quoted=is_quoted)

    async def _complete_parameter(
        self, config_path: list[str], explicit_type: str | None
    ) -> list[Completion]:
        completions: list[Completion] = []
        seen: set[str] = set()
        for param in await self._db.list_parameters(config_path, explicit_type):
            if param.name in seen:
                continue
            seen.add(param.name)

            default = param.default or ""
            if " " in default:
                default = f"'{default}'"
            if param.structural_type == "bool":
                default = {"0": "false", "1": "true"}.get(default, default)

            insert_text = InsertText(type="snippet", value=f"{param.name} = ${{1:{default}}}")
            if param.name == "type":
                completions.append(
                    TypeCompletion(
                        display_text=param.name, insert_text=insert_text, description=param.description
                    )
                )
                continue
            completions.append(
                ParameterCompletion(
                    display_text=param.name,
                    insert_text=insert_text,
                    description=param.description,
                    required=param.required,
                )
            )
        return completions

    def _complete_value(
        self, doc: DocumentAccessor, param: ParamNode, is_quoted: bool = False, has_space: bool = False
    ) -> list[Completion]:
        single_ok = not has_space
        vector_ok = is_quoted or not has_space
        structural_type = param.structural_type
        element_type = vector_element_type(structural_type)

        def has_type(name: str) -> bool:
            return (structural_type == name and single_ok) or (element_type == name and vector_ok)

        if has_type("bool"):
            return [_value("true"), _value("false")]
        if (
            (structural_type == "MooseEnum" and single_ok)
            or (structural_type == "MultiMooseEnum" and vector_ok)
            or (element_type == "MooseEnum" and vector_ok)
        ):
            return [_value(option) for option in param.option_list]
        for type_name, (blocks, properties) in _SUBBLOCK_VALUE_TYPES.items():
            if has_type(type_name):
                return self._complete_subblock_names(doc, blocks, properties)
        if has_type("OutputName"):
            return [_value(name) for name in OUTPUT_NAMES]
        if has_type("FileName") or has_type("MeshFileName"):
            return self._complete_file_names(doc)
        return []

    # -- value sources -------------------------------------------------------

    def _complete_subblock_names(
        self, doc: DocumentAccessor, blocks: tuple[str, ...], properties: tuple[str, ...]
    ) -> list[Completion]:
        """Offer the sub-blocks declared under *blocks* in this document.

        Object-like blocks (selected by ``type``) only count once the
        sub-block has a ``type`` parameter.
        """
        outline, _ = OutlineParser().parse(doc)
        needs_type = "type" in properties
        completions: list[Completion] = []
        for block_name in blocks:
            for block in outline:
                if block.name != block_name:
                    continue
                for child in block.children:
                    values = {
                        item.name: unquote(item.value)
                        for item in child.parameters
                        if item.name in properties and item.value
                    }
                    if needs_type:
                        if "type" not in values:
                            continue
                        description = f"{child.name} ({values['type']})"
                    else:
                        description = " ".join(values[name] for name in properties if name in values)
                    completions.append(
                        BlockCompletion(
                            display_text=child.name,
                            insert_text=InsertText(value=child.name),
                            description=description,
                        )
                    )
        return completions

    def _complete_file_names(self, doc: DocumentAccessor) -> list[Completion]:
        folder = Path(doc.get_path()).parent
        try:
            names = sorted(entry.name for entry in folder.iterdir())
        except OSError as exc:
            logger.debug("cannot list %s for file name completion: %s", folder, exc)
            return []
        return [_value(name) for name in names]

    async def _find_parameter(
        self, config_path: list[str], explicit_type: str | None, name: str
    ) -> ParamNode | None:
        for param in await self._db.list_parameters(config_path, explicit_type):
            if param.name == name:
                return param
        return None


def _value(text: str) -> ValueCompletion:
    return ValueCompletion(display_text=text, insert_text=InsertText(value=text))
