"""Schema loader for the application's ``--yaml`` and ``--json`` syntax dumps."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from hitlens.models.syntax import NodeMetadata, SyntaxNode
from hitlens.syntax.errors import SchemaLoadError, SchemaSafetyError

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 200_000_000  # 200M characters
_MAX_DEPTH = 128

# Sentinel lines wrapped around the dump by the application
YAML_MARKERS = ("**START YAML DATA**\n", "**END YAML DATA**\n")
JSON_MARKERS = ("**START JSON DATA**\n", "**END JSON DATA**\n")


def strip_markers(text: str, markers: tuple[str, str]) -> str:
    """Return the text strictly between the begin/end markers, if present."""
    begin_marker, end_marker = markers
    begin = text.find(begin_marker)
    first = 0 if begin < 0 else begin + len(begin_marker)
    end = text.rfind(end_marker)
    last = len(text) if end < first else end
    return text[first:last]


class SyntaxLoader:
    """Parses schema dumps into ``SyntaxNode`` trees and metadata maps.

    Uses ruamel.yaml's pure safe loader; node positions are not needed for
    the schema, so the round-trip loader's bookkeeping is skipped.
    """

    def __init__(self) -> None:
        self._yaml = YAML(typ="safe", pure=True)

    # -- safety checks -------------------------------------------------------

    @staticmethod
    def _check_size(content: str) -> None:
        if len(content) > _MAX_DOCUMENT_SIZE:
            raise SchemaSafetyError(
                f"schema document exceeds maximum size "
                f"({len(content):,} chars > {_MAX_DOCUMENT_SIZE:,} limit)"
            )

    @staticmethod
    def _check_depth(data: Any, limit: int = _MAX_DEPTH) -> None:
        """Post-parse defense-in-depth: reject absurdly nested documents."""
        stack: list[tuple[Any, int]] = [(data, 0)]
        while stack:
            node, depth = stack.pop()
            if depth > limit:
                raise SchemaSafetyError(f"schema document exceeds maximum depth ({limit})")
            if isinstance(node, dict):
                stack.extend((value, depth + 1) for value in node.values())
            elif isinstance(node, list):
                stack.extend((value, depth + 1) for value in node)

    # -- public loading API --------------------------------------------------

    def load(self, path: Path) -> list[SyntaxNode]:
        """Load the YAML syntax dump at *path*."""
        try:
            with path.open("r", encoding="utf-8") as handle:
                content = handle.read()
        except OSError as exc:
            raise SchemaLoadError(f"cannot read schema file {path}: {exc}") from exc
        return self.load_string(content, str(path))

    def load_string(self, content: str, filename: str = "<string>") -> list[SyntaxNode]:
        """Load a YAML syntax dump from a string."""
        self._check_size(content)
        content = strip_markers(content, YAML_MARKERS)
        try:
            data = self._yaml.load(content)
        except YAMLError as exc:
            raise SchemaLoadError(f"malformed schema in {filename}: {exc}") from exc
        if not isinstance(data, list):
            raise SchemaLoadError(
                f"malformed schema in {filename}: expected a list of root nodes, "
                f"got {type(data).__name__}"
            )
        self._check_depth(data)
        try:
            return [SyntaxNode.model_validate(item) for item in data]
        except ValidationError as exc:
            raise SchemaLoadError(f"malformed schema node in {filename}: {exc}") from exc

    def load_metadata(self, path: Path) -> dict[str, NodeMetadata]:
        """Load the JSON syntax dump at *path* as a path -> metadata map."""
        try:
            with path.open("r", encoding="utf-8") as handle:
                content = handle.read()
        except OSError as exc:
            raise SchemaLoadError(f"cannot read schema metadata file {path}: {exc}") from exc
        return self.load_metadata_string(content, str(path))

    def load_metadata_string(
        self, content: str, filename: str = "<string>"
    ) -> dict[str, NodeMetadata]:
        self._check_size(content)
        content = strip_markers(content, JSON_MARKERS)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise SchemaLoadError(f"malformed schema metadata in {filename}: {exc}") from exc
        if not isinstance(data, dict):
            raise SchemaLoadError(f"malformed schema metadata in {filename}: expected an object")

        metadata: dict[str, NodeMetadata] = {}
        try:
            if isinstance(data.get("blocks"), dict):
                self._flatten_blocks(data["blocks"], "", metadata)
            else:
                for key, entry in data.items():
                    if isinstance(entry, dict):
                        metadata[key.strip("/")] = self._metadata(entry)
        except ValidationError as exc:
            raise SchemaLoadError(f"malformed schema metadata in {filename}: {exc}") from exc
        return metadata

    # -- helpers -------------------------------------------------------------

    def _flatten_blocks(
        self, blocks: dict[str, Any], prefix: str, out: dict[str, NodeMetadata]
    ) -> None:
        """Walk the ``--json`` block hierarchy, keying entries like YAML node paths."""
        for name, block in blocks.items():
            if not isinstance(block, dict):
                continue
            path = f"{prefix}/{name}" if prefix else name
            out[path] = self._metadata(block)
            for type_name, entry in (block.get("types") or {}).items():
                if isinstance(entry, dict):
                    out[f"{path}/<type>/{type_name}"] = self._metadata(entry)
            star = block.get("star")
            if isinstance(star, dict):
                out[f"{path}/*"] = self._metadata(star)
                for type_name, entry in (star.get("subblock_types") or {}).items():
                    if isinstance(entry, dict):
                        out[f"{path}/{type_name}"] = self._metadata(entry)
            for type_name, entry in (block.get("subblock_types") or {}).items():
                if isinstance(entry, dict):
                    out[f"{path}/{type_name}"] = self._metadata(entry)
            if isinstance(block.get("subblocks"), dict):
                self._flatten_blocks(block["subblocks"], path, out)

    @staticmethod
    def _metadata(entry: dict[str, Any]) -> NodeMetadata:
        register_file = entry.get("register_file")
        file_info = entry.get("file_info")
        if register_file is None and isinstance(file_info, dict) and file_info:
            register_file = next(iter(file_info))
        return NodeMetadata(
            description=entry.get("description") or None,
            register_file=register_file,
        )
