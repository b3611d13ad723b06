"""Schema database: loads the application syntax tree and answers path queries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from hitlens.models.syntax import NodeMatch, ParamNode, SyntaxNode
from hitlens.syntax.cache import CacheState, SchemaCache, SyntaxData
from hitlens.syntax.errors import SchemaError, SchemaSourceError
from hitlens.syntax.loader import SyntaxLoader

if TYPE_CHECKING:
    from hitlens.settings import Settings

_LOGGER_NAME = "hitlens.syntax"

ErrorHandler = Callable[[Exception], None]

TYPE_SEGMENT = "<type>"
WILDCARD = "*"


def typed_path(config_path: Sequence[str], type_name: str | None, fuzzy_on_last: bool) -> list[str]:
    """Add the ``<type>/<TypeName>`` pseudo path for a typed block.

    When the block itself was matched through a trailing wildcard the type
    name replaces that last segment instead (``Kernels/*`` -> ``Kernels/Diffusion``).
    """
    path = list(config_path)
    if not type_name:
        return path
    if fuzzy_on_last:
        path[-1] = type_name
    else:
        path.extend([TYPE_SEGMENT, type_name])
    return path


def _walk_matches(nodes: Sequence[SyntaxNode], config_path: list[str]) -> Iterator[NodeMatch]:
    for node in nodes:
        segments = node.segments
        if len(segments) > len(config_path):
            continue
        fuzz = 0
        fuzzy_on_last = False
        matched = True
        for segment, part in zip(segments, config_path):
            if segment == WILDCARD:
                fuzz += 1
                fuzzy_on_last = True
            elif segment != part:
                matched = False
                break
            else:
                fuzzy_on_last = False
        if not matched:
            continue
        if len(segments) == len(config_path):
            yield NodeMatch(node=node, fuzz=fuzz, fuzzy_on_last=fuzzy_on_last)
        else:
            yield from _walk_matches(node.children, config_path)


class SyntaxDatabase:
    """Owns the schema tree of one application and answers matching queries.

    Loading is asynchronous and memoized in a ``SchemaCache``.  Source and
    load failures never raise into callers: they go to ``on_error`` (and the
    logger) and queries degrade to empty results.
    """

    def __init__(
        self,
        on_error: ErrorHandler | None = None,
        logger: logging.Logger | None = None,
        loader: SyntaxLoader | None = None,
    ) -> None:
        self._on_error = on_error
        self._logger = logger or logging.getLogger(_LOGGER_NAME)
        self._loader = loader or SyntaxLoader()
        self._primary: Path | None = None
        self._secondary: Path | None = None
        self._cache = SchemaCache(on_failure=self._report)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: object) -> SyntaxDatabase:
        """Build a database pointed at the sources named in *settings*."""
        db = cls(**kwargs)  # type: ignore[arg-type]
        if settings.syntax_yaml_path is not None:
            db.set_source(settings.syntax_yaml_path, settings.syntax_json_path)
        return db

    # -- sources -------------------------------------------------------------

    @property
    def primary_path(self) -> Path | None:
        return self._primary

    @property
    def secondary_path(self) -> Path | None:
        return self._secondary

    @property
    def state(self) -> CacheState:
        return self._cache.state

    def set_source(self, primary: str | Path, secondary: str | Path | None = None) -> bool:
        """Point the database at new schema sources and trigger a reload.

        Returns ``False`` (after reporting) when a path does not exist; any
        previously loaded schema stays in place.
        """
        for candidate in (primary, secondary):
            if candidate is not None and not Path(candidate).exists():
                self._report(SchemaSourceError(f"the path does not exist: {candidate}"))
                return False

        primary_path = Path(primary).resolve()
        secondary_path = Path(secondary).resolve() if secondary is not None else None
        if (
            primary_path == self._primary
            and secondary_path == self._secondary
            and self._cache.state is not CacheState.EMPTY
        ):
            return True

        self._primary = primary_path
        self._secondary = secondary_path
        self.reload()
        return True

    def reload(self) -> None:
        """(Re)read the schema sources; the load runs asynchronously."""
        if self._primary is None:
            self._report(SchemaSourceError("schema path not set"))
            return
        primary, secondary = self._primary, self._secondary
        self._logger.debug("reloading schema from %s", primary)
        self._cache.request(lambda: self._load(primary, secondary))

    async def _load(self, primary: Path, secondary: Path | None) -> SyntaxData:
        # yield once so concurrent callers find the load in flight
        await asyncio.sleep(0)
        nodes = self._loader.load(primary)
        metadata = self._loader.load_metadata(secondary) if secondary is not None else {}
        self._logger.info(
            "loaded schema from %s (%d root nodes, %d metadata entries)",
            primary, len(nodes), len(metadata),
        )
        return SyntaxData(nodes=nodes, metadata=metadata)

    async def retrieve_nodes(self) -> list[SyntaxNode]:
        """Return the root nodes; raises ``SchemaError`` if nothing could be loaded."""
        return (await self._cache.get()).nodes

    async def is_loaded(self) -> bool:
        """Wait for any pending load and tell whether a schema is available."""
        return await self._get_data() is not None

    # -- queries -------------------------------------------------------------

    async def match_path(self, config_path: Sequence[str]) -> NodeMatch | None:
        """Find the schema node matching *config_path* with the least wildcard fuzz."""
        if not config_path:
            return None
        data = await self._get_data()
        if data is None:
            return None
        return self._match(data, list(config_path))

    async def list_parameters(
        self, config_path: Sequence[str], explicit_type: str | None = None
    ) -> list[ParamNode]:
        """List parameters valid in a block, typed-node parameters first.

        Without an *explicit_type* the default of the block's own ``type``
        parameter is used.  An unknown type falls back to the base parameters.
        """
        if not config_path:
            return []
        data = await self._get_data()
        if data is None:
            return []
        match = self._match(data, list(config_path))
        if match is None:
            return []

        search_nodes = [match.node]
        if explicit_type is None:
            for param in match.node.parameters:
                if param.name == "type":
                    explicit_type = param.default
        if explicit_type:
            typed = self._match(data, typed_path(config_path, explicit_type, match.fuzzy_on_last))
            # an unknown type may land back on the base node through its wildcard
            if typed is not None and typed.node.path != match.node.path:
                search_nodes.insert(0, typed.node)

        params: list[ParamNode] = []
        for node in search_nodes:
            params.extend(node.parameters)
        return params

    async def list_types(self, config_path: Sequence[str]) -> list[SyntaxNode]:
        """List the object types the ``type`` parameter may select for a block."""
        if not config_path:
            return []
        data = await self._get_data()
        if data is None:
            return []
        match = self._match(data, list(config_path))
        if match is None:
            return []
        if match.fuzzy_on_last:
            parent_path = list(config_path[:-1])
        else:
            parent_path = [*config_path, TYPE_SEGMENT]
        parent = self._match(data, parent_path) if parent_path else None
        if parent is None:
            return []
        return [
            self._enrich(data, node)
            for node in parent.node.children
            if node.segments[-1] not in (WILDCARD, TYPE_SEGMENT)
        ]

    async def list_subblock_paths(self, base_path: Sequence[str] = ()) -> list[str]:
        """List every distinct block path below *base_path*, wildcard entries included."""
        data = await self._get_data()
        if data is None:
            return []
        found: list[str] = []
        seen: set[str] = set()
        for node in data.nodes:
            self._collect_subblocks(node, list(base_path), found, seen)
        return found

    # -- internals -----------------------------------------------------------

    async def _get_data(self) -> SyntaxData | None:
        try:
            return await self._cache.get()
        except SchemaError as exc:
            self._report(exc)
            return None

    def _match(self, data: SyntaxData, config_path: list[str]) -> NodeMatch | None:
        best: NodeMatch | None = None
        for match in _walk_matches(data.nodes, config_path):
            # strict comparison: ties go to the first node in traversal order
            if best is None or match.fuzz < best.fuzz:
                best = match
        if best is None:
            return None
        return best.model_copy(update={"node": self._enrich(data, best.node)})

    @staticmethod
    def _enrich(data: SyntaxData, node: SyntaxNode) -> SyntaxNode:
        """Merge secondary metadata into *node* the first time it is matched."""
        cached = data.enriched.get(node.path)
        if cached is not None:
            return cached
        enriched = node
        meta = data.metadata.get(node.path)
        if meta is not None:
            update: dict[str, str] = {}
            if meta.description:
                update["description"] = meta.description
            if meta.register_file:
                update["source_file"] = meta.register_file
            if update:
                enriched = node.model_copy(update=update)
        data.enriched[node.path] = enriched
        return enriched

    def _collect_subblocks(
        self, node: SyntaxNode, base_path: list[str], found: list[str], seen: set[str]
    ) -> None:
        segments = node.segments
        for segment, part in zip(segments, base_path):
            if segment != WILDCARD and segment != part:
                return

        last = segments[-1]
        expandable = node.subblocks is not None and last != TYPE_SEGMENT
        if (expandable or last == WILDCARD) and len(base_path) < len(segments):
            if node.path not in seen:
                seen.add(node.path)
                found.append(node.path)
        if expandable:
            for child in node.children:
                self._collect_subblocks(child, base_path, found, seen)

    def _report(self, error: Exception) -> None:
        self._logger.warning("%s", error)
        if self._on_error is not None:
            self._on_error(error)
