"""Single-flight cache cell for the loaded schema."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from hitlens.models.syntax import NodeMetadata, SyntaxNode
from hitlens.syntax.errors import SchemaError, SchemaLoadError, SchemaNotLoadedError


class CacheState(StrEnum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


@dataclass
class SyntaxData:
    """One fully loaded schema.  Replaced wholesale on reload, never patched."""

    nodes: list[SyntaxNode]
    metadata: dict[str, NodeMetadata] = field(default_factory=dict)
    # nodes already merged with their metadata, keyed by schema path
    enriched: dict[str, SyntaxNode] = field(default_factory=dict)


LoadFactory = Callable[[], Awaitable[SyntaxData]]


class SchemaCache:
    """Holds the schema as empty, loading (one shared task) or ready.

    Concurrent readers await the same in-flight task.  A failed reload
    keeps the previously loaded data; a superseded load never overwrites
    the result of a newer one.  A load requested while no event loop is
    running is deferred until the first ``get()``.
    """

    def __init__(self, on_failure: Callable[[SchemaError], None] | None = None) -> None:
        self._on_failure = on_failure
        self._data: SyntaxData | None = None
        self._error: SchemaError | None = None
        self._task: asyncio.Task[SyntaxData] | None = None
        self._pending: LoadFactory | None = None
        self._generation = 0

    @property
    def state(self) -> CacheState:
        if self._task is not None or self._pending is not None:
            return CacheState.LOADING
        if self._data is not None:
            return CacheState.READY
        return CacheState.EMPTY

    @property
    def data(self) -> SyntaxData | None:
        return self._data

    def request(self, factory: LoadFactory) -> None:
        """Schedule a (re)load; supersedes any load still in flight."""
        self._generation += 1
        self._pending = factory
        self._start_pending()

    async def get(self) -> SyntaxData:
        """Return the loaded schema, awaiting an in-flight load if there is one."""
        self._start_pending()
        if self._task is not None:
            try:
                return await asyncio.shield(self._task)
            except SchemaError:
                if self._data is None:
                    raise
                return self._data
        if self._data is not None:
            return self._data
        if self._error is not None:
            raise self._error
        raise SchemaNotLoadedError("no schema loaded")

    # -- internals -----------------------------------------------------------

    def _start_pending(self) -> None:
        if self._pending is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        factory, self._pending = self._pending, None
        generation = self._generation
        task = asyncio.ensure_future(self._run(factory, generation))
        task.add_done_callback(lambda done: self._report(done, generation))
        self._task = task

    async def _run(self, factory: LoadFactory, generation: int) -> SyntaxData:
        try:
            data = await factory()
        except SchemaError as exc:
            if generation == self._generation:
                self._finish(None, exc)
            raise
        except Exception as exc:
            error = SchemaLoadError(str(exc))
            if generation == self._generation:
                self._finish(None, error)
            raise error from exc
        if generation == self._generation:
            self._finish(data, None)
        return data

    def _finish(self, data: SyntaxData | None, error: SchemaError | None) -> None:
        self._task = None
        if data is not None:
            self._data = data
            self._error = None
        elif self._data is None:
            self._error = error

    def _report(self, task: asyncio.Task[SyntaxData], generation: int) -> None:
        if task.cancelled():
            if self._task is task:
                self._task = None
            return
        exc = task.exception()
        # a superseded load fails silently
        if generation != self._generation:
            return
        if isinstance(exc, SchemaError) and self._on_failure is not None:
            self._on_failure(exc)
