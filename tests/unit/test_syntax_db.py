"""Tests for the schema database: matching, parameter lists and load lifecycle."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from hitlens.models.syntax import NodeMetadata, SyntaxNode
from hitlens.syntax.cache import CacheState, SchemaCache, SyntaxData
from hitlens.syntax.database import SyntaxDatabase, typed_path
from hitlens.syntax.errors import (
    SchemaLoadError,
    SchemaNotLoadedError,
    SchemaSourceError,
)
from hitlens.syntax.loader import SyntaxLoader
from tests.conftest import BAD_YAML, SYNTAX_JSON, SYNTAX_YAML

AMBIGUOUS_SCHEMA = """\
- name: /A
  subblocks:
  - name: /A/*
    description: any child
    subblocks:
    - name: /A/*/x
      description: x below any child
  - name: /A/b
    description: the b child
    subblocks:
    - name: /A/b/*
      description: anything below b
"""


class CountingLoader(SyntaxLoader):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def load(self, path: Path) -> list[SyntaxNode]:
        self.calls += 1
        return super().load(path)


class TestTypedPath:
    def test_appends_type_segment(self) -> None:
        assert typed_path(["Mesh"], "FileMesh", False) == ["Mesh", "<type>", "FileMesh"]

    def test_replaces_fuzzy_last_segment(self) -> None:
        assert typed_path(["Kernels", "diff"], "Diffusion", True) == ["Kernels", "Diffusion"]

    def test_no_type_leaves_path(self) -> None:
        assert typed_path(["Kernels", "diff"], None, True) == ["Kernels", "diff"]


class TestMatchPath:
    async def test_exact_top_level(self, syntax_db: SyntaxDatabase) -> None:
        match = await syntax_db.match_path(["Kernels"])
        assert match is not None
        assert match.node.path == "Kernels"
        assert match.fuzz == 0
        assert match.fuzzy_on_last is False

    async def test_wildcard_match(self, syntax_db: SyntaxDatabase) -> None:
        match = await syntax_db.match_path(["Kernels", "diff"])
        assert match is not None
        assert match.node.path == "Kernels/*"
        assert match.fuzz == 1
        assert match.fuzzy_on_last is True

    async def test_literal_beats_wildcard(self, syntax_db: SyntaxDatabase) -> None:
        match = await syntax_db.match_path(["Kernels", "Diffusion"])
        assert match is not None
        assert match.node.path == "Kernels/Diffusion"
        assert match.fuzz == 0

    async def test_unknown_path(self, syntax_db: SyntaxDatabase) -> None:
        assert await syntax_db.match_path(["NoSuchBlock"]) is None
        assert await syntax_db.match_path(["Kernels", "a", "b"]) is None

    async def test_empty_path(self, syntax_db: SyntaxDatabase) -> None:
        assert await syntax_db.match_path([]) is None

    async def test_ties_go_to_first_in_traversal(self, tmp_path: Path) -> None:
        schema = tmp_path / "ambiguous.yaml"
        schema.write_text(AMBIGUOUS_SCHEMA)
        db = SyntaxDatabase()
        assert db.set_source(schema)

        match = await db.match_path(["A", "b", "x"])
        assert match is not None
        assert match.node.path == "A/*/x"
        assert match.fuzz == 1
        assert match.fuzzy_on_last is False

        # deterministic across calls
        again = await db.match_path(["A", "b", "x"])
        assert again is not None and again.node.path == "A/*/x"

    async def test_least_fuzz_wins(self, tmp_path: Path) -> None:
        schema = tmp_path / "ambiguous.yaml"
        schema.write_text(AMBIGUOUS_SCHEMA)
        db = SyntaxDatabase()
        db.set_source(schema)
        match = await db.match_path(["A", "b"])
        assert match is not None
        assert match.node.path == "A/b"

    async def test_metadata_merged_on_match(self, syntax_db: SyntaxDatabase) -> None:
        match = await syntax_db.match_path(["Kernels", "Diffusion"])
        assert match is not None
        assert match.node.description == "The Laplacian operator (-Delta u)"
        assert match.node.source_file == "framework/src/kernels/Diffusion.C"

    async def test_metadata_without_description_keeps_schema_text(
        self, syntax_db: SyntaxDatabase
    ) -> None:
        match = await syntax_db.match_path(["Kernels", "TimeDerivative"])
        assert match is not None
        assert match.node.description == "The time derivative operator"
        assert match.node.source_file == "framework/src/kernels/TimeDerivative.C"


class TestListParameters:
    async def test_default_type_used_when_not_given(self, syntax_db: SyntaxDatabase) -> None:
        params = await syntax_db.list_parameters(["Mesh"])
        names = [p.name for p in params]
        assert names[0] == "file"
        assert "type" in names
        assert "uniform_refine" in names

    async def test_explicit_type_first(self, syntax_db: SyntaxDatabase) -> None:
        params = await syntax_db.list_parameters(["Mesh"], "GeneratedMesh")
        assert [p.name for p in params] == ["dim", "nx", "type", "uniform_refine"]

    async def test_fuzzy_block_replaces_last_segment(self, syntax_db: SyntaxDatabase) -> None:
        params = await syntax_db.list_parameters(["Kernels", "diff"], "Diffusion")
        assert [p.name for p in params] == ["variable", "type", "block"]
        assert params[0].required is True
        assert params[0].structural_type == "NonlinearVariableName"

    async def test_unknown_type_falls_back_to_base(self, syntax_db: SyntaxDatabase) -> None:
        params = await syntax_db.list_parameters(["Kernels", "diff"], "NoSuchKernel")
        assert [p.name for p in params] == ["type", "block"]

    async def test_empty_path_returns_nothing(self, syntax_db: SyntaxDatabase) -> None:
        assert await syntax_db.list_parameters([]) == []

    async def test_unmatched_path_returns_nothing(self, syntax_db: SyntaxDatabase) -> None:
        assert await syntax_db.list_parameters(["Nope"]) == []


class TestListTypes:
    async def test_wildcard_block_types(self, syntax_db: SyntaxDatabase) -> None:
        types = await syntax_db.list_types(["Kernels", "k"])
        assert [t.segments[-1] for t in types] == ["Diffusion", "TimeDerivative", "AllenCahn"]

    async def test_type_pseudo_block(self, syntax_db: SyntaxDatabase) -> None:
        types = await syntax_db.list_types(["Mesh"])
        assert [t.segments[-1] for t in types] == ["FileMesh", "GeneratedMesh"]
        generated = types[1]
        assert generated.source_file == "framework/src/mesh/GeneratedMesh.C"

    async def test_block_without_types(self, syntax_db: SyntaxDatabase) -> None:
        assert await syntax_db.list_types(["Executioner", "Quadrature"]) == []
        assert await syntax_db.list_types(["Variables", "u"]) == []


class TestListSubblockPaths:
    async def test_top_level(self, syntax_db: SyntaxDatabase) -> None:
        paths = await syntax_db.list_subblock_paths()
        assert "Kernels" in paths
        assert "Kernels/*" in paths
        assert "Executioner/Quadrature" in paths
        assert "Outputs" in paths
        # object types and the type pseudo block are not blocks of their own
        assert "Kernels/Diffusion" not in paths
        assert not any("<type>" in path for path in paths)
        assert len(paths) == len(set(paths))

    async def test_below_base_path(self, syntax_db: SyntaxDatabase) -> None:
        assert await syntax_db.list_subblock_paths(["Kernels"]) == ["Kernels/*"]
        assert await syntax_db.list_subblock_paths(["Executioner"]) == ["Executioner/Quadrature"]


class TestLoadLifecycle:
    def test_missing_source_reported(
        self, empty_db: SyntaxDatabase, reported: list[Exception]
    ) -> None:
        assert empty_db.set_source("/no/such/syntax.yaml") is False
        assert len(reported) == 1
        assert isinstance(reported[0], SchemaSourceError)
        assert empty_db.state is CacheState.EMPTY

    async def test_query_without_schema(
        self, empty_db: SyntaxDatabase, reported: list[Exception]
    ) -> None:
        assert await empty_db.match_path(["Kernels"]) is None
        assert await empty_db.list_parameters(["Kernels"]) == []
        assert any(isinstance(err, SchemaNotLoadedError) for err in reported)

    async def test_retrieve_nodes_raises_without_schema(self, empty_db: SyntaxDatabase) -> None:
        with pytest.raises(SchemaNotLoadedError):
            await empty_db.retrieve_nodes()

    async def test_malformed_schema_reported(
        self, empty_db: SyntaxDatabase, reported: list[Exception]
    ) -> None:
        assert empty_db.set_source(BAD_YAML)
        assert await empty_db.match_path(["Kernels"]) is None
        assert any(isinstance(err, SchemaLoadError) for err in reported)
        assert await empty_db.is_loaded() is False

    async def test_failed_reload_keeps_previous_schema(
        self, syntax_db: SyntaxDatabase, reported: list[Exception]
    ) -> None:
        assert await syntax_db.is_loaded()
        assert syntax_db.set_source(BAD_YAML)
        match = await syntax_db.match_path(["Kernels"])
        assert match is not None
        assert syntax_db.state is CacheState.READY
        assert any(isinstance(err, SchemaLoadError) for err in reported)

    async def test_concurrent_queries_share_one_load(self) -> None:
        loader = CountingLoader()
        db = SyntaxDatabase(loader=loader)
        db.set_source(SYNTAX_YAML, SYNTAX_JSON)
        assert db.state is CacheState.LOADING

        results = await asyncio.gather(*(db.match_path(["Kernels"]) for _ in range(5)))
        assert all(result is not None for result in results)
        assert loader.calls == 1
        assert db.state is CacheState.READY

    async def test_same_source_does_not_reload(self) -> None:
        loader = CountingLoader()
        db = SyntaxDatabase(loader=loader)
        db.set_source(SYNTAX_YAML)
        await db.retrieve_nodes()
        assert db.set_source(SYNTAX_YAML)
        await db.retrieve_nodes()
        assert loader.calls == 1

    async def test_explicit_reload(self) -> None:
        loader = CountingLoader()
        db = SyntaxDatabase(loader=loader)
        db.set_source(SYNTAX_YAML)
        await db.retrieve_nodes()
        db.reload()
        await db.retrieve_nodes()
        assert loader.calls == 2

    def test_reload_without_source(
        self, empty_db: SyntaxDatabase, reported: list[Exception]
    ) -> None:
        empty_db.reload()
        assert isinstance(reported[0], SchemaSourceError)


class TestSchemaCache:
    async def test_empty_cache_raises(self) -> None:
        cache = SchemaCache()
        assert cache.state is CacheState.EMPTY
        with pytest.raises(SchemaNotLoadedError):
            await cache.get()

    async def test_ready_after_load(self) -> None:
        data = SyntaxData(nodes=[SyntaxNode(name="/A")], metadata={"A": NodeMetadata()})

        async def factory() -> SyntaxData:
            return data

        cache = SchemaCache()
        cache.request(factory)
        assert cache.state is CacheState.LOADING
        assert await cache.get() is data
        assert cache.state is CacheState.READY

    async def test_failure_wrapped_and_reported_once(self) -> None:
        failures: list[Exception] = []

        async def factory() -> SyntaxData:
            raise ValueError("boom")

        cache = SchemaCache(on_failure=failures.append)
        cache.request(factory)
        with pytest.raises(SchemaLoadError, match="boom"):
            await cache.get()
        await asyncio.sleep(0)
        assert len(failures) == 1
        assert cache.state is CacheState.EMPTY

        # later readers see the stored error without another report
        with pytest.raises(SchemaLoadError):
            await cache.get()
        assert len(failures) == 1

    async def test_superseded_load_does_not_win(self) -> None:
        release = asyncio.Event()
        old = SyntaxData(nodes=[SyntaxNode(name="/Old")])
        new = SyntaxData(nodes=[SyntaxNode(name="/New")])

        async def slow() -> SyntaxData:
            await release.wait()
            return old

        async def fast() -> SyntaxData:
            return new

        cache = SchemaCache()
        cache.request(slow)
        first = cache._task
        cache.request(fast)
        assert await cache.get() is new
        release.set()
        assert first is not None
        await first
        assert (await cache.get()) is new

    async def test_superseded_failure_not_reported(self) -> None:
        failures: list[Exception] = []
        release = asyncio.Event()
        new = SyntaxData(nodes=[SyntaxNode(name="/New")])

        async def slow() -> SyntaxData:
            await release.wait()
            raise SchemaLoadError("stale")

        async def fast() -> SyntaxData:
            return new

        cache = SchemaCache(on_failure=failures.append)
        cache.request(slow)
        first = cache._task
        cache.request(fast)
        assert await cache.get() is new
        release.set()
        assert first is not None
        with pytest.raises(SchemaLoadError, match="stale"):
            await first
        await asyncio.sleep(0)
        assert failures == []
        assert await cache.get() is new
        assert cache.state is CacheState.READY
