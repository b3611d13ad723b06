"""Tests for the definition/reference graph and cursor lookups."""

from __future__ import annotations

from hitlens.document.references import ReferenceResolver, material_property_names
from hitlens.models.errors import Position
from hitlens.models.references import TokenKind
from hitlens.syntax.database import SyntaxDatabase
from tests.conftest import REFERENCE_INPUT, make_doc

SMALL_INPUT = "[Variables]\n[./a]\n[../]\n[]\n[Kernels]\n[./k]\nvariable = a\n[../]\n[]"


def pos(row: int, column: int) -> Position:
    return Position(row=row, column=column)


class TestMaterialPropertyNames:
    def test_plain_names(self) -> None:
        assert material_property_names("'a b'") == ["a", "b"]

    def test_dependent_and_derivative_forms(self) -> None:
        assert material_property_names("'kappa h(c) dh:=D[h,c]'") == ["kappa", "h"]

    def test_invalid_identifiers_dropped(self) -> None:
        assert material_property_names("'1abc ok'") == ["ok"]


class TestFindReferences:
    async def test_variable_reference(self, syntax_db: SyntaxDatabase) -> None:
        entries = await ReferenceResolver(syntax_db).find_references(make_doc(SMALL_INPUT))
        entry = entries["Variables/a"]
        assert entry.definition.position == pos(1, 0)
        assert entry.refs == [pos(6, 11)]

    async def test_without_schema_all_namespaces_apply(self, empty_db: SyntaxDatabase) -> None:
        entries = await ReferenceResolver(empty_db).find_references(make_doc(SMALL_INPUT))
        assert entries["Variables/a"].refs == [pos(6, 11)]

    async def test_definition_keys(self, syntax_db: SyntaxDatabase) -> None:
        entries = await ReferenceResolver(syntax_db).find_references(make_doc(REFERENCE_INPUT))
        assert set(entries) == {
            "Variables/c",
            "Variables/w",
            "AuxVariables/eta",
            "Functions/ic_func",
            "Materials/L",
            "Materials/kappa",
            "Materials/F",
            "Materials/M",
            "Materials/h",
            "Postprocessors/avg_c",
            "Postprocessors/ic_value",
        }

    async def test_refs_follow_parameter_types(self, syntax_db: SyntaxDatabase) -> None:
        entries = await ReferenceResolver(syntax_db).find_references(make_doc(REFERENCE_INPUT))
        assert entries["Variables/c"].refs == [pos(23, 19), pos(30, 16), pos(44, 16), pos(57, 19)]
        assert entries["Variables/w"].refs == [pos(27, 19)]
        assert entries["AuxVariables/eta"].refs == [pos(30, 18)]
        assert entries["Functions/ic_func"].refs == [pos(61, 19)]
        assert entries["Materials/F"].refs == [pos(28, 17)]
        assert entries["Materials/L"].refs == [pos(29, 19)]
        assert entries["Materials/kappa"].refs == []

    async def test_explicit_declaration_wins(self, syntax_db: SyntaxDatabase) -> None:
        entries = await ReferenceResolver(syntax_db).find_references(make_doc(REFERENCE_INPUT))
        # kappa is named by prop_names in [./consts] and used by the expression in [./free_energy]
        assert entries["Materials/kappa"].definition.position == pos(35, 4)
        assert entries["Materials/h"].definition.position == pos(40, 4)

    async def test_definition_details(self, syntax_db: SyntaxDatabase) -> None:
        entries = await ReferenceResolver(syntax_db).find_references(make_doc(REFERENCE_INPUT))
        function = entries["Functions/ic_func"].definition
        assert function.type == "ParsedFunction"
        assert function.description == "Function created by parsing a string"
        energy = entries["Materials/F"].definition
        assert energy.type == "DerivativeParsedMaterial"
        assert energy.identifier == "F"
        assert energy.namespace == "Materials"
        variable = entries["Variables/c"].definition
        assert variable.type is None
        assert variable.description == "A nonlinear variable"

    async def test_block_name_is_default_material(self, empty_db: SyntaxDatabase) -> None:
        text = "[Materials]\n  [./elastic]\n    type = ComputeElasticityTensor\n  [../]\n[]\n"
        entries = await ReferenceResolver(empty_db).find_references(make_doc(text))
        assert list(entries) == ["Materials/elastic"]
        assert entries["Materials/elastic"].definition.type == "ComputeElasticityTensor"

    async def test_duplicate_declaration_keeps_first(self, empty_db: SyntaxDatabase) -> None:
        text = "[Variables]\n  [./u]\n  [../]\n  [./u]\n  [../]\n[]\n[BCs]\n  [./l]\n    variable = u\n  [../]\n[]\n"
        entries = await ReferenceResolver(empty_db).find_references(make_doc(text))
        assert entries["Variables/u"].definition.position == pos(1, 2)
        assert entries["Variables/u"].refs == [pos(8, 15)]

    async def test_find_definition_key(self, syntax_db: SyntaxDatabase) -> None:
        resolver = ReferenceResolver(syntax_db)
        doc = make_doc(REFERENCE_INPUT)
        entry = await resolver.find_definition_key(doc, "Materials/h")
        assert entry is not None
        assert entry.definition.key == "Materials/h"
        assert await resolver.find_definition_key(doc, "Materials/nope") is None


class TestFindCurrentNode:
    async def test_reference_value(self, syntax_db: SyntaxDatabase) -> None:
        match = await ReferenceResolver(syntax_db).find_current_node(
            make_doc(REFERENCE_INPUT), pos(23, 19)
        )
        assert match is not None
        assert match.kind is TokenKind.VALUE
        assert match.path == ["Kernels", "dt"]
        assert match.definition is not None
        assert match.definition.key == "Variables/c"
        assert match.refs == []
        assert match.start == pos(23, 19)
        assert match.end == pos(23, 20)

    async def test_parameter_name(self, syntax_db: SyntaxDatabase) -> None:
        match = await ReferenceResolver(syntax_db).find_current_node(
            make_doc(REFERENCE_INPUT), pos(23, 10)
        )
        assert match is not None
        assert match.kind is TokenKind.PARAMETER
        assert match.param is not None
        assert match.param.structural_type == "NonlinearVariableName"
        assert match.description == "The name of the variable that this Kernel operates on"

    async def test_type_value(self, syntax_db: SyntaxDatabase) -> None:
        match = await ReferenceResolver(syntax_db).find_current_node(
            make_doc(REFERENCE_INPUT), pos(22, 16)
        )
        assert match is not None
        assert match.kind is TokenKind.TYPE
        assert match.syntax_node is not None
        assert match.syntax_node.path == "Kernels/TimeDerivative"
        assert match.description == "The time derivative operator"

    async def test_block_header(self, syntax_db: SyntaxDatabase) -> None:
        match = await ReferenceResolver(syntax_db).find_current_node(
            make_doc(REFERENCE_INPUT), pos(20, 2)
        )
        assert match is not None
        assert match.kind is TokenKind.BLOCK
        assert match.path == ["Kernels"]
        assert match.description == "Volumetric residual contributions"

    async def test_sub_block_header(self, syntax_db: SyntaxDatabase) -> None:
        match = await ReferenceResolver(syntax_db).find_current_node(
            make_doc(REFERENCE_INPUT), pos(1, 6)
        )
        assert match is not None
        assert match.kind is TokenKind.SUBBLOCK
        assert match.path == ["Variables", "c"]
        assert match.definition is not None
        assert match.definition.key == "Variables/c"

    async def test_nothing_under_cursor(self, syntax_db: SyntaxDatabase) -> None:
        resolver = ReferenceResolver(syntax_db)
        doc = make_doc(REFERENCE_INPUT)
        assert await resolver.find_current_node(doc, pos(6, 0)) is None
        assert await resolver.find_current_node(doc, pos(5, 0)) is None
