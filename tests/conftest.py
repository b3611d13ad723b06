"""Shared test fixtures for hitlens."""

from __future__ import annotations

from pathlib import Path

import pytest

from hitlens.document.accessor import TextDocument
from hitlens.syntax.database import SyntaxDatabase
from hitlens.syntax.loader import SyntaxLoader

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SYNTAX_YAML = FIXTURES_DIR / "syntax.yaml"
SYNTAX_JSON = FIXTURES_DIR / "syntax.json"
BAD_YAML = FIXTURES_DIR / "bad.yaml"


@pytest.fixture
def loader() -> SyntaxLoader:
    return SyntaxLoader()


@pytest.fixture
def reported() -> list[Exception]:
    """Errors delivered through the database's error channel."""
    return []


@pytest.fixture
def syntax_db(reported: list[Exception]) -> SyntaxDatabase:
    """Database pointed at the fixture schema; the load starts on first query."""
    db = SyntaxDatabase(on_error=reported.append)
    assert db.set_source(SYNTAX_YAML, SYNTAX_JSON)
    return db


@pytest.fixture
def empty_db(reported: list[Exception]) -> SyntaxDatabase:
    """Database with no schema source configured."""
    return SyntaxDatabase(on_error=reported.append)


def make_doc(text: str, path: str = "<string>") -> TextDocument:
    return TextDocument(text=text, path=path)


VALID_INPUT = """\
[Mesh]
    type = GeneratedMesh
    dim = 2
    nx = 10
[]

[Variables]
    [./u]
        order = FIRST
        family = LAGRANGE
    [../]
[]

[Kernels]
    [./diff]
        type = Diffusion
        variable = u
    [../]
    [./time]
        type = TimeDerivative
        variable = u
    [../]
[]

[BCs]
    [./left]
        type = DirichletBC
        variable = u
        boundary = 'left right'
        value = 0
    [../]
[]

[Executioner]
    type = Transient
    num_steps = 5
    dt = 0.1
    [./Quadrature]
        type = GAUSS
    [../]
[]

[Outputs]
    exodus = true
[]
"""

REFERENCE_INPUT = """\
[Variables]
    [./c]
    [../]
    [./w]
    [../]
[]

[AuxVariables]
    [./eta]
        family = MONOMIAL
    [../]
[]

[Functions]
    [./ic_func]
        type = ParsedFunction
        value = 'x*y'
    [../]
[]

[Kernels]
    [./dt]
        type = TimeDerivative
        variable = c
    [../]
    [./ac]
        type = AllenCahn
        variable = w
        f_name = F
        mob_name = L
        args = 'c eta'
    [../]
[]

[Materials]
    [./consts]
        type = GenericConstantMaterial
        prop_names = 'L kappa'
        prop_values = '1 0.5'
    [../]
    [./free_energy]
        type = DerivativeParsedMaterial
        f_name = F
        function = 'c^2 * (1 - c)^2'
        args = 'c'
        material_property_names = 'kappa h(c) dh:=D[h,c]'
    [../]
    [./mobility]
        type = GenericConstantMaterial
        prop_names = 'M'
        prop_values = '2'
    [../]
[]

[Postprocessors]
    [./avg_c]
        type = ElementAverageValue
        variable = c
    [../]
    [./ic_value]
        type = FunctionValuePostprocessor
        function = ic_func
    [../]
[]
"""
