from __future__ import annotations

import pytest

from prodtrack.domain.equality import canonical_json, detect_conflict, is_empty, to_cell_value, values_equal
from prodtrack.domain.models import MISSING


def test_none_y_missing_son_el_mismo_vacio() -> None:
    assert is_empty(None)
    assert is_empty(MISSING)
    assert not is_empty("")
    assert not detect_conflict(None, MISSING)
    assert not detect_conflict(MISSING, None)


def test_vacio_frente_a_valor_es_conflicto() -> None:
    assert detect_conflict(None, "Opening Scene")
    assert detect_conflict("Opening Scene", None)


def test_cadena_vacia_no_equivale_a_none() -> None:
    assert detect_conflict(None, "")
    assert not detect_conflict("", "")


@pytest.mark.parametrize(
    ("original", "current", "expected"),
    [
        ("Opening Scene", "Opening Scene", False),
        ("Opening Scene", "Changed Elsewhere", True),
        (120, 120, False),
        (120, 120.0, False),
        (120, "120", False),
        ("120", 120, False),
        (96.0, "96", False),
        (96.5, "96.5", False),
        (120, "121", True),
        (True, "TRUE", True),
        (True, 1, True),
        (False, False, False),
    ],
)
def test_primitivos(original, current, expected: bool) -> None:
    assert detect_conflict(original, current) is expected


def test_compuestos_por_json_canonico() -> None:
    assert not detect_conflict({"a": 1, "b": [1, 2]}, {"a": 1, "b": [1, 2]})
    assert detect_conflict([1, 2], [2, 1])
    # El orden de claves cuenta.
    assert detect_conflict({"a": 1, "b": 2}, {"b": 2, "a": 1})
    assert detect_conflict({"a": 1}, '{"a": 1}')


def test_values_equal_es_la_negacion() -> None:
    assert values_equal("x", "x")
    assert not values_equal("x", "y")


def test_canonical_json_compacto_y_unicode() -> None:
    assert canonical_json({"título": "Escena"}) == '{"título":"Escena"}'


def test_to_cell_value() -> None:
    assert to_cell_value(None) == ""
    assert to_cell_value(MISSING) == ""
    assert to_cell_value(["a", 1]) == '["a",1]'
    assert to_cell_value(42) == 42
