from __future__ import annotations

import json
from typing import Any

from prodtrack.domain.models import MISSING

_PRIMITIVES = (str, int, float, bool)


def is_empty(value: Any) -> bool:
    """``None`` y el valor ausente (``MISSING``) cuentan como el mismo "vacío".

    La cadena vacía NO es vacío: es lo que Google Sheets devuelve para una
    celda en blanco y se compara como cualquier otro texto.
    """
    return value is None or value is MISSING


def canonical_json(value: Any) -> str:
    # Sensible al orden: dos dicts con las mismas claves en distinto orden difieren.
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_text(value: int | float) -> str:
    """Texto de un número tal como lo muestra Sheets: ``96.0`` se lee ``"96"``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def detect_conflict(original: Any, current: Any) -> bool:
    if is_empty(original) and is_empty(current):
        return False
    if is_empty(original) or is_empty(current):
        return True
    if isinstance(original, _PRIMITIVES) and isinstance(current, _PRIMITIVES):
        if isinstance(original, bool) != isinstance(current, bool):
            return True
        # Sheets devuelve siempre texto: 96 y "96" son el mismo valor.
        if _is_number(original) and isinstance(current, str):
            return _number_text(original) != current.strip()
        if isinstance(original, str) and _is_number(current):
            return original.strip() != _number_text(current)
        return original != current
    return canonical_json(original) != canonical_json(current)


def values_equal(left: Any, right: Any) -> bool:
    return not detect_conflict(left, right)


def to_cell_value(value: Any) -> Any:
    """Valor que se envía a la celda: compuestos como JSON, vacío como ``""``."""
    if is_empty(value):
        return ""
    if isinstance(value, (list, tuple, dict)):
        return canonical_json(value)
    return value
