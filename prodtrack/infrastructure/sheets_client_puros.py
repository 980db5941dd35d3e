from __future__ import annotations

from typing import Any

from prodtrack.domain.models import CellWriteReceipt


def extraer_nombre_hoja_de_rango(range_name: str) -> str | None:
    sheet_part = range_name.split("!", 1)[0].strip() if "!" in range_name else range_name.strip()
    if not sheet_part:
        return None
    if sheet_part.startswith("'") and sheet_part.endswith("'"):
        return sheet_part[1:-1].replace("''", "'")
    return sheet_part


def extraer_worksheet_desde_operacion(operation_name: str) -> str | None:
    start = operation_name.find("(")
    end = operation_name.rfind(")")
    if start < 0 or end <= start:
        return None
    worksheet_name = operation_name[start + 1 : end].strip()
    return worksheet_name or None


def citar_nombre_hoja(worksheet_name: str) -> str:
    if worksheet_name.replace("_", "").isalnum():
        return worksheet_name
    return "'" + worksheet_name.replace("'", "''") + "'"


def construir_rango(worksheet_name: str, address: str) -> str:
    return f"{citar_nombre_hoja(worksheet_name)}!{address}"


def normalizar_valores(values: Any) -> list[list[Any]]:
    if not isinstance(values, list):
        return []
    return [list(row) if isinstance(row, (list, tuple)) else [row] for row in values]


def recibo_desde_respuesta(response: Any, fallback_range: str) -> CellWriteReceipt:
    if not isinstance(response, dict):
        return CellWriteReceipt(updated_range=fallback_range, updated_rows=1)
    updated_range = response.get("updatedRange")
    updated_rows = response.get("updatedRows")
    return CellWriteReceipt(
        updated_range=updated_range if isinstance(updated_range, str) and updated_range else fallback_range,
        updated_rows=updated_rows if isinstance(updated_rows, int) else 1,
    )
