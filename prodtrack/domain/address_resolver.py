from __future__ import annotations

from typing import Any

from prodtrack.domain.models import CellLocation, TableSnapshot


def column_letter(index: int) -> str:
    """Numeración biyectiva base 26: 0 -> A, 25 -> Z, 26 -> AA, 701 -> ZZ."""
    if index < 0:
        raise ValueError("El índice de columna no puede ser negativo")
    letters = ""
    current = index
    while current >= 0:
        letters = chr(ord("A") + current % 26) + letters
        current = current // 26 - 1
    return letters


def column_index(letters: str) -> int:
    cleaned = letters.strip().upper()
    if not cleaned or not cleaned.isalpha():
        raise ValueError(f"Columna inválida: {letters!r}")
    total = 0
    for char in cleaned:
        total = total * 26 + (ord(char) - ord("A") + 1)
    return total - 1


def a1_address(row_index: int, col_index: int) -> str:
    """``row_index`` es la posición 0-based en el snapshot (0 = cabecera)."""
    return f"{column_letter(col_index)}{row_index + 1}"


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class AddressResolver:
    """Localiza la celda ``(entity_id, field_id)`` recorriendo el snapshot completo.

    Coste O(filas) por llamada; se acepta porque cada escritura lee un
    snapshot recién descargado. Los ids duplicados resuelven a la primera
    fila que coincide.
    """

    def __init__(self, id_column: str | None = None) -> None:
        self._id_column = id_column

    def locate(self, snapshot: TableSnapshot, entity_id: str, field_id: str) -> CellLocation | None:
        header = snapshot.header
        field_col = self._find_header(header, field_id)
        if field_col is None:
            return None
        id_col = 0 if self._id_column is None else self._find_header(header, self._id_column)
        if id_col is None:
            return None
        target = _cell_text(entity_id)
        for row_index, row in enumerate(snapshot.rows[1:], start=1):
            if id_col < len(row) and _cell_text(row[id_col]) == target:
                value = row[field_col] if field_col < len(row) else ""
                return CellLocation(
                    row_index=row_index,
                    column_index=field_col,
                    value=value,
                    address=a1_address(row_index, field_col),
                )
        return None

    def locate_value(self, snapshot: TableSnapshot, entity_id: str, field_id: str) -> Any | None:
        location = self.locate(snapshot, entity_id, field_id)
        return None if location is None else location.value

    def locate_address(self, snapshot: TableSnapshot, entity_id: str, field_id: str) -> str | None:
        location = self.locate(snapshot, entity_id, field_id)
        return None if location is None else location.address

    @staticmethod
    def _find_header(header: tuple[Any, ...], name: str) -> int | None:
        target = _cell_text(name)
        for idx, cell in enumerate(header):
            if _cell_text(cell) == target:
                return idx
        return None
