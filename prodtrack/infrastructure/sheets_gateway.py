from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Any

from prodtrack.core.errors import InfraError
from prodtrack.domain.equality import to_cell_value
from prodtrack.domain.models import CellWriteReceipt, SheetsConfig, TableSnapshot
from prodtrack.infrastructure.sheets_client import SheetsClient
from prodtrack.infrastructure.sheets_client_puros import construir_rango, recibo_desde_respuesta
from prodtrack.infrastructure.sheets_errors import SheetsConfigError

logger = logging.getLogger(__name__)


class SheetsTableGateway:
    """Implementa ``TableAccessPort`` sobre un spreadsheet de Google Sheets."""

    def __init__(self, client: SheetsClient, config: SheetsConfig | None) -> None:
        self._client = client
        self._config = config
        self._open_lock = Lock()

    def get_snapshot(self, table_name: str) -> TableSnapshot:
        self._ensure_open()
        return TableSnapshot.from_values(table_name, self._client.read_all_values(table_name))

    def write_cell(self, table_name: str, address: str, value: Any) -> CellWriteReceipt:
        self._ensure_open()
        range_name = construir_rango(table_name, address)
        response = self._client.update_cell_range(range_name, to_cell_value(value))
        return recibo_desde_respuesta(response, range_name)

    def table_names(self) -> list[str]:
        self._ensure_open()
        return self._client.worksheet_titles()

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.table_names()

    def validate_connection(self) -> bool:
        try:
            self.table_names()
        except (InfraError, RuntimeError) as exc:
            logger.warning("Google Sheets no accesible: %s", exc)
            return False
        return True

    def _ensure_open(self) -> None:
        if self._client.is_open:
            return
        if self._config is None or not self._config.spreadsheet_id:
            raise SheetsConfigError("Falta configurar el spreadsheet (PRODTRACK_SPREADSHEET_ID).")
        # Un único open aunque lleguen varias peticiones a la vez.
        with self._open_lock:
            if self._client.is_open:
                return
            self._client.open_spreadsheet(Path(self._config.credentials_path), self._config.spreadsheet_id)
