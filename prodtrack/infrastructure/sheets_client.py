from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Callable, TypeVar

import gspread
import requests
from google.auth.exceptions import DefaultCredentialsError, TransportError

from prodtrack.bootstrap.logging import log_operational_error
from prodtrack.core.errors import StoreUnavailableError, TableNotFoundError
from prodtrack.core.observability import get_correlation_id
from prodtrack.core.retry import SERVER_POLICY, RetryPolicy
from prodtrack.infrastructure.sheets_client_puros import (
    extraer_nombre_hoja_de_rango,
    extraer_worksheet_desde_operacion,
    normalizar_valores,
)
from prodtrack.infrastructure.sheets_errors import SheetsPermissionError, map_gspread_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAPPED_EXCEPTIONS = (
    gspread.exceptions.GSpreadException,
    requests.exceptions.RequestException,
    TransportError,
)


class SheetsClient:
    """Acceso gspread con reintentos. Solo cachea handles de worksheet, nunca valores."""

    def __init__(self, retry_policy: RetryPolicy = SERVER_POLICY) -> None:
        self._retry_policy = retry_policy
        self._client: Any | None = None
        self._spreadsheet: gspread.Spreadsheet | None = None
        self._worksheet_cache: dict[str, gspread.Worksheet] = {}
        self._cache_lock = Lock()
        self._read_calls_count = 0
        self._write_calls_count = 0

    @property
    def is_open(self) -> bool:
        return self._spreadsheet is not None

    def open_spreadsheet(self, credentials_path: Path, spreadsheet_id: str) -> gspread.Spreadsheet:
        logger.info("Conectando a Google Sheets con credenciales: %s", credentials_path.name)
        try:
            client = gspread.service_account(filename=str(credentials_path))
            self._client = client
            spreadsheet = self._with_retry(
                "open_spreadsheet",
                lambda: client.open_by_key(spreadsheet_id),
                spreadsheet_id=spreadsheet_id,
            )
        except (
            gspread.exceptions.GSpreadException,
            FileNotFoundError,
            json.JSONDecodeError,
            DefaultCredentialsError,
            OSError,
        ) as exc:
            raise map_gspread_exception(exc) from exc
        with self._cache_lock:
            self._spreadsheet = spreadsheet
            self._worksheet_cache = {}
        self._read_calls_count = 0
        self._write_calls_count = 0
        return spreadsheet

    def attach_spreadsheet(self, spreadsheet: Any) -> None:
        with self._cache_lock:
            self._spreadsheet = spreadsheet
            self._worksheet_cache = {}

    def get_worksheet(self, name: str) -> gspread.Worksheet:
        with self._cache_lock:
            cached = self._worksheet_cache.get(name)
        if cached is not None:
            return cached
        spreadsheet = self._require_spreadsheet()
        worksheet = self._with_retry(f"spreadsheet.worksheet({name})", lambda: spreadsheet.worksheet(name))
        with self._cache_lock:
            return self._worksheet_cache.setdefault(name, worksheet)

    def worksheet_titles(self) -> list[str]:
        spreadsheet = self._require_spreadsheet()
        worksheets = self._with_retry("spreadsheet.worksheets", spreadsheet.worksheets)
        self._read_calls_count += 1
        return [worksheet.title for worksheet in worksheets]

    def read_all_values(self, worksheet_name: str) -> list[list[Any]]:
        worksheet = self.get_worksheet(worksheet_name)
        try:
            values = self._with_retry(f"worksheet.get_all_values({worksheet_name})", worksheet.get_all_values)
        except TableNotFoundError:
            with self._cache_lock:
                self._worksheet_cache.pop(worksheet_name, None)
            raise
        self._read_calls_count += 1
        return normalizar_valores(values)

    def update_cell_range(self, range_name: str, value: Any) -> Any:
        worksheet_name = extraer_nombre_hoja_de_rango(range_name) or ""
        worksheet = self.get_worksheet(worksheet_name)
        address = range_name.split("!", 1)[1] if "!" in range_name else range_name
        response = self._with_retry(
            f"worksheet.update({worksheet_name})",
            lambda: worksheet.update(values=[[value]], range_name=address, value_input_option="USER_ENTERED"),
        )
        self._write_calls_count += 1
        return response

    def get_read_calls_count(self) -> int:
        return self._read_calls_count

    def get_write_calls_count(self) -> int:
        return self._write_calls_count

    def _require_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            raise RuntimeError("Spreadsheet no inicializado. Llama a open_spreadsheet primero.")
        return self._spreadsheet

    def _with_retry(self, operation_name: str, operation: Callable[[], T], *, spreadsheet_id: str | None = None) -> T:
        def _mapped_operation() -> T:
            try:
                return operation()
            except _MAPPED_EXCEPTIONS as exc:
                mapped_error = map_gspread_exception(exc)
                self._handle_permission_error(mapped_error, operation_name, spreadsheet_id)
                raise mapped_error from exc

        return self._retry_policy.run(
            operation_name,
            _mapped_operation,
            exhausted=lambda exc, attempts: StoreUnavailableError(
                f"Google Sheets no responde tras {attempts} intentos ({operation_name}).",
                attempts=attempts,
            ),
        )

    def _handle_permission_error(
        self,
        mapped_error: Exception,
        operation_name: str,
        spreadsheet_id: str | None,
    ) -> None:
        if not isinstance(mapped_error, SheetsPermissionError):
            return
        try:
            self._log_permission_error(
                mapped_error,
                spreadsheet_id=spreadsheet_id or getattr(self._spreadsheet, "id", None),
                worksheet_name=extraer_worksheet_desde_operacion(operation_name),
            )
        except Exception:  # pragma: no cover - el logging nunca debe romper una escritura
            logger.exception("No se pudo registrar un error de permisos de Google Sheets")

    @staticmethod
    def _log_permission_error(
        error: SheetsPermissionError,
        *,
        spreadsheet_id: str | None = None,
        worksheet_name: str | None = None,
    ) -> None:
        log_operational_error(
            logger,
            "Permisos insuficientes en Google Sheets",
            exc=error,
            extra={
                "correlation_id": get_correlation_id(),
                "operation": "sheets_permission_check",
                "spreadsheet_id": spreadsheet_id,
                "worksheet": worksheet_name,
            },
        )
