from __future__ import annotations

import logging

from prodtrack.core.errors import CellNotFoundError, ValidationError
from prodtrack.core.metrics import (
    CELL_UPDATE_CONFLICT,
    CELL_UPDATE_FORCED,
    CELL_UPDATE_NOT_FOUND,
    CELL_UPDATE_OK,
    medir_tiempo,
    metrics_registry,
)
from prodtrack.core.observability import log_event
from prodtrack.domain.address_resolver import AddressResolver
from prodtrack.domain.equality import detect_conflict
from prodtrack.domain.models import CellUpdateRequest, TableSnapshot, UpdateResult
from prodtrack.domain.ports import TableAccessPort

logger = logging.getLogger(__name__)


def validate_request(request: CellUpdateRequest) -> None:
    missing = request.missing_fields()
    if missing:
        raise ValidationError("entityId and fieldId are required", fields=missing)
    if not request.table_name.strip():
        raise ValidationError("tableName is required", fields=("tableName",))


class CellStore:
    """Compare-and-swap sobre una celda de la tabla compartida.

    Lee un snapshot fresco en cada llamada y escribe solo si el valor vivo
    coincide con ``original_value`` (o si ``force``). Entre la lectura y la
    escritura otro proceso puede escribir: esa carrera no se impide, se
    detecta en la siguiente escritura de quien la pierda.
    """

    def __init__(self, table_access: TableAccessPort, resolver: AddressResolver | None = None) -> None:
        self._table_access = table_access
        self._resolver = resolver or AddressResolver()

    def read_snapshot(self, table_name: str) -> TableSnapshot:
        return self._table_access.get_snapshot(table_name)

    @medir_tiempo("cell_store.update_cell")
    def update_cell(self, request: CellUpdateRequest, *, user_id: str | None = None) -> UpdateResult:
        validate_request(request)
        snapshot = self._table_access.get_snapshot(request.table_name)
        location = self._resolver.locate(snapshot, request.entity_id, request.field_id)
        if location is None:
            metrics_registry.incrementar(CELL_UPDATE_NOT_FOUND)
            logger.info(
                "Celda no encontrada: %s %s/%s", request.table_name, request.entity_id, request.field_id
            )
            raise CellNotFoundError("Cell not found")

        if not request.force and detect_conflict(request.original_value, location.value):
            metrics_registry.incrementar(CELL_UPDATE_CONFLICT)
            self._audit("cell_update_conflict", request, user_id, current_value=location.value)
            return UpdateResult(
                success=False,
                conflict=True,
                current_value=location.value,
                entity_id=request.entity_id,
                field_id=request.field_id,
            )

        receipt = self._table_access.write_cell(request.table_name, location.address, request.new_value)
        metrics_registry.incrementar(CELL_UPDATE_FORCED if request.force else CELL_UPDATE_OK)
        self._audit("cell_updated", request, user_id, address=receipt.updated_range)
        return UpdateResult(
            success=True,
            conflict=False,
            updated_address=receipt.updated_range,
            updated_rows=receipt.updated_rows,
            entity_id=request.entity_id,
            field_id=request.field_id,
        )

    @staticmethod
    def _audit(event_name: str, request: CellUpdateRequest, user_id: str | None, **extra: object) -> None:
        payload = {
            "user_id": user_id,
            "table": request.table_name,
            "entity_id": request.entity_id,
            "field_id": request.field_id,
            "force": request.force,
            **extra,
        }
        log_event(logger, event_name, payload)
