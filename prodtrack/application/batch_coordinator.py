from __future__ import annotations

import logging
from typing import Sequence

from prodtrack.application.cell_store import CellStore, validate_request
from prodtrack.core.errors import NotFoundError
from prodtrack.core.metrics import BATCH_APPLIED, metrics_registry
from prodtrack.domain.models import BatchResult, CellUpdateRequest, ConflictRecord, UpdateResult

logger = logging.getLogger(__name__)


class BatchCoordinator:
    """Aplica actualizaciones de celda en orden, una detrás de otra.

    Un conflicto o una celda inexistente no abortan el lote; la tabla
    inaccesible (``StoreUnavailableError``) sí, porque el resto fallaría igual.
    """

    def __init__(self, cell_store: CellStore) -> None:
        self._cell_store = cell_store

    def apply_batch(self, requests: Sequence[CellUpdateRequest], *, user_id: str | None = None) -> BatchResult:
        for request in requests:
            validate_request(request)

        results: list[UpdateResult] = []
        conflicts: list[ConflictRecord] = []
        total_updated = 0
        for request in requests:
            try:
                result = self._cell_store.update_cell(request, user_id=user_id)
            except NotFoundError as exc:
                result = UpdateResult(
                    success=False,
                    conflict=False,
                    error=str(exc),
                    entity_id=request.entity_id,
                    field_id=request.field_id,
                )
            results.append(result)
            if result.conflict:
                conflicts.append(ConflictRecord.from_request(request, result.current_value))
            elif result.success:
                total_updated += 1

        metrics_registry.incrementar(BATCH_APPLIED)
        failed = len(results) - total_updated - len(conflicts)
        logger.info(
            "Lote aplicado: total=%s actualizadas=%s conflictos=%s errores=%s",
            len(results),
            total_updated,
            len(conflicts),
            failed,
        )
        return BatchResult(
            success=not conflicts,
            results=tuple(results),
            conflicts=tuple(conflicts),
            total_updated=total_updated,
        )
