from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from prodtrack.core.errors import ApiHttpError, ConflictError, NetworkError
from prodtrack.core.retry import CLIENT_POLICY, RetryPolicy
from prodtrack.domain.models import (
    EDIT_AGAIN_ERROR,
    CellUpdateRequest,
    ClientBatchResult,
    ConflictRecord,
    ResolutionChoice,
    UpdateResult,
)
from prodtrack.domain.ports import ApiResponse, CellsApiPort, ResolutionHandler

logger = logging.getLogger(__name__)


def is_retryable_client_error(exc: BaseException) -> bool:
    """Red caída, 5xx, 408 y 429. Los conflictos y el resto de 4xx no se reintentan."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, ApiHttpError):
        return exc.retryable
    return False


def _network_error(exc: BaseException, attempts: int) -> NetworkError:
    return NetworkError(str(exc) or exc.__class__.__name__, retryable=False, attempts=attempts)


def _conflict_current_value(payload: dict[str, Any]) -> Any:
    data = payload.get("data")
    if isinstance(data, dict):
        return data.get("currentValue")
    return payload.get("currentValue")


def result_from_response(request: CellUpdateRequest, response: ApiResponse) -> UpdateResult:
    payload = response.payload
    if response.status_code == 409:
        return UpdateResult(
            success=False,
            conflict=True,
            current_value=_conflict_current_value(payload),
            error=payload.get("error", "Conflict detected"),
            entity_id=request.entity_id,
            field_id=request.field_id,
        )
    body = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    return UpdateResult(
        success=bool(payload.get("success", True)),
        conflict=False,
        current_value=body.get("currentValue"),
        updated_address=body.get("updatedRange"),
        updated_rows=body.get("updatedRows"),
        error=payload.get("error"),
        entity_id=request.entity_id,
        field_id=request.field_id,
    )


class ConflictResolutionOrchestrator:
    def __init__(self, api: CellsApiPort, retry_policy: RetryPolicy = CLIENT_POLICY) -> None:
        self._api = api
        self._retry_policy = retry_policy.with_retryable(is_retryable_client_error)

    def update_cell(self, request: CellUpdateRequest) -> UpdateResult:
        """Resultado etiquetado (ok / conflicto / error); un conflicto nunca lanza aquí."""
        response = self._retry_policy.run(
            f"PUT cell({request.table_name})",
            lambda: self._api.put_cell(request),
            exhausted=_network_error,
        )
        return result_from_response(request, response)

    def update_cell_with_conflict_handling(
        self,
        request: CellUpdateRequest,
        on_conflict: ResolutionHandler | None = None,
    ) -> UpdateResult:
        result = self.update_cell(request)
        if not result.conflict:
            return result

        conflict = ConflictRecord.from_request(request, result.current_value)
        if on_conflict is None:
            raise ConflictError(conflict)

        # UserCancelledError se propaga tal cual.
        choice = ResolutionChoice(on_conflict(conflict))
        logger.info("Conflicto en %s/%s resuelto con %s", request.entity_id, request.field_id, choice.value)
        return self._apply_resolution(request, conflict, choice)

    def batch_update_with_conflict_handling(
        self,
        requests: Sequence[CellUpdateRequest],
        on_conflict: ResolutionHandler | None = None,
    ) -> ClientBatchResult:
        results: list[UpdateResult] = []
        for request in requests:
            try:
                results.append(self.update_cell_with_conflict_handling(request, on_conflict))
            except Exception as exc:  # noqa: BLE001
                logger.warning("Fallo en %s/%s: %s", request.entity_id, request.field_id, exc)
                results.append(
                    UpdateResult(
                        success=False,
                        conflict=isinstance(exc, ConflictError),
                        current_value=exc.conflict.current_value if isinstance(exc, ConflictError) else None,
                        error=str(exc) or exc.__class__.__name__,
                        entity_id=request.entity_id,
                        field_id=request.field_id,
                    )
                )
        success = all(result.success for result in results)
        return ClientBatchResult(
            success=success,
            results=tuple(results),
            error=None if success else "Some updates failed",
        )

    def _apply_resolution(
        self,
        request: CellUpdateRequest,
        conflict: ConflictRecord,
        choice: ResolutionChoice,
    ) -> UpdateResult:
        if choice is ResolutionChoice.OVERWRITE:
            return self.update_cell(request.forced())
        if choice is ResolutionChoice.KEEP_SERVER:
            return UpdateResult(
                success=True,
                conflict=False,
                current_value=conflict.current_value,
                message="Kept server value",
                entity_id=request.entity_id,
                field_id=request.field_id,
            )
        return UpdateResult(
            success=False,
            conflict=False,
            current_value=conflict.current_value,
            error=EDIT_AGAIN_ERROR,
            message="User chose to edit again",
            entity_id=request.entity_id,
            field_id=request.field_id,
        )
