from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, FastAPI, Request, status
from fastapi.responses import JSONResponse

from prodtrack import __version__
from prodtrack.bootstrap.container import AppContainer
from prodtrack.bootstrap.logging import log_operational_error
from prodtrack.core.errors import (
    CellNotFoundError,
    InfraError,
    NotFoundError,
    StoreUnavailableError,
    TableNotFoundError,
    TransientExternalError,
    ValidationError,
)
from prodtrack.core.observability import OperationContext, get_user_id
from prodtrack.domain.models import CellUpdateRequest, ConflictRecord

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
USER_HEADER = "X-User-Id"


def _error_body(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": message, **extra}


def _batch_requests(table_name: str, payload: dict[str, Any]) -> list[CellUpdateRequest]:
    updates = payload.get("updates")
    if not isinstance(updates, list):
        raise ValidationError("updates must be a list", fields=("updates",))
    requests = []
    for index, item in enumerate(updates):
        if not isinstance(item, dict):
            raise ValidationError(f"updates[{index}] must be an object", fields=("updates",))
        requests.append(CellUpdateRequest.from_payload(table_name, item))
    return requests


def _register_exception_handlers(app: FastAPI) -> None:
    async def on_validation(_request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(str(exc), fields=list(exc.fields)),
        )

    async def on_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        if isinstance(exc, CellNotFoundError):
            message = "Cell not found"
        elif isinstance(exc, TableNotFoundError):
            message = "Sheet not found"
        else:
            message = str(exc) or "Not found"
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body(message))

    async def on_unavailable(_request: Request, exc: InfraError) -> JSONResponse:
        log_operational_error(logger, "Almacén de celdas no disponible", exc=exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body("Backing store unavailable", detail=str(exc)),
        )

    async def on_infra(_request: Request, exc: InfraError) -> JSONResponse:
        log_operational_error(logger, "Error de infraestructura", exc=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal error", detail=str(exc)),
        )

    app.add_exception_handler(ValidationError, on_validation)
    app.add_exception_handler(NotFoundError, on_not_found)
    app.add_exception_handler(StoreUnavailableError, on_unavailable)
    app.add_exception_handler(TransientExternalError, on_unavailable)
    app.add_exception_handler(InfraError, on_infra)


def create_app(container: AppContainer) -> FastAPI:
    app = FastAPI(title="prodtrack cells API", version=__version__)
    app.state.container = container
    _register_exception_handlers(app)

    @app.middleware("http")
    async def operation_context(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or None
        user_id = request.headers.get(USER_HEADER) or None
        with OperationContext(
            f"{request.method} {request.url.path}",
            correlation_id=correlation_id,
            user_id=user_id,
        ) as context:
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = context.correlation_id
        return response

    @app.put("/sheets/{table_name}/cell")
    def update_cell(table_name: str, payload: dict[str, Any] = Body(...)) -> JSONResponse:
        request = CellUpdateRequest.from_payload(table_name, payload)
        result = container.cell_store.update_cell(request, user_id=get_user_id())
        if result.conflict:
            conflict = ConflictRecord.from_request(request, result.current_value)
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content=_error_body(
                    "Conflict detected",
                    data={
                        "currentValue": conflict.current_value,
                        "originalValue": conflict.original_value,
                        "newValue": conflict.new_value,
                    },
                ),
            )
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.to_payload())

    @app.post("/sheets/{table_name}/batch")
    def apply_batch(table_name: str, payload: dict[str, Any] = Body(...)) -> JSONResponse:
        requests = _batch_requests(table_name, payload)
        batch = container.batch_coordinator.apply_batch(requests, user_id=get_user_id())
        if batch.conflicts:
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content=_error_body("Conflicts detected in batch update", data=batch.to_payload()),
            )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"success": batch.success, "data": batch.to_payload()},
        )

    @app.get("/sheets/{table_name}")
    def read_table(table_name: str) -> dict[str, Any]:
        snapshot = container.cell_store.read_snapshot(table_name)
        return {"success": True, "data": {"tableName": snapshot.table_name, "values": snapshot.as_values()}}

    @app.get("/health")
    def health() -> JSONResponse:
        reachable = container.table_access.validate_connection()
        return JSONResponse(
            status_code=status.HTTP_200_OK if reachable else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "ok" if reachable else "degraded", "sheets": reachable, "version": __version__},
        )

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return container.metrics.snapshot()

    return app
