from __future__ import annotations

from typing import Any, Protocol

from prodtrack.domain.models import (
    CellUpdateRequest,
    CellWriteReceipt,
    ConflictRecord,
    ResolutionChoice,
    TableSnapshot,
)


class TableAccessPort(Protocol):
    def get_snapshot(self, table_name: str) -> TableSnapshot:
        ...

    def write_cell(self, table_name: str, address: str, value: Any) -> CellWriteReceipt:
        ...

    def table_exists(self, table_name: str) -> bool:
        ...

    def table_names(self) -> list[str]:
        ...

    def validate_connection(self) -> bool:
        ...


class ApiResponse(Protocol):
    status_code: int
    payload: dict[str, Any]


class CellsApiPort(Protocol):
    def put_cell(self, request: CellUpdateRequest) -> ApiResponse:
        ...

    def post_batch(self, table_name: str, requests: list[CellUpdateRequest]) -> ApiResponse:
        ...

    def get_table(self, table_name: str) -> ApiResponse:
        ...


class ResolutionHandler(Protocol):
    """Decide qué hacer con un conflicto. Lanza ``UserCancelledError`` si el usuario desiste."""

    def __call__(self, conflict: ConflictRecord) -> ResolutionChoice:
        ...
