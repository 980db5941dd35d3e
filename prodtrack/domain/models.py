from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping


class _Missing:
    """Valor ausente en el cuerpo JSON (clave no enviada)."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class ResolutionChoice(str, Enum):
    OVERWRITE = "overwrite"
    KEEP_SERVER = "keep_server"
    EDIT_AGAIN = "edit_again"


class UpdateStatus(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"
    ERROR = "error"


EDIT_AGAIN_ERROR = "edit_again"


@dataclass(frozen=True)
class SheetsConfig:
    spreadsheet_id: str
    credentials_path: str


@dataclass(frozen=True)
class TableSnapshot:
    table_name: str
    rows: tuple[tuple[Any, ...], ...] = ()

    @classmethod
    def from_values(cls, table_name: str, values: list[list[Any]] | None) -> "TableSnapshot":
        return cls(table_name=table_name, rows=tuple(tuple(row) for row in values or []))

    @property
    def header(self) -> tuple[Any, ...]:
        return self.rows[0] if self.rows else ()

    @property
    def data_rows(self) -> tuple[tuple[Any, ...], ...]:
        return self.rows[1:]

    def as_values(self) -> list[list[Any]]:
        return [list(row) for row in self.rows]


@dataclass(frozen=True)
class CellLocation:
    row_index: int
    column_index: int
    value: Any
    address: str


@dataclass(frozen=True)
class CellWriteReceipt:
    updated_range: str | None
    updated_rows: int | None = None


@dataclass(frozen=True)
class CellUpdateRequest:
    table_name: str
    entity_id: str
    field_id: str
    original_value: Any = None
    new_value: Any = None
    force: bool = False

    @classmethod
    def from_payload(cls, table_name: str, payload: Mapping[str, Any]) -> "CellUpdateRequest":
        return cls(
            table_name=table_name,
            entity_id=_text_or_empty(payload.get("entityId")),
            field_id=_text_or_empty(payload.get("fieldId")),
            original_value=payload.get("originalValue", MISSING),
            new_value=payload.get("newValue"),
            force=bool(payload.get("force", False)),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "entityId": self.entity_id,
            "fieldId": self.field_id,
            "originalValue": None if self.original_value is MISSING else self.original_value,
            "newValue": self.new_value,
        }
        if self.force:
            payload["force"] = True
        return payload

    def forced(self) -> "CellUpdateRequest":
        return replace(self, force=True)

    def missing_fields(self) -> tuple[str, ...]:
        missing = []
        if not self.entity_id.strip():
            missing.append("entityId")
        if not self.field_id.strip():
            missing.append("fieldId")
        return tuple(missing)


@dataclass(frozen=True)
class ConflictRecord:
    entity_id: str
    field_id: str
    original_value: Any
    current_value: Any
    new_value: Any

    @classmethod
    def from_request(cls, request: CellUpdateRequest, current_value: Any) -> "ConflictRecord":
        return cls(
            entity_id=request.entity_id,
            field_id=request.field_id,
            original_value=None if request.original_value is MISSING else request.original_value,
            current_value=current_value,
            new_value=request.new_value,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "fieldId": self.field_id,
            "originalValue": self.original_value,
            "currentValue": self.current_value,
            "newValue": self.new_value,
        }


@dataclass(frozen=True)
class UpdateResult:
    success: bool
    conflict: bool = False
    current_value: Any = None
    updated_address: str | None = None
    updated_rows: int | None = None
    error: str | None = None
    message: str | None = None
    entity_id: str | None = None
    field_id: str | None = None

    @property
    def status(self) -> UpdateStatus:
        if self.success:
            return UpdateStatus.OK
        if self.conflict:
            return UpdateStatus.CONFLICT
        return UpdateStatus.ERROR

    @property
    def is_edit_again(self) -> bool:
        return self.error == EDIT_AGAIN_ERROR

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "conflict": self.conflict}
        if self.conflict or self.current_value is not None:
            payload["currentValue"] = self.current_value
        if self.updated_address is not None:
            payload["updatedRange"] = self.updated_address
        if self.updated_rows is not None:
            payload["updatedRows"] = self.updated_rows
        if self.error is not None:
            payload["error"] = self.error
        if self.entity_id is not None:
            payload["entityId"] = self.entity_id
        if self.field_id is not None:
            payload["fieldId"] = self.field_id
        return payload


@dataclass(frozen=True)
class BatchResult:
    success: bool
    results: tuple[UpdateResult, ...] = ()
    conflicts: tuple[ConflictRecord, ...] = ()
    total_updated: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "results": [result.to_payload() for result in self.results],
            "conflicts": [conflict.to_payload() for conflict in self.conflicts],
            "totalUpdated": self.total_updated,
        }


@dataclass(frozen=True)
class ClientBatchResult:
    success: bool
    results: tuple[UpdateResult, ...] = ()
    error: str | None = None


def _text_or_empty(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
