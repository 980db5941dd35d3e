from __future__ import annotations

import importlib
import os
import platform
import re
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _is_linux_headless() -> bool:
    if platform.system() != "Linux":
        return False
    return not (os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))


if _is_linux_headless():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    os.environ.setdefault("QT_OPENGL", "software")


from prodtrack.core.errors import TableNotFoundError  # noqa: E402
from prodtrack.core.metrics import metrics_registry  # noqa: E402
from prodtrack.domain.address_resolver import column_index  # noqa: E402
from prodtrack.domain.models import CellWriteReceipt, TableSnapshot  # noqa: E402

_UI_BACKEND_ERROR: str | None = None


def _detect_ui_backend_issue() -> str | None:
    try:
        importlib.import_module("PySide6")
        importlib.import_module("PySide6.QtWidgets")
        return None
    except Exception as exc:  # pragma: no cover - depende del host de ejecución
        return f"PySide6/Qt no disponible para tests UI: {exc}"


def pytest_configure(config: pytest.Config) -> None:
    global _UI_BACKEND_ERROR
    config.addinivalue_line("markers", "ui: tests de interfaz PySide6")
    _UI_BACKEND_ERROR = _detect_ui_backend_issue()


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    skip_ui = None
    if _UI_BACKEND_ERROR is not None:
        skip_ui = pytest.mark.skip(reason=_UI_BACKEND_ERROR)

    for item in items:
        if "tests/ui/" in item.nodeid:
            item.add_marker(pytest.mark.ui)
        if skip_ui is not None and "ui" in item.keywords:
            item.add_marker(skip_ui)


_A1 = re.compile(r"^([A-Za-z]+)(\d+)$")


class InMemoryTables:
    """``TableAccessPort`` en memoria: una lista de filas por tabla, cabecera incluida."""

    def __init__(self, tables: dict[str, list[list[Any]]] | None = None) -> None:
        self.tables = {name: [list(row) for row in rows] for name, rows in (tables or {}).items()}
        self.reachable = True
        self.snapshot_error: Exception | None = None
        self.snapshot_calls = 0
        self.writes: list[tuple[str, str, Any]] = []

    def get_snapshot(self, table_name: str) -> TableSnapshot:
        self.snapshot_calls += 1
        if self.snapshot_error is not None:
            raise self.snapshot_error
        if table_name not in self.tables:
            raise TableNotFoundError(f"Sheet not found: {table_name}")
        return TableSnapshot.from_values(table_name, self.tables[table_name])

    def write_cell(self, table_name: str, address: str, value: Any) -> CellWriteReceipt:
        match = _A1.match(address)
        assert match is not None, address
        col = column_index(match.group(1))
        row = int(match.group(2)) - 1
        rows = self.tables[table_name]
        while len(rows[row]) <= col:
            rows[row].append("")
        rows[row][col] = value
        self.writes.append((table_name, address, value))
        return CellWriteReceipt(updated_range=f"{table_name}!{address}", updated_rows=1)

    def table_names(self) -> list[str]:
        return list(self.tables)

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.tables

    def validate_connection(self) -> bool:
        return self.reachable

    def value(self, table_name: str, entity_id: str, field_id: str) -> Any:
        header = self.tables[table_name][0]
        col = header.index(field_id)
        for row in self.tables[table_name][1:]:
            if row and row[0] == entity_id:
                return row[col] if col < len(row) else ""
        raise KeyError(entity_id)


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics_registry.reset()
    yield
    metrics_registry.reset()


@pytest.fixture
def shots_table() -> InMemoryTables:
    return InMemoryTables(
        {
            "Shots": [
                ["shot_id", "title", "status", "frames"],
                ["shot_001", "Opening Scene", "wip", "120"],
                ["shot_002", "Chase", "", "48"],
                ["shot_003", "Finale"],
            ]
        }
    )
