from __future__ import annotations

from dataclasses import dataclass

from prodtrack.application.batch_coordinator import BatchCoordinator
from prodtrack.application.cell_store import CellStore
from prodtrack.bootstrap.settings import Settings, load_settings
from prodtrack.core.metrics import MetricsRegistry, metrics_registry
from prodtrack.domain.address_resolver import AddressResolver
from prodtrack.domain.ports import TableAccessPort
from prodtrack.infrastructure.local_config import SheetsConfigStore
from prodtrack.infrastructure.sheets_client import SheetsClient
from prodtrack.infrastructure.sheets_gateway import SheetsTableGateway


@dataclass
class AppContainer:
    settings: Settings
    table_access: TableAccessPort
    cell_store: CellStore
    batch_coordinator: BatchCoordinator
    metrics: MetricsRegistry


def build_container(
    settings: Settings | None = None,
    *,
    table_access: TableAccessPort | None = None,
    config_store: SheetsConfigStore | None = None,
) -> AppContainer:
    resolved_settings = settings or load_settings()
    if table_access is None:
        store = config_store or SheetsConfigStore()
        sheets_config = resolved_settings.sheets_config(store.load())
        table_access = SheetsTableGateway(SheetsClient(), sheets_config)

    cell_store = CellStore(table_access, AddressResolver())
    return AppContainer(
        settings=resolved_settings,
        table_access=table_access,
        cell_store=cell_store,
        batch_coordinator=BatchCoordinator(cell_store),
        metrics=metrics_registry,
    )
