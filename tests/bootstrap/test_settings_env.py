from __future__ import annotations

from prodtrack.bootstrap.settings import DEFAULT_PORT, Settings, load_settings, resolve_log_dir
from prodtrack.domain.models import SheetsConfig


def test_resolve_log_dir_usa_variable_de_entorno(monkeypatch, tmp_path) -> None:
    target = tmp_path / "logs"
    monkeypatch.setenv("PRODTRACK_LOG_DIR", str(target))

    assert resolve_log_dir() == target
    assert target.is_dir()


def test_load_settings_desde_entorno(monkeypatch) -> None:
    monkeypatch.setenv("PRODTRACK_HOST", "0.0.0.0")
    monkeypatch.setenv("PRODTRACK_PORT", "9001")
    monkeypatch.setenv("PRODTRACK_SPREADSHEET_ID", "sheet-env")
    monkeypatch.delenv("PRODTRACK_CREDENTIALS_PATH", raising=False)

    settings = load_settings()

    assert (settings.host, settings.port, settings.spreadsheet_id) == ("0.0.0.0", 9001, "sheet-env")


def test_puerto_invalido_usa_el_por_defecto(monkeypatch) -> None:
    monkeypatch.setenv("PRODTRACK_PORT", "ochenta")

    assert load_settings().port == DEFAULT_PORT


def test_entorno_tiene_prioridad_sobre_config_json() -> None:
    stored = SheetsConfig("sheet-json", "/secrets/credentials.json")

    merged = Settings(spreadsheet_id="sheet-env").sheets_config(stored)

    assert merged == SheetsConfig("sheet-env", "/secrets/credentials.json")
    assert Settings().sheets_config(None) is None
