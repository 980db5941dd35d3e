from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from prodtrack.domain.models import SheetsConfig

logger = logging.getLogger(__name__)


def resolve_appdata_dir() -> Path:
    env_dir = os.environ.get("LOCALAPPDATA")
    if env_dir:
        base_dir = Path(env_dir)
    else:
        base_dir = Path.home() / ".local" / "share"
    return base_dir / "ProdTrack"


class SheetsConfigStore:
    """Persistencia mínima del spreadsheet a usar: ``config.json`` en appdata."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir or resolve_appdata_dir()
        self._config_path = self._base_dir / "config.json"
        self._credentials_path = self._base_dir / "secrets" / "credentials.json"

    def load(self) -> SheetsConfig | None:
        if not self._config_path.exists():
            return None
        try:
            payload = json.loads(self._config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("No se pudo leer config.json: %s", exc)
            return None
        if not isinstance(payload, dict):
            logger.error("config.json no contiene un objeto: %s", self._config_path)
            return None
        spreadsheet_id = str(payload.get("spreadsheet_id", "")).strip()
        credentials_path = str(payload.get("credentials_path", "")).strip()
        if not spreadsheet_id and not credentials_path:
            return None
        return SheetsConfig(
            spreadsheet_id=spreadsheet_id,
            credentials_path=credentials_path or str(self._credentials_path),
        )

    def save(self, config: SheetsConfig) -> SheetsConfig:
        payload = {
            "spreadsheet_id": config.spreadsheet_id.strip(),
            "credentials_path": config.credentials_path.strip() or str(self._credentials_path),
        }
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return SheetsConfig(spreadsheet_id=payload["spreadsheet_id"], credentials_path=payload["credentials_path"])

    def credentials_path(self) -> Path:
        return self._credentials_path
