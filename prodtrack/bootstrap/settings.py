from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from prodtrack.domain.models import SheetsConfig

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def resolve_log_dir() -> Path:
    candidates: list[Path] = []
    env_dir = os.environ.get("PRODTRACK_LOG_DIR")
    if env_dir:
        candidates.append(Path(env_dir))
    candidates.append(project_root() / "logs")
    candidates.append(Path(tempfile.gettempdir()) / "ProdTrack" / "logs")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            test_file = candidate / "_write_test.tmp"
            test_file.write_text("ok", encoding="utf-8")
            test_file.unlink(missing_ok=True)
            return candidate
        except OSError:
            continue

    fallback = project_root()
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def _int_env(name: str, default: int) -> int:
    raw_value = os.environ.get(name, "").strip()
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    spreadsheet_id: str = ""
    credentials_path: str = ""

    def sheets_config(self, fallback: SheetsConfig | None = None) -> SheetsConfig | None:
        """Las variables de entorno mandan; lo que falte se toma del config.json local."""
        spreadsheet_id = self.spreadsheet_id or (fallback.spreadsheet_id if fallback else "")
        credentials_path = self.credentials_path or (fallback.credentials_path if fallback else "")
        if not spreadsheet_id and not credentials_path:
            return None
        return SheetsConfig(spreadsheet_id=spreadsheet_id, credentials_path=credentials_path)


def load_settings() -> Settings:
    return Settings(
        host=os.environ.get("PRODTRACK_HOST", "").strip() or DEFAULT_HOST,
        port=_int_env("PRODTRACK_PORT", DEFAULT_PORT),
        spreadsheet_id=os.environ.get("PRODTRACK_SPREADSHEET_ID", "").strip(),
        credentials_path=os.environ.get("PRODTRACK_CREDENTIALS_PATH", "").strip(),
    )
