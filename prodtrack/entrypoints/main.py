from __future__ import annotations

import argparse
import faulthandler
import logging
import sys
from pathlib import Path

import uvicorn

from prodtrack.bootstrap.container import build_container
from prodtrack.bootstrap.logging import configure_logging, install_exception_hook
from prodtrack.bootstrap.settings import load_settings, resolve_log_dir
from prodtrack.entrypoints.http_api import create_app


def _check_connection() -> int:
    logger = logging.getLogger(__name__)
    container = build_container()
    if container.table_access.validate_connection():
        logger.info("Conexión con Google Sheets OK. Hojas: %s", container.table_access.table_names())
        return 0
    logger.error("No se pudo conectar con Google Sheets. Revisa spreadsheet y credenciales.")
    return 1


def main(argv: list[str] | None = None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(prog="prodtrack", description="API de celdas con control optimista")
    parser.add_argument("--check-connection", action="store_true", help="Valida el acceso al spreadsheet y sale")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--console-log", action="store_true", help="Duplica los logs JSON en stderr")
    args = parser.parse_args(argv)

    log_dir = resolve_log_dir()
    configure_logging(log_dir, console=args.console_log)
    install_exception_hook(log_dir)
    faulthandler.enable()

    logger = logging.getLogger(__name__)
    logger.info("Log dir: %s", log_dir)
    logger.info("Python: %s", sys.version)
    logger.info("CWD: %s", Path.cwd())

    if args.check_connection:
        return _check_connection()

    app = create_app(build_container(settings))
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0
