from __future__ import annotations

import logging
import uuid
from types import TracebackType

from prodtrack.core.observability import generate_correlation_id, get_correlation_id, get_user_id

logger = logging.getLogger("prodtrack.global_exception")


def generar_id_incidente() -> str:
    return f"INC-{uuid.uuid4().hex[:12].upper()}"


def manejar_excepcion_global(
    exc_type: type[BaseException], exc_value: BaseException, exc_traceback: TracebackType | None
) -> str:
    """Registra una excepción no controlada y devuelve el id de incidente que se muestra al usuario.

    Fuera de una petición HTTP no hay correlation id en contexto; se genera
    uno solo para este registro.
    """
    incident_id = generar_id_incidente()
    incident: dict[str, str] = {"incident_id": incident_id, "error_type": exc_type.__name__}
    user_id = get_user_id()
    if user_id:
        incident["user_id"] = user_id

    logger.critical(
        "Excepción no controlada. incident_id=%s",
        incident_id,
        exc_info=(exc_type, exc_value, exc_traceback),
        extra={
            "correlation_id": get_correlation_id() or generate_correlation_id(),
            "extra": incident,
        },
    )
    return incident_id
