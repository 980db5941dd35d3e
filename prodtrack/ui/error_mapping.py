from __future__ import annotations

from dataclasses import dataclass

from prodtrack.core.errors import (
    ApiHttpError,
    BusinessError,
    ConflictError,
    InfraError,
    NetworkError,
    UserCancelledError,
    ValidationError,
)
from prodtrack.core.observability import get_correlation_id
from prodtrack.ui.conflict_guidance import build_three_way_diff


@dataclass(frozen=True)
class UiErrorMessage:
    title: str
    probable_cause: str
    recommended_action: str
    severity: str

    incident_id: str | None = None

    def as_text(self) -> str:
        body = (
            f"{self.title}\n"
            f"Causa probable: {self.probable_cause}\n"
            f"Acción recomendada: {self.recommended_action}"
        )
        if self.incident_id:
            body = f"{body}\nID de incidente: {self.incident_id}"
        return body


def map_error_to_ui_message(error: Exception, *, incident_id: str | None = None) -> UiErrorMessage:
    resolved_incident_id = incident_id or get_correlation_id()
    if isinstance(error, ConflictError):
        return UiErrorMessage(
            title="El valor cambió mientras editabas",
            probable_cause=build_three_way_diff(error.conflict),
            recommended_action="Elige si sobrescribir, mantener el valor de la hoja o volver a editar.",
            severity="warning",
            incident_id=resolved_incident_id,
        )
    if isinstance(error, UserCancelledError):
        return UiErrorMessage(
            title="Cambio descartado",
            probable_cause="Se cerró el diálogo sin elegir una opción.",
            recommended_action="Vuelve a guardar cuando quieras aplicar el cambio.",
            severity="info",
            incident_id=resolved_incident_id,
        )
    if isinstance(error, ValidationError):
        campos = ", ".join(error.fields) or "datos de la petición"
        return UiErrorMessage(
            title=str(error).strip() or "Datos incompletos",
            probable_cause=f"Faltan o no son válidos: {campos}.",
            recommended_action="Corrige los datos marcados y reintenta.",
            severity="warning",
            incident_id=resolved_incident_id,
        )
    if isinstance(error, BusinessError):
        message = str(error).strip() or "No se pudo completar la operación"
        return UiErrorMessage(
            title=message,
            probable_cause="La celda o la hoja indicada no existe.",
            recommended_action="Recarga la tabla y reintenta.",
            severity="warning",
            incident_id=resolved_incident_id,
        )
    if isinstance(error, NetworkError):
        return UiErrorMessage(
            title="No se pudo guardar el cambio",
            probable_cause=f"El servidor no respondió tras {error.attempts} intentos.",
            recommended_action="Revisa la conexión y vuelve a intentarlo más tarde.",
            severity="blocking",
            incident_id=resolved_incident_id,
        )
    if isinstance(error, (InfraError, ApiHttpError)):
        return UiErrorMessage(
            title="No se pudo completar la operación",
            probable_cause="No fue posible acceder a los datos o al servicio externo.",
            recommended_action="Reintenta. Si persiste, revisa la configuración o contacta soporte.",
            severity="blocking",
            incident_id=resolved_incident_id,
        )
    return UiErrorMessage(
        title="Ocurrió un error inesperado.",
        probable_cause="Se produjo un fallo técnico no identificado.",
        recommended_action="Reintenta. Si persiste, contacta soporte.",
        severity="blocking",
        incident_id=resolved_incident_id,
    )


def map_error_to_user_message(error: Exception, *, incident_id: str | None = None) -> str:
    return map_error_to_ui_message(error, incident_id=incident_id).as_text()
