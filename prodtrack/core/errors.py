from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prodtrack.domain.models import ConflictRecord


class AppError(Exception):
    pass


class BusinessError(AppError):
    pass


class ValidationError(BusinessError):
    def __init__(self, message: str, *, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields


class NotFoundError(BusinessError):
    pass


class TableNotFoundError(NotFoundError):
    pass


class CellNotFoundError(NotFoundError):
    pass


class UserCancelledError(AppError):
    """El usuario cerró el diálogo de resolución sin elegir una opción."""


class InfraError(AppError):
    pass


class ExternalServiceError(InfraError):
    pass


class TransientExternalError(ExternalServiceError):
    pass


class StoreUnavailableError(ExternalServiceError):
    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class ConflictError(BusinessError):
    status_code = 409

    def __init__(self, conflict: "ConflictRecord", message: str = "Conflict detected") -> None:
        super().__init__(message)
        self.conflict = conflict


class ApiHttpError(AppError):
    def __init__(self, status_code: int, payload: dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.payload = payload or {}
        detail = self.payload.get("error") or self.payload.get("detail") or "HTTP error"
        super().__init__(f"{detail} (status={status_code})")

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500 or self.status_code in {408, 429}


class NetworkError(ExternalServiceError):
    """Fallo transitorio de red/servidor que ya no se reintenta.

    ``retryable`` es False cuando se agotaron los intentos.
    """

    def __init__(self, message: str, *, retryable: bool, attempts: int = 0) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.attempts = attempts
