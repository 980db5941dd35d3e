from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from prodtrack.core.errors import TransientExternalError
from prodtrack.core.metrics import RETRY_ATTEMPT, RETRY_EXHAUSTED, metrics_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")

ExhaustedFactory = Callable[[BaseException, int], BaseException]


def calcular_backoff(intento: int, base_segundos: float) -> float:
    """Backoff exponencial sin jitter: base, 2*base, 4*base..."""
    if intento < 1:
        raise ValueError("intento empieza en 1")
    return base_segundos * (2 ** (intento - 1))


def aplicar_jitter(segundos: float, ratio: float) -> float:
    if ratio <= 0:
        return segundos
    return segundos * (1 + random.uniform(-ratio, ratio))


def es_transitorio(exc: BaseException) -> bool:
    return isinstance(exc, TransientExternalError)


@dataclass(frozen=True)
class RetryPolicy:
    """Reintentos acotados por número de intentos (incluye el primero), no por reloj.

    Las excepciones que ``retryable`` no reconoce se propagan en el acto sin
    consumir intentos.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 0.5
    jitter_ratio: float = 0.1
    retryable: Callable[[BaseException], bool] = field(default=es_transitorio)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts debe ser >= 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds no puede ser negativo")

    def backoff_seconds(self, attempt: int) -> float:
        return aplicar_jitter(calcular_backoff(attempt, self.base_delay_seconds), self.jitter_ratio)

    def run(
        self,
        operation_name: str,
        operation: Callable[[], T],
        *,
        exhausted: ExhaustedFactory | None = None,
    ) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except Exception as exc:
                if not self.retryable(exc):
                    raise
                if attempt >= self.max_attempts:
                    metrics_registry.incrementar(RETRY_EXHAUSTED)
                    logger.error("%s sigue fallando tras %s intentos: %s", operation_name, attempt, exc)
                    if exhausted is None:
                        raise
                    raise exhausted(exc, attempt) from exc
                backoff = self.backoff_seconds(attempt)
                metrics_registry.incrementar(RETRY_ATTEMPT)
                logger.warning(
                    "Error transitorio en %s. intento=%s/%s backoff=%.3fs",
                    operation_name,
                    attempt,
                    self.max_attempts,
                    backoff,
                )
                time.sleep(backoff)
        raise RuntimeError(f"No se pudo completar {operation_name}.")

    def with_retryable(self, retryable: Callable[[BaseException], bool]) -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_seconds=self.base_delay_seconds,
            jitter_ratio=self.jitter_ratio,
            retryable=retryable,
        )


SERVER_POLICY = RetryPolicy(max_attempts=3, base_delay_seconds=0.5, jitter_ratio=0.1)
CLIENT_POLICY = RetryPolicy(max_attempts=4, base_delay_seconds=1.0, jitter_ratio=0.1)
