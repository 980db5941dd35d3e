from __future__ import annotations

import pytest

from prodtrack.core.errors import StoreUnavailableError, TransientExternalError, ValidationError
from prodtrack.core.metrics import RETRY_ATTEMPT, RETRY_EXHAUSTED, metrics_registry
from prodtrack.core.retry import (
    CLIENT_POLICY,
    SERVER_POLICY,
    RetryPolicy,
    aplicar_jitter,
    calcular_backoff,
)


class _Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self._failures = list(failures)
        self._result = result
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self._failures:
            raise self._failures.pop(0)
        return self._result


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    calls: list[float] = []
    monkeypatch.setattr("time.sleep", calls.append)
    return calls


def test_calcular_backoff_duplica_en_cada_intento() -> None:
    assert [calcular_backoff(intento, 0.5) for intento in (1, 2, 3)] == [0.5, 1.0, 2.0]


def test_calcular_backoff_rechaza_intento_cero() -> None:
    with pytest.raises(ValueError):
        calcular_backoff(0, 1.0)


def test_aplicar_jitter_queda_dentro_del_diez_por_ciento() -> None:
    for _ in range(200):
        assert 0.9 <= aplicar_jitter(1.0, 0.1) <= 1.1


def test_aplicar_jitter_sin_ratio_devuelve_el_valor() -> None:
    assert aplicar_jitter(2.0, 0) == 2.0


def test_run_reintenta_transitorios_hasta_exito(sleeps) -> None:
    policy = RetryPolicy(max_attempts=3, base_delay_seconds=1.0, jitter_ratio=0)
    operation = _Flaky([TransientExternalError("503"), TransientExternalError("503")])

    assert policy.run("op", operation) == "ok"

    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]
    assert metrics_registry.contador(RETRY_ATTEMPT) == 2


def test_run_no_reintenta_errores_no_transitorios(sleeps) -> None:
    policy = RetryPolicy(max_attempts=3, jitter_ratio=0)
    operation = _Flaky([ValidationError("400")])

    with pytest.raises(ValidationError):
        policy.run("op", operation)

    assert operation.calls == 1
    assert sleeps == []


def test_run_agotado_sin_factoria_relanza_el_ultimo_error(sleeps) -> None:
    policy = RetryPolicy(max_attempts=2, base_delay_seconds=0.5, jitter_ratio=0)
    last = TransientExternalError("segundo")
    operation = _Flaky([TransientExternalError("primero"), last])

    with pytest.raises(TransientExternalError) as exc_info:
        policy.run("op", operation)

    assert exc_info.value is last
    assert sleeps == [0.5]
    assert metrics_registry.contador(RETRY_EXHAUSTED) == 1


def test_run_agotado_usa_la_factoria_y_encadena_la_causa(sleeps) -> None:
    policy = RetryPolicy(max_attempts=3, base_delay_seconds=0.1, jitter_ratio=0)
    operation = _Flaky([TransientExternalError("x")] * 5)

    with pytest.raises(StoreUnavailableError) as exc_info:
        policy.run(
            "op",
            operation,
            exhausted=lambda exc, attempts: StoreUnavailableError("caído", attempts=attempts),
        )

    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.__cause__, TransientExternalError)
    assert operation.calls == 3
    assert len(sleeps) == 2


def test_with_retryable_cambia_el_predicado(sleeps) -> None:
    policy = SERVER_POLICY.with_retryable(lambda exc: isinstance(exc, KeyError))
    operation = _Flaky([KeyError("a")])

    assert policy.run("op", operation) == "ok"
    assert operation.calls == 2
    assert policy.max_attempts == SERVER_POLICY.max_attempts


def test_politicas_predefinidas() -> None:
    assert (SERVER_POLICY.max_attempts, SERVER_POLICY.base_delay_seconds) == (3, 0.5)
    assert (CLIENT_POLICY.max_attempts, CLIENT_POLICY.base_delay_seconds) == (4, 1.0)
    assert SERVER_POLICY.jitter_ratio == CLIENT_POLICY.jitter_ratio == 0.1


def test_max_attempts_invalido() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
