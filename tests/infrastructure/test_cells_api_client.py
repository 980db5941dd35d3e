from __future__ import annotations

import json

import httpx
import pytest

from prodtrack.core.errors import ApiHttpError
from prodtrack.core.observability import OperationContext
from prodtrack.domain.models import CellUpdateRequest
from prodtrack.infrastructure.cells_api_client import CellsApiClient


class _Recorder:
    def __init__(self, status_code: int = 200, body: object = None) -> None:
        self.status_code = status_code
        self.body = {"success": True} if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


def _client(recorder: _Recorder, **kwargs) -> CellsApiClient:
    return CellsApiClient("http://prodtrack.test", transport=httpx.MockTransport(recorder), **kwargs)


def test_put_cell_envia_camel_case_y_cabeceras() -> None:
    recorder = _Recorder()
    request = CellUpdateRequest("Shot List", "shot_001", "title", "A", "B", force=True)

    with _client(recorder, user_id="ana") as client, OperationContext("op", correlation_id="corr-1"):
        response = client.put_cell(request)

    sent = recorder.requests[0]
    assert response.status_code == 200
    assert sent.method == "PUT"
    assert sent.url.path == "/sheets/Shot List/cell"
    assert json.loads(sent.content) == {
        "entityId": "shot_001",
        "fieldId": "title",
        "originalValue": "A",
        "newValue": "B",
        "force": True,
    }
    assert sent.headers["X-User-Id"] == "ana"
    assert sent.headers["X-Correlation-ID"] == "corr-1"


def test_409_es_una_respuesta() -> None:
    recorder = _Recorder(409, {"success": False, "error": "Conflict detected", "data": {"currentValue": "x"}})

    response = _client(recorder).put_cell(CellUpdateRequest("Shots", "1", "title"))

    assert response.is_conflict
    assert response.payload["data"]["currentValue"] == "x"


@pytest.mark.parametrize("status_code", [400, 404, 500, 503])
def test_resto_de_errores_lanzan_api_http_error(status_code: int) -> None:
    recorder = _Recorder(status_code, {"success": False, "error": "fallo"})

    with pytest.raises(ApiHttpError) as exc_info:
        _client(recorder).put_cell(CellUpdateRequest("Shots", "1", "title"))

    assert exc_info.value.status_code == status_code
    assert exc_info.value.payload["error"] == "fallo"


def test_post_batch_y_get_table() -> None:
    recorder = _Recorder(200, {"success": True, "data": {"results": []}})
    client = _client(recorder)

    client.post_batch("Shots", [CellUpdateRequest("Shots", "1", "title", None, "x")])
    client.get_table("Shots")

    batch, table = recorder.requests
    assert (batch.method, batch.url.path) == ("POST", "/sheets/Shots/batch")
    assert json.loads(batch.content)["updates"][0]["newValue"] == "x"
    assert (table.method, table.url.path) == ("GET", "/sheets/Shots")


def test_cuerpo_no_json() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad gateway</html>")

    client = CellsApiClient("http://prodtrack.test", transport=httpx.MockTransport(handler))

    with pytest.raises(ApiHttpError) as exc_info:
        client.get_table("Shots")

    assert exc_info.value.retryable
    assert exc_info.value.payload == {}
