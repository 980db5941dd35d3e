from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from prodtrack.core.errors import ApiHttpError
from prodtrack.core.observability import get_correlation_id
from prodtrack.domain.models import CellUpdateRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class HttpApiResponse:
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409


class CellsApiClient:
    """Cliente HTTP de los endpoints ``/sheets``.

    Devuelve la respuesta en 2xx y en 409 (el conflicto es un resultado, no
    un error). Cualquier otro status lanza ``ApiHttpError``; los fallos de
    transporte salen como ``httpx.TransportError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_id: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"X-User-Id": user_id} if user_id else {}
        self._http = httpx.Client(base_url=base_url, timeout=timeout, headers=headers, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "CellsApiClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def put_cell(self, request: CellUpdateRequest) -> HttpApiResponse:
        return self._send("PUT", f"/sheets/{_path(request.table_name)}/cell", json=request.to_payload())

    def post_batch(self, table_name: str, requests: list[CellUpdateRequest]) -> HttpApiResponse:
        body = {"updates": [request.to_payload() for request in requests]}
        return self._send("POST", f"/sheets/{_path(table_name)}/batch", json=body)

    def get_table(self, table_name: str) -> HttpApiResponse:
        return self._send("GET", f"/sheets/{_path(table_name)}")

    def _send(self, method: str, url: str, *, json: dict[str, Any] | None = None) -> HttpApiResponse:
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id
        response = self._http.request(method, url, json=json, headers=headers)
        payload = _json_or_empty(response)
        if response.is_success or response.status_code == 409:
            return HttpApiResponse(status_code=response.status_code, payload=payload)
        logger.debug("%s %s -> %s", method, url, response.status_code)
        raise ApiHttpError(response.status_code, payload)


def _path(table_name: str) -> str:
    return quote(table_name, safe="")


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {"data": data}
