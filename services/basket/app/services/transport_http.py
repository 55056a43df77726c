from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx
from packages.shared.schemas.errors_v1 import ErrorEntryV1
from services.basket.app.services.transport_base import (
    NETWORK_ERROR_CODE,
    TransportFailure,
    TransportResponse,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _HttpConfig:
    base_url: str
    timeout_s: float


class HttpBasketTransport:
    """Transport over the store's REST API.

    Env vars:
    - BASKET_TRANSPORT=http
    - BASKET_API_BASE_URL (default: http://localhost:8000)
    - BASKET_HTTP_TIMEOUT_S (default: 10)

    Every non-2xx answer becomes a TransportFailure carrying the store's error stack.
    """

    name = "HTTP"

    def __init__(
        self,
        cfg: _HttpConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = cfg
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url,
            timeout=cfg.timeout_s,
            transport=transport,
        )

    @classmethod
    def from_env(cls, transport: httpx.AsyncBaseTransport | None = None) -> "HttpBasketTransport":
        base_url = os.getenv("BASKET_API_BASE_URL", "http://localhost:8000").rstrip("/")
        timeout_s = float(os.getenv("BASKET_HTTP_TIMEOUT_S", "10"))
        return cls(_HttpConfig(base_url=base_url, timeout_s=timeout_s), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, query: dict[str, Any] | None = None) -> TransportResponse:
        return await self._request("GET", path, params=query)

    async def post(
        self,
        path: str,
        body: Any,
        is_multipart: bool = False,
    ) -> TransportResponse:
        if is_multipart:
            # Nested lists do not survive form encoding; the store accepts JSON either way.
            logger.debug("multipart requested for %s, sending JSON", path)
        return await self._request("POST", path, json=body)

    async def delete(
        self,
        path: str,
        query_or_body: dict[str, Any] | None = None,
    ) -> TransportResponse:
        return await self._request("DELETE", path, params=query_or_body)

    async def _request(self, method: str, path: str, **kwargs: Any) -> TransportResponse:
        logger.debug("%s %s", method, path)
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            entry = ErrorEntryV1(code=NETWORK_ERROR_CODE, message=str(e) or type(e).__name__)
            raise TransportFailure([entry]) from e

        data = _decode(resp)
        if resp.is_success:
            return TransportResponse(
                status_code=resp.status_code,
                data=data,
                headers=dict(resp.headers),
            )
        raise TransportFailure.from_response(data, status_code=resp.status_code)


def _decode(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text
