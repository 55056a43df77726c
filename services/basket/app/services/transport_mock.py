from __future__ import annotations

import logging
from typing import Any

from packages.shared.schemas.errors_v1 import ErrorResponseV1
from services.basket.app.services.containers import render_container
from services.basket.app.services.store import InMemoryBasketStore, StoreError
from services.basket.app.services.transport_base import (
    BASKET_ITEMS_PATH,
    CHECKOUT_PATH,
    COUPON_PATH,
    TransportFailure,
    TransportResponse,
)

logger = logging.getLogger(__name__)

_CONTAINER_PREFIX = "/rest/"
_NOT_FOUND_CODE = 404


class InMemoryBasketTransport:
    """Deterministic in-process transport that talks straight to an InMemoryBasketStore."""

    name = "MOCK"

    def __init__(self, store: InMemoryBasketStore | None = None) -> None:
        self.store = store if store is not None else InMemoryBasketStore()
        self.requests: list[tuple[str, str, Any]] = []

    async def aclose(self) -> None:
        return None

    async def get(self, path: str, query: dict[str, Any] | None = None) -> TransportResponse:
        self._record("GET", path, query)

        if path == CHECKOUT_PATH:
            return self._ok(self.store.snapshot().to_wire())

        if path.startswith(_CONTAINER_PREFIX) and "/container_" in path:
            source, _, name = path[len(_CONTAINER_PREFIX) :].strip("/").partition("/container_")
            html = render_container(self.store, source, name, query or {})
            if html is not None:
                return self._ok({"data": [html]})

        raise self._not_found(path)

    async def post(
        self,
        path: str,
        body: Any,
        is_multipart: bool = False,
    ) -> TransportResponse:
        del is_multipart
        self._record("POST", path, body)

        try:
            if path == BASKET_ITEMS_PATH:
                return self._ok(self.store.upsert_items(body).to_wire())
            if path == COUPON_PATH:
                code = (body or {}).get("CouponActiveCouponCode", "")
                return self._ok(self.store.apply_coupon(code).to_wire())
            if path == CHECKOUT_PATH:
                return self._ok(self.store.snapshot().to_wire())
        except StoreError as e:
            raise TransportFailure(e.entries, status_code=400) from e

        raise self._not_found(path)

    async def delete(
        self,
        path: str,
        query_or_body: dict[str, Any] | None = None,
    ) -> TransportResponse:
        self._record("DELETE", path, query_or_body)
        params = query_or_body or {}

        if path == BASKET_ITEMS_PATH:
            ids = [int(v) for k, v in params.items() if k.startswith("basketItemIdsList")]
            return self._ok(self.store.delete_items(ids).to_wire())
        if path == COUPON_PATH:
            code = params.get("CouponActiveCouponCode")
            return self._ok(self.store.remove_coupon(code).to_wire())

        raise self._not_found(path)

    def _record(self, method: str, path: str, payload: Any) -> None:
        logger.debug("%s %s", method, path)
        self.requests.append((method, path, payload))

    @staticmethod
    def _ok(data: Any) -> TransportResponse:
        return TransportResponse(status_code=200, data=data)

    @staticmethod
    def _not_found(path: str) -> TransportFailure:
        body = ErrorResponseV1.single(_NOT_FOUND_CODE, f"No route for {path}")
        return TransportFailure(body.error.error_stack, status_code=404)
