from __future__ import annotations

import os

from services.basket.app.services.transport_base import BasketTransport
from services.basket.app.services.transport_mock import InMemoryBasketTransport


def get_basket_transport() -> BasketTransport:
    """Select a transport based on env vars.

    Defaults to the in-memory transport so tests and local dev are deterministic unless
    explicitly configured otherwise.
    """

    mode = os.getenv("BASKET_TRANSPORT", "mock").strip().lower()

    if mode == "mock":
        from services.basket.app.services.store import store

        return InMemoryBasketTransport(store)

    if mode == "http":
        from services.basket.app.services.transport_http import HttpBasketTransport

        return HttpBasketTransport.from_env()

    raise ValueError(f"Unknown BASKET_TRANSPORT={mode!r}. Expected mock or http.")
