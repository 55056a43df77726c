from __future__ import annotations

import logging
from typing import Protocol

from services.basket.app.models.basket import BasketItem, BasketSnapshot
from services.basket.app.services.transport_base import (
    CHECKOUT_PATH,
    BasketItemNotFoundError,
    BasketTransport,
)
from services.basket.app.services.ui_base import ViewRefresher

logger = logging.getLogger(__name__)


class CheckoutStateCache(Protocol):
    def get_checkout(self) -> BasketSnapshot: ...

    def require_item(self, item_id: int) -> BasketItem: ...

    async def load_checkout(self) -> None: ...

    async def set_checkout(self) -> None: ...

    async def reload_container(self, name: str) -> None: ...

    async def reload_item_container(self, name: str) -> None: ...

    async def reload_cat_content(self, category_id: int) -> None: ...


class TransportCheckoutCache:
    """Holds the last authoritative basket snapshot fetched through the transport.

    The snapshot is only replaced wholesale by `load_checkout()` / `set_checkout()`. When
    several reloads are in flight the last response to arrive wins.
    """

    def __init__(
        self,
        transport: BasketTransport,
        views: ViewRefresher,
        snapshot: BasketSnapshot | None = None,
    ) -> None:
        self._transport = transport
        self._views = views
        self._snapshot = snapshot if snapshot is not None else BasketSnapshot()
        self.loads = 0

    def get_checkout(self) -> BasketSnapshot:
        return self._snapshot

    def require_item(self, item_id: int) -> BasketItem:
        item = self._snapshot.find_item(item_id)
        if item is None:
            raise BasketItemNotFoundError(item_id)
        return item

    async def load_checkout(self) -> None:
        response = await self._transport.get(CHECKOUT_PATH)
        self._snapshot = BasketSnapshot.model_validate(response.data or {})
        self.loads += 1
        logger.debug("checkout reloaded: %d item(s)", len(self._snapshot.items))

    async def set_checkout(self) -> None:
        await self._transport.post(CHECKOUT_PATH, self._snapshot.to_wire())
        await self.load_checkout()

    async def reload_container(self, name: str) -> None:
        await self._views.reload_container(name)

    async def reload_item_container(self, name: str) -> None:
        await self._views.reload_item_container(name)

    async def reload_cat_content(self, category_id: int) -> None:
        await self._views.reload_cat_content(category_id)
