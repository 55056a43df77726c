from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from packages.shared.schemas.errors_v1 import MISSING_ORDER_PARAMS_CODE, ErrorEntryV1
from pydantic import ValidationError
from services.basket.app.models.basket import (
    BasketItem,
    BasketSnapshot,
    BasketTotals,
    Coupon,
)

UNKNOWN_ITEM_REFERENCE_CODE = 2
INVALID_QUANTITY_CODE = 3
UNKNOWN_COUPON_CODE = 20
UNKNOWN_BASKET_ITEM_CODE = 404


class StoreError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.entries = [ErrorEntryV1(code=code, message=message)]


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    name: str
    unit_price: float
    requires_order_params: bool = False


@dataclass
class _Line:
    id: int
    item_reference_id: int
    quantity: int
    order_params: list[dict[str, Any]] = field(default_factory=list)


def default_catalog() -> dict[int, CatalogEntry]:
    return {
        42: CatalogEntry(name="Canvas tote", unit_price=12.5),
        43: CatalogEntry(name="Enamel mug", unit_price=8.0),
        77: CatalogEntry(name="Engraved pen", unit_price=19.9, requires_order_params=True),
    }


class InMemoryBasketStore:
    """Authoritative basket store used by the mock transport and the reference server.

    Prices and totals are computed here only; clients never send them.
    """

    def __init__(
        self,
        catalog: dict[int, CatalogEntry] | None = None,
        coupons: dict[str, float] | None = None,
    ) -> None:
        self._catalog = catalog if catalog is not None else default_catalog()
        self._coupons = coupons if coupons is not None else {"WELCOME5": 5.0}
        self._lines: list[_Line] = []
        self._coupon: str | None = None
        self._next_id = 1

    def reset(self) -> None:
        self._lines.clear()
        self._coupon = None
        self._next_id = 1

    def upsert_items(self, payload: Any) -> BasketSnapshot:
        if not isinstance(payload, list):
            payload = [payload]

        try:
            items = [BasketItem.model_validate(raw) for raw in payload]
        except ValidationError as e:
            detail = e.errors()[0]["msg"]
            raise StoreError(INVALID_QUANTITY_CODE, f"Invalid basket item: {detail}") from e

        # Validate the whole request before touching any line.
        for item in items:
            entry = self._catalog.get(item.item_reference_id)
            if entry is None:
                raise StoreError(
                    UNKNOWN_ITEM_REFERENCE_CODE,
                    f"Unknown item {item.item_reference_id}",
                )
            if item.id is not None and self._line(item.id) is None:
                raise StoreError(UNKNOWN_BASKET_ITEM_CODE, f"Unknown basket item {item.id}")
            if entry.requires_order_params and not item.order_params:
                raise StoreError(MISSING_ORDER_PARAMS_CODE, "Order parameters required")

        for item in items:
            params = [p.to_wire() for p in item.order_params]
            line = self._line(item.id) if item.id is not None else None
            if line is not None:
                line.quantity = item.quantity
                line.order_params = params
                continue
            self._lines.append(
                _Line(
                    id=self._next_id,
                    item_reference_id=item.item_reference_id,
                    quantity=item.quantity,
                    order_params=params,
                )
            )
            self._next_id += 1

        return self.snapshot()

    def delete_items(self, item_ids: list[int]) -> BasketSnapshot:
        wanted = set(item_ids)
        self._lines = [line for line in self._lines if line.id not in wanted]
        return self.snapshot()

    def apply_coupon(self, code: str) -> BasketSnapshot:
        code = (code or "").strip()
        if code not in self._coupons:
            raise StoreError(UNKNOWN_COUPON_CODE, f"Coupon {code!r} is not valid")
        self._coupon = code
        return self.snapshot()

    def remove_coupon(self, code: str | None = None) -> BasketSnapshot:
        if code is None or code == self._coupon:
            self._coupon = None
        return self.snapshot()

    def snapshot(self) -> BasketSnapshot:
        items: list[BasketItem] = []
        item_sum = 0.0
        for line in self._lines:
            entry = self._catalog[line.item_reference_id]
            price_total = round(entry.unit_price * line.quantity, 2)
            item_sum += price_total
            items.append(
                BasketItem(
                    id=line.id,
                    item_reference_id=line.item_reference_id,
                    quantity=line.quantity,
                    order_params=line.order_params,
                    price_total=price_total,
                    name_map={1: entry.name},
                )
            )

        coupon = None
        if self._coupon is not None:
            coupon = Coupon(code=self._coupon)
            item_sum = max(0.0, item_sum - self._coupons[self._coupon])

        return BasketSnapshot(
            items=items,
            totals=BasketTotals(item_sum=round(item_sum, 2)),
            coupon=coupon,
        )

    def catalog_entry(self, item_reference_id: int) -> CatalogEntry | None:
        return self._catalog.get(item_reference_id)

    def _line(self, item_id: int) -> _Line | None:
        for line in self._lines:
            if line.id == item_id:
                return line
        return None


store = InMemoryBasketStore()
