from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query, Request
from services.basket.app.services.store import store
from services.basket.app.services.transport_base import (
    BASKET_ITEMS_PATH,
    CHECKOUT_PATH,
    COUPON_PATH,
)

router = APIRouter()


@router.get(CHECKOUT_PATH)
def get_checkout() -> dict:
    return store.snapshot().to_wire()


@router.post(CHECKOUT_PATH)
def set_checkout(payload: Any = Body(default=None)) -> dict:
    # Totals and prices are owned here; a pushed checkout never overrides them.
    del payload
    return store.snapshot().to_wire()


@router.post(BASKET_ITEMS_PATH)
def upsert_basket_items(payload: Any = Body(...)) -> dict:
    return store.upsert_items(payload).to_wire()


@router.delete(BASKET_ITEMS_PATH)
def delete_basket_items(request: Request) -> dict:
    ids = [
        int(value)
        for key, value in request.query_params.multi_items()
        if key.startswith("basketItemIdsList")
    ]
    return store.delete_items(ids).to_wire()


@router.post(COUPON_PATH)
def add_coupon(payload: dict[str, Any] = Body(...)) -> dict:
    return store.apply_coupon(str(payload.get("CouponActiveCouponCode") or "")).to_wire()


@router.delete(COUPON_PATH)
def remove_coupon(
    code: str | None = Query(default=None, alias="CouponActiveCouponCode"),
) -> dict:
    return store.remove_coupon(code).to_wire()
