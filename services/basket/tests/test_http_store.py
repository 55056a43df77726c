"""Engine against the reference store API, over HTTP."""

from __future__ import annotations

import httpx
import pytest
from services.basket.app.main import app
from services.basket.app.models.basket import (
    BasketItem,
    MutationStatus,
    OrderParamsForm,
    ParamValueField,
)
from services.basket.app.services.overlay import TransportOverlayProvider
from services.basket.app.services.store import store as global_store
from services.basket.app.services.transport_base import BASKET_ITEMS_PATH, TransportFailure
from services.basket.app.services.transport_http import HttpBasketTransport


@pytest.fixture()
def store():
    global_store.reset()
    yield global_store
    global_store.reset()


@pytest.fixture()
def transport(monkeypatch: pytest.MonkeyPatch, store) -> HttpBasketTransport:
    monkeypatch.setenv("BASKET_API_BASE_URL", "http://testserver")
    return HttpBasketTransport.from_env(transport=httpx.ASGITransport(app=app))


@pytest.mark.asyncio
async def test_items_round_trip(transport) -> None:
    added = await transport.post(
        BASKET_ITEMS_PATH,
        [{"BasketItemItemID": 43, "BasketItemQuantity": 3}],
        is_multipart=True,
    )
    removed = await transport.delete(BASKET_ITEMS_PATH, {"basketItemIdsList[0]": 1})

    assert added.status_code == 200
    assert added.data["BasketItemsList"][0]["BasketItemPriceTotal"] == 24.0
    assert added.data["Totals"]["TotalsItemSum"] == 24.0
    assert removed.data["BasketItemsList"] == []


@pytest.mark.asyncio
async def test_store_rejection_carries_error_stack(transport) -> None:
    with pytest.raises(TransportFailure) as excinfo:
        await transport.post(BASKET_ITEMS_PATH, [{"BasketItemItemID": 77, "BasketItemQuantity": 1}])

    assert excinfo.value.status_code == 400
    assert excinfo.value.is_missing_order_params()


@pytest.mark.asyncio
async def test_unknown_container_is_not_found(transport) -> None:
    overlays = TransportOverlayProvider(transport)

    with pytest.raises(TransportFailure) as excinfo:
        await overlays.get_overlay_content("CheckoutOrderParamsList", {"itemID": 999}, "Checkout")

    assert excinfo.value.first_code == 404


@pytest.mark.asyncio
async def test_add_item_shows_confirmation_overlay(service, checkout, gates) -> None:
    result = await service.add_item([BasketItem(item_reference_id=42, quantity=2)])

    assert result.status is MutationStatus.SUCCESS
    assert checkout.get_checkout().items[0].display_name == "Canvas tote"
    assert "Canvas tote was added to your basket." in (gates.gates[0].template or "")


@pytest.mark.asyncio
async def test_add_item_collects_params_and_retries(service, store, ui, gates) -> None:
    ui.form = OrderParamsForm(
        value_fields=[
            ParamValueField(position=0, param_id=1, value="For Ada"),
            ParamValueField(position=1, param_id=1, value="For Grace"),
        ]
    )

    result = await service.add_item([BasketItem(item_reference_id=77, quantity=2)])

    assert result.status is MutationStatus.SUCCESS
    assert 'name="ParamValue[1][1]"' in (gates.prompts[0].template or "")
    lines = store.snapshot().items
    assert [line.quantity for line in lines] == [1, 1]
    assert [line.order_params[0].value for line in lines] == ["For Ada", "For Grace"]


@pytest.mark.asyncio
async def test_quantity_change_and_removal(service, store, checkout, events) -> None:
    store.upsert_items([{"BasketItemItemID": 42, "BasketItemQuantity": 1}])
    await checkout.load_checkout()

    changed = await service.set_item_quantity(1, 3)
    removed = await service.remove_item(1)

    assert changed.ok and removed.ok
    assert ("set_item_price_total_display", 1, 37.5) in events
    assert store.snapshot().is_empty
    assert ("reload_cat_content", 11) in events


@pytest.mark.asyncio
async def test_coupon_apply_and_remove(service, store, checkout, ui) -> None:
    store.upsert_items([{"BasketItemItemID": 43, "BasketItemQuantity": 1}])
    ui.coupon_code = "WELCOME5"

    applied = await service.add_coupon()
    assert checkout.get_checkout().totals.item_sum == 3.0

    removed = await service.remove_coupon()

    assert applied.ok and removed.ok
    assert checkout.get_checkout().coupon is None
    assert checkout.get_checkout().totals.item_sum == 8.0
