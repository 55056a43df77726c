from __future__ import annotations

import httpx
import pytest
from packages.shared.schemas.errors_v1 import ErrorResponseV1
from services.basket.app.services.transport_base import (
    BASKET_ITEMS_PATH,
    CHECKOUT_PATH,
    NETWORK_ERROR_CODE,
    TransportFailure,
)
from services.basket.app.services.transport_factory import get_basket_transport
from services.basket.app.services.transport_http import HttpBasketTransport
from services.basket.app.services.transport_mock import InMemoryBasketTransport


def test_get_basket_transport_defaults_to_mock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BASKET_TRANSPORT", raising=False)
    transport = get_basket_transport()
    assert isinstance(transport, InMemoryBasketTransport)
    assert transport.name == "MOCK"


def test_get_basket_transport_selects_http(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BASKET_TRANSPORT", "HTTP")
    assert get_basket_transport().name == "HTTP"


def test_get_basket_transport_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BASKET_TRANSPORT", "carrier-pigeon")
    with pytest.raises(ValueError, match="Unknown BASKET_TRANSPORT"):
        get_basket_transport()


def test_failure_from_store_error_body_keeps_the_whole_stack() -> None:
    body = ErrorResponseV1.single(100, "Order parameters required").model_dump()
    body["error"]["error_stack"].append({"code": 7, "message": "second"})

    failure = TransportFailure.from_response(body, status_code=400)

    assert failure.first_code == 100
    assert failure.is_missing_order_params()
    assert [e.code for e in failure.error_stack] == [100, 7]


@pytest.mark.parametrize(
    "body",
    [
        "Internal Server Error",
        {"detail": "Not Found"},
        {"error": {"error_stack": "garbage"}},
    ],
)
def test_failure_from_unrecognized_body_uses_status_code(body: object) -> None:
    failure = TransportFailure.from_response(body, status_code=502)

    assert failure.first_code == 502
    assert not failure.is_missing_order_params()


def test_missing_params_code_only_counts_in_first_entry() -> None:
    body = {"error": {"error_stack": [{"code": 3}, {"code": 100}]}}
    assert not TransportFailure.from_response(body, status_code=400).is_missing_order_params()


def test_empty_error_stack_has_no_first_code() -> None:
    failure = TransportFailure([], status_code=400)
    assert failure.first_code is None
    assert "empty error stack" in str(failure)


def _http_transport(handler) -> HttpBasketTransport:
    return HttpBasketTransport.from_env(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_network_error_maps_to_code_zero() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = _http_transport(handler)
    with pytest.raises(TransportFailure) as excinfo:
        await transport.get(CHECKOUT_PATH)
    await transport.aclose()

    assert excinfo.value.first_code == NETWORK_ERROR_CODE
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_non_json_error_body_maps_to_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    transport = _http_transport(handler)
    with pytest.raises(TransportFailure) as excinfo:
        await transport.post(BASKET_ITEMS_PATH, [], is_multipart=True)
    await transport.aclose()

    assert excinfo.value.status_code == 500
    assert excinfo.value.error_stack[0].code == 500
    assert excinfo.value.error_stack[0].message == "upstream exploded"


@pytest.mark.asyncio
async def test_delete_sends_params_as_query_string() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"BasketItemsList": []})

    transport = _http_transport(handler)
    response = await transport.delete(BASKET_ITEMS_PATH, {"basketItemIdsList[0]": 5})
    await transport.aclose()

    assert response.data == {"BasketItemsList": []}
    assert seen[0].method == "DELETE"
    assert seen[0].url.params["basketItemIdsList[0]"] == "5"
    assert seen[0].content == b""


@pytest.mark.asyncio
async def test_mock_transport_unknown_route_is_a_404_failure() -> None:
    transport = InMemoryBasketTransport()

    with pytest.raises(TransportFailure) as excinfo:
        await transport.get("/rest/checkout/nothing-here/")

    assert excinfo.value.status_code == 404
    assert excinfo.value.first_code == 404
