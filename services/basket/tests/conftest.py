from __future__ import annotations

import asyncio
from typing import Any

import pytest
from packages.shared.schemas.errors_v1 import ErrorEntryV1
from services.basket.app.config import BasketSettings
from services.basket.app.models.basket import BasketPreviewSummary, OrderParamsForm
from services.basket.app.services.basket_service import BasketService
from services.basket.app.services.checkout_cache import TransportCheckoutCache
from services.basket.app.services.confirmation_gate import ConfirmationGate
from services.basket.app.services.overlay import TransportOverlayProvider
from services.basket.app.services.store import InMemoryBasketStore
from services.basket.app.services.transport_base import TransportFailure, TransportResponse
from services.basket.app.services.transport_mock import InMemoryBasketTransport

BASKET_CATEGORY_ID = 11
CHECKOUT_CONFIRM_CATEGORY_ID = 12


class RecordingUI:
    def __init__(self, events: list[tuple]) -> None:
        self.events = events
        self.coupon_code = ""
        self.form = OrderParamsForm()
        self.printed: list[list[ErrorEntryV1]] = []

    def show_wait_indicator(self) -> None:
        self.events.append(("show_wait_indicator",))

    def hide_wait_indicator(self) -> None:
        self.events.append(("hide_wait_indicator",))

    def print_errors(self, errors: list[ErrorEntryV1]) -> None:
        self.printed.append(list(errors))
        self.events.append(("print_errors", [e.code for e in errors]))

    def read_coupon_code(self) -> str:
        return self.coupon_code

    def read_order_params_form(self) -> OrderParamsForm:
        return self.form

    def set_item_quantity_display(self, item_id: int, quantity: int) -> None:
        self.events.append(("set_item_quantity_display", item_id, quantity))

    def set_item_price_total_display(self, item_id: int, price_total: float | None) -> None:
        self.events.append(("set_item_price_total_display", item_id, price_total))

    def remove_item_row(self, item_id: int) -> None:
        self.events.append(("remove_item_row", item_id))

    def update_basket_preview(self, summary: BasketPreviewSummary) -> None:
        self.events.append(("update_basket_preview", summary.item_quantity_total))


class RecordingViews:
    def __init__(self, events: list[tuple]) -> None:
        self.events = events

    async def reload_container(self, name: str) -> None:
        self.events.append(("reload_container", name))

    async def reload_item_container(self, name: str) -> None:
        self.events.append(("reload_item_container", name))

    async def reload_cat_content(self, category_id: int) -> None:
        self.events.append(("reload_cat_content", category_id))


class ScriptedGateRenderer:
    """Answers untimed gates from a script ("confirm", "dismiss" or "hold").

    Timed gates (auto-dismissing overlays) are recorded and left alone.
    """

    def __init__(self, events: list[tuple]) -> None:
        self.events = events
        self.answers: list[str] = []
        self.gates: list[ConfirmationGate] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def prompts(self) -> list[ConfirmationGate]:
        return [g for g in self.gates if g.timeout_ms is None]

    def render(self, gate: ConfirmationGate) -> None:
        self.gates.append(gate)
        self.events.append(("render_gate", gate.title, gate.timeout_ms))
        if gate.timeout_ms is not None:
            return

        answer = self.answers.pop(0) if self.answers else "confirm"
        if answer == "hold":
            return
        resolve = gate.confirm if answer == "confirm" else gate.dismiss
        task = asyncio.ensure_future(resolve())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class FlakyTransport:
    """Wraps a transport and fails chosen requests once."""

    name = "FLAKY"

    def __init__(self, inner: InMemoryBasketTransport) -> None:
        self.inner = inner
        self.failures: dict[tuple[str, str], list[ErrorEntryV1]] = {}

    def fail_next(self, method: str, path: str, *entries: ErrorEntryV1) -> None:
        self.failures[(method, path)] = list(entries)

    def _maybe_fail(self, method: str, path: str) -> None:
        stack = self.failures.pop((method, path), None)
        if stack is not None:
            raise TransportFailure(stack, status_code=400)

    async def get(self, path: str, query: dict[str, Any] | None = None) -> TransportResponse:
        self._maybe_fail("GET", path)
        return await self.inner.get(path, query)

    async def post(self, path: str, body: Any, is_multipart: bool = False) -> TransportResponse:
        self._maybe_fail("POST", path)
        return await self.inner.post(path, body, is_multipart)

    async def delete(
        self,
        path: str,
        query_or_body: dict[str, Any] | None = None,
    ) -> TransportResponse:
        self._maybe_fail("DELETE", path)
        return await self.inner.delete(path, query_or_body)

    async def aclose(self) -> None:
        return None


@pytest.fixture()
def events() -> list[tuple]:
    return []


@pytest.fixture()
def store() -> InMemoryBasketStore:
    return InMemoryBasketStore()


@pytest.fixture()
def mock_transport(store: InMemoryBasketStore) -> InMemoryBasketTransport:
    return InMemoryBasketTransport(store)


@pytest.fixture()
def transport(mock_transport: InMemoryBasketTransport) -> FlakyTransport:
    return FlakyTransport(mock_transport)


@pytest.fixture()
def ui(events: list[tuple]) -> RecordingUI:
    return RecordingUI(events)


@pytest.fixture()
def views(events: list[tuple]) -> RecordingViews:
    return RecordingViews(events)


@pytest.fixture()
def gates(events: list[tuple]) -> ScriptedGateRenderer:
    return ScriptedGateRenderer(events)


@pytest.fixture()
def checkout(transport: FlakyTransport, views: RecordingViews) -> TransportCheckoutCache:
    return TransportCheckoutCache(transport, views)


@pytest.fixture()
def service(
    transport: FlakyTransport,
    checkout: TransportCheckoutCache,
    ui: RecordingUI,
    gates: ScriptedGateRenderer,
) -> BasketService:
    return BasketService(
        transport=transport,
        checkout=checkout,
        ui=ui,
        overlays=TransportOverlayProvider(transport),
        gates=gates,
        settings=BasketSettings(
            basket_category_id=BASKET_CATEGORY_ID,
            checkout_confirm_category_id=CHECKOUT_CONFIRM_CATEGORY_ID,
        ),
    )