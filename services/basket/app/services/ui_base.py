"""Ports implemented by the UI layer.

The engine never renders anything itself. It calls these and lets the UI decide how the
change shows up on screen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from packages.shared.schemas.errors_v1 import ErrorEntryV1
from services.basket.app.models.basket import BasketPreviewSummary, OrderParamsForm

if TYPE_CHECKING:
    from services.basket.app.services.confirmation_gate import ConfirmationGate


class UINotifier(Protocol):
    def show_wait_indicator(self) -> None: ...

    def hide_wait_indicator(self) -> None: ...

    def print_errors(self, errors: list[ErrorEntryV1]) -> None: ...

    def read_coupon_code(self) -> str: ...

    def read_order_params_form(self) -> OrderParamsForm: ...

    def set_item_quantity_display(self, item_id: int, quantity: int) -> None: ...

    def set_item_price_total_display(self, item_id: int, price_total: float | None) -> None: ...

    def remove_item_row(self, item_id: int) -> None: ...

    def update_basket_preview(self, summary: BasketPreviewSummary) -> None: ...


class ViewRefresher(Protocol):
    async def reload_container(self, name: str) -> None: ...

    async def reload_item_container(self, name: str) -> None: ...

    async def reload_cat_content(self, category_id: int) -> None: ...


class GateRenderer(Protocol):
    """Displays a prepared gate; later resolves it via `confirm()` or `dismiss()`."""

    def render(self, gate: ConfirmationGate) -> None: ...


@dataclass(frozen=True, slots=True)
class OverlayContent:
    data: list[str] = field(default_factory=list)

    @property
    def template(self) -> str:
        return self.data[0] if self.data else ""


class OverlayProvider(Protocol):
    async def get_overlay_content(
        self,
        name: str,
        query: dict[str, Any],
        source: str,
    ) -> OverlayContent: ...
