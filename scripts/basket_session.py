from __future__ import annotations

import argparse
import asyncio
import sys

from packages.shared.schemas.errors_v1 import ErrorEntryV1
from services.basket.app.config import BasketSettings
from services.basket.app.logging_config import configure_logging
from services.basket.app.models.basket import (
    BasketItem,
    BasketPreviewSummary,
    MutationResult,
    OrderParamsForm,
    ParamValueField,
)
from services.basket.app.services.basket_service import BasketService
from services.basket.app.services.checkout_cache import TransportCheckoutCache
from services.basket.app.services.confirmation_gate import ConfirmationGate
from services.basket.app.services.overlay import TransportOverlayProvider
from services.basket.app.services.transport_factory import get_basket_transport

USAGE_EXAMPLES = """\
commands:
  add=ITEM[xQTY]     add an item, e.g. add=42x2
  qty=ID:QTY         set the quantity of basket item ID
  remove=ID          remove basket item ID (asks for confirmation)
  coupon=CODE        apply a coupon
  uncoupon           remove the active coupon
"""


class ConsoleUI:
    def __init__(self, coupon_code: str = "", params: list[str] | None = None) -> None:
        self.coupon_code = coupon_code
        self.params = params or []

    def show_wait_indicator(self) -> None:
        print("... waiting")

    def hide_wait_indicator(self) -> None:
        print("... done")

    def print_errors(self, errors: list[ErrorEntryV1]) -> None:
        for e in errors:
            print(f"error {e.code}: {e.message}")

    def read_coupon_code(self) -> str:
        return self.coupon_code

    def read_order_params_form(self) -> OrderParamsForm:
        fields: list[ParamValueField] = []
        for raw in self.params:
            slot, _, value = raw.partition("=")
            position, _, param_id = slot.partition(":")
            fields.append(
                ParamValueField(position=int(position), param_id=int(param_id), value=value)
            )
        return OrderParamsForm(value_fields=fields)

    def set_item_quantity_display(self, item_id: int, quantity: int) -> None:
        print(f"item {item_id}: quantity {quantity}")

    def set_item_price_total_display(self, item_id: int, price_total: float | None) -> None:
        print(f"item {item_id}: price total {price_total}")

    def remove_item_row(self, item_id: int) -> None:
        print(f"item {item_id}: removed")

    def update_basket_preview(self, summary: BasketPreviewSummary) -> None:
        print(f"basket: {summary.item_quantity_total} item(s), sum {summary.totals_item_sum}")


class ConsoleViews:
    async def reload_container(self, name: str) -> None:
        print(f"reload container {name}")

    async def reload_item_container(self, name: str) -> None:
        print(f"reload item container {name}")

    async def reload_cat_content(self, category_id: int) -> None:
        print(f"reload category {category_id}")


class AutoGateRenderer:
    """Answers every untimed gate with the same decision."""

    def __init__(self, confirm: bool) -> None:
        self._confirm = confirm
        self._tasks: set[asyncio.Task] = set()

    def render(self, gate: ConfirmationGate) -> None:
        print(f"[{gate.title or 'overlay'}] {gate.content or gate.template or ''}")
        if gate.timeout_ms is not None:
            return
        task = asyncio.ensure_future(gate.confirm() if self._confirm else gate.dismiss())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


async def _run_command(service: BasketService, command: str) -> MutationResult:
    verb, _, arg = command.partition("=")

    if verb == "add":
        item, _, qty = arg.partition("x")
        return await service.add_item(
            [BasketItem(item_reference_id=int(item), quantity=int(qty or 1))]
        )
    if verb == "qty":
        item_id, _, qty = arg.partition(":")
        return await service.set_item_quantity(int(item_id), int(qty))
    if verb == "remove":
        return await service.remove_item(int(arg))
    if verb == "coupon":
        return await service.add_coupon()
    if verb == "uncoupon":
        return await service.remove_coupon()

    raise ValueError(f"Unknown command {command!r}")


async def _run(args: argparse.Namespace) -> int:
    coupon = next((c.partition("=")[2] for c in args.commands if c.startswith("coupon=")), "")
    ui = ConsoleUI(coupon_code=coupon, params=args.param)
    transport = get_basket_transport()
    checkout = TransportCheckoutCache(transport, ConsoleViews())
    service = BasketService(
        transport=transport,
        checkout=checkout,
        ui=ui,
        overlays=TransportOverlayProvider(transport),
        gates=AutoGateRenderer(confirm=args.yes),
        settings=BasketSettings.from_env(),
    )

    exit_code = 0
    try:
        await checkout.load_checkout()
        for command in args.commands:
            result = await _run_command(service, command)
            print(f"{command}: {result.status.value}")
            if not result.ok:
                exit_code = 1
    finally:
        await transport.aclose()
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Drive a basket session against the configured transport",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("commands", nargs="+")
    parser.add_argument("--yes", action="store_true", help="confirm every prompt")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        help="order param answer POSITION:PARAM_ID=VALUE (repeatable)",
    )
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
