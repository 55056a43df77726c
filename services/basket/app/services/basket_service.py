"""Basket mutations and their follow-up UI work.

Every operation sends at most one mutating request, then reloads the cached checkout
and refreshes the views that depend on it. Quantity changes are applied to the cached
snapshot before the store confirms them. Nothing here serializes concurrent operations:
the UI is expected to block input while the wait indicator is shown, and when reloads
overlap the last response to arrive wins.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from html import escape

from packages.shared.schemas.errors_v1 import ErrorEntryV1
from services.basket.app.config import BasketSettings
from services.basket.app.models.basket import (
    AddItemState,
    BasketPreviewSummary,
    MutationResult,
    MutationStatus,
    PendingBasketMutation,
)
from services.basket.app.services.add_item_workflow import AddItemWorkflow
from services.basket.app.services.checkout_cache import CheckoutStateCache
from services.basket.app.services.confirmation_gate import ConfirmationGate, GateOutcome
from services.basket.app.services.containers import (
    ADD_CONFIRMATION_CONTAINER,
    ADD_CONFIRMATION_SOURCE,
    ORDER_PARAMS_CONTAINER,
    ORDER_PARAMS_SOURCE,
)
from services.basket.app.services.order_params import save_order_params
from services.basket.app.services.transport_base import (
    BASKET_ITEMS_PATH,
    COUPON_PATH,
    INVALID_ORDER_PARAM_CODE,
    BasketItemNotFoundError,
    BasketTransport,
    InvalidOrderParamError,
    RecoverableParamError,
    TransportFailure,
)
from services.basket.app.services.ui_base import (
    GateRenderer,
    OverlayContent,
    OverlayProvider,
    UINotifier,
)

logger = logging.getLogger(__name__)

BASKET_PREVIEW_CONTAINER = "BasketPreviewList"
TOTALS_CONTAINER = "Totals"
COUPON_CONTAINER = "Coupon"

REMOVE_CONFIRM_TITLE = "Please confirm"
REMOVE_CONFIRM_LABEL = "Delete"


def _remove_confirm_content(item_name: str) -> str:
    return f'<p>Do you really want to remove "{escape(item_name)}" from the basket?</p>'


class BasketService:
    def __init__(
        self,
        transport: BasketTransport,
        checkout: CheckoutStateCache,
        ui: UINotifier,
        overlays: OverlayProvider,
        gates: GateRenderer,
        settings: BasketSettings | None = None,
    ) -> None:
        self._transport = transport
        self._checkout = checkout
        self._ui = ui
        self._overlays = overlays
        self._gates = gates
        self._settings = settings if settings is not None else BasketSettings()
        self._wait_depth = 0

    def prepare(self) -> ConfirmationGate:
        return ConfirmationGate(self._gates)

    # ------------------------------------------------------------------ add

    async def add_item(
        self,
        mutation: PendingBasketMutation,
        is_retry_with_params: bool = False,
    ) -> MutationResult:
        """Add one logical item (plus its expansions) to the basket.

        If the store asks for order parameters and this is not already a retry, the
        parameter form is shown and, once confirmed, the request is sent once more with
        the collected values. A failure on that retry is final.
        """
        if not mutation:
            return MutationResult(status=MutationStatus.NOOP)

        workflow = AddItemWorkflow()
        workflow.advance(AddItemState.SUBMITTING)

        failure: TransportFailure | None = None
        overlay: OverlayContent | None = None
        follow_up_errors: list[ErrorEntryV1] = []

        with self._waiting():
            try:
                await self._transport.post(
                    BASKET_ITEMS_PATH,
                    [item.to_request() for item in mutation],
                    True,
                )
            except TransportFailure as e:
                failure = e

            if failure is None:
                workflow.advance(AddItemState.SUCCESS)
                try:
                    overlay = await self._reload_after_add(mutation)
                except TransportFailure as e:
                    follow_up_errors = self._report_follow_up(e)
            elif not is_retry_with_params and failure.is_missing_order_params():
                failure = RecoverableParamError.from_failure(failure)
                workflow.advance(AddItemState.NEEDS_PARAMS)
                try:
                    overlay = await self._overlays.get_overlay_content(
                        ORDER_PARAMS_CONTAINER,
                        {
                            "itemID": mutation[0].item_reference_id,
                            "quantity": mutation[0].quantity,
                        },
                        ORDER_PARAMS_SOURCE,
                    )
                except TransportFailure as e:
                    workflow.advance(AddItemState.FAILED)
                    return self._failed(e, state=workflow.state)

        if failure is None:
            logger.info(
                "added item %s (%d entr%s)",
                mutation[0].item_reference_id,
                len(mutation),
                "y" if len(mutation) == 1 else "ies",
            )
            if overlay is not None:
                self._show_add_confirmation(overlay)
            return MutationResult(
                status=MutationStatus.SUCCESS,
                errors=follow_up_errors,
                state=workflow.state,
            )

        if isinstance(failure, RecoverableParamError) and overlay is not None:
            return await self._collect_order_params(workflow, mutation, overlay)

        workflow.advance(AddItemState.FAILED)
        return self._failed(failure, state=workflow.state)

    async def _reload_after_add(self, mutation: PendingBasketMutation) -> OverlayContent:
        await self._checkout.load_checkout()
        await self.refresh_basket_preview()
        return await self._overlays.get_overlay_content(
            ADD_CONFIRMATION_CONTAINER,
            {"ArticleID": mutation[0].item_reference_id},
            ADD_CONFIRMATION_SOURCE,
        )

    def _show_add_confirmation(self, overlay: OverlayContent) -> None:
        # Fire and forget: the overlay closes itself, the mutation is already done.
        (
            self.prepare()
            .set_template(overlay.template)
            .set_timeout(self._settings.confirmation_overlay_timeout_ms)
            .show()
        )

    async def _collect_order_params(
        self,
        workflow: AddItemWorkflow,
        mutation: PendingBasketMutation,
        form: OverlayContent,
    ) -> MutationResult:
        workflow.advance(AddItemState.AWAITING_USER_INPUT)
        logger.info("item %s needs order params", mutation[0].item_reference_id)

        async def resubmit() -> MutationResult:
            workflow.advance(AddItemState.RESUBMITTING)
            try:
                merged = save_order_params(mutation, self._ui.read_order_params_form())
            except InvalidOrderParamError as e:
                return self._rejected_params(e)
            return await self.add_item(merged, is_retry_with_params=True)

        resolution = await self.prepare().set_template(form.template).on_confirm(resubmit).show()

        if resolution.outcome is GateOutcome.CONFIRMED:
            retry: MutationResult = resolution.value
            workflow.advance(AddItemState.SUCCESS if retry.ok else AddItemState.FAILED)
            return retry.model_copy(update={"state": workflow.state})

        workflow.advance(AddItemState.ABANDONED)
        return MutationResult(status=MutationStatus.ABANDONED, state=workflow.state)

    # --------------------------------------------------------------- remove

    async def remove_item(self, item_id: int, force_delete: bool = False) -> MutationResult:
        try:
            item = self._checkout.require_item(item_id)
        except BasketItemNotFoundError as e:
            logger.warning("remove_item ignored: %s", e)
            return MutationResult(status=MutationStatus.NOOP)

        if force_delete:
            return await self._delete_item(item_id)

        original_quantity = item.quantity

        def restore_quantity() -> None:
            # Undo whatever the user typed into the quantity control.
            self._ui.set_item_quantity_display(item_id, original_quantity)

        async def delete() -> MutationResult:
            return await self._delete_item(item_id)

        resolution = await (
            self.prepare()
            .set_title(REMOVE_CONFIRM_TITLE)
            .set_content(_remove_confirm_content(item.display_name))
            .on_dismiss(restore_quantity)
            .on_confirm(delete)
            .set_label_confirm(REMOVE_CONFIRM_LABEL)
            .show()
        )

        if resolution.outcome is GateOutcome.CONFIRMED:
            return resolution.value
        return MutationResult(status=MutationStatus.ABANDONED)

    async def _delete_item(self, item_id: int) -> MutationResult:
        with self._waiting():
            try:
                await self._transport.delete(
                    BASKET_ITEMS_PATH,
                    {"basketItemIdsList[0]": item_id},
                )
            except TransportFailure as e:
                return self._failed(e)

            logger.info("removed basket item %s", item_id)
            errors = await self._follow_up(lambda: self._reload_after_delete(item_id))

        return MutationResult(status=MutationStatus.SUCCESS, errors=errors)

    async def _reload_after_delete(self, item_id: int) -> None:
        await self._checkout.load_checkout()
        self._ui.remove_item_row(item_id)

        if self._checkout.get_checkout().is_empty:
            await self._checkout.reload_cat_content(self._settings.basket_category_id)
        else:
            await self._checkout.reload_container(TOTALS_CONTAINER)

        await self.refresh_basket_preview()

    # ------------------------------------------------------------- quantity

    async def set_item_quantity(self, item_id: int, new_quantity: int) -> MutationResult:
        if new_quantity <= 0:
            return await self.remove_item(item_id, force_delete=False)

        snapshot = self._checkout.get_checkout()
        item = snapshot.find_item(item_id)
        if item is None:
            logger.warning("set_item_quantity ignored: basket item %s not in checkout", item_id)
            return MutationResult(status=MutationStatus.NOOP)
        if item.quantity == new_quantity:
            return MutationResult(status=MutationStatus.NOOP)

        previous_quantity = item.quantity
        item.quantity = int(new_quantity)

        with self._waiting():
            try:
                # The store recomputes totals from the whole list, not from a single line.
                await self._transport.post(
                    BASKET_ITEMS_PATH,
                    [line.to_request() for line in snapshot.items],
                )
            except TransportFailure as e:
                item.quantity = previous_quantity
                self._ui.set_item_quantity_display(item_id, previous_quantity)
                return self._failed(e)

            logger.info(
                "basket item %s quantity %d -> %d",
                item_id,
                previous_quantity,
                new_quantity,
            )
            errors = await self._follow_up(lambda: self._reload_after_quantity(item_id))

        return MutationResult(status=MutationStatus.SUCCESS, errors=errors)

    async def _reload_after_quantity(self, item_id: int) -> None:
        await self._checkout.set_checkout()
        await self._checkout.reload_container(TOTALS_CONTAINER)

        updated = self._checkout.get_checkout().find_item(item_id)
        price_total = updated.price_total if updated is not None else 0
        self._ui.set_item_price_total_display(item_id, price_total)

        await self.refresh_basket_preview()

    # --------------------------------------------------------------- coupon

    async def add_coupon(self) -> MutationResult:
        code = self._ui.read_coupon_code()

        with self._waiting():
            try:
                await self._transport.post(COUPON_PATH, {"CouponActiveCouponCode": code})
            except TransportFailure as e:
                return self._failed(e)

            logger.info("coupon %r applied", code)
            errors = await self._follow_up(lambda: self._reload_coupon_views(clear_coupon=False))

        return MutationResult(status=MutationStatus.SUCCESS, errors=errors)

    async def remove_coupon(self) -> MutationResult:
        coupon = self._checkout.get_checkout().coupon
        if coupon is None:
            return MutationResult(status=MutationStatus.NOOP)

        with self._waiting():
            try:
                await self._transport.delete(COUPON_PATH, {"CouponActiveCouponCode": coupon.code})
            except TransportFailure as e:
                return self._failed(e)

            logger.info("coupon %r removed", coupon.code)
            errors = await self._follow_up(lambda: self._reload_coupon_views(clear_coupon=True))

        return MutationResult(status=MutationStatus.SUCCESS, errors=errors)

    async def _reload_coupon_views(self, clear_coupon: bool) -> None:
        await self._checkout.set_checkout()
        if clear_coupon:
            self._checkout.get_checkout().coupon = None

        await self._checkout.reload_container(COUPON_CONTAINER)
        await self._checkout.reload_cat_content(self._settings.checkout_confirm_category_id)
        await self.refresh_basket_preview()

    # -------------------------------------------------------------- preview

    async def refresh_basket_preview(self) -> BasketPreviewSummary:
        """Reload the basket preview and publish the item count and item sum."""
        with self._waiting():
            await self._checkout.reload_item_container(BASKET_PREVIEW_CONTAINER)

            snapshot = self._checkout.get_checkout()
            summary = BasketPreviewSummary(
                item_quantity_total=snapshot.item_quantity_total,
                totals_item_sum=snapshot.totals.item_sum,
                is_empty=snapshot.is_empty,
            )
            self._ui.update_basket_preview(summary)

        return summary

    # -------------------------------------------------------------- helpers

    @contextmanager
    def _waiting(self) -> Iterator[None]:
        # Shown once for the outermost operation, hidden after the last one finishes.
        if self._wait_depth == 0:
            self._ui.show_wait_indicator()
        self._wait_depth += 1
        try:
            yield
        finally:
            self._wait_depth -= 1
            if self._wait_depth == 0:
                self._ui.hide_wait_indicator()

    def _failed(
        self,
        failure: TransportFailure,
        state: AddItemState | None = None,
    ) -> MutationResult:
        logger.warning("basket request failed: %s", failure)
        self._ui.print_errors(failure.error_stack)
        return MutationResult(
            status=MutationStatus.FAILED,
            errors=failure.error_stack,
            state=state,
        )

    def _rejected_params(self, error: InvalidOrderParamError) -> MutationResult:
        logger.warning("order params rejected: %s", error)
        entries = [ErrorEntryV1(code=INVALID_ORDER_PARAM_CODE, message=str(error))]
        self._ui.print_errors(entries)
        return MutationResult(status=MutationStatus.FAILED, errors=entries)

    async def _follow_up(self, steps: Callable[[], Awaitable[None]]) -> list[ErrorEntryV1]:
        try:
            await steps()
        except TransportFailure as e:
            return self._report_follow_up(e)
        return []

    def _report_follow_up(self, failure: TransportFailure) -> list[ErrorEntryV1]:
        # The mutation itself was accepted; only the reload behind it failed.
        logger.warning("reload after accepted mutation failed: %s", failure)
        self._ui.print_errors(failure.error_stack)
        return failure.error_stack
