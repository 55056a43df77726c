"""Order parameter collection.

Turns the answers of an order-parameter form into a pending add request. A form can ask
for parameters per physical item, so one add request may expand into several basket
lines: position 0 is the item the user picked, positions >= 1 are copies of it with
quantity 1 and their own parameters.
"""

from __future__ import annotations

from pydantic import ValidationError
from services.basket.app.models.basket import (
    BasketItem,
    OrderParamsForm,
    OrderParamValue,
    PendingBasketMutation,
)
from services.basket.app.services.transport_base import InvalidOrderParamError


def _new_expansion(first: BasketItem) -> BasketItem:
    expansion = first.model_copy(deep=True)
    expansion.id = None
    expansion.quantity = 1
    expansion.order_params = []
    return expansion


def merge_param(
    mutation: PendingBasketMutation,
    position: int,
    param_id: int | str,
    value: str | int | float,
    *,
    param_group_id: int | None = None,
) -> PendingBasketMutation:
    """Append one parameter value to the entry at `position`.

    A position at or past the end adds a new expansion entry: a deep copy of entry 0 with
    no id and no parameters. Returns a new list; entries other than the addressed one are
    shared, not copied. Values are appended, never deduplicated: each form field maps to
    exactly one slot.
    """
    merged = list(mutation)
    if not merged:
        return merged

    try:
        param = OrderParamValue(param_id=param_id, value=value, param_group_id=param_group_id)
    except ValidationError as e:
        raise InvalidOrderParamError(position, param_id, value) from e

    if position >= len(merged):
        target = _new_expansion(merged[0])
        merged.append(target)
    else:
        target = merged[position].model_copy(deep=True)
        merged[position] = target

    target.quantity = 1
    target.order_params.append(param)
    return merged


def _entry_slots(size: int, positions: set[int]) -> dict[int, int]:
    # Form positions past the end become consecutive expansions, so a skipped position
    # (an unchecked control) never leaves a hole in the request.
    beyond = sorted(p for p in positions if p >= size)
    return {position: size + offset for offset, position in enumerate(beyond)}


def save_order_params(
    mutation: PendingBasketMutation,
    form: OrderParamsForm,
) -> PendingBasketMutation:
    # A group control left on its empty choice selects nothing.
    groups = [group for group in form.group_fields if group.value.strip()]
    values = [field for field in form.value_fields if field.is_submitted]

    slots = _entry_slots(
        len(mutation),
        {group.position for group in groups} | {field.position for field in values},
    )
    if mutation and slots:
        mutation = [*mutation, *(_new_expansion(mutation[0]) for _ in slots)]

    # Groups before values: each entry lists its group selections first.
    for group in groups:
        mutation = merge_param(
            mutation,
            slots.get(group.position, group.position),
            group.value,
            group.value,
            param_group_id=group.group_id,
        )

    for field in values:
        mutation = merge_param(
            mutation,
            slots.get(field.position, field.position),
            field.param_id,
            field.value,
        )

    return mutation
