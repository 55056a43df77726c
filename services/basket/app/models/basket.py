from __future__ import annotations

from enum import Enum

from packages.shared.schemas.errors_v1 import ErrorEntryV1
from pydantic import BaseModel, ConfigDict, Field

# Field aliases are the authoritative store's JSON keys.


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class OrderParamValue(_WireModel):
    param_id: int = Field(..., alias="BasketItemOrderParamID")
    value: str | int | float = Field(..., alias="BasketItemOrderParamValue")

    # Local bookkeeping only, never sent to the store.
    param_group_id: int | None = Field(default=None, exclude=True)


class BasketItem(_WireModel):
    # None until the store has persisted the line.
    id: int | None = Field(default=None, alias="BasketItemID")
    item_reference_id: int = Field(..., alias="BasketItemItemID")
    quantity: int = Field(..., ge=1, alias="BasketItemQuantity")
    order_params: list[OrderParamValue] = Field(
        default_factory=list, alias="BasketItemOrderParamsList"
    )
    price_total: float | None = Field(default=None, alias="BasketItemPriceTotal")
    name_map: dict[int, str] = Field(default_factory=dict, alias="BasketItemNameMap")

    def to_request(self) -> dict:
        # Prices and names are computed by the store and never sent back.
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude={"price_total", "name_map"},
        )

    @property
    def display_name(self) -> str:
        if 1 in self.name_map:
            return self.name_map[1]
        return next(iter(self.name_map.values()), "")


# One logical "add" call. Index 0 is the canonical item, indices >= 1 are expansions.
PendingBasketMutation = list[BasketItem]


class BasketTotals(_WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    item_sum: float = Field(default=0, alias="TotalsItemSum")


class Coupon(_WireModel):
    code: str = Field(..., alias="CouponActiveCouponCode")


class BasketSnapshot(_WireModel):
    items: list[BasketItem] = Field(default_factory=list, alias="BasketItemsList")
    totals: BasketTotals = Field(default_factory=BasketTotals, alias="Totals")
    coupon: Coupon | None = Field(default=None, alias="Coupon")

    def find_item(self, item_id: int) -> BasketItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_quantity_total(self) -> int:
        return sum(item.quantity for item in self.items)


class BasketPreviewSummary(BaseModel):
    item_quantity_total: int
    totals_item_sum: float
    is_empty: bool


class ParamControlType(str, Enum):
    FREE_FORM = "FREE_FORM"
    CHECKBOX = "CHECKBOX"
    RADIO = "RADIO"


class ParamGroupField(BaseModel):
    """A `ParamGroup[position][group_id]` form control; its value selects a parameter."""

    position: int = Field(..., ge=0)
    group_id: int
    value: str


class ParamValueField(BaseModel):
    """A `ParamValue[position][param_id]` form control."""

    position: int = Field(..., ge=0)
    param_id: int
    value: str
    control: ParamControlType = ParamControlType.FREE_FORM
    checked: bool = False

    @property
    def is_submitted(self) -> bool:
        # Exclusive-choice controls only count when selected.
        if self.control in (ParamControlType.CHECKBOX, ParamControlType.RADIO):
            return self.checked
        return True


class OrderParamsForm(BaseModel):
    group_fields: list[ParamGroupField] = Field(default_factory=list)
    value_fields: list[ParamValueField] = Field(default_factory=list)


class AddItemState(str, Enum):
    IDLE = "IDLE"
    SUBMITTING = "SUBMITTING"
    NEEDS_PARAMS = "NEEDS_PARAMS"
    AWAITING_USER_INPUT = "AWAITING_USER_INPUT"
    RESUBMITTING = "RESUBMITTING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    ABANDONED = "ABANDONED"


class MutationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    ABANDONED = "ABANDONED"
    NOOP = "NOOP"


class MutationResult(BaseModel):
    status: MutationStatus
    errors: list[ErrorEntryV1] = Field(default_factory=list)
    # Final add-item workflow state; None for the other operations.
    state: AddItemState | None = None

    @property
    def ok(self) -> bool:
        return self.status is MutationStatus.SUCCESS
