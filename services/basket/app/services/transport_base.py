from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from packages.shared.schemas.errors_v1 import (
    MISSING_ORDER_PARAMS_CODE,
    ErrorEntryV1,
    ErrorResponseV1,
)

BASKET_ITEMS_PATH = "/rest/checkout/basketitemslist/"
COUPON_PATH = "/rest/checkout/coupon/"
CHECKOUT_PATH = "/rest/checkout/"

# Used for failures that never reached the store (connection refused, timeouts, ...).
NETWORK_ERROR_CODE = 0
# Order-parameter answers rejected locally, before anything was sent.
INVALID_ORDER_PARAM_CODE = -1


class BasketError(Exception):
    """Base class for basket engine errors."""


class TransportFailure(BasketError):
    """The store (or the network in front of it) rejected a request."""

    def __init__(
        self,
        error_stack: list[ErrorEntryV1],
        status_code: int | None = None,
    ) -> None:
        summary = "; ".join(f"[{e.code}] {e.message}" for e in error_stack) or "empty error stack"
        super().__init__(f"Basket request failed: {summary}")
        self.error_stack = list(error_stack)
        self.status_code = status_code

    @classmethod
    def from_response(cls, body: Any, status_code: int | None = None) -> "TransportFailure":
        fallback = [ErrorEntryV1(code=status_code or NETWORK_ERROR_CODE, message=str(body))]
        if not isinstance(body, dict) or "error" not in body:
            return cls(fallback, status_code=status_code)
        try:
            parsed = ErrorResponseV1.model_validate(body)
        except ValueError:
            return cls(fallback, status_code=status_code)
        return cls(parsed.error.error_stack, status_code=status_code)

    @property
    def first_code(self) -> int | None:
        if not self.error_stack:
            return None
        return self.error_stack[0].code

    def is_missing_order_params(self) -> bool:
        return self.first_code == MISSING_ORDER_PARAMS_CODE


class RecoverableParamError(TransportFailure):
    """An add-item failure that can be recovered by collecting order parameters."""

    @classmethod
    def from_failure(cls, failure: TransportFailure) -> "RecoverableParamError":
        return cls(failure.error_stack, status_code=failure.status_code)


class BasketItemNotFoundError(BasketError, LookupError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Basket item {item_id} is not in the cached checkout")
        self.item_id = item_id


class InvalidOrderParamError(BasketError, ValueError):
    """A submitted order-parameter answer cannot be turned into a parameter value."""

    def __init__(self, position: int, param_id: Any, value: Any) -> None:
        super().__init__(
            f"Invalid order param at position {position}: id={param_id!r} value={value!r}"
        )
        self.position = position
        self.param_id = param_id
        self.value = value


@dataclass(frozen=True, slots=True)
class TransportResponse:
    status_code: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)


class BasketTransport(Protocol):
    name: str

    async def get(self, path: str, query: dict[str, Any] | None = None) -> TransportResponse: ...

    async def post(
        self,
        path: str,
        body: Any,
        is_multipart: bool = False,
    ) -> TransportResponse: ...

    async def delete(
        self,
        path: str,
        query_or_body: dict[str, Any] | None = None,
    ) -> TransportResponse: ...

    async def aclose(self) -> None: ...
