from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BasketSettings:
    """Engine settings.

    Env vars:
    - BASKET_CATEGORY_ID (default: 0) basket page, reloaded once the basket is empty
    - BASKET_CHECKOUT_CONFIRM_CATEGORY_ID (default: 0) reloaded after coupon changes
    - BASKET_CONFIRMATION_OVERLAY_TIMEOUT_MS (default: 5000)
    - BASKET_LOG_LEVEL (default: INFO)

    Transport selection lives in transport_factory / HttpBasketTransport.from_env().
    """

    basket_category_id: int = 0
    checkout_confirm_category_id: int = 0
    confirmation_overlay_timeout_ms: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "BasketSettings":
        return cls(
            basket_category_id=int(os.getenv("BASKET_CATEGORY_ID", "0")),
            checkout_confirm_category_id=int(os.getenv("BASKET_CHECKOUT_CONFIRM_CATEGORY_ID", "0")),
            confirmation_overlay_timeout_ms=int(
                os.getenv("BASKET_CONFIRMATION_OVERLAY_TIMEOUT_MS", "5000")
            ),
            log_level=os.getenv("BASKET_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
