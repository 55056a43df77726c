"""Template containers served by the reference store.

Real storefronts render these from CMS templates. The reference store only needs enough
markup for a UI layer to show something sensible.
"""

from __future__ import annotations

from html import escape
from typing import Any

from services.basket.app.services.store import InMemoryBasketStore

ADD_CONFIRMATION_CONTAINER = "ItemViewItemToBasketConfirmationOverlay"
ADD_CONFIRMATION_SOURCE = "ItemView"
ORDER_PARAMS_CONTAINER = "CheckoutOrderParamsList"
ORDER_PARAMS_SOURCE = "Checkout"


def container_path(source: str, name: str) -> str:
    return f"/rest/{source.lower()}/container_{name.lower()}/"


def _int_param(query: dict[str, Any], key: str) -> int | None:
    try:
        return int(query[key])
    except (KeyError, TypeError, ValueError):
        return None


def render_container(
    store: InMemoryBasketStore,
    source: str,
    name: str,
    query: dict[str, Any],
) -> str | None:
    source = source.lower()
    name = name.lower()

    if (source, name) == (ADD_CONFIRMATION_SOURCE.lower(), ADD_CONFIRMATION_CONTAINER.lower()):
        entry = store.catalog_entry(_int_param(query, "ArticleID") or -1)
        label = escape(entry.name) if entry else "Item"
        return (
            '<div data-plenty="itemToBasketConfirmation">'
            f"<p>{label} was added to your basket.</p></div>"
        )

    if (source, name) == (ORDER_PARAMS_SOURCE.lower(), ORDER_PARAMS_CONTAINER.lower()):
        item_id = _int_param(query, "itemID")
        quantity = _int_param(query, "quantity") or 1
        entry = store.catalog_entry(item_id or -1)
        if entry is None:
            return None
        rows = "".join(
            f'<fieldset><legend>{escape(entry.name)} #{position + 1}</legend>'
            f'<input type="text" name="ParamValue[{position}][1]" value=""></fieldset>'
            for position in range(quantity)
        )
        return f'<form data-plenty-checkout-form="OrderParamsForm">{rows}</form>'

    return None
