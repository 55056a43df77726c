from __future__ import annotations

from typing import Any

from services.basket.app.services.containers import container_path
from services.basket.app.services.transport_base import BasketTransport
from services.basket.app.services.ui_base import OverlayContent


class TransportOverlayProvider:
    """Fetches named template containers (`/rest/<source>/container_<name>/`)."""

    def __init__(self, transport: BasketTransport) -> None:
        self._transport = transport

    async def get_overlay_content(
        self,
        name: str,
        query: dict[str, Any],
        source: str,
    ) -> OverlayContent:
        response = await self._transport.get(container_path(source, name), query)
        data = response.data or {}
        templates = data.get("data") if isinstance(data, dict) else None
        return OverlayContent(data=[str(t) for t in templates or []])
