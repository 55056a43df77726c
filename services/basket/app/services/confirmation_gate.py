"""Confirm/cancel workflow shown by the UI layer.

    gate = (
        ConfirmationGate(renderer)
        .set_title("Please confirm")
        .set_content("<p>Remove item?</p>")
        .set_label_confirm("Delete")
        .on_confirm(do_delete)
        .on_dismiss(restore_quantity)
    )
    resolution = await gate.show()

`show()` hands the gate to the renderer and returns a future. The renderer resolves the
gate by calling `confirm()` or `dismiss()`; if a timeout is set and fires first, the gate
resolves as TIMED_OUT and runs the timeout callback, or the dismiss callback when no
timeout callback is given. Exactly one callback runs, exactly once. The future carries
the outcome and the callback's return value, or the callback's exception.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from services.basket.app.services.ui_base import GateRenderer

logger = logging.getLogger(__name__)

GateCallback = Callable[[], Awaitable[Any] | Any]


class GateOutcome(str, Enum):
    CONFIRMED = "CONFIRMED"
    DISMISSED = "DISMISSED"
    TIMED_OUT = "TIMED_OUT"


@dataclass(frozen=True, slots=True)
class GateResolution:
    outcome: GateOutcome
    value: Any = None


class ConfirmationGate:
    def __init__(self, renderer: GateRenderer) -> None:
        self._renderer = renderer

        self.title: str | None = None
        self.content: str | None = None
        self.template: str | None = None
        self.timeout_ms: int | None = None
        self.label_confirm: str | None = None

        self._on_confirm: GateCallback | None = None
        self._on_dismiss: GateCallback | None = None
        self._on_timeout: GateCallback | None = None

        self._future: asyncio.Future[GateResolution] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._resolving = False
        self._pending: set[asyncio.Task] = set()

    def set_title(self, title: str) -> ConfirmationGate:
        self.title = title
        return self

    def set_content(self, content: str) -> ConfirmationGate:
        self.content = content
        return self

    def set_template(self, template: str) -> ConfirmationGate:
        self.template = template
        return self

    def set_timeout(self, timeout_ms: int) -> ConfirmationGate:
        self.timeout_ms = timeout_ms
        return self

    def set_label_confirm(self, label: str) -> ConfirmationGate:
        self.label_confirm = label
        return self

    def on_confirm(self, callback: GateCallback) -> ConfirmationGate:
        self._on_confirm = callback
        return self

    def on_dismiss(self, callback: GateCallback) -> ConfirmationGate:
        self._on_dismiss = callback
        return self

    def on_timeout(self, callback: GateCallback) -> ConfirmationGate:
        self._on_timeout = callback
        return self

    @property
    def shown(self) -> bool:
        return self._future is not None

    @property
    def resolved(self) -> bool:
        return self._future is not None and self._future.done()

    def show(self) -> asyncio.Future[GateResolution]:
        if self._future is not None:
            raise RuntimeError("ConfirmationGate.show() called twice")

        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        if self.timeout_ms is not None:
            self._timer = loop.call_later(self.timeout_ms / 1000, self._expire)

        self._renderer.render(self)
        return self._future

    async def confirm(self) -> GateResolution | None:
        return await self._resolve(GateOutcome.CONFIRMED, self._on_confirm)

    async def dismiss(self) -> GateResolution | None:
        return await self._resolve(GateOutcome.DISMISSED, self._on_dismiss)

    def _expire(self) -> None:
        callback = self._on_timeout if self._on_timeout is not None else self._on_dismiss
        task = asyncio.ensure_future(self._resolve(GateOutcome.TIMED_OUT, callback))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _resolve(
        self,
        outcome: GateOutcome,
        callback: GateCallback | None,
    ) -> GateResolution | None:
        if self._future is None:
            raise RuntimeError("ConfirmationGate resolved before show()")

        if self._resolving:
            logger.warning("gate %r already resolved; ignoring %s", self.title, outcome.value)
            return None
        self._resolving = True

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        try:
            value = callback() if callback is not None else None
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            self._future.set_exception(e)
            return None

        resolution = GateResolution(outcome=outcome, value=value)
        self._future.set_result(resolution)
        return resolution
