"""Add-item workflow transitions (single source of truth)."""

from __future__ import annotations

from collections.abc import Mapping

from services.basket.app.models.basket import AddItemState

ALLOWED_TRANSITIONS: Mapping[AddItemState, frozenset[AddItemState]] = {
    AddItemState.IDLE: frozenset({AddItemState.SUBMITTING}),
    AddItemState.SUBMITTING: frozenset(
        {
            AddItemState.SUCCESS,
            AddItemState.NEEDS_PARAMS,
            AddItemState.FAILED,
        }
    ),
    # FAILED here means the parameter form itself could not be fetched.
    AddItemState.NEEDS_PARAMS: frozenset(
        {
            AddItemState.AWAITING_USER_INPUT,
            AddItemState.FAILED,
        }
    ),
    AddItemState.AWAITING_USER_INPUT: frozenset(
        {
            AddItemState.RESUBMITTING,
            AddItemState.ABANDONED,
        }
    ),
    # No way back to NEEDS_PARAMS: a second failure ends the workflow.
    AddItemState.RESUBMITTING: frozenset({AddItemState.SUCCESS, AddItemState.FAILED}),
    AddItemState.SUCCESS: frozenset(),
    AddItemState.FAILED: frozenset(),
    AddItemState.ABANDONED: frozenset(),
}

TERMINAL_STATES = frozenset(
    {
        AddItemState.SUCCESS,
        AddItemState.FAILED,
        AddItemState.ABANDONED,
    }
)


class InvalidTransitionError(RuntimeError):
    def __init__(self, current: AddItemState, target: AddItemState) -> None:
        super().__init__(f"Add-item transition {current.value} -> {target.value} is not allowed")
        self.current = current
        self.target = target


class AddItemWorkflow:
    def __init__(self) -> None:
        self.state = AddItemState.IDLE
        self.history: list[AddItemState] = [AddItemState.IDLE]

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, target: AddItemState) -> AddItemState:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.state, target)
        self.state = target
        self.history.append(target)
        return target
