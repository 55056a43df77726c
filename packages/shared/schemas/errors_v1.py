"""Shared structured error schema (v1).

The authoritative basket store answers every rejected request with this body. The client
engine inspects only the first entry's code; the rest is shown to the user verbatim.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Sentinel on the add-item path: the item needs order parameters before it can be added.
MISSING_ORDER_PARAMS_CODE = 100


class ErrorEntryV1(BaseModel):
    code: int
    message: str = ""


class ErrorStackV1(BaseModel):
    error_stack: list[ErrorEntryV1] = Field(default_factory=list)


class ErrorResponseV1(BaseModel):
    error: ErrorStackV1 = Field(default_factory=ErrorStackV1)

    @classmethod
    def single(cls, code: int, message: str) -> "ErrorResponseV1":
        return cls(error=ErrorStackV1(error_stack=[ErrorEntryV1(code=code, message=message)]))
