"""Exception hierarchy for unistore."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for all unistore errors."""


class UnknownFieldError(StoreError, KeyError):
    """A write named a field outside the store's fixed field set.

    Only raised by stores configured with ``strict=True``; the default is a
    silent no-op.
    """

    def __init__(self, field: str, known: tuple[str, ...]) -> None:
        self.field = field
        self.known = known
        super().__init__(f"unknown field {field!r} (known: {', '.join(known)})")

    def __str__(self) -> str:
        return self.args[0]
