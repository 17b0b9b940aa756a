"""Transactions — collect several writes and commit them as one batch update.

Inside ``with transaction(store) as tx`` writes go to a pending dict, not the
store. On normal exit the pending writes are committed with a single
batch_update(), so listeners see one transition instead of a series of
partially-applied states. If the block raises, nothing is committed.

Nested scopes on the same store join the outermost one: an inner
transaction() yields the same Transaction and only the outermost exit
commits. An inner block that raises rolls back just its own writes.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from unistore.store import UniversalStore

R = TypeVar("R")

# Open outermost transaction per store, keyed by id(store).
_open: dict[int, Transaction] = {}


class Transaction:
    """Pending writes for one store. Reads fall through to the store."""

    __slots__ = ("_store", "_pending")

    def __init__(self, store: UniversalStore) -> None:
        self._store = store
        self._pending: dict[str, Any] = {}

    def __setitem__(self, field: str, value: Any) -> None:
        self._pending[field] = value

    def __getitem__(self, field: str) -> Any:
        if field in self._pending:
            return self._pending[field]
        return self._store.get_field(field)

    def set(self, field: str, value: Any) -> None:
        self._pending[field] = value

    def update(self, values: dict[str, Any]) -> None:
        self._pending.update(values)

    @property
    def pending(self) -> dict[str, Any]:
        return dict(self._pending)

    def commit(self) -> None:
        pending, self._pending = self._pending, {}
        if pending:
            self._store.batch_update(pending)


@contextmanager
def transaction(store: UniversalStore) -> Iterator[Transaction]:
    """Context manager for batching writes.

    Usage:
        with transaction(store) as tx:
            tx["auth"] = True
            tx["token"] = "abc"
            # listeners fire here, after both are set
    """
    key = id(store)
    outer = _open.get(key)
    if outer is not None:
        saved = dict(outer._pending)
        try:
            yield outer
        except BaseException:
            outer._pending = saved
            raise
        return

    tx = Transaction(store)
    _open[key] = tx
    try:
        yield tx
    finally:
        del _open[key]
    tx.commit()


def action(store: UniversalStore) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Decorator: run fn inside a transaction, passing the Transaction first.

    Usage:
        @action(store)
        def sign_in(tx, user):
            tx["auth"] = True
            tx["name"] = user
    """

    def decorate(fn: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            with transaction(store) as tx:
                return fn(tx, *args, **kwargs)

        return wrapper

    return decorate
