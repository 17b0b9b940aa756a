"""Bindings — connect a consumer's lifecycle to store subscriptions.

A Binding makes the store's field-granular notifications look like one
reactive value. Two modes:

- bind(store, selector): whole-state mode. The selector may read any field,
  so the binding registers one listener per field and re-runs the selector
  on every notified change.
- bind_field(store, field): single-field mode. Exactly one listener, the
  cached value is the field itself. Prefer it whenever one field is enough.

Each mount cycle owns its own liveness flag. Teardown flips it false exactly
once, before unsubscribing, so a callback already captured by an in-flight
notification pass turns into a no-op instead of touching a dead binding.

Listener identities are ``(owner, key, field)``. The key is a BindingId drawn
fresh for every Binding, so two live bindings never collide even when they
share a base_id. The owner is the caller's base_id (a label for tracing), or
the key itself when none is given.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Hashable, TypeVar

from unistore._ids import new_id
from unistore.store import UniversalStore

T = TypeVar("T")

Selector = Callable[[dict[str, Any]], T]


class _Mount:
    """Liveness flag for one mount cycle."""

    __slots__ = ("alive",)

    def __init__(self) -> None:
        self.alive = True


class Binding(Generic[T]):
    """Disposable subscription handle holding the latest selected value."""

    __slots__ = (
        "_store", "_selector", "_field", "_owner", "_key", "_on_change",
        "_value", "_mount", "_identities", "_disposed",
    )

    def __init__(
        self,
        store: UniversalStore,
        selector: Selector[T] | None = None,
        on_change: Callable[[T], None] | None = None,
        *,
        field: str | None = None,
        base_id: Hashable | None = None,
        fire_immediately: bool = False,
    ) -> None:
        if (selector is None) == (field is None):
            raise TypeError("Binding needs exactly one of selector or field")
        self._store = store
        self._selector = selector
        self._field = field
        self._key = new_id()
        self._owner = base_id if base_id is not None else self._key
        self._on_change = on_change
        self._mount: _Mount | None = None
        self._identities: list[tuple[Hashable, ...]] = []
        self._disposed = False

        self._value: T = self._evaluate()
        self._install()
        if fire_immediately and on_change is not None:
            try:
                on_change(self._value)
            except BaseException:
                self.dispose()
                raise

    @property
    def value(self) -> T:
        return self._value

    @property
    def alive(self) -> bool:
        return self._mount is not None and self._mount.alive

    @property
    def owner(self) -> Hashable:
        return self._owner

    @property
    def identities(self) -> tuple[tuple[Hashable, ...], ...]:
        return tuple(self._identities)

    @property
    def store(self) -> UniversalStore:
        return self._store

    def rebind(
        self,
        selector: Selector[T] | None = None,
        *,
        field: str | None = None,
        store: UniversalStore | None = None,
        base_id: Hashable | None = None,
    ) -> None:
        """Swap selector, field, store or base id.

        The old registration set is fully removed before the new one is
        installed, then the value is re-evaluated against current state.
        """
        if self._disposed:
            raise RuntimeError("cannot rebind a disposed Binding")
        if selector is not None and self._field is not None:
            raise TypeError("field binding cannot take a selector")
        if field is not None and self._selector is not None:
            raise TypeError("selector binding cannot take a field")

        self._teardown()
        if selector is not None:
            self._selector = selector
        if field is not None:
            self._field = field
        if store is not None:
            self._store = store
        if base_id is not None:
            self._owner = base_id
        self._install()
        self._push(self._evaluate())

    def dispose(self) -> None:
        """Stop delivering updates and release every identity. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self._teardown()

    def __enter__(self) -> Binding[T]:
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()

    # --- Internals ---

    def _watched(self) -> tuple[str, ...]:
        if self._field is not None:
            return (self._field,)
        # Field sets are fixed per store, so one enumeration per mount cycle.
        return self._store.fields

    def _evaluate(self) -> T:
        if self._field is not None:
            return self._store.get_field(self._field)
        return self._selector(self._store.get_state())

    def _install(self) -> None:
        mount = _Mount()
        store = self._store

        def _on_notify() -> None:
            if not mount.alive:
                return
            self._push(self._evaluate())

        self._mount = mount
        self._identities = [(self._owner, self._key, f) for f in self._watched()]
        for identity in self._identities:
            store.subscribe(identity, identity[-1], _on_notify)

    def _teardown(self) -> None:
        if self._mount is not None:
            self._mount.alive = False
        for identity in self._identities:
            self._store.unsubscribe(identity)
        self._identities = []

    def _push(self, value: T) -> None:
        old = self._value
        self._value = value
        if self._on_change is not None and old is not value and old != value:
            self._on_change(value)

    def __repr__(self) -> str:
        what = f"field={self._field!r}" if self._field is not None else "selector"
        state = "alive" if self.alive else "disposed"
        return f"Binding({what}, owner={self._owner!r}, {state}, value={self._value!r})"


def bind(
    store: UniversalStore,
    selector: Selector[T],
    on_change: Callable[[T], None] | None = None,
    *,
    base_id: Hashable | None = None,
    fire_immediately: bool = False,
) -> Binding[T]:
    """Track selector(state) across every field of store.

    Returns the Binding (call .dispose() to stop).

    Usage:
        store = UniversalStore({"first": "Ada", "last": "Lovelace"})
        names = []
        b = bind(store, lambda s: f"{s['first']} {s['last']}", names.append)
        # b.value == "Ada Lovelace", names == []

        store.dispatch("first", "Augusta")
        # names == ["Augusta Lovelace"]

        b.dispose()
        store.dispatch("last", "King")
        # names unchanged
    """
    return Binding(store, selector, on_change, base_id=base_id, fire_immediately=fire_immediately)


def bind_field(
    store: UniversalStore,
    field: str,
    on_change: Callable[[Any], None] | None = None,
    *,
    base_id: Hashable | None = None,
    fire_immediately: bool = False,
) -> Binding[Any]:
    """Track a single field. Registers exactly one listener."""
    return Binding(store, None, on_change, field=field, base_id=base_id, fire_immediately=fire_immediately)
