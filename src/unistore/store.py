"""UniversalStore — field-keyed state container with a listener registry.

The store owns one canonical snapshot whose field set is fixed by the initial
state. Writes replace the snapshot wholesale (a new dict each time), so a
snapshot handed to a listener is never half-updated. Listeners watch exactly
one field and are keyed by a caller-chosen identity; re-registering an
identity replaces its record in place.

Notification is synchronous: dispatch()/batch_update()/reset() return only
after every matching callback has run. A callback that raises is logged and
skipped, the rest of the pass still runs.

Listeners must not call back into the store expecting to observe state from
before the current write: a nested dispatch runs its own pass immediately.
"""

from __future__ import annotations

import logging
import threading
import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Iterable, Mapping, TypeVar

from unistore import devtools
from unistore.exceptions import UnknownFieldError

logger = logging.getLogger("unistore.store")

S = TypeVar("S", bound=Mapping[str, Any])
T = TypeVar("T")

Disposer = Callable[[], None]


@dataclass(frozen=True)
class StoreAction(Generic[T]):
    """A single named-field write, echoed back by dispatch()."""

    type: str
    data: T


@dataclass(frozen=True)
class StoreListener:
    identity: Hashable
    field: str
    callback: Callable[[], None]


@dataclass(frozen=True)
class StoreConfig:
    """Read-only store configuration captured at construction.

    enable_logging: emit an INFO trace record per transition on unistore.store.
    enable_devtools: attach to the hook installed via unistore.devtools, if any.
    strict: raise UnknownFieldError on writes to unknown fields instead of
        ignoring them.
    """

    initial_state: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    enable_logging: bool = False
    enable_devtools: bool = False
    strict: bool = False


class UniversalStore(Generic[S]):
    """Observable store over a fixed set of named fields."""

    def __init__(
        self,
        initial_state: S | None = None,
        config: StoreConfig | None = None,
        **options: bool,
    ) -> None:
        if config is None:
            config = StoreConfig(dict(initial_state or {}), **options)
        elif options:
            raise TypeError("pass options either in config or as keywords, not both")
        elif initial_state is not None:
            config = dataclasses.replace(config, initial_state=dict(initial_state))
        self._config = config
        self._initial: dict[str, Any] = dict(config.initial_state)
        self._state: dict[str, Any] = dict(self._initial)
        self._listeners: dict[Hashable, StoreListener] = {}
        self._lock = threading.RLock()
        self._devtools = None
        if config.enable_devtools:
            self._setup_devtools()

    @classmethod
    def from_config(cls, config: StoreConfig) -> UniversalStore:
        return cls(config=config)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._initial)

    # --- Read surface ---

    def get_state(self) -> S:
        """Shallow copy of the current snapshot."""
        return dict(self._state)  # type: ignore[return-value]

    def get_field(self, key: str) -> Any:
        """Current value of one field. Unknown keys read as None."""
        return self._state.get(key)

    # --- Write surface ---

    def dispatch(self, field: str, value: T) -> StoreAction[T]:
        """Replace one field and notify its listeners.

        An unknown field leaves the state untouched and notifies nobody;
        the action is still returned.
        """
        action = StoreAction(field, value)
        with self._lock:
            if field not in self._state:
                self._reject(field)
                return action
            previous = self._state[field]
            self._state = {**self._state, field: value}
            self._trace("dispatch", {field: previous}, {field: value})
            self._notify(field)
        return action

    def batch_update(self, updates: Mapping[str, Any]) -> None:
        """Apply all updates as one transition, then notify once per field.

        Every write lands before the first listener runs. Fields are notified
        in the iteration order of ``updates``.
        """
        with self._lock:
            accepted = {}
            for key, value in updates.items():
                if key in self._state:
                    accepted[key] = value
                else:
                    self._reject(key)
            if not accepted:
                return
            previous = {key: self._state[key] for key in accepted}
            self._state = {**self._state, **accepted}
            self._trace("batch_update", previous, accepted)
            for key in accepted:
                self._notify(key)

    def reset(self) -> None:
        """Restore the initial state and call every listener once."""
        with self._lock:
            previous = self._state
            self._state = dict(self._initial)
            self._trace("reset", previous, self._state)
            self._deliver(self._listeners.values())

    # --- Subscription surface ---

    def subscribe(self, identity: Hashable, field: str, callback: Callable[[], None]) -> Disposer:
        """Register callback for field under identity.

        An identity already present is replaced in its original position.
        Returns a disposer that unsubscribes the identity (whatever record
        holds it at that time).
        """
        with self._lock:
            self._listeners[identity] = StoreListener(identity, field, callback)
        return lambda: self.unsubscribe(identity)

    def unsubscribe(self, identity: Hashable) -> None:
        with self._lock:
            self._listeners.pop(identity, None)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # --- Internals ---

    def _notify(self, field: str) -> None:
        self._deliver(listener for listener in self._listeners.values() if listener.field == field)

    def _deliver(self, listeners: Iterable[StoreListener]) -> None:
        # Snapshot first: callbacks may subscribe/unsubscribe mid-pass.
        for listener in list(listeners):
            try:
                listener.callback()
            except Exception:
                logger.exception(
                    "Store listener error (identity=%r, field=%s)",
                    listener.identity, listener.field,
                )

    def _reject(self, field: str) -> None:
        if self._config.strict:
            raise UnknownFieldError(field, self.fields)
        logger.debug("Ignoring write to unknown field %r", field)

    def _trace(self, action: str, previous: Mapping[str, Any], new: Mapping[str, Any]) -> None:
        if self._config.enable_logging:
            logger.info(
                "%s: %s",
                action, ", ".join(f"{k}: {previous.get(k)!r} -> {new.get(k)!r}" for k in new),
                extra={"action": action, "previous": dict(previous), "next": dict(new)},
            )
        if self._devtools is not None:
            devtools.send(self._devtools, action, dict(new), dict(self._state))

    def _setup_devtools(self) -> None:
        hook = devtools.current_hook()
        if hook is None:
            logger.debug("Devtools requested but no hook installed")
            return
        self._devtools = hook
        logger.info("Devtools hook attached")
        devtools.send(hook, "init", {}, dict(self._state))

    def __repr__(self) -> str:
        return f"UniversalStore({self._state!r}, listeners={len(self._listeners)})"
