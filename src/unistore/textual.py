"""Textual integration for unistore. Opt-in — requires textual.

// [LAW:single-enforcer] Guard + NoMatches + thread-marshal enforced here, not at callsites.
// [LAW:locality-or-seam] Textual coupling isolated in this module — core unistore stays agnostic.
// [LAW:no-shared-mutable-globals] _paused_apps has single owner (this module), explicit API
//   (pause/is_safe), documented invariant (id present ↔ inside pause context).
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches
from unistore.binding import bind as _bind, bind_field as _bind_field

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded bindings during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, effect_fn):
    _main = threading.get_ident()

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            effect_fn(value)
        except NoMatches:
            pass

    return _guarded


def bind(app, store, selector, effect_fn, *, base_id=None, fire_immediately=True):
    """bind() that safely pushes selected values into Textual widgets.

    Guards against firing during pause/not-running, catches NoMatches
    from widget queries, and marshals cross-thread calls via call_from_thread.
    Dispose the returned Binding from the widget's on_unmount.
    """
    return _bind(
        store, selector, _guard(app, effect_fn),
        base_id=base_id, fire_immediately=fire_immediately,
    )


def bind_field(app, store, field, effect_fn, *, base_id=None, fire_immediately=True):
    """bind_field() with the same guards as bind()."""
    return _bind_field(
        store, field, _guard(app, effect_fn),
        base_id=base_id, fire_immediately=fire_immediately,
    )
