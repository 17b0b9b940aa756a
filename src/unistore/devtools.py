"""Dev-tools side channel. Opt-in and purely observational.

An inspector installs one hook for the process. Stores built with
``enable_devtools=True`` attach to it at construction and forward every
transition as ``hook(event, payload, state)``. Nothing here may affect
store correctness: hook failures are logged and dropped.

// [LAW:no-shared-mutable-globals] _hook has single owner (this module), explicit API
//   (install/uninstall/current_hook).
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger("unistore.devtools")

DevtoolsHook = Callable[[str, dict[str, Any], dict[str, Any]], None]

_hook: DevtoolsHook | None = None


def install(hook: DevtoolsHook) -> None:
    """Install the process-wide inspector hook. Replaces any previous hook.

    Only stores constructed after install() attach to it.
    """
    global _hook
    _hook = hook


def uninstall() -> None:
    global _hook
    _hook = None


def current_hook() -> DevtoolsHook | None:
    return _hook


def send(hook: DevtoolsHook, event: str, payload: dict[str, Any], state: dict[str, Any]) -> None:
    """Deliver one transition to hook, never raising."""
    try:
        hook(event, payload, state)
    except Exception:
        logger.exception("Devtools hook failed on %s", event)
