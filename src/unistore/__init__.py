"""unistore: field-keyed observable store with lifecycle-safe bindings."""

from importlib.metadata import version as _version

__version__ = _version("unistore")

from unistore.exceptions import StoreError, UnknownFieldError
from unistore.store import StoreAction, StoreConfig, StoreListener, UniversalStore
from unistore.binding import Binding, bind, bind_field
from unistore.action import Transaction, action, transaction
# textual, api and auth NOT auto-imported — opt-in only

__all__ = [
    "UniversalStore",
    "StoreConfig",
    "StoreAction",
    "StoreListener",
    "Binding",
    "bind",
    "bind_field",
    "Transaction",
    "transaction",
    "action",
    "StoreError",
    "UnknownFieldError",
]
