"""Authentication flow on top of a UniversalStore.

The app store holds the signed-in identity. Every transition that touches
more than one field (sign in, failed sign in, sign out) is a single
batch_update so listeners never see a half-authenticated user.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from unistore.api import ApiClient, ApiConfig
from unistore.store import StoreConfig, UniversalStore

logger = logging.getLogger("unistore.auth")

LOGIN_METHOD = "AUTHORIZATION"

APP_INITIAL_STATE: dict[str, Any] = {
    "auth": False,
    "id": None,
    "name": None,
    "token": None,
    "role": None,
    "is_loading": False,
    "error": None,
}

_SIGNED_OUT = {"auth": False, "id": None, "name": None, "token": None, "role": None, "error": None}


def normalize_phone(phone: str | None) -> str:
    """Canonical +7 form of a Russian phone number, digits-only otherwise.

    "8 (912) 345-67-89", "7912..." and a bare ten-digit "912..." all become
    "+79123456789". Other numbers of eleven or more digits get a leading "+".
    """
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11 and digits.startswith("8"):
        return "+7" + digits[1:]
    if len(digits) == 11 and digits.startswith("7"):
        return "+" + digits
    if len(digits) == 10 and digits.startswith("9"):
        return "+7" + digits
    if len(digits) >= 11:
        return "+" + digits
    return digits


def create_app_store(*, enable_logging: bool = True, enable_devtools: bool = False) -> UniversalStore:
    """Build the application's auth store. One per application scope."""
    return UniversalStore(config=StoreConfig(
        initial_state=APP_INITIAL_STATE,
        enable_logging=enable_logging,
        enable_devtools=enable_devtools,
    ))


class AuthController:
    """Login/logout plus read accessors over the app store."""

    def __init__(self, store: UniversalStore, client: ApiClient) -> None:
        self._store = store
        self._client = client

    @classmethod
    def connect(cls, store: UniversalStore, config: ApiConfig, **client_kwargs: Any) -> AuthController:
        """Build a controller whose client sends the store's token as bearer."""
        client = ApiClient(config, token_provider=lambda: store.get_field("token"), **client_kwargs)
        return cls(store, client)

    @property
    def store(self) -> UniversalStore:
        return self._store

    @property
    def client(self) -> ApiClient:
        return self._client

    async def login(self, phone: str, password: str) -> bool:
        """Authenticate and record the outcome in the store. Never raises.

        The phone is sent in normalized +7 form.
        """
        self._store.dispatch("is_loading", True)

        try:
            response = await self._client.call(LOGIN_METHOD, {"login": normalize_phone(phone), "password": password})
        except Exception as exc:
            logger.exception("Sign in request failed")
            self._store.batch_update({"auth": False, "is_loading": False, "error": str(exc) or "Network error"})
            return False

        if response.success and isinstance(response.data, dict):
            user = response.data
            self._store.batch_update({
                "auth": True,
                "id": user.get("id"),
                "name": user.get("fullName"),
                "token": user.get("token"),
                "role": user.get("role"),
                "is_loading": False,
                "error": None,
            })
            logger.info("Signed in as %s", user.get("id"))
            return True

        error = response.message or response.error or "Authorization failed"
        self._store.batch_update({"auth": False, "is_loading": False, "error": error})
        logger.warning("Sign in failed: %s", error)
        return False

    def logout(self) -> None:
        self._store.batch_update(_SIGNED_OUT)
        logger.info("Signed out")

    # --- Accessors ---

    @property
    def token(self) -> str | None:
        return self._store.get_field("token")

    @property
    def name(self) -> str:
        return self._store.get_field("name") or ""

    @property
    def role(self) -> str:
        return self._store.get_field("role") or ""

    @property
    def user_id(self) -> str:
        return self._store.get_field("id") or ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self._store.get_field("auth"))

    def auth_data(self) -> dict[str, Any]:
        state = self._store.get_state()
        return {key: state[key] for key in ("auth", "id", "name", "token", "role")}
