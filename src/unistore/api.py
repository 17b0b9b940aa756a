"""JSON-over-HTTP request collaborator.

Callers (login flows and the like) use ApiClient to talk to the backend and
then write the outcome into a store through dispatch()/batch_update(). The
store itself never does I/O.

Every call resolves to an ApiResponse: transport failures, timeouts, non-200
statuses and undecodable bodies are logged and returned as
``ApiResponse(success=False, error=...)``, never raised.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Callable, Generic, TypeVar

import aiohttp

from unistore.store import UniversalStore

logger = logging.getLogger("unistore.api")

T = TypeVar("T")

TokenProvider = Callable[[], "str | None"]


@dataclasses.dataclass(frozen=True)
class ApiConfig:
    """Endpoint configuration.

    Parameters
    ----------
    base_url : str
        Prefix joined directly with the method name (``base_url + method``).
    timeout : float
        Total request timeout in seconds.
    headers : Mapping[str, str]
        Headers sent with every request.
    """

    base_url: str
    timeout: float = 10.0
    headers: Mapping[str, str] = dataclasses.field(
        default_factory=lambda: {"Content-Type": "application/json"}
    )


@dataclasses.dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Tagged request outcome."""

    success: bool
    data: T | None = None
    error: str | None = None
    message: str | None = None

    @classmethod
    def failure(cls, error: str) -> ApiResponse[Any]:
        return cls(success=False, data=None, error=error)

    @classmethod
    def from_payload(cls, payload: Any) -> ApiResponse[Any]:
        """Build from a decoded ``{"success", "data", "error", "message"}`` body."""
        if not isinstance(payload, dict):
            return cls.failure(f"Unexpected response body: {type(payload).__name__}")
        return cls(
            success=bool(payload.get("success", False)),
            data=payload.get("data"),
            error=payload.get("error"),
            message=payload.get("message"),
        )


class ApiClient:
    """Async request client.

    Usage:
        async with ApiClient(ApiConfig("https://host/api/")) as client:
            result = await client.call("AUTHORIZATION", {"login": phone, "password": pw})
    """

    def __init__(
        self,
        config: ApiConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._token_provider = token_provider

    @property
    def config(self) -> ApiConfig:
        return self._config

    async def __aenter__(self) -> ApiClient:
        self._ensure_session()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    def _headers(self) -> dict[str, str]:
        headers = dict(self._config.headers)
        token = self._token_provider() if self._token_provider is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def call(self, method: str, params: Mapping[str, Any] | None = None) -> ApiResponse[Any]:
        """POST params as JSON to ``base_url + method``."""
        http = self._ensure_session()
        url = f"{self._config.base_url}{method}"
        body = json.dumps(dict(params or {}))
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)

        logger.debug("POST %s", url)

        try:
            async with http.post(url, data=body, headers=self._headers(), timeout=timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    logger.error("API error: HTTP %s from %s", resp.status, method)
                    return ApiResponse.failure(f"HTTP {resp.status}: {resp.reason}")
        except asyncio.TimeoutError:
            logger.error("API error: %s timed out after %ss", method, self._config.timeout)
            return ApiResponse.failure(f"Request timed out after {self._config.timeout}s")
        except aiohttp.ClientError as exc:
            logger.error("API error: %s failed: %s", method, exc)
            return ApiResponse.failure(str(exc) or type(exc).__name__)
        except UnicodeDecodeError as exc:
            logger.error("API error: undecodable body from %s: %s", method, exc)
            return ApiResponse.failure(f"Undecodable response from {method}")

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            logger.error("API error: invalid JSON from %s: %s", method, text[:200])
            return ApiResponse.failure(f"Invalid JSON from {method}")

        return ApiResponse.from_payload(payload)


async def exec_and_update(
    client: ApiClient,
    store: UniversalStore,
    method: str,
    params: Mapping[str, Any] | None,
    field: str,
) -> ApiResponse[Any]:
    """Call method and, on success with a payload, write the payload into field.

    Failures leave the store untouched; the response is returned so the
    caller can record the error however it likes.

    Usage:
        result = await exec_and_update(client, store, "GET_INVOICES", {}, "invoices")
        if not result.success:
            store.dispatch("error", result.error)
    """
    response = await client.call(method, params)
    if response.success and response.data is not None:
        store.dispatch(field, response.data)
    else:
        logger.debug("Not updating %s: %s returned no data", field, method)
    return response
