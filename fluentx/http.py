"""Cookie-session REST transport shared by all API clients.

The marketplace server authenticates with an HTTP-only `session_token`
cookie, so a single httpx.AsyncClient (and its cookie jar) is shared by
every endpoint wrapper. A 401 on any non-auth endpoint triggers a
debounced unauthorized handler that clears cached user state.
"""

import inspect
import logging
import time
from typing import Any, Callable, Optional

import httpx

from .errors import ApiError, UnauthorizedError
from .logger import RequestLogger
from .storage import USER_FULLNAME_KEY, USER_ID_KEY, MemoryStore

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_token"
UNAUTHORIZED_DEBOUNCE_SECONDS = 0.5
UNAUTHORIZED_MESSAGE = "Unauthorized. Please log in again."

# Endpoints whose responses must never be served from a cache
CACHE_BUSTED_SEGMENTS = {"me", "login", "logout", "refresh"}
# 401s from these are expected (bad credentials) and never trigger logout
AUTH_ENDPOINT_MARKERS = ("/login", "/logout", "/register")

DEFAULT_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a failed response body."""
    if response.status_code == 401:
        message = UNAUTHORIZED_MESSAGE
    else:
        message = f"Request failed: {response.status_code} {response.reason_phrase}"
    try:
        body = response.json()
    except ValueError:
        if response.status_code == 401:
            return message
        return response.text or message
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or message
    return message


class ApiClient:
    """Async REST client for the marketplace API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        on_unauthorized: Optional[Callable[[], Any]] = None,
        store: Optional[MemoryStore] = None,
        request_logger: Optional[RequestLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. "http://localhost:8765"
            timeout: Per-request timeout in seconds
            on_unauthorized: Called (debounced) when a session is rejected with 401
            store: Where cached user id/name live; cleared on 401
            request_logger: Records every call; a private one is created if omitted
            transport: Custom httpx transport (tests mount an ASGI app here)
            clock: Monotonic clock used for the 401 debounce
        """
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=DEFAULT_HEADERS,
            transport=transport,
        )
        self.store = store if store is not None else MemoryStore()
        self.request_logger = request_logger or RequestLogger()
        self._unauthorized_handler = on_unauthorized
        self._login_in_progress = False
        self._last_unauthorized: Optional[float] = None
        self._clock = clock

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    @property
    def session_token(self) -> Optional[str]:
        """The `session_token` cookie, used to authenticate the socket channel."""
        return self._client.cookies.get(SESSION_COOKIE)

    def register_unauthorized_handler(self, handler: Optional[Callable[[], Any]]) -> None:
        self._unauthorized_handler = handler

    def set_login_in_progress(self, in_progress: bool) -> None:
        self._login_in_progress = in_progress

    def force_auth_cleanup(self) -> None:
        """Drop cached user state locally; the server cookie is replaced on next login."""
        self.store.remove(USER_FULLNAME_KEY)
        self.store.remove(USER_ID_KEY)

    def _prepare(self, path: str, params: Optional[dict]) -> tuple[dict, dict]:
        params = dict(params or {})
        headers: dict = {}
        segment = path.rstrip("/").rsplit("/", 1)[-1]
        if segment in CACHE_BUSTED_SEGMENTS:
            params["_t"] = int(time.time() * 1000)
            headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            headers["Pragma"] = "no-cache"
        return params, headers

    async def _handle_unauthorized(self, path: str) -> None:
        if self._login_in_progress or self._unauthorized_handler is None:
            return
        if any(marker in path for marker in AUTH_ENDPOINT_MARKERS):
            return
        now = self._clock()
        if (
            self._last_unauthorized is not None
            and now - self._last_unauthorized <= UNAUTHORIZED_DEBOUNCE_SECONDS
        ):
            return
        self._last_unauthorized = now
        logger.warning("Session rejected on %s, clearing client auth state", path)
        self.force_auth_cleanup()
        result = self._unauthorized_handler()
        if inspect.isawaitable(result):
            await result

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            UnauthorizedError: On HTTP 401
            ApiError: On transport failure or any other non-2xx status
        """
        params, headers = self._prepare(path, params)
        log_id = self.request_logger.log_request(method, path)
        try:
            response = await self._client.request(
                method, path, params=params or None, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            self.request_logger.log_response(log_id, error=str(e))
            logger.error("%s %s failed: %s", method.upper(), path, e)
            raise ApiError(f"Network error: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            self.request_logger.log_response(log_id, response.status_code, message)
            if response.status_code == 401:
                await self._handle_unauthorized(path)
                raise UnauthorizedError(message, status_code=401)
            raise ApiError(message, status_code=response.status_code, payload=response.text)

        self.request_logger.log_response(log_id, response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                "Invalid JSON in response", status_code=response.status_code
            ) from e

    async def request_data(
        self,
        method: str,
        path: str,
        *,
        error_message: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and unwrap the `{success, data, error}` envelope."""
        body = await self.request(method, path, params=params, json=json)
        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            raise ApiError(error or error_message, payload=body)
        return body.get("data")
