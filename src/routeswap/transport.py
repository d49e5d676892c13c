"""Signed HTTP transport for the route and Mixin APIs.

Wraps httpx.AsyncClient with:
- Canonical URI/body construction shared by signing and sending
- Pluggable authentication headers (route HMAC or Mixin JWT)
- Envelope unwrapping: ``{data: ...}`` on success, ``{error: {...}}`` on failure
- Flat-delay retries on network errors, unresolved keys and 5xx responses

4xx responses (and 202, which these APIs use for errors) are never retried.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import urlencode

import httpx

from routeswap.errors import ApiError, NetworkError, SecretUnavailable
from routeswap.signing.base import Authenticator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRY_DELAY = 1.0

Query = Union[str, dict[str, Any], None]


def build_uri(path: str, query: Query = None) -> str:
    """Build the request URI (path plus query) that is both signed and sent."""
    if not path.startswith("/"):
        path = "/" + path
    if not query:
        return path
    if isinstance(query, dict):
        query = urlencode([(k, v) for k, v in query.items() if v is not None])
    query = query.lstrip("?")
    return f"{path}?{query}" if query else path


def serialize_body(body: Any) -> str:
    """Serialize a request body to compact JSON ("" for no body).

    Top-level None values are dropped so optional fields are omitted rather
    than sent as null.
    """
    if body is None:
        return ""
    if isinstance(body, dict):
        body = {k: v for k, v in body.items() if v is not None}
    return json.dumps(body, separators=(",", ":"), default=str)


class RouteTransport:
    """Authenticated JSON transport.

    Usage::

        async with RouteTransport(
            "https://api.route.mixin.one",
            authenticator=RouteAuthenticator(signer, ROUTE_BOT_USER_ID),
            retry_count=2,
        ) as transport:
            tokens = await transport.get("/web3/tokens", {"source": "mixin"})
    """

    def __init__(
        self,
        base_url: str,
        authenticator: Authenticator,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        client: Optional[httpx.AsyncClient] = None,
        sleep_func: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """Initialize transport.

        Args:
            base_url: API base URL
            authenticator: Produces auth headers for each request
            timeout: Per-request timeout in seconds
            retry_count: Extra attempts after the first on retryable failures
            retry_delay: Flat delay between attempts in seconds
            client: httpx client to use (created lazily if not provided)
            sleep_func: Sleep function for retry delays (injectable for tests)
        """
        if retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        self.base_url = base_url.rstrip("/")
        self.authenticator = authenticator
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep_func or asyncio.sleep

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RouteTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False

    async def request(
        self,
        method: str,
        path: str,
        query: Query = None,
        body: Any = None,
    ) -> Any:
        """Send a signed request and return the unwrapped ``data`` payload.

        Raises:
            ApiError: Service rejected the request (raised at once for non-5xx)
            NetworkError: Transport failed on every attempt
            SecretUnavailable: Counterparty key unresolved on every attempt
            InvalidKeyMaterial: Key material is malformed
        """
        method = method.upper()
        uri = build_uri(path, query)
        body_text = serialize_body(body)
        attempts = self.retry_count + 1
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                return await self._send(method, uri, body_text)
            except ApiError as e:
                if not e.is_retryable:
                    raise
                last_error = e
            except (NetworkError, SecretUnavailable) as e:
                last_error = e

            if attempt + 1 < attempts:
                logger.warning(
                    f"{method} {uri} failed (attempt {attempt + 1}/{attempts}): "
                    f"{type(last_error).__name__}: {last_error}; retrying in {self.retry_delay}s"
                )
                await self._sleep(self.retry_delay)

        logger.error(f"{method} {uri} failed after {attempts} attempt(s): {last_error}")
        raise last_error

    async def get(self, path: str, query: Query = None) -> Any:
        return await self.request("GET", path, query=query)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, body=body)

    async def _send(self, method: str, uri: str, body_text: str) -> Any:
        """Sign and send one attempt."""
        headers = {"Content-Type": "application/json"}
        headers.update(await self.authenticator.headers(method, uri, body_text))

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                f"{self.base_url}{uri}",
                headers=headers,
                content=body_text.encode("utf-8") if body_text else None,
                timeout=self.timeout,
            )
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {uri} failed: {type(e).__name__}: {e}") from e

        return self._unwrap(response)

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        """Unwrap the response envelope or raise the typed error."""
        status = response.status_code
        raw_body = response.text

        if not 200 <= status < 300 or status == 202:
            raise ApiError.from_response(status, raw_body)

        try:
            payload = response.json()
        except ValueError:
            raise ApiError(status_code=status, description="Response is not valid JSON", raw_body=raw_body)

        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("code"):
                raise ApiError.from_error_object(status, error, raw_body)
            if "data" in payload:
                return payload["data"]

        return payload
