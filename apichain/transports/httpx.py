"""httpx-backed transport for real HTTP requests."""

from __future__ import annotations

import ipaddress
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import httpx

from ..constants import BODY_METHODS, DEFAULT_TIMEOUT_SECONDS
from ..contracts import HttpRequest, StepResponse, WorkflowAuth
from ..errors import InvalidRequestURL, RequestTimeout, TransportError
from .base import BaseTransport

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

# Well-known service ports refused when private network access is blocked
BLOCKED_PORTS = frozenset(
    {22, 23, 25, 53, 135, 137, 138, 139, 445, 1433, 1521, 3306, 5432, 6379, 9200, 11211, 27017}
)

BLOCKED_HOSTNAME_SUFFIXES = (".localhost", ".local", ".internal", ".intranet")


def validate_url(url: str, block_private_networks: bool = False) -> None:
    """Reject URLs the transport must not contact.

    Raises:
        InvalidRequestURL: For unsupported schemes, missing hosts and, when
            ``block_private_networks`` is set, internal hosts and service ports.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise InvalidRequestURL(f"Invalid URL: {e}") from e

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidRequestURL(
            f"Invalid URL: only HTTP/HTTPS permitted (got: {parts.scheme or 'none'})"
        )
    hostname = (parts.hostname or "").lower()
    if not hostname:
        raise InvalidRequestURL(f"Invalid URL: missing host in {url}")

    if not block_private_networks:
        return

    if hostname == "localhost" or hostname.endswith(BLOCKED_HOSTNAME_SUFFIXES):
        raise InvalidRequestURL(f"Invalid URL: hostname {hostname} is blocked")
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        address = None
    if address is not None and (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    ):
        raise InvalidRequestURL(f"Invalid URL: address {hostname} is not public")
    if port is not None and port in BLOCKED_PORTS:
        raise InvalidRequestURL(f"Invalid URL: port {port} is blocked")


def auth_headers(auth: Optional[WorkflowAuth]) -> Dict[str, str]:
    """Headers carrying bearer and API key credentials."""
    if auth is None:
        return {}
    if auth.type == "bearer" and auth.token:
        return {"Authorization": f"Bearer {auth.token}"}
    if auth.type == "api-key" and auth.api_key:
        return {"X-API-Key": auth.api_key}
    return {}


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if not response.content:
        return ""
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    if content_type.startswith("text/") or "xml" in content_type or not content_type:
        return response.text
    return {"type": content_type, "message": "Binary response"}


class HttpxTransport(BaseTransport):
    """Send workflow requests with ``httpx.AsyncClient``.

    Inside ``async with`` (or between :meth:`connect` and :meth:`disconnect`)
    all requests share one pooled client. Outside of it each :meth:`send`
    opens and closes a client of its own, so no connection is left open.
    An injected ``client`` is used as-is and never closed here.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        block_private_networks: bool = False,
        follow_redirects: bool = False,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.block_private_networks = block_private_networks
        self.follow_redirects = follow_redirects
        self._client = client
        self._owns_client = client is None

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=self.follow_redirects)

    async def connect(self) -> None:
        if self._client is None:
            self._client = self._new_client()

    async def disconnect(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, request: HttpRequest) -> StepResponse:
        validate_url(request.url, self.block_private_networks)
        if self._client is not None:
            return await self._send(self._client, request)
        async with self._new_client() as client:
            return await self._send(client, request)

    async def _send(self, client: httpx.AsyncClient, request: HttpRequest) -> StepResponse:
        # Values are sent as UTF-8 bytes; httpx only accepts ASCII str values.
        headers = {
            name: value.encode("utf-8")
            for name, value in {**request.headers, **auth_headers(request.auth)}.items()
        }
        basic_auth = None
        if (
            request.auth is not None
            and request.auth.type == "basic"
            and request.auth.username
            and request.auth.password
        ):
            basic_auth = httpx.BasicAuth(request.auth.username, request.auth.password)
        content = (
            request.body.encode()
            if request.body is not None and request.method in BODY_METHODS
            else None
        )

        start = time.perf_counter()
        try:
            response = await client.request(
                request.method,
                request.url,
                params=request.query_params or None,
                headers=headers,
                content=content,
                auth=basic_auth,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Request timed out: {request.method} {request.url}")
            raise RequestTimeout(f"Request timeout ({self.timeout:g}s exceeded)") from e
        except httpx.HTTPError as e:
            logger.error(f"Request failed: {request.method} {request.url}: {e}")
            raise TransportError(str(e) or type(e).__name__) from e
        except (httpx.InvalidURL, ValueError) as e:
            # Raised by httpx while building the request (bad header names, URLs).
            logger.error(f"Invalid request: {request.method} {request.url}: {e}")
            raise TransportError(f"Invalid request: {e}") from e
        elapsed_ms = (time.perf_counter() - start) * 1000

        return StepResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            body=_parse_body(response),
            time=round(elapsed_ms, 2),
            size=len(response.content),
        )
