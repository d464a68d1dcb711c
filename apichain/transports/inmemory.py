"""In-memory transport for testing."""

from __future__ import annotations

import inspect
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit, urlunsplit

from ..contracts import HttpRequest, StepResponse
from ..errors import TransportError
from .base import BaseTransport

Handler = Callable[[HttpRequest], Union[StepResponse, Awaitable[StepResponse]]]
Scripted = Union[StepResponse, BaseException, Handler]


def make_response(
    body: Any = None,
    status: int = 200,
    status_text: str = "OK",
    headers: Optional[Dict[str, str]] = None,
) -> StepResponse:
    """Build a ``StepResponse`` for scripted replies."""
    return StepResponse(
        status=status,
        status_text=status_text,
        headers=headers or {"content-type": "application/json"},
        body=body,
    )


def _route_key(method: str, url: str) -> Tuple[str, str]:
    parts = urlsplit(url)
    return method.upper(), urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class InMemoryTransport(BaseTransport):
    """Serve scripted responses without touching the network.

    Replies are taken from routes registered with :meth:`route` first, then
    from the queue passed to the constructor or :meth:`enqueue`. A scripted
    exception is raised, a callable is invoked with the request. Every sent
    request is recorded in :attr:`requests`.
    """

    def __init__(self, responses: Optional[List[Scripted]] = None) -> None:
        self._queue: Deque[Scripted] = deque(responses or [])
        self._routes: Dict[Tuple[str, str], Scripted] = {}
        self.requests: List[HttpRequest] = []

    def enqueue(self, reply: Scripted) -> None:
        """Append a reply consumed by the next unrouted request."""
        self._queue.append(reply)

    def route(self, method: str, url: str, reply: Scripted) -> None:
        """Always answer ``method url`` (query string ignored) with ``reply``."""
        self._routes[_route_key(method, url)] = reply

    async def send(self, request: HttpRequest) -> StepResponse:
        self.requests.append(request)
        reply = self._routes.get(_route_key(request.method, request.url))
        if reply is None:
            if not self._queue:
                raise TransportError(
                    f"No response scripted for {request.method} {request.url}"
                )
            reply = self._queue.popleft()

        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            result = reply(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        return reply
