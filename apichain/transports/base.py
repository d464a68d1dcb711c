"""Base transport interface for sending workflow requests."""

from __future__ import annotations

import abc

from ..contracts import HttpRequest, StepResponse


class BaseTransport(metaclass=abc.ABCMeta):
    """Abstract HTTP transport used by the workflow engine."""

    async def connect(self) -> None:
        """Open underlying connections (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Release underlying connections (no-op by default)."""
        pass

    @abc.abstractmethod
    async def send(self, request: HttpRequest) -> StepResponse:
        """Send ``request`` and return the completed response.

        Any completed HTTP exchange is returned, whatever its status code.

        Raises:
            TransportError: If no response was received (DNS, connection,
                timeout or cancellation failures).
        """
        raise NotImplementedError

    async def __aenter__(self) -> "BaseTransport":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()
