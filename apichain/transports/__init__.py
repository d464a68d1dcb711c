"""Transport factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import ApichainConfig, load_config
from .base import BaseTransport
from .httpx import HttpxTransport
from .inmemory import InMemoryTransport, make_response


def get_transport(
    backend: Optional[str] = None, config: Optional[ApichainConfig] = None
) -> BaseTransport:
    """Factory function to get the configured transport."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("APICHAIN_TRANSPORT")
        or config.transport.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryTransport()
    elif backend == "httpx":
        http_conf = config.transport.http
        return HttpxTransport(
            timeout=http_conf.timeout_seconds,
            block_private_networks=http_conf.block_private_networks,
            follow_redirects=http_conf.follow_redirects,
        )
    else:
        raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = [
    "BaseTransport",
    "HttpxTransport",
    "InMemoryTransport",
    "get_transport",
    "make_response",
]
