from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_TIMEOUT_SECONDS


class HttpConfig(BaseModel):
    """Configuration for the httpx transport."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    block_private_networks: bool = False
    follow_redirects: bool = False


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["httpx", "inmemory"] = "httpx"
    http: HttpConfig = HttpConfig()


class ApichainConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = TransportConfig()
    database_url: Optional[str] = None


def load_config(path: Optional[str] = None) -> ApichainConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to APICHAIN_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("APICHAIN_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ApichainConfig(**data)
    else:
        config = ApichainConfig()

    env_db_url = os.getenv("APICHAIN_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config
