"""
Configuration - settings read from environment variables.

Remote backends:
- "http": generic record API at STOREFRONT_API_URL
- "redis": Upstash Redis (UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN)
- "none": local storage only
"""

import os
from dataclasses import dataclass
from typing import Optional

from .storage import DEFAULT_PREFIX

DEFAULT_STORAGE_DIR = "~/.storefront"
DEFAULT_TIMEOUT = 30.0

REMOTE_HTTP = "http"
REMOTE_REDIS = "redis"
REMOTE_NONE = "none"


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_int(name: str) -> Optional[int]:
    value = os.environ.get(name, "")
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _env_owner(name: str) -> Optional[int | str]:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    return int(value) if value.isdigit() else value


@dataclass(frozen=True)
class Settings:
    """SDK settings. Build with ``Settings.from_env()`` or directly in code."""
    api_url: str = ""
    api_version: str = "v1"
    merchant: str = ""
    auth_token: str = ""
    timeout: float = DEFAULT_TIMEOUT
    storage_dir: str = DEFAULT_STORAGE_DIR
    storage_prefix: str = ""
    remote: str = ""
    owner_id: Optional[int | str] = None
    redis_url: str = ""
    redis_token: str = ""
    remote_ttl: Optional[int] = None

    @property
    def namespace(self) -> str:
        """Local storage prefix; one per merchant unless set explicitly."""
        if self.storage_prefix:
            return self.storage_prefix
        if self.merchant:
            return f"{DEFAULT_PREFIX}-{self.merchant}"
        return DEFAULT_PREFIX

    @property
    def remote_backend(self) -> str:
        """Configured backend name; inferred from available credentials."""
        if self.remote:
            return self.remote.lower()
        if self.api_url:
            return REMOTE_HTTP
        if self.redis_url and self.redis_token:
            return REMOTE_REDIS
        return REMOTE_NONE

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.environ.get("STOREFRONT_API_URL", ""),
            api_version=os.environ.get("STOREFRONT_API_VERSION", "v1"),
            merchant=os.environ.get("STOREFRONT_MERCHANT", ""),
            auth_token=os.environ.get("STOREFRONT_AUTH_TOKEN", ""),
            timeout=_env_float("STOREFRONT_TIMEOUT", DEFAULT_TIMEOUT),
            storage_dir=os.environ.get("STOREFRONT_STORAGE_DIR", DEFAULT_STORAGE_DIR),
            storage_prefix=os.environ.get("STOREFRONT_STORAGE_PREFIX", ""),
            remote=os.environ.get("STOREFRONT_REMOTE", ""),
            owner_id=_env_owner("STOREFRONT_OWNER_ID"),
            redis_url=os.environ.get("UPSTASH_REDIS_REST_URL", ""),
            redis_token=os.environ.get("UPSTASH_REDIS_REST_TOKEN", ""),
            remote_ttl=_env_int("STOREFRONT_REMOTE_TTL"),
        )
