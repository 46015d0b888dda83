"""Runtime configuration for the remote API and the local cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_API_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_CACHE_DIR = "data/cache"
DEFAULT_SYNC_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class Settings:
    """Snapshot of the environment-driven configuration."""

    api_base_url: str
    cache_dir: str
    sync_timeout_seconds: float


def _resolve_base_url() -> str:
    raw = (
        os.getenv("API_BASE_URL")
        or os.getenv("BACKEND_API_URL")
        or os.getenv("RESTAURANT_API_URL")
        or DEFAULT_API_BASE_URL
    )
    return raw.strip().rstrip("/")


def _resolve_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the settings resolved from the current environment."""
    return Settings(
        api_base_url=_resolve_base_url(),
        cache_dir=os.getenv("RESTAURANT_CACHE_DIR") or DEFAULT_CACHE_DIR,
        sync_timeout_seconds=_resolve_float("SYNC_TIMEOUT_SECONDS", DEFAULT_SYNC_TIMEOUT_SECONDS),
    )


__all__ = [
    "DEFAULT_API_BASE_URL",
    "Settings",
    "get_settings",
]
