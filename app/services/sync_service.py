"""Forward sync requests to the backend without ever failing the caller."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.services.normalization import utc_now_iso

logger = logging.getLogger(__name__)

UNAVAILABLE_WARNING = "Backend sync service is unavailable. Returned fallback response."
REQUEST_FAILED_WARNING = "Sync request failed. Returned fallback response."

TRACKED_ENTITIES = ("dishes", "ingredients", "orders", "analytics")


def build_fallback_sync_result() -> Dict[str, Any]:
    return {
        "lastSync": utc_now_iso(),
        "recordsSynced": {entity: 0 for entity in TRACKED_ENTITIES},
    }


def fallback_response(warning: str) -> Dict[str, Any]:
    return {"success": True, "data": build_fallback_sync_result(), "warning": warning}


async def trigger_backend_sync(
    backend_url: str,
    *,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Ask the backend to reconcile its data and relay the summary.

    Recognised envelopes (objects carrying ``success``) are returned untouched
    and any other JSON document is wrapped as ``{"success": True, "data": ...}``.
    When the backend cannot be reached or answers with an error, a fallback
    result reporting zero synced records is returned with a ``warning``.
    """

    url = f"{backend_url.rstrip('/')}/api/sync"
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, headers={"Content-Type": "application/json"})
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Backend sync unreachable at %s: %s", url, exc)
        return fallback_response(REQUEST_FAILED_WARNING)

    if response.is_success:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and "success" in payload:
            return payload
        if isinstance(payload, (dict, list)):
            return {"success": True, "data": payload}

    logger.warning("Backend sync returned an unusable response (%s).", response.status_code)
    return fallback_response(UNAVAILABLE_WARNING)


__all__ = [
    "REQUEST_FAILED_WARNING",
    "UNAVAILABLE_WARNING",
    "build_fallback_sync_result",
    "trigger_backend_sync",
]
