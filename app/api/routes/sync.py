"""Sync endpoint relaying reconciliation requests to the backend."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends

from app.config.settings import Settings, get_settings
from app.services.normalization import utc_now_iso
from app.services.sync_service import trigger_backend_sync

router = APIRouter(prefix="/api/sync", tags=["sync"])


async def get_sync_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport used to reach the backend; ``None`` means the httpx default."""

    return None


@router.get("")
async def sync_status() -> Dict[str, Any]:
    return {"success": True, "data": {"status": "ok", "lastSync": utc_now_iso()}}


@router.post("")
async def sync_endpoint(
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_sync_transport),
) -> Any:
    return await trigger_backend_sync(
        settings.api_base_url,
        timeout=settings.sync_timeout_seconds,
        transport=transport,
    )
