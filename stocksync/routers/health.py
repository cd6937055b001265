from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from stocksync.config import Settings
from stocksync.core.dates import now_ms
from stocksync.dependencies import get_app_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(settings: Settings = Depends(get_app_settings)):
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "time": datetime.now(timezone.utc).isoformat(),
        "server_time": now_ms(),
    }


__all__ = ["router"]
