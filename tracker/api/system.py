"""System API routes (status, logs, sync batch)"""

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import __version__
from ..api.auth import get_current_user
from ..config import settings as app_settings
from ..models.user import User
from ..services.log_service import log_service
from ..services.scheduler_service import scheduler_service

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/status")
async def system_status():
    """Basic system status check"""
    return {
        "status": "ok",
        "version": __version__,
        "scheduler": scheduler_service.state.value,
        "data_dir": str(app_settings.DATA_DIR),
        "logs_dir": str(app_settings.LOGS_DIR),
    }


@router.post("/sync/run")
async def run_scheduled_sync_manual(current_user: User = Depends(get_current_user)):
    """Manually trigger the daily sync batch for all auto-sync users"""
    if not current_user.is_superuser:
        raise HTTPException(status_code=403, detail="Admin access required")

    return await scheduler_service.trigger_manual_sync()


@router.get("/logs")
async def get_logs(
    type: str = Query("error", pattern="^(error|info|sync)$"),
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
):
    """Read recent log lines"""
    return {"type": type, "lines": log_service.get_logs(type, limit)}
