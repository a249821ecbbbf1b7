"""Plex integration API routes"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..api.auth import get_current_user
from ..config import settings
from ..database import get_db
from ..models.integration import PLEX_PROVIDER, Integration
from ..models.user import User
from ..schemas.sync import (
    IntegrationResponse,
    PlexConnect,
    PlexSettingsUpdate,
    SyncLogList,
    SyncLogResponse,
)
from ..services.credential_store import encrypt_token
from ..services.errors import CredentialError
from ..services.log_service import log_service
from ..services.plex_service import PlexService
from ..services.sync_service import create_sync_service

router = APIRouter(prefix="/api/integrations/plex", tags=["integrations"])


async def _get_integration(db: AsyncSession, user_id: int) -> Integration:
    result = await db.execute(
        select(Integration).where(
            Integration.user_id == user_id, Integration.provider == PLEX_PROVIDER
        )
    )
    return result.scalar_one_or_none()


@router.post("/pin")
async def create_pin(current_user: User = Depends(get_current_user)):
    """Start the plex.tv PIN login"""
    plex = PlexService()
    try:
        pin = await plex.generate_pin()
        return {"id": pin.id, "code": pin.code, "authUrl": plex.get_auth_url(pin.code)}
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Failed to create Plex PIN: {e}")
    finally:
        await plex.close()


@router.get("/pin/{pin_id}")
async def check_pin(pin_id: int, current_user: User = Depends(get_current_user)):
    """Poll a PIN; once authorized returns the token and reachable servers"""
    plex = PlexService()
    try:
        pin = await plex.check_pin(pin_id)
        if not pin.auth_token:
            return {"authorized": False}

        user = await plex.get_user_info(pin.auth_token)
        servers = await plex.get_servers(pin.auth_token)
        return {
            "authorized": True,
            "authToken": pin.auth_token,
            "username": user.username,
            "email": user.email,
            "servers": [server.model_dump() for server in servers],
        }
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Failed to check Plex PIN: {e}")
    finally:
        await plex.close()


@router.post("/connect", response_model=IntegrationResponse)
async def connect(
    data: PlexConnect,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Save (or replace) the user's Plex connection after testing it"""
    plex = PlexService()
    try:
        await plex.list_libraries(data.server_url, data.auth_token)
    except Exception as e:
        log_service.error(f"Failed to connect to Plex server {data.server_url}: {e}")
        raise HTTPException(
            status_code=400,
            detail="Failed to connect to Plex server. Please check your server URL and try again.",
        )
    finally:
        await plex.close()

    try:
        encrypted = encrypt_token(data.auth_token)
    except CredentialError as e:
        raise HTTPException(status_code=500, detail=str(e))

    integration = await _get_integration(db, current_user.id)
    if integration is None:
        integration = Integration(user_id=current_user.id, provider=PLEX_PROVIDER)
        db.add(integration)

    integration.access_token = encrypted
    integration.server_url = data.server_url
    integration.server_name = data.server_name
    integration.plex_username = data.username
    integration.plex_email = data.email
    integration.enabled = True
    integration.auto_sync = True

    await db.commit()
    await db.refresh(integration)
    log_service.info(f"Plex integration saved for user {current_user.id}")
    return integration


@router.get("")
async def get_status(
    db: AsyncSession = Depends(get_db), current_user: User = Depends(get_current_user)
):
    """Plex connection status"""
    integration = await _get_integration(db, current_user.id)
    if integration is None:
        return {"connected": False}

    return {
        "connected": True,
        "integration": IntegrationResponse.model_validate(integration).model_dump(),
    }


@router.patch("/settings")
async def update_settings(
    data: PlexSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Toggle automatic daily sync"""
    integration = await _get_integration(db, current_user.id)
    if integration is None:
        raise HTTPException(status_code=404, detail="Plex integration not found")

    integration.auto_sync = data.auto_sync
    await db.commit()
    return {"success": True, "autoSync": integration.auto_sync}


@router.delete("")
async def disconnect(
    db: AsyncSession = Depends(get_db), current_user: User = Depends(get_current_user)
):
    """Remove the Plex connection"""
    integration = await _get_integration(db, current_user.id)
    if integration is None:
        raise HTTPException(status_code=404, detail="Plex integration not found")

    await db.delete(integration)
    await db.commit()
    log_service.info(f"Plex integration disconnected for user {current_user.id}")
    return {"success": True, "message": "Plex integration disconnected"}


@router.post("/sync")
async def run_sync(
    db: AsyncSession = Depends(get_db), current_user: User = Depends(get_current_user)
):
    """Sync the current user's Plex watch history now"""
    service = create_sync_service(db)
    try:
        try:
            result = await service.run_sync(current_user.id)
        except Exception as e:
            await db.rollback()
            await service.record_run(current_user.id, error=e)
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to sync Plex", "message": str(e)},
            )

        await service.record_run(current_user.id, result)
        return {"success": True, **result.to_dict()}
    finally:
        await service.close()


@router.get("/sync", response_model=SyncLogList)
async def sync_history(
    db: AsyncSession = Depends(get_db), current_user: User = Depends(get_current_user)
):
    """Recent sync runs, newest first"""
    service = create_sync_service(db)
    try:
        logs = await service.get_sync_history(
            current_user.id, settings.SYNC_HISTORY_LIMIT
        )
        return SyncLogList(logs=[SyncLogResponse.model_validate(log) for log in logs])
    finally:
        await service.close()
