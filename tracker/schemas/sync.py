"""Plex integration and sync schemas"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlexConnect(BaseModel):
    """Connect a Plex server"""

    auth_token: str = Field(..., alias="authToken", min_length=1)
    server_url: str = Field(..., alias="serverUrl", min_length=1)
    server_name: Optional[str] = Field(None, alias="serverName")
    username: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class PlexSettingsUpdate(BaseModel):
    """Toggle automatic daily sync"""

    auto_sync: bool = Field(..., alias="autoSync")

    model_config = ConfigDict(populate_by_name=True)


class IntegrationResponse(BaseModel):
    """Integration status (never exposes the credential)"""

    id: int
    provider: str
    server_url: str
    server_name: Optional[str] = None
    plex_username: Optional[str] = None
    plex_email: Optional[str] = None
    enabled: bool
    auto_sync: bool
    last_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SyncLogResponse(BaseModel):
    """Persisted sync run"""

    id: int
    provider: str
    status: str
    shows_synced: int
    episodes_synced: int
    errors: Optional[List[str]] = None
    duration: Optional[int] = None
    synced_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SyncLogList(BaseModel):
    logs: List[SyncLogResponse]
