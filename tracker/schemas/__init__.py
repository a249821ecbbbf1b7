"""Pydantic schemas for validation"""

from .auth import Token, UserCreate, UserLogin, UserResponse
from .metadata import EpisodeMeta, SeasonMeta, ShowIds, ShowMeta
from .plex import ExternalIds, PlexLibrary, WatchedItem
from .sync import (
    IntegrationResponse,
    PlexConnect,
    PlexSettingsUpdate,
    SyncLogList,
    SyncLogResponse,
)

__all__ = [
    "Token",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "ShowIds",
    "ShowMeta",
    "SeasonMeta",
    "EpisodeMeta",
    "ExternalIds",
    "PlexLibrary",
    "WatchedItem",
    "PlexConnect",
    "PlexSettingsUpdate",
    "IntegrationResponse",
    "SyncLogResponse",
    "SyncLogList",
]
