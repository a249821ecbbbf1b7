"""Plex media server schemas"""

from typing import Optional

from pydantic import BaseModel, Field


class ExternalIds(BaseModel):
    """Vendor-tagged ids found in Plex guids"""

    tmdb: Optional[int] = None
    tvdb: Optional[int] = None
    imdb: Optional[str] = None

    def is_empty(self) -> bool:
        return self.tmdb is None and self.tvdb is None and self.imdb is None


class PlexLibrary(BaseModel):
    """TV library section on a Plex server"""

    key: str
    title: str
    type: str = "show"
    agent: Optional[str] = None
    scanner: Optional[str] = None


class WatchedItem(BaseModel):
    """Episode reported as watched by Plex"""

    show_title: str
    season_number: int
    episode_number: int
    title: Optional[str] = None
    summary: Optional[str] = None
    year: Optional[int] = None
    rating_key: Optional[str] = None
    show_rating_key: Optional[str] = None
    view_count: int = 0
    last_viewed_at: Optional[int] = None  # epoch seconds
    external_ids: ExternalIds = Field(default_factory=ExternalIds)


class PlexPin(BaseModel):
    """PIN used for the plex.tv auth flow"""

    id: int
    code: str
    auth_token: Optional[str] = None


class PlexUser(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    auth_token: str


class PlexServer(BaseModel):
    name: str
    uri: str
    machine_identifier: Optional[str] = None
    access_token: Optional[str] = None
    local: bool = False
