"""Trakt metadata schemas, validated at the client boundary"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class ShowIds(BaseModel):
    """External ids Trakt reports for a show"""

    trakt: int
    slug: Optional[str] = None
    tvdb: Optional[int] = None
    imdb: Optional[str] = None
    tmdb: Optional[int] = None


class ShowMeta(BaseModel):
    """Canonical show metadata"""

    title: str
    year: Optional[int] = None
    ids: ShowIds
    overview: Optional[str] = None
    first_aired: Optional[datetime] = None
    runtime: Optional[int] = None
    network: Optional[str] = None
    status: Optional[str] = None
    genres: List[str] = Field(default_factory=list)

    @field_validator("genres", mode="before")
    @classmethod
    def _none_genres(cls, value):
        return value or []


class SeasonIds(BaseModel):
    trakt: Optional[int] = None
    tvdb: Optional[int] = None
    tmdb: Optional[int] = None


class SeasonMeta(BaseModel):
    """Season as listed by Trakt (number 0 is specials)"""

    number: int
    ids: SeasonIds = Field(default_factory=SeasonIds)
    title: Optional[str] = None
    overview: Optional[str] = None
    episode_count: Optional[int] = None
    aired_episodes: Optional[int] = None


class EpisodeIds(BaseModel):
    trakt: Optional[int] = None
    tvdb: Optional[int] = None
    imdb: Optional[str] = None
    tmdb: Optional[int] = None


class EpisodeMeta(BaseModel):
    """Episode details"""

    season: int
    number: int
    title: Optional[str] = None
    ids: EpisodeIds = Field(default_factory=EpisodeIds)
    overview: Optional[str] = None
    first_aired: Optional[datetime] = None
    runtime: Optional[int] = None
