"""Shared fakes and database helpers for the sync engine tests"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from cryptography.fernet import Fernet
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.database import init_db
from tracker.models import Integration, User
from tracker.schemas.metadata import EpisodeMeta, SeasonMeta, ShowIds, ShowMeta
from tracker.schemas.plex import ExternalIds, PlexLibrary, WatchedItem
from tracker.services.credential_store import CredentialStore, encrypt_token
from tracker.services.sync_service import SyncService

ENCRYPTION_KEY = Fernet.generate_key().decode()


@asynccontextmanager
async def database():
    """Fresh in-memory database; yields a session factory"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    try:
        yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


def naive(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back without tzinfo"""
    if value is None or value.tzinfo is None:
        return value
    return value.replace(tzinfo=None)


async def count(db, model, *where) -> int:
    query = select(func.count()).select_from(model)
    if where:
        query = query.where(*where)
    return (await db.execute(query)).scalar_one()


async def create_user(db, username: str = "alice") -> int:
    user = User(username=username, hashed_password="x")
    db.add(user)
    await db.commit()
    return user.id


async def create_integration(
    db, user_id: int, enabled: bool = True, auto_sync: bool = True
) -> int:
    integration = Integration(
        user_id=user_id,
        provider="plex",
        access_token=encrypt_token("plex-token", ENCRYPTION_KEY),
        server_url="http://plex.local:32400",
        enabled=enabled,
        auto_sync=auto_sync,
    )
    db.add(integration)
    await db.commit()
    return integration.id


def show_meta(trakt: int, title: str, tmdb: int = None, tvdb: int = None) -> ShowMeta:
    return ShowMeta(
        title=title,
        ids=ShowIds(trakt=trakt, tmdb=tmdb, tvdb=tvdb),
        overview=f"{title} overview",
        status="returning series",
        genres=["drama"],
        network="HBO",
        runtime=50,
    )


def watched(
    title: str,
    season: int,
    episode: int,
    viewed_at: int = None,
    tmdb: int = None,
    tvdb: int = None,
) -> WatchedItem:
    return WatchedItem(
        show_title=title,
        season_number=season,
        episode_number=episode,
        last_viewed_at=viewed_at,
        external_ids=ExternalIds(tmdb=tmdb, tvdb=tvdb),
    )


class FakeTrakt:
    """In-memory metadata provider"""

    def __init__(self):
        self.by_id: Dict[str, Dict] = {"tmdb": {}, "tvdb": {}, "imdb": {}}
        self.search: Dict[str, List[ShowMeta]] = {}
        self.seasons: Dict[int, List[SeasonMeta]] = {}
        self.episodes: Dict[tuple, List[EpisodeMeta]] = {}
        self.failing_ids = set()
        self.calls = []

    def add_show(self, meta: ShowMeta, seasons: Dict[int, int], searchable: bool = True):
        """Register a show; seasons maps season number to episode count"""
        if meta.ids.tmdb:
            self.by_id["tmdb"][meta.ids.tmdb] = meta
        if meta.ids.tvdb:
            self.by_id["tvdb"][meta.ids.tvdb] = meta
        if searchable:
            self.search.setdefault(meta.title, []).append(meta)

        trakt_id = meta.ids.trakt
        self.seasons[trakt_id] = []
        for number, episode_count in seasons.items():
            self.seasons[trakt_id].append(
                SeasonMeta(number=number, title=f"Season {number}", episode_count=episode_count)
            )
            self.episodes[(trakt_id, number)] = [
                EpisodeMeta(season=number, number=n, title=f"{meta.title} {number}x{n}")
                for n in range(1, episode_count + 1)
            ]

    async def find_show_by_external_id(self, kind, external_id):
        self.calls.append(("find", kind, external_id))
        if (kind, external_id) in self.failing_ids:
            raise RuntimeError(f"Trakt lookup exploded for {kind} {external_id}")
        return self.by_id[kind].get(external_id)

    async def search_shows_by_title(self, title):
        self.calls.append(("search", title))
        return list(self.search.get(title, []))

    async def list_seasons(self, trakt_id):
        self.calls.append(("seasons", trakt_id))
        return list(self.seasons.get(trakt_id, []))

    async def list_episodes(self, trakt_id, season_number):
        self.calls.append(("episodes", trakt_id, season_number))
        return list(self.episodes.get((trakt_id, season_number), []))

    async def close(self):
        pass


class FakePlex:
    """In-memory media server"""

    def __init__(self, libraries: Dict[str, List[WatchedItem]] = None):
        self.libraries = libraries if libraries is not None else {}
        self.failing_libraries = set()
        self.tokens = []

    async def list_libraries(self, server_url, token):
        self.tokens.append(token)
        return [PlexLibrary(key=key, title=f"Library {key}") for key in self.libraries]

    async def list_watched_items(self, server_url, token, library_key):
        if library_key in self.failing_libraries:
            raise RuntimeError("library scan timed out")
        return list(self.libraries[library_key])

    async def close(self):
        pass


class FakePosters:
    def __init__(self, url: str = "https://image.tmdb.org/t/p/w500/poster.jpg"):
        self.url = url
        self.calls = []

    async def get_poster_url(self, tmdb_id):
        self.calls.append(tmdb_id)
        return self.url

    async def close(self):
        pass


def make_service(db, plex, trakt, posters=None) -> SyncService:
    return SyncService(
        db,
        plex,
        trakt,
        posters or FakePosters(),
        credentials=CredentialStore(db, key=ENCRYPTION_KEY),
    )
