"""Plex watch history reconciliation"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.integration import PLEX_PROVIDER, Integration
from ..models.sync_log import SyncLog
from ..schemas.plex import WatchedItem
from .catalog_populator import CatalogPopulator
from .credential_store import CredentialStore
from .errors import NoLibrariesFound
from .identity_resolver import IdentityResolver
from .library_membership import LibraryMembershipManager
from .log_service import log_service
from .plex_service import PlexService
from .tmdb_service import TMDBService
from .trakt_service import TraktService
from .watch_state import WatchStateMerger

STATUS_SUCCESS = "success"
STATUS_PARTIAL = "partial"
STATUS_ERROR = "error"


@dataclass
class SyncResult:
    """Aggregate outcome of one run"""

    shows_synced: int = 0
    episodes_synced: int = 0
    errors: List[str] = field(default_factory=list)
    duration: int = 0  # milliseconds

    @property
    def status(self) -> str:
        return STATUS_PARTIAL if self.errors else STATUS_SUCCESS

    def to_dict(self) -> Dict:
        return {
            "showsSynced": self.shows_synced,
            "episodesSynced": self.episodes_synced,
            "errors": list(self.errors),
            "duration": self.duration,
        }


def group_by_show(items: Iterable[WatchedItem]) -> Dict[str, List[WatchedItem]]:
    """Group watched items by exact show title, keeping first-seen order"""
    groups: Dict[str, List[WatchedItem]] = OrderedDict()
    for item in items:
        groups.setdefault(item.show_title, []).append(item)
    return groups


class SyncService:
    """
    Import one user's Plex watch history into the catalog

    Libraries, shows and the per-show steps run strictly in sequence.
    Failures of a library or a show are collected in the result; missing
    configuration and an empty server abort the run.
    """

    def __init__(
        self,
        db: AsyncSession,
        plex: PlexService,
        trakt: TraktService,
        posters: TMDBService,
        credentials: Optional[CredentialStore] = None,
        provider: str = PLEX_PROVIDER,
    ):
        self.db = db
        self.plex = plex
        self.trakt = trakt
        self.posters = posters
        self.provider = provider
        self.credentials = credentials or CredentialStore(db)
        self.resolver = IdentityResolver(trakt)
        self.populator = CatalogPopulator(db, trakt, posters)
        self.membership = LibraryMembershipManager(db)
        self.merger = WatchStateMerger(db)

    async def sync_show(self, user_id: int, title: str, items: List[WatchedItem]) -> int:
        """Resolve, populate, add to library and merge; returns episodes merged"""
        log_service.sync(f"Syncing show: {title} ({len(items)} watched episodes)")

        meta = await self.resolver.resolve(items[0].external_ids, title)
        trakt_id = meta.ids.trakt

        show_id = await self.populator.ensure_show(meta)
        await self.populator.populate(show_id, trakt_id)
        await self.membership.ensure_member(user_id, show_id)
        return await self.merger.merge(user_id, show_id, trakt_id, items)

    async def _sync_library(self, user_id, server_url, token, library, result: SyncResult):
        items = await self.plex.list_watched_items(server_url, token, library.key)
        groups = group_by_show(items)
        log_service.sync(
            f"Library {library.title}: {len(items)} watched episodes "
            f"across {len(groups)} shows"
        )

        for title, show_items in groups.items():
            try:
                merged = await self.sync_show(user_id, title, show_items)
            except Exception as e:
                await self.db.rollback()
                log_service.error(f"Error syncing show {title}: {e}")
                result.errors.append(f"Failed to sync {title}: {e}")
                continue

            result.shows_synced += 1
            result.episodes_synced += merged

    async def run_sync(self, user_id: int) -> SyncResult:
        """
        Run one full reconciliation for a user

        Raises IntegrationNotConfigured / NoLibrariesFound (and credential or
        connection errors from the first steps) to the caller.
        """
        started = time.monotonic()
        result = SyncResult()
        log_service.sync(f"Starting Plex sync for user {user_id}")

        try:
            integration = await self.credentials.get_integration(user_id, self.provider)
            integration_id = integration.id
            server_url = integration.server_url
            token = await self.credentials.get_decrypted_access_token(
                user_id, self.provider
            )

            libraries = await self.plex.list_libraries(server_url, token)
            log_service.sync(f"Found {len(libraries)} TV libraries")
            if not libraries:
                raise NoLibrariesFound("No TV libraries found on Plex server")
        except Exception as e:
            log_service.error(f"Plex sync failed for user {user_id}: {e}")
            raise

        for library in libraries:
            try:
                await self._sync_library(user_id, server_url, token, library, result)
            except Exception as e:
                await self.db.rollback()
                log_service.error(f"Error processing library {library.title}: {e}")
                result.errors.append(f"Failed to process library {library.title}: {e}")

        await self.touch_last_sync(integration_id)

        result.duration = int((time.monotonic() - started) * 1000)
        log_service.sync(
            f"Sync complete for user {user_id}: {result.shows_synced} shows, "
            f"{result.episodes_synced} episodes, {len(result.errors)} errors "
            f"in {result.duration}ms"
        )
        return result

    async def touch_last_sync(self, integration_id: int):
        await self.db.execute(
            update(Integration)
            .where(Integration.id == integration_id)
            .values(last_sync=datetime.now(timezone.utc))
        )
        await self.db.commit()

    async def record_run(
        self,
        user_id: int,
        result: Optional[SyncResult] = None,
        error: Optional[BaseException] = None,
        duration: Optional[int] = None,
    ) -> SyncLog:
        """Persist the audit row for a finished (or failed) run"""
        if error is not None or result is None:
            log = SyncLog(
                user_id=user_id,
                provider=self.provider,
                status=STATUS_ERROR,
                shows_synced=0,
                episodes_synced=0,
                errors=[str(error) if error is not None and str(error) else "Unknown error"],
                duration=duration,
            )
        else:
            log = SyncLog(
                user_id=user_id,
                provider=self.provider,
                status=result.status,
                shows_synced=result.shows_synced,
                episodes_synced=result.episodes_synced,
                errors=list(result.errors) if result.errors else None,
                duration=result.duration,
            )
        self.db.add(log)
        await self.db.commit()
        return log

    async def get_sync_history(self, user_id: int, limit: int = 10) -> List[SyncLog]:
        """Most recent runs, newest first"""
        result = await self.db.execute(
            select(SyncLog)
            .where(SyncLog.user_id == user_id, SyncLog.provider == self.provider)
            .order_by(SyncLog.synced_at.desc(), SyncLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def close(self):
        """Close HTTP clients"""
        for client in (self.plex, self.trakt, self.posters):
            await client.close()


def create_sync_service(db: AsyncSession) -> SyncService:
    """SyncService wired to the real Plex, Trakt and TMDB clients"""
    return SyncService(db, PlexService(), TraktService(), TMDBService())
