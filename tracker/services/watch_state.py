"""Merge externally reported watch events into user episode state"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.show import Episode, Season
from ..models.user_show import UserEpisode
from ..schemas.plex import WatchedItem
from .log_service import log_service


def watched_at_from_epoch(timestamp: Optional[int]) -> Optional[datetime]:
    """Epoch seconds to an aware UTC datetime"""
    if not timestamp:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


class WatchStateMerger:
    """Mark catalog episodes watched for a user"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_episode_id(
        self, show_id: int, season_number: int, episode_number: int
    ) -> Optional[int]:
        result = await self.db.execute(
            select(Episode.id)
            .join(Season, Episode.season_id == Season.id)
            .where(
                Season.show_id == show_id,
                Season.season_number == season_number,
                Episode.episode_number == episode_number,
            )
        )
        return result.scalar_one_or_none()

    async def _get_user_episode(self, user_id: int, episode_id: int) -> Optional[UserEpisode]:
        result = await self.db.execute(
            select(UserEpisode).where(
                UserEpisode.user_id == user_id, UserEpisode.episode_id == episode_id
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _apply(record: UserEpisode, reported_at: Optional[datetime]):
        # Without a reported time an existing watched_at is kept
        if reported_at is not None:
            record.watched_at = reported_at
        elif not record.watched or record.watched_at is None:
            record.watched_at = datetime.now(timezone.utc)
        record.watched = True

    async def mark_watched(
        self, user_id: int, episode_id: int, reported_at: Optional[datetime]
    ):
        """Upsert a watched UserEpisode"""
        record = await self._get_user_episode(user_id, episode_id)
        if record is None:
            record = UserEpisode(user_id=user_id, episode_id=episode_id, watched=False)
            self._apply(record, reported_at)
            self.db.add(record)
            try:
                await self.db.commit()
                return
            except IntegrityError:
                # Written concurrently; update that row instead
                await self.db.rollback()
                record = await self._get_user_episode(user_id, episode_id)
                if record is None:
                    raise

        self._apply(record, reported_at)
        await self.db.commit()

    async def merge(
        self,
        user_id: int,
        show_id: int,
        trakt_id: int,
        items: Iterable[WatchedItem],
    ) -> int:
        """
        Mark every reported episode watched; returns how many were merged

        Items whose episode is not in the catalog are skipped, and a failure
        on one item does not stop the rest.
        """
        merged = 0
        for item in items:
            label = f"S{item.season_number}E{item.episode_number}"
            try:
                episode_id = await self._find_episode_id(
                    show_id, item.season_number, item.episode_number
                )
                if episode_id is None:
                    log_service.sync(
                        f"Episode {label} of Trakt show {trakt_id} not in catalog, skipping"
                    )
                    continue

                await self.mark_watched(
                    user_id, episode_id, watched_at_from_epoch(item.last_viewed_at)
                )
                merged += 1
            except Exception as e:
                await self.db.rollback()
                log_service.error(
                    f"Error syncing episode {label} of Trakt show {trakt_id}: {e}"
                )
        return merged
