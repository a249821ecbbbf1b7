"""Populate the shared show/season/episode catalog from Trakt"""

from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.show import Episode, Season, Show
from ..schemas.metadata import EpisodeMeta, SeasonMeta, ShowMeta
from .log_service import log_service
from .tmdb_service import TMDBService
from .trakt_service import TraktService


@dataclass
class PopulateResult:
    """Counts from one populate pass"""

    seasons_created: int = 0
    seasons_refilled: int = 0
    episodes_created: int = 0
    episodes_failed: int = 0


class CatalogPopulator:
    """
    Make sure a show's full season/episode tree exists in the catalog

    Catalog rows are shared by all users and may be written by concurrent
    runs, so every insert is committed on its own and a unique-constraint
    violation is treated as "row already exists". Ids are passed around as
    plain ints because a rollback expires loaded instances.
    """

    def __init__(self, db: AsyncSession, trakt: TraktService, posters: TMDBService):
        self.db = db
        self.trakt = trakt
        self.posters = posters

    async def _get_show(self, trakt_id: int) -> Optional[Show]:
        result = await self.db.execute(select(Show).where(Show.trakt_id == trakt_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _apply_metadata(show: Show, meta: ShowMeta):
        show.title = meta.title
        show.overview = meta.overview or ""
        show.status = meta.status or "unknown"
        show.genres = list(meta.genres)
        show.network = meta.network or ""
        show.runtime = meta.runtime or 0
        show.first_aired = meta.first_aired
        show.tmdb_id = meta.ids.tmdb
        show.tvdb_id = meta.ids.tvdb
        show.imdb_id = meta.ids.imdb

    async def _lookup_poster(self, meta: ShowMeta) -> Optional[str]:
        if not meta.ids.tmdb:
            return None
        try:
            return await self.posters.get_poster_url(meta.ids.tmdb)
        except Exception as e:
            log_service.error(f"Failed to fetch poster for {meta.title}: {e}")
            return None

    async def ensure_show(self, meta: ShowMeta) -> int:
        """
        Upsert the Show row for a Trakt show and return its id

        The poster is only looked up when the row is created.
        """
        show = await self._get_show(meta.ids.trakt)
        if show:
            self._apply_metadata(show, meta)
            await self.db.commit()
            return show.id

        log_service.sync(f"Creating show in catalog: {meta.title}")
        show = Show(trakt_id=meta.ids.trakt, poster=await self._lookup_poster(meta))
        self._apply_metadata(show, meta)
        self.db.add(show)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            show = await self._get_show(meta.ids.trakt)
            if show is None:
                raise
        return show.id

    async def _ensure_season(self, show_id: int, meta: SeasonMeta) -> Tuple[int, bool]:
        """Return (season id, created)"""
        query = select(Season.id).where(
            Season.show_id == show_id, Season.season_number == meta.number
        )
        season_id = (await self.db.execute(query)).scalar_one_or_none()
        if season_id is not None:
            return season_id, False

        season = Season(
            show_id=show_id,
            season_number=meta.number,
            trakt_id=meta.ids.trakt,
            title=meta.title or f"Season {meta.number}",
            overview=meta.overview,
            episode_count=meta.episode_count or 0,
        )
        self.db.add(season)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            season_id = (await self.db.execute(query)).scalar_one_or_none()
            if season_id is None:
                raise
            return season_id, False
        return season.id, True

    async def _count_episodes(self, season_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Episode.id)).where(Episode.season_id == season_id)
        )
        return result.scalar_one()

    async def _create_episode(self, season_id: int, meta: EpisodeMeta) -> bool:
        """Insert one episode; False when it already existed"""
        self.db.add(
            Episode(
                season_id=season_id,
                episode_number=meta.number,
                trakt_id=meta.ids.trakt,
                title=meta.title or f"Episode {meta.number}",
                overview=meta.overview,
                air_date=meta.first_aired,
                runtime=meta.runtime,
            )
        )
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True

    async def _fill_season(
        self, trakt_id: int, season_id: int, season_number: int, result: PopulateResult
    ):
        episodes = await self.trakt.list_episodes(trakt_id, season_number)
        for episode in episodes:
            try:
                if await self._create_episode(season_id, episode):
                    result.episodes_created += 1
            except Exception as e:
                await self.db.rollback()
                result.episodes_failed += 1
                log_service.error(
                    f"Failed to create episode S{season_number}E{episode.number} "
                    f"for Trakt show {trakt_id}: {e}"
                )

        season = await self.db.get(Season, season_id)
        if season is not None and not season.episode_count:
            season.episode_count = len(episodes)
            await self.db.commit()

    async def populate(self, show_id: int, trakt_id: int) -> PopulateResult:
        """
        Create every missing season (number > 0) with all of its episodes

        A season that exists but has no episodes is refilled; any other
        existing season is left alone.
        """
        result = PopulateResult()
        seasons = await self.trakt.list_seasons(trakt_id)

        for season_meta in seasons:
            if season_meta.number <= 0:
                continue

            season_id, created = await self._ensure_season(show_id, season_meta)
            if created:
                result.seasons_created += 1
            elif await self._count_episodes(season_id) > 0:
                continue
            else:
                result.seasons_refilled += 1
                log_service.sync(
                    f"Season {season_meta.number} of Trakt show {trakt_id} "
                    f"has no episodes, refilling"
                )

            try:
                await self._fill_season(trakt_id, season_id, season_meta.number, result)
            except Exception as e:
                # Season stays empty and is refilled on the next run
                log_service.error(
                    f"Failed to fetch episodes for season {season_meta.number} "
                    f"of Trakt show {trakt_id}: {e}"
                )

        log_service.sync(
            f"Populated Trakt show {trakt_id}: {result.seasons_created} new seasons, "
            f"{result.episodes_created} new episodes, {result.episodes_failed} failed"
        )
        return result
