"""Resolve Plex items to canonical Trakt shows"""

from typing import Optional

from ..schemas.metadata import ShowMeta
from ..schemas.plex import ExternalIds
from .errors import ShowNotResolvable
from .log_service import log_service
from .trakt_service import TraktService


class IdentityResolver:
    """
    Map a show's Plex identifiers to Trakt metadata

    Strategies run in order and stop at the first hit:
    TMDB id, TVDB id, then title search.
    """

    def __init__(self, trakt: TraktService):
        self.trakt = trakt

    async def resolve(self, external_ids: ExternalIds, title: str) -> ShowMeta:
        show: Optional[ShowMeta] = None

        if external_ids.tmdb:
            show = await self.trakt.find_show_by_external_id("tmdb", external_ids.tmdb)

        if show is None and external_ids.tvdb:
            show = await self.trakt.find_show_by_external_id("tvdb", external_ids.tvdb)

        if show is None:
            show = await self._search_by_title(title)

        if show is None:
            raise ShowNotResolvable(title)

        log_service.sync(f"Resolved '{title}' to Trakt show {show.ids.trakt} ({show.title})")
        return show

    async def _search_by_title(self, title: str) -> Optional[ShowMeta]:
        if not title:
            return None

        log_service.sync(f"Searching Trakt for: {title}")
        results = await self.trakt.search_shows_by_title(title)
        if not results:
            return None

        wanted = title.lower()
        for candidate in results:
            if candidate.title.lower() == wanted:
                return candidate

        # Ambiguous titles may attach to the wrong show here
        log_service.warning(
            f"No exact Trakt match for '{title}', using '{results[0].title}'"
        )
        return results[0]
