"""Trakt API service"""

from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..schemas.metadata import EpisodeMeta, SeasonMeta, ShowMeta
from .log_service import log_service

EXTERNAL_ID_KINDS = ("tmdb", "tvdb", "imdb")


class TraktService:
    """Trakt metadata provider integration"""

    def __init__(
        self, client_id: str = None, client: Optional[httpx.AsyncClient] = None
    ):
        self.client_id = client_id or settings.TRAKT_CLIENT_ID
        self.base_url = "https://api.trakt.tv"
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def _request(self, endpoint: str, params: Dict = None):
        """Make request to Trakt API"""
        headers = {
            "Content-Type": "application/json",
            "trakt-api-key": self.client_id or "",
            "trakt-api-version": "2",
        }
        url = f"{self.base_url}/{endpoint}"

        try:
            response = await self.client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            log_service.error(f"Trakt API error: {e}")
            raise

    @staticmethod
    def _parse_shows(results: List[Dict]) -> List[ShowMeta]:
        shows = []
        for result in results or []:
            payload = result.get("show")
            if not payload:
                continue
            try:
                shows.append(ShowMeta.model_validate(payload))
            except ValidationError as e:
                log_service.warning(f"Skipping malformed Trakt show: {e}")
        return shows

    async def find_show_by_external_id(
        self, kind: str, external_id
    ) -> Optional[ShowMeta]:
        """Look up a show by TMDB, TVDB or IMDB id; None when not found"""
        if kind not in EXTERNAL_ID_KINDS:
            raise ValueError(f"Unsupported external id kind: {kind}")

        try:
            results = await self._request(
                f"search/{kind}/{external_id}", {"type": "show", "extended": "full"}
            )
        except httpx.HTTPError as e:
            log_service.error(f"Error fetching show by {kind} id {external_id}: {e}")
            return None

        shows = self._parse_shows(results)
        return shows[0] if shows else None

    async def search_shows_by_title(self, title: str, limit: int = 10) -> List[ShowMeta]:
        """Full-text show search, most relevant first"""
        results = await self._request(
            "search/show", {"query": title, "extended": "full", "limit": limit}
        )
        return self._parse_shows(results)

    async def list_seasons(self, trakt_id: int) -> List[SeasonMeta]:
        """All seasons of a show, specials included"""
        results = await self._request(f"shows/{trakt_id}/seasons", {"extended": "full"})
        return [SeasonMeta.model_validate(season) for season in results or []]

    async def list_episodes(self, trakt_id: int, season_number: int) -> List[EpisodeMeta]:
        """All episodes of one season"""
        results = await self._request(
            f"shows/{trakt_id}/seasons/{season_number}/episodes",
            {"extended": "full"},
        )
        return [EpisodeMeta.model_validate(episode) for episode in results or []]

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
