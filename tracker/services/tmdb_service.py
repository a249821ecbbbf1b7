"""TMDB API service (poster lookups)"""

from typing import Dict, Optional

import httpx

from ..config import settings
from .log_service import log_service


class TMDBService:
    """The Movie Database API integration"""

    def __init__(self, api_key: str = None, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key if api_key is not None else settings.TMDB_API_KEY
        self.base_url = "https://api.themoviedb.org/3"
        self.image_base_url = "https://image.tmdb.org/t/p/w500"
        self.client = client or httpx.AsyncClient(timeout=30.0)
        # v4 read access tokens are JWTs and go in the Authorization header
        self.is_v4_token = bool(self.api_key) and self.api_key.startswith("eyJ")
        self._poster_cache: Dict[int, Optional[str]] = {}

    async def _request(self, endpoint: str, params: Dict = None) -> Dict:
        """Make request to TMDB API"""
        if params is None:
            params = {}

        headers = {}
        if self.is_v4_token:
            headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            params["api_key"] = self.api_key

        url = f"{self.base_url}/{endpoint}"

        try:
            response = await self.client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            log_service.error(f"TMDB API error: {e}")
            raise

    async def get_tv_details(self, tmdb_id: int) -> Dict:
        """Get TV show details"""
        return await self._request(f"tv/{tmdb_id}")

    async def get_poster_url(self, tmdb_id: int) -> Optional[str]:
        """
        Poster URL for a TV show, or None

        Best effort: failures degrade to None and both hits and misses are
        cached for the lifetime of the service.
        """
        if not tmdb_id:
            return None
        if tmdb_id in self._poster_cache:
            return self._poster_cache[tmdb_id]

        if not self.api_key:
            log_service.warning("TMDB_API_KEY not configured, skipping poster lookup")
            return None

        try:
            details = await self.get_tv_details(tmdb_id)
        except Exception as e:
            log_service.error(f"Failed to fetch poster for TMDB ID {tmdb_id}: {e}")
            return None

        poster_path = details.get("poster_path")
        poster_url = f"{self.image_base_url}{poster_path}" if poster_path else None
        self._poster_cache[tmdb_id] = poster_url
        return poster_url

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
