"""Plex media server API service"""

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

import httpx

from ..config import settings
from ..schemas.plex import (
    ExternalIds,
    PlexLibrary,
    PlexPin,
    PlexServer,
    PlexUser,
    WatchedItem,
)
from .log_service import log_service

PLEX_TV_URL = "https://plex.tv"
PLEX_PIN_URL = f"{PLEX_TV_URL}/api/v2/pins"

_LEGACY_GUID_PATTERNS = (
    ("tmdb", re.compile(r"themoviedb://(\d+)")),
    ("tvdb", re.compile(r"thetvdb://(\d+)")),
    ("imdb", re.compile(r"imdb://(tt\d+)")),
)


def extract_external_ids(
    guid: Optional[str], guids: Optional[Iterable[Dict]] = None
) -> ExternalIds:
    """
    Extract TMDB / TVDB / IMDB ids from Plex guids

    Handles the modern Guid array (tmdb://123, tvdb://456, imdb://tt789)
    and legacy agent guids (com.plexapp.agents.thetvdb://456/1/2?lang=en).
    """
    ids = ExternalIds()

    for entry in guids or []:
        value = entry.get("id", "") if isinstance(entry, dict) else str(entry)
        scheme, _, rest = value.partition("://")
        if not rest:
            continue
        try:
            if scheme == "tmdb":
                ids.tmdb = int(rest)
            elif scheme == "tvdb":
                ids.tvdb = int(rest)
            elif scheme == "imdb":
                ids.imdb = rest
        except ValueError:
            log_service.warning(f"Ignoring malformed Plex guid: {value}")

    if guid:
        for kind, pattern in _LEGACY_GUID_PATTERNS:
            match = pattern.search(guid)
            if match and getattr(ids, kind) is None:
                value = match.group(1)
                setattr(ids, kind, value if kind == "imdb" else int(value))
                break

    return ids


class PlexService:
    """Plex server and plex.tv API integration"""

    def __init__(
        self,
        client_id: str = None,
        product: str = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id or settings.PLEX_CLIENT_ID
        self.product = product or settings.PLEX_PRODUCT
        self.base_headers = {
            "X-Plex-Product": self.product,
            "X-Plex-Version": "1.0",
            "X-Plex-Client-Identifier": self.client_id,
            "Accept": "application/json",
        }
        self.client = client or httpx.AsyncClient(timeout=30.0)

    async def _request(
        self,
        method: str,
        url: str,
        token: Optional[str] = None,
        params: Dict = None,
        json: Dict = None,
    ):
        """Make request to Plex"""
        headers = dict(self.base_headers)
        if token:
            headers["X-Plex-Token"] = token

        try:
            response = await self.client.request(
                method, url, headers=headers, params=params, json=json
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            log_service.error(f"Plex API error: {e}")
            raise

    # plex.tv PIN auth flow

    async def generate_pin(self) -> PlexPin:
        """Create a strong PIN the user authorizes on app.plex.tv"""
        data = await self._request("POST", PLEX_PIN_URL, json={"strong": True})
        return PlexPin(id=data["id"], code=data["code"], auth_token=data.get("authToken"))

    def get_auth_url(self, code: str) -> str:
        return (
            f"https://app.plex.tv/auth#?clientID={self.client_id}&code={code}"
            f"&context%5Bdevice%5D%5Bproduct%5D={quote(self.product)}"
        )

    async def check_pin(self, pin_id: int) -> PlexPin:
        """Poll a PIN; auth_token is set once the user has authorized it"""
        data = await self._request("GET", f"{PLEX_PIN_URL}/{pin_id}")
        return PlexPin(id=data["id"], code=data["code"], auth_token=data.get("authToken"))

    async def get_user_info(self, auth_token: str) -> PlexUser:
        data = await self._request("GET", f"{PLEX_TV_URL}/api/v2/user", token=auth_token)
        return PlexUser(
            id=data["id"],
            username=data.get("username", ""),
            email=data.get("email"),
            auth_token=auth_token,
        )

    async def get_servers(self, auth_token: str) -> List[PlexServer]:
        """List servers the account can reach"""
        data = await self._request(
            "GET",
            f"{PLEX_TV_URL}/api/v2/resources",
            token=auth_token,
            params={"includeHttps": 1, "includeRelay": 1},
        )
        servers = []
        for resource in data or []:
            if "server" not in (resource.get("provides") or ""):
                continue
            connections = resource.get("connections") or []
            if not connections:
                continue
            servers.append(
                PlexServer(
                    name=resource.get("name", ""),
                    uri=connections[0].get("uri", ""),
                    machine_identifier=resource.get("clientIdentifier"),
                    access_token=resource.get("accessToken"),
                    local=bool(connections[0].get("local")),
                )
            )
        return servers

    # Server library access

    async def list_libraries(self, server_url: str, token: str) -> List[PlexLibrary]:
        """Get TV show libraries from server"""
        data = await self._request(
            "GET", f"{server_url.rstrip('/')}/library/sections", token=token
        )
        directories = data.get("MediaContainer", {}).get("Directory") or []
        return [
            PlexLibrary(
                key=str(lib["key"]),
                title=lib.get("title", ""),
                type=lib.get("type", ""),
                agent=lib.get("agent"),
                scanner=lib.get("scanner"),
            )
            for lib in directories
            if lib.get("type") == "show"
        ]

    async def list_watched_items(
        self, server_url: str, token: str, library_key: str
    ) -> List[WatchedItem]:
        """
        Get all watched episodes for a library

        Episode guids identify the episode, not the show, so show-level ids
        are read from each show's own metadata (one request per show).
        """
        base = server_url.rstrip("/")
        data = await self._request(
            "GET",
            f"{base}/library/sections/{library_key}/all",
            token=token,
            params={"type": 4, "viewCount>": 1, "includeGuids": 1},
        )
        metadata = data.get("MediaContainer", {}).get("Metadata") or []

        show_ids: Dict[str, ExternalIds] = {}
        items = []
        for episode in metadata:
            season_number = episode.get("parentIndex")
            episode_number = episode.get("index")
            if season_number is None or episode_number is None:
                log_service.sync(
                    f"Skipping Plex episode without numbering: {episode.get('title')}"
                )
                continue

            show_key = episode.get("grandparentRatingKey")
            if show_key and show_key not in show_ids:
                show_ids[show_key] = await self.get_show_external_ids(
                    base, token, show_key
                )

            items.append(
                WatchedItem(
                    show_title=episode.get("grandparentTitle", ""),
                    season_number=int(season_number),
                    episode_number=int(episode_number),
                    title=episode.get("title"),
                    summary=episode.get("summary"),
                    year=episode.get("year"),
                    rating_key=episode.get("ratingKey"),
                    show_rating_key=show_key,
                    view_count=episode.get("viewCount") or 0,
                    last_viewed_at=episode.get("lastViewedAt") or None,
                    external_ids=show_ids.get(show_key) or ExternalIds(),
                )
            )
        return items

    async def get_show_external_ids(
        self, server_url: str, token: str, rating_key: str
    ) -> ExternalIds:
        """External ids of a show; empty when the lookup fails"""
        try:
            data = await self._request(
                "GET",
                f"{server_url.rstrip('/')}/library/metadata/{rating_key}",
                token=token,
                params={"includeGuids": 1},
            )
        except httpx.HTTPError:
            return ExternalIds()

        metadata = data.get("MediaContainer", {}).get("Metadata") or []
        if not metadata:
            return ExternalIds()
        show = metadata[0]
        return extract_external_ids(show.get("guid"), show.get("Guid"))

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
