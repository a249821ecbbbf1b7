"""Services layer"""

from .auth_service import AuthService
from .catalog_populator import CatalogPopulator
from .credential_store import CredentialStore
from .identity_resolver import IdentityResolver
from .library_membership import LibraryMembershipManager
from .log_service import LogService
from .plex_service import PlexService
from .scheduler_service import SchedulerService
from .sync_service import SyncService
from .tmdb_service import TMDBService
from .trakt_service import TraktService
from .watch_state import WatchStateMerger

__all__ = [
    "AuthService",
    "LogService",
    "CredentialStore",
    "PlexService",
    "TraktService",
    "TMDBService",
    "IdentityResolver",
    "CatalogPopulator",
    "WatchStateMerger",
    "LibraryMembershipManager",
    "SyncService",
    "SchedulerService",
]
