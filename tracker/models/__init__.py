"""Database models"""

from .integration import Integration
from .show import Episode, Season, Show
from .sync_log import SyncLog
from .user import User
from .user_show import UserEpisode, UserShow

__all__ = [
    "User",
    "Show",
    "Season",
    "Episode",
    "UserShow",
    "UserEpisode",
    "Integration",
    "SyncLog",
]
