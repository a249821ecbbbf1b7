"""User library membership"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user_show import DEFAULT_SHOW_STATUS, UserShow
from .log_service import log_service


class LibraryMembershipManager:
    """Add synced shows to a user's library without touching existing entries"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_member(self, user_id: int, show_id: int) -> bool:
        result = await self.db.execute(
            select(UserShow.id).where(
                UserShow.user_id == user_id, UserShow.show_id == show_id
            )
        )
        return result.scalar_one_or_none() is not None

    async def ensure_member(self, user_id: int, show_id: int) -> bool:
        """Create the UserShow row if missing; True when created"""
        if await self.is_member(user_id, show_id):
            return False

        self.db.add(UserShow(user_id=user_id, show_id=show_id, status=DEFAULT_SHOW_STATUS))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return False

        log_service.sync(f"Added show {show_id} to library of user {user_id}")
        return True
