"""Per-user library and watch state models"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from ..database import Base

SHOW_STATUSES = ("ongoing", "watchlater", "ended", "archived")
DEFAULT_SHOW_STATUS = "ongoing"


class UserShow(Base):
    """Show in a user's personal library"""

    __tablename__ = "user_shows"
    __table_args__ = (
        UniqueConstraint("user_id", "show_id", name="uq_user_show"),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in SHOW_STATUSES) + ")",
            name="ck_user_show_status",
        ),
        CheckConstraint(
            "rating IS NULL OR rating BETWEEN 1 AND 10", name="ck_user_show_rating"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    show_id = Column(Integer, ForeignKey("shows.id"), nullable=False, index=True)
    status = Column(String(20), default=DEFAULT_SHOW_STATUS, nullable=False)
    rating = Column(Integer)  # 1-10
    added_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<UserShow user={self.user_id} show={self.show_id} {self.status}>"


class UserEpisode(Base):
    """Watch record for one episode"""

    __tablename__ = "user_episodes"
    __table_args__ = (
        UniqueConstraint("user_id", "episode_id", name="uq_user_episode"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False, index=True)
    watched = Column(Boolean, default=False, nullable=False)
    watched_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<UserEpisode user={self.user_id} episode={self.episode_id}>"
