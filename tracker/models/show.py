"""Show catalog models (shared across users)"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Show(Base):
    """Canonical TV show, keyed by its Trakt id"""

    __tablename__ = "shows"

    id = Column(Integer, primary_key=True, index=True)
    trakt_id = Column(Integer, unique=True, nullable=False, index=True)
    tmdb_id = Column(Integer, index=True)
    tvdb_id = Column(Integer, index=True)
    imdb_id = Column(String(20))
    title = Column(String(255), nullable=False)
    overview = Column(Text, default="")
    poster = Column(Text)
    status = Column(String(50), default="unknown")
    genres = Column(JSON, default=list)
    network = Column(String(255), default="")
    runtime = Column(Integer, default=0)
    first_aired = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    seasons = relationship(
        "Season", back_populates="show", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Show trakt:{self.trakt_id} - {self.title}>"


class Season(Base):
    """Season of a show (specials are never stored)"""

    __tablename__ = "seasons"
    __table_args__ = (
        UniqueConstraint("show_id", "season_number", name="uq_season_show_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    show_id = Column(Integer, ForeignKey("shows.id"), nullable=False, index=True)
    season_number = Column(Integer, nullable=False)
    trakt_id = Column(Integer)
    title = Column(String(255))
    overview = Column(Text)
    episode_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    show = relationship("Show", back_populates="seasons")
    episodes = relationship(
        "Episode", back_populates="season", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Season show={self.show_id} S{self.season_number:02d}>"


class Episode(Base):
    """Episode of a season"""

    __tablename__ = "episodes"
    __table_args__ = (
        UniqueConstraint(
            "season_id", "episode_number", name="uq_episode_season_number"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    episode_number = Column(Integer, nullable=False)
    trakt_id = Column(Integer)
    title = Column(String(255))
    overview = Column(Text)
    air_date = Column(DateTime(timezone=True))
    runtime = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    season = relationship("Season", back_populates="episodes")

    def __repr__(self):
        return f"<Episode season={self.season_id} E{self.episode_number:02d}>"
