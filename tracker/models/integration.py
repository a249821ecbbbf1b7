"""Integration model"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from ..database import Base

PLEX_PROVIDER = "plex"


class Integration(Base):
    """Per-user connection to an external provider"""

    __tablename__ = "integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String(20), nullable=False, default=PLEX_PROVIDER)
    access_token = Column(Text, nullable=False)  # Fernet encrypted
    server_url = Column(Text, nullable=False)
    server_name = Column(String(255))
    plex_username = Column(String(255))
    plex_email = Column(String(255))
    enabled = Column(Boolean, default=True, nullable=False)
    auto_sync = Column(Boolean, default=True, nullable=False)
    last_sync = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Integration {self.provider} user={self.user_id}>"
