"""Sync run audit model"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from ..database import Base


class SyncLog(Base):
    """One reconciliation run; written once and never updated"""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String(20), nullable=False)
    status = Column(String(10), nullable=False)  # 'success', 'partial', 'error'
    shows_synced = Column(Integer, default=0, nullable=False)
    episodes_synced = Column(Integer, default=0, nullable=False)
    errors = Column(JSON)  # list of strings or NULL
    duration = Column(Integer)  # milliseconds
    synced_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<SyncLog {self.provider} user={self.user_id} {self.status}>"
