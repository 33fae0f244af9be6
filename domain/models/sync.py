"""
Sync queue model - writes made while offline, replayed on reconnect.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON

from domain.models.database import Base


class SyncQueueItem(Base):
    """Queued offline write. The integer key preserves insertion order."""

    __tablename__ = "sync_queue_item"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String(96), nullable=False, unique=True, index=True)
    item_type = Column(Text, nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    retries = Column(Integer, nullable=False, default=0)
    revision = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)

    @property
    def record_key(self) -> str:
        return self.item_id

    def __repr__(self):
        return f"<SyncQueueItem(id={self.item_id}, type='{self.item_type}', retries={self.retries})>"
