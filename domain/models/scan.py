"""
Scan result model - analyses persisted by the offline-first store.
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON, Index

from domain.models.database import Base


class ScanResult(Base):
    """
    One persisted analysis of a product label.

    The full analysis payload is stored as JSON; timestamp and category are
    promoted to indexed columns for newest-first paging and retention sweeps.
    """

    __tablename__ = "scan_result"

    scan_id = Column(String(64), primary_key=True)
    category = Column(Text, nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    synced = Column(Boolean, nullable=False, default=False)
    payload = Column(JSON, nullable=False)

    __table_args__ = (Index("ix_scan_result_timestamp_id", "timestamp", "scan_id"),)

    @property
    def record_key(self) -> str:
        return self.scan_id

    def __repr__(self):
        return f"<ScanResult(id={self.scan_id}, category='{self.category}')>"
