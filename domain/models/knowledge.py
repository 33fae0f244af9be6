"""
Knowledge cache model - ingredient knowledge learned at runtime.
"""

from sqlalchemy import Column, String, Text, DateTime, JSON

from domain.models.database import Base


class KnowledgeCacheEntry(Base):
    """
    Cached ingredient knowledge keyed by a composite key.

    Keys look like ``<kind>:<normalized name>``; ``name`` is indexed so the
    parser can resolve cached ingredients case-insensitively.
    """

    __tablename__ = "knowledge_cache_entry"

    cache_key = Column(String(255), primary_key=True)
    name = Column(Text, nullable=False, index=True)
    category = Column(Text, index=True)
    payload = Column(JSON, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)

    @property
    def record_key(self) -> str:
        return self.cache_key

    def __repr__(self):
        return f"<KnowledgeCacheEntry(key='{self.cache_key}')>"
