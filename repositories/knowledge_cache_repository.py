"""
Knowledge Cache Repository - Data access layer for runtime-learned ingredient knowledge
"""

from typing import Optional
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import KnowledgeCacheEntry


class KnowledgeCacheRepository(BaseRepository[KnowledgeCacheEntry]):
    """Repository for knowledge cache data access"""

    key_column = "cache_key"

    def __init__(self, db: Session):
        super().__init__(db, KnowledgeCacheEntry)

    def find_by_name(self, normalized_name: str) -> Optional[KnowledgeCacheEntry]:
        """Get the newest cache entry stored under a normalized ingredient name"""
        return (
            self.db.query(KnowledgeCacheEntry)
            .filter(KnowledgeCacheEntry.name == normalized_name)
            .order_by(KnowledgeCacheEntry.timestamp.desc())
            .first()
        )
