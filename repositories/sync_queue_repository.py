"""
Sync Queue Repository - Data access layer for offline writes awaiting replay
"""

from typing import List, Optional, Any, Dict
from datetime import datetime
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import SyncQueueItem


class SyncQueueRepository(BaseRepository[SyncQueueItem]):
    """Repository for sync queue data access"""

    key_column = "item_id"

    def __init__(self, db: Session):
        super().__init__(db, SyncQueueItem)

    def enqueue(
        self, item_id: str, item_type: str, payload: Dict[str, Any], timestamp: datetime
    ) -> SyncQueueItem:
        """
        Append an item to the queue.

        A queued duplicate keeps its position but takes the new payload, a new
        revision and a fresh retry budget.
        """
        existing = self.get_by_id(item_id)
        if existing:
            existing.payload = payload
            existing.timestamp = timestamp
            existing.revision = (existing.revision or 0) + 1
            existing.retries = 0
            existing.last_error = None
            return self.update(existing)

        item = SyncQueueItem(
            item_id=item_id,
            item_type=item_type,
            payload=payload,
            timestamp=timestamp,
            retries=0,
            revision=0,
        )
        return self.create(item)

    def pending_in_order(self, limit: Optional[int] = None) -> List[SyncQueueItem]:
        """Get queued items in insertion order"""
        query = self.db.query(SyncQueueItem).order_by(SyncQueueItem.seq.asc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def delete_revision(self, item_id: str, revision: int) -> bool:
        """Delete an item only if it still holds the given revision"""
        item = self.get_by_id(item_id)
        if not item or item.revision != revision:
            return False
        self.db.delete(item)
        self.db.commit()
        return True

    def record_failure(self, item_id: str, error: str, revision: Optional[int] = None) -> Optional[int]:
        """
        Increment the retry counter of an item, returning the new count.

        Returns None when the item is gone or, with ``revision`` given, was
        re-queued with a newer payload since it was read.
        """
        item = self.get_by_id(item_id)
        if not item:
            return None
        if revision is not None and item.revision != revision:
            return None
        item.retries = (item.retries or 0) + 1
        item.last_error = error
        self.update(item)
        return item.retries
