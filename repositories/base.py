"""
Base repository interface for data access layer.
This follows the Repository pattern to separate business logic from data access.
"""

from typing import Generic, TypeVar, Optional, List, Type, Any, Dict
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import and_, func, or_
from abc import ABC

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType], ABC):
    """
    Base repository for time-indexed store collections.

    Every collection model has a string key column and a ``timestamp``
    column; paging and retention work over the time index. All repositories
    should inherit from this class and name their key column.
    """

    key_column: str = "id"

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    @property
    def _key(self):
        return getattr(self.model, self.key_column)

    @property
    def _time(self):
        return self.model.timestamp

    def get_by_id(self, key: str) -> Optional[ModelType]:
        """Get entity by its collection key"""
        return self.db.query(self.model).filter(self._key == key).first()

    def create(self, entity: ModelType) -> ModelType:
        """Create new entity"""
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def update(self, entity: ModelType) -> ModelType:
        """Update existing entity"""
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def upsert(self, key: str, values: Dict[str, Any]) -> ModelType:
        """Insert a new entity or overwrite the columns of an existing one"""
        entity = self.get_by_id(key)
        if entity is None:
            entity = self.model(**{self.key_column: key, **values})
            return self.create(entity)
        for column, value in values.items():
            setattr(entity, column, value)
        return self.update(entity)

    def delete(self, key: str) -> bool:
        """Delete entity by key"""
        entity = self.get_by_id(key)
        if entity:
            self.db.delete(entity)
            self.db.commit()
            return True
        return False

    def query_page(
        self,
        limit: int = 50,
        offset: int = 0,
        before: Optional[datetime] = None,
        before_key: Optional[str] = None,
        most_recent_first: bool = True,
        **filters: Any,
    ) -> List[ModelType]:
        """
        Page over the time index.

        Args:
            limit: Maximum number of entities to return
            offset: Number of entities to skip
            before: Only return entities strictly older than this cursor
            before_key: Key of the last entity seen at ``before``; entities
                sharing that timestamp with a smaller key are still returned
            most_recent_first: Newest first when true, oldest first otherwise
            **filters: Equality filters on model columns (None values ignored)

        Returns:
            Entities ordered by timestamp, ties broken by key
        """
        query = self.db.query(self.model)
        for column, value in filters.items():
            if value is not None:
                query = query.filter(getattr(self.model, column) == value)
        if before is not None and before_key is not None:
            query = query.filter(
                or_(self._time < before, and_(self._time == before, self._key < before_key))
            )
        elif before is not None:
            query = query.filter(self._time < before)

        if most_recent_first:
            query = query.order_by(self._time.desc(), self._key.desc())
        else:
            query = query.order_by(self._time.asc(), self._key.asc())

        return query.offset(offset).limit(limit).all()

    def count(self) -> int:
        return self.db.query(func.count(self._key)).scalar() or 0

    def count_older_than(self, cutoff: datetime) -> int:
        return (
            self.db.query(func.count(self._key)).filter(self._time < cutoff).scalar()
            or 0
        )

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete every entity with timestamp strictly before cutoff"""
        deleted = (
            self.db.query(self.model)
            .filter(self._time < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted

    def clear(self) -> int:
        """Delete every entity of the collection"""
        deleted = self.db.query(self.model).delete(synchronize_session=False)
        self.db.commit()
        return deleted
