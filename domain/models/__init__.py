"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    create_db_engine,
    create_session_factory,
    init_database,
)
from domain.models.scan import ScanResult
from domain.models.sync import SyncQueueItem
from domain.models.knowledge import KnowledgeCacheEntry
from domain.models.profile import ProfileSetting

__all__ = [
    # Database
    "Base",
    "create_db_engine",
    "create_session_factory",
    "init_database",
    # Store collections
    "ScanResult",
    "SyncQueueItem",
    "KnowledgeCacheEntry",
    "ProfileSetting",
]
