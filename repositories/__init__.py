"""
Repositories package - Data access layer.
"""

from repositories.base import BaseRepository
from repositories.scan_repository import ScanResultRepository
from repositories.sync_queue_repository import SyncQueueRepository
from repositories.knowledge_cache_repository import KnowledgeCacheRepository
from repositories.profile_settings_repository import ProfileSettingsRepository

__all__ = [
    "BaseRepository",
    "ScanResultRepository",
    "SyncQueueRepository",
    "KnowledgeCacheRepository",
    "ProfileSettingsRepository",
]
