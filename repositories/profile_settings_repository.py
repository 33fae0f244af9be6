"""
Profile Settings Repository - Data access layer for profile and settings documents
"""

from typing import Any
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import ProfileSetting


class ProfileSettingsRepository(BaseRepository[ProfileSetting]):
    """Repository for key/value profile and settings data access"""

    key_column = "key"

    def __init__(self, db: Session):
        super().__init__(db, ProfileSetting)

    def get_value(self, key: str, default: Any = None) -> Any:
        setting = self.get_by_id(key)
        return setting.value if setting else default
