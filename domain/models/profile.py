"""
Profile and settings model - small key/value documents.
"""

from sqlalchemy import Column, String, DateTime, JSON

from domain.models.database import Base


class ProfileSetting(Base):
    """User profile and application settings, one JSON value per key"""

    __tablename__ = "profile_setting"

    key = Column(String(128), primary_key=True)
    value = Column(JSON)
    timestamp = Column(DateTime, nullable=False, index=True)

    @property
    def record_key(self) -> str:
        return self.key

    def __repr__(self):
        return f"<ProfileSetting(key='{self.key}')>"
