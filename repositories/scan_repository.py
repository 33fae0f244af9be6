"""
Scan Repository - Data access layer for persisted analyses
"""

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import ScanResult


class ScanResultRepository(BaseRepository[ScanResult]):
    """Repository for scan result data access"""

    key_column = "scan_id"

    def __init__(self, db: Session):
        super().__init__(db, ScanResult)

    def mark_synced(self, scan_id: str) -> bool:
        scan = self.get_by_id(scan_id)
        if not scan:
            return False
        scan.synced = True
        self.update(scan)
        return True
