from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime

from domain.enums import ProductCategory, Collection
from domain.schemas.ingredient_schemas import Ingredient
from domain.schemas.profile_schemas import UserProfile
from domain.schemas.score_schemas import ScoreResult


class AnalyzeRequest(BaseModel):
    """Schema for submitting recognized label text"""

    text: str = Field(..., description="Raw ingredient text recognized from a label")
    category: ProductCategory = Field(ProductCategory.FOOD, description="Product category")
    profile: Optional[UserProfile] = Field(
        None, description="Optional profile override; the stored profile is used otherwise"
    )
    enrich: bool = Field(
        True, description="If true, unknown ingredients are enriched from remote sources"
    )


class AnalysisResponse(BaseModel):
    """Persisted analysis of one product"""

    scan_id: str
    category: ProductCategory
    timestamp: datetime
    synced: bool
    ingredients: List[Ingredient]
    score: ScoreResult


class AnalysisSummary(BaseModel):
    """Compact history entry"""

    scan_id: str
    category: str
    timestamp: datetime
    synced: bool
    score: float
    level: str
    ingredient_count: int

    model_config = {"from_attributes": True}


class AnalysisPage(BaseModel):
    items: List[AnalysisSummary]
    limit: int
    offset: int
    next_before: Optional[datetime] = Field(
        None, description="Cursor for the next page, pass as 'before'"
    )
    next_before_id: Optional[str] = Field(
        None, description="Scan id paired with next_before, pass as 'before_id'"
    )


class AdditiveListRequest(BaseModel):
    """Schema for analyzing a plain list of ingredient names"""

    ingredients: List[str] = Field(..., min_length=1)
    category: ProductCategory = ProductCategory.FOOD


class ConnectivityUpdate(BaseModel):
    online: bool


class SyncReport(BaseModel):
    """Outcome of one sync queue replay"""

    attempted: int = 0
    synced: int = 0
    failed: int = 0
    dropped: int = 0
    remaining: int = 0
    skipped_reason: Optional[str] = None


class SyncStatus(BaseModel):
    online: bool
    pending: int
    endpoint_configured: bool
    max_retries: int


class SweepReport(BaseModel):
    """Records removed per collection by one retention sweep"""

    ran: bool
    swept_at: Optional[datetime] = None
    deleted: Dict[str, int] = Field(default_factory=dict)


class CollectionStats(BaseModel):
    total: int
    expired: int
    retention_days: Optional[float] = None


class StorageStats(BaseModel):
    collections: Dict[str, CollectionStats]
    last_cleanup: Optional[datetime] = None
    next_cleanup: Optional[datetime] = None


class RetentionPolicy(BaseModel):
    collection: Collection
    max_age_days: Optional[float] = Field(None, description="None means never expire")


class RetentionUpdate(BaseModel):
    max_age_days: Optional[float] = Field(
        ..., description="Positive number of days, or null to never expire"
    )
