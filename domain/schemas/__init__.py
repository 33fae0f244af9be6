"""
Domain schemas package - Pydantic models for validation.
"""

from domain.schemas.ingredient_schemas import (
    RegulatoryStatus,
    KnowledgeEntry,
    ReferenceIngredient,
    RegulatoryChange,
    EnrichmentSummary,
    Ingredient,
)
from domain.schemas.score_schemas import (
    ScoreWarning,
    IngredientScore,
    TopConcern,
    ScoreBreakdown,
    AdditiveRef,
    SafetyBreakdown,
    AdditiveSummary,
    Recommendation,
    AdditiveAnalysis,
    ScoreResult,
)
from domain.schemas.profile_schemas import ProfileCondition, UserProfile
from domain.schemas.intelligence_schemas import (
    SourceAttempt,
    Resolution,
    IngredientIntelligence,
    SourceHealth,
)
from domain.schemas.scan_schemas import (
    AnalyzeRequest,
    AnalysisResponse,
    AnalysisSummary,
    AnalysisPage,
    AdditiveListRequest,
    ConnectivityUpdate,
    SyncReport,
    SyncStatus,
    SweepReport,
    CollectionStats,
    StorageStats,
    RetentionPolicy,
    RetentionUpdate,
)

__all__ = [
    # Ingredient schemas
    "RegulatoryStatus",
    "KnowledgeEntry",
    "ReferenceIngredient",
    "RegulatoryChange",
    "EnrichmentSummary",
    "Ingredient",
    # Score schemas
    "ScoreWarning",
    "IngredientScore",
    "TopConcern",
    "ScoreBreakdown",
    "AdditiveRef",
    "SafetyBreakdown",
    "AdditiveSummary",
    "Recommendation",
    "AdditiveAnalysis",
    "ScoreResult",
    # Profile schemas
    "ProfileCondition",
    "UserProfile",
    # Intelligence schemas
    "SourceAttempt",
    "Resolution",
    "IngredientIntelligence",
    "SourceHealth",
    # Scan / storage schemas
    "AnalyzeRequest",
    "AnalysisResponse",
    "AnalysisSummary",
    "AnalysisPage",
    "AdditiveListRequest",
    "ConnectivityUpdate",
    "SyncReport",
    "SyncStatus",
    "SweepReport",
    "CollectionStats",
    "StorageStats",
    "RetentionPolicy",
    "RetentionUpdate",
]
