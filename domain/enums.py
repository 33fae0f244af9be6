"""
Domain enums for LabelIQ.
Contains all enumeration types used across the domain models and services.
"""

import enum


class ProductCategory(str, enum.Enum):
    """Kind of product a label belongs to"""

    FOOD = "food"
    COSMETIC = "cosmetic"
    HOUSEHOLD = "household"


class HazardLevel(str, enum.Enum):
    """Coarse safety bucket of a single ingredient"""

    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    DANGER = "danger"


class ScoreLevel(str, enum.Enum):
    """Tier label of an aggregate safety score"""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DANGER = "danger"
    UNKNOWN = "unknown"


class SafetyTier(str, enum.Enum):
    """Additive safety buckets used by the additive analysis"""

    SAFE = "safe"
    MODERATE = "moderate"
    CONCERNING = "concerning"


class WarningSeverity(str, enum.Enum):
    """Severity of a score warning, most severe first"""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class WarningKind(str, enum.Enum):
    """What a score warning is about"""

    ALLERGEN = "allergen"
    BANNED_ADDITIVE = "banned_additive"
    HAZARD = "hazard"
    SENSITIVITY = "sensitivity"
    REGULATORY = "regulatory"
    CONTROVERSY = "controversy"
    HEALTH_CONCERN = "health_concern"
    ADDITIVE_COUNT = "additive_count"
    UNKNOWN_INGREDIENT = "unknown_ingredient"
    RECOMMENDATION = "recommendation"
    GENERAL = "general"


class RecommendationType(str, enum.Enum):
    """Additive recommendation types, most severe first"""

    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class RiskLevel(str, enum.Enum):
    """Coarse risk estimate of the local expert analysis"""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class Capability(str, enum.Enum):
    """Enrichment capabilities served by the source orchestrator"""

    INGREDIENT_BASICS = "ingredient_basics"
    SAFETY_DATA = "safety_data"
    EXPERT_ANALYSIS = "expert_analysis"
    RESEARCH = "research"
    ALTERNATIVES = "alternatives"


class ResolutionStatus(str, enum.Enum):
    """How an orchestrator request was answered"""

    RESOLVED = "resolved"
    FALLBACK = "fallback"
    UNRESOLVED = "unresolved"


class AttemptOutcome(str, enum.Enum):
    """Outcome of one source attempt inside a failover chain"""

    SUCCESS = "success"
    LOW_CONFIDENCE = "low_confidence"
    ERROR = "error"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"


class Collection(str, enum.Enum):
    """Logical collections of the persistent store"""

    SCAN_RESULTS = "scan_results"
    SYNC_QUEUE = "sync_queue"
    KNOWLEDGE_CACHE = "knowledge_cache"
    PROFILE_SETTINGS = "profile_settings"


class SyncItemType(str, enum.Enum):
    """Kinds of offline writes queued for replay"""

    SCAN_RESULT = "scan_result"
    PROFILE = "profile"
