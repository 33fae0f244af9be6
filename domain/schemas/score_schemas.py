from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any

from domain.enums import (
    ScoreLevel,
    WarningSeverity,
    WarningKind,
    RecommendationType,
)
from domain.schemas.ingredient_schemas import Ingredient


class ScoreWarning(BaseModel):
    """Single ranked warning of a score result"""

    message: str
    severity: WarningSeverity
    kind: WarningKind = WarningKind.GENERAL
    ingredient: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class IngredientScore(BaseModel):
    """Per-ingredient scoring detail"""

    ingredient: Ingredient
    base_score: float
    adjusted_score: float
    factors: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[ScoreWarning] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class TopConcern(BaseModel):
    ingredient: str
    score: float
    main_concern: str

    model_config = ConfigDict(frozen=True)


class ScoreBreakdown(BaseModel):
    """Distribution and averages behind an aggregate score"""

    category: str
    total_ingredients: int = 0
    known_ingredients: int = 0
    average_base_score: float = 0.0
    average_adjusted_score: float = 0.0
    score_distribution: Dict[str, int] = Field(
        default_factory=lambda: {level.value: 0 for level in ScoreLevel if level != ScoreLevel.UNKNOWN}
    )
    top_concerns: List[TopConcern] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class AdditiveRef(BaseModel):
    """Short reference to a knowledge base additive"""

    code: str
    name: str
    issue: Optional[str] = None
    controversies: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class SafetyBreakdown(BaseModel):
    safe: int = 0
    moderate: int = 0
    concerning: int = 0


class AdditiveSummary(BaseModel):
    total_additives: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    safety_breakdown: SafetyBreakdown = Field(default_factory=SafetyBreakdown)
    regulatory_issues: List[AdditiveRef] = Field(default_factory=list)
    controversial_additives: List[AdditiveRef] = Field(default_factory=list)
    banned_additives: List[AdditiveRef] = Field(default_factory=list)


class Recommendation(BaseModel):
    type: RecommendationType
    title: str
    message: str

    model_config = ConfigDict(frozen=True)


class AdditiveAnalysis(BaseModel):
    """Additive-level view over an ingredient list"""

    enhanced_ingredients: List[Ingredient] = Field(default_factory=list)
    additive_summary: AdditiveSummary = Field(default_factory=AdditiveSummary)
    recommendations: List[Recommendation] = Field(default_factory=list)
    overall_additive_score: int = 100


class ScoreResult(BaseModel):
    """Safety verdict for one product"""

    score: float = Field(..., ge=0, le=100)
    level: ScoreLevel
    description: str
    warnings: List[ScoreWarning] = Field(default_factory=list)
    breakdown: Optional[ScoreBreakdown] = None
    additive_analysis: AdditiveAnalysis = Field(default_factory=AdditiveAnalysis)
    ingredient_scores: List[IngredientScore] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def warning_messages(self) -> List[str]:
        return [w.message for w in self.warnings]
