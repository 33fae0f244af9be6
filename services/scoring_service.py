"""
Score engine - turns an ingredient list into a single 0-100 safety verdict.
"""

from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging

from domain.enums import HazardLevel, ProductCategory, ScoreLevel, WarningKind, WarningSeverity
from domain.schemas.ingredient_schemas import Ingredient
from domain.schemas.profile_schemas import ProfileCondition, UserProfile
from domain.schemas.score_schemas import (
    AdditiveAnalysis,
    IngredientScore,
    ScoreBreakdown,
    ScoreResult,
    ScoreWarning,
    TopConcern,
)
from services.additive_service import AdditiveAnalysisService

logger = logging.getLogger("labeliq.scoring")

EMPTY_SCORE = 50.0
DEFAULT_INGREDIENT_SCORE = 50.0
MAX_WARNINGS = 8
TOP_CONCERNS = 3

HAZARD_MULTIPLIERS = {
    HazardLevel.SAFE: 1.0,
    HazardLevel.LOW: 0.9,
    HazardLevel.MEDIUM: 0.7,
    HazardLevel.HIGH: 0.4,
    HazardLevel.DANGER: 0.1,
}
ALLERGY_MULTIPLIER = 0.09
SENSITIVITY_MULTIPLIER = 0.6
UNKNOWN_MULTIPLIER = 0.8

# Matched against the ingredient category with underscores read as spaces
CATEGORY_CONCERNS: Dict[ProductCategory, Tuple[Tuple[str, float], ...]] = {
    ProductCategory.FOOD: (
        ("preservative", 0.9),
        ("artificial color", 0.8),
        ("coloring", 0.8),
        ("flavor enhancer", 0.85),
        ("sweetener", 0.9),
    ),
    ProductCategory.COSMETIC: (
        ("fragrance", 0.7),
        ("preservative", 0.8),
        ("colorant", 0.85),
        ("surfactant", 0.9),
    ),
    ProductCategory.HOUSEHOLD: (
        ("surfactant", 0.6),
        ("solvent", 0.5),
        ("bleach", 0.4),
        ("acid", 0.6),
    ),
}

PRODUCT_MULTIPLIERS = {
    ProductCategory.FOOD: 1.0,
    ProductCategory.COSMETIC: 0.95,
    ProductCategory.HOUSEHOLD: 0.9,
}

MANY_ADDITIVES = 10
SEVERAL_ADDITIVES = 5
CONCERNING_STEP = 0.1
CONCERNING_FLOOR = 0.6
BANNED_MULTIPLIER = 0.5
REGULATORY_MULTIPLIER = 0.8

_LEVEL_FLOORS = (
    (80, ScoreLevel.EXCELLENT),
    (60, ScoreLevel.GOOD),
    (40, ScoreLevel.FAIR),
    (20, ScoreLevel.POOR),
)

_SEVERITY_RANK = {
    WarningSeverity.CRITICAL: 0,
    WarningSeverity.HIGH: 1,
    WarningSeverity.MEDIUM: 2,
    WarningSeverity.LOW: 3,
    WarningSeverity.INFO: 4,
}
_PRIORITY_KINDS = {WarningKind.ALLERGEN, WarningKind.BANNED_ADDITIVE}

_PRODUCT_NOUNS = {
    ProductCategory.FOOD: "food product",
    ProductCategory.COSMETIC: "cosmetic",
    ProductCategory.HOUSEHOLD: "household product",
}

_DESCRIPTIONS = {
    ScoreLevel.EXCELLENT: "This {noun} contains ingredients that are generally considered safe.",
    ScoreLevel.GOOD: "This {noun} is mostly made of safe ingredients with a few minor concerns.",
    ScoreLevel.FAIR: "This {noun} contains some ingredients worth reviewing before use.",
    ScoreLevel.POOR: "This {noun} contains several ingredients of concern.",
    ScoreLevel.DANGER: "This {noun} contains ingredients with serious safety concerns. Consider an alternative.",
    ScoreLevel.UNKNOWN: "No ingredients could be identified on this label.",
}

if set(HAZARD_MULTIPLIERS) != set(HazardLevel):
    raise RuntimeError("Every hazard level needs a multiplier")
if not set(CATEGORY_CONCERNS) == set(PRODUCT_MULTIPLIERS) == set(_PRODUCT_NOUNS) == set(ProductCategory):
    raise RuntimeError("Every product category needs concerns, a multiplier and a noun")
if set(_DESCRIPTIONS) != set(ScoreLevel):
    raise RuntimeError("Every score level needs a description")


def level_for_score(score: float) -> ScoreLevel:
    for floor, level in _LEVEL_FLOORS:
        if score >= floor:
            return level
    return ScoreLevel.DANGER


def describe(level: ScoreLevel, category: ProductCategory) -> str:
    return _DESCRIPTIONS[level].format(noun=_PRODUCT_NOUNS[category])


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _terms(values: Iterable[Optional[str]]) -> List[str]:
    return [v.strip().lower() for v in values if v and v.strip()]


def matches_condition(ingredient: Ingredient, condition: ProfileCondition) -> bool:
    """Bidirectional case-insensitive substring match over names and synonyms"""
    ingredient_terms = _terms([ingredient.name, ingredient.normalized_name, *ingredient.synonyms])
    condition_terms = _terms([condition.name, *condition.synonyms])
    return any(c in i or i in c for i in ingredient_terms for c in condition_terms)


def category_multiplier(ingredient_category: str, product: ProductCategory) -> Tuple[Optional[str], float]:
    text = (ingredient_category or "").replace("_", " ").lower()
    for concern, multiplier in CATEGORY_CONCERNS[product]:
        if concern in text:
            return concern, multiplier
    return None, 1.0


def rank_warnings(warnings: Iterable[ScoreWarning], limit: int = MAX_WARNINGS) -> List[ScoreWarning]:
    """Dedupe by message, put allergen and banned alerts first, then order by severity"""
    unique: Dict[str, ScoreWarning] = {}
    for warning in warnings:
        unique.setdefault(warning.message, warning)
    ordered = sorted(
        unique.values(),
        key=lambda w: (0 if w.kind in _PRIORITY_KINDS else 1, _SEVERITY_RANK[w.severity]),
    )
    return ordered[:limit]


class ScoreEngine:
    """Combines per-ingredient hazards, the user profile and additive analysis into a verdict"""

    def __init__(self, additive_service: AdditiveAnalysisService):
        self.additives = additive_service

    def score(
        self,
        ingredients: List[Ingredient],
        category: Union[ProductCategory, str] = ProductCategory.FOOD,
        profile: Optional[UserProfile] = None,
    ) -> ScoreResult:
        """
        Score a parsed ingredient list.

        Args:
            ingredients: Parsed, possibly enriched ingredients
            category: Product category of the label
            profile: Allergies and sensitivities of the user, if any

        Returns:
            ScoreResult with level, ranked warnings and breakdown
        """
        category = ProductCategory(category)
        profile = profile or UserProfile()

        if not ingredients:
            return ScoreResult(
                score=EMPTY_SCORE,
                level=ScoreLevel.UNKNOWN,
                description=describe(ScoreLevel.UNKNOWN, category),
                breakdown=ScoreBreakdown(category=category.value),
                additive_analysis=self.additives.empty_analysis(),
            )

        analysis = self.additives.analyze_list(ingredients)
        scored = [self.score_ingredient(i, category, profile) for i in analysis.enhanced_ingredients]

        mean = sum(s.adjusted_score for s in scored) / len(scored)
        total = _clamp(self._aggregate(mean, analysis, category))
        total = round(total, 1)
        level = level_for_score(total)

        warnings: List[ScoreWarning] = [w for s in scored for w in s.warnings]
        warnings.extend(self._product_warnings(scored, analysis))

        logger.debug(f"Scored {len(scored)} ingredients ({category.value}): mean={mean:.1f} total={total}")

        return ScoreResult(
            score=total,
            level=level,
            description=describe(level, category),
            warnings=rank_warnings(warnings),
            breakdown=self._breakdown(scored, category),
            additive_analysis=analysis,
            ingredient_scores=scored,
        )

    def score_ingredient(
        self, ingredient: Ingredient, category: ProductCategory, profile: UserProfile
    ) -> IngredientScore:
        base = float(ingredient.safety_score) if ingredient.safety_score is not None else DEFAULT_INGREDIENT_SCORE
        adjusted = base
        factors: Dict[str, float] = {}
        warnings: List[ScoreWarning] = []

        if ingredient.hazard_level is not None:
            factors["hazard"] = HAZARD_MULTIPLIERS[ingredient.hazard_level]
            adjusted *= factors["hazard"]
            if ingredient.hazard_level in (HazardLevel.HIGH, HazardLevel.DANGER):
                warnings.append(
                    ScoreWarning(
                        message=f"{ingredient.name} has a {ingredient.hazard_level.value} hazard rating",
                        severity=WarningSeverity.HIGH,
                        kind=WarningKind.HAZARD,
                        ingredient=ingredient.name,
                    )
                )

        allergy = next((c for c in profile.allergies if matches_condition(ingredient, c)), None)
        if allergy is not None:
            factors["allergy"] = ALLERGY_MULTIPLIER
            adjusted *= ALLERGY_MULTIPLIER
            warnings.append(
                ScoreWarning(
                    message=f"Contains {ingredient.name}, which matches your allergy to {allergy.name}",
                    severity=WarningSeverity.CRITICAL,
                    kind=WarningKind.ALLERGEN,
                    ingredient=ingredient.name,
                )
            )

        sensitivity = next((c for c in profile.sensitivities if matches_condition(ingredient, c)), None)
        if sensitivity is not None:
            factors["sensitivity"] = SENSITIVITY_MULTIPLIER
            adjusted *= SENSITIVITY_MULTIPLIER
            warnings.append(
                ScoreWarning(
                    message=f"Contains {ingredient.name}, which you are sensitive to ({sensitivity.name})",
                    severity=WarningSeverity.MEDIUM,
                    kind=WarningKind.SENSITIVITY,
                    ingredient=ingredient.name,
                )
            )

        concern, multiplier = category_multiplier(ingredient.category, category)
        if concern is not None:
            factors[f"category:{concern}"] = multiplier
            adjusted *= multiplier

        if not ingredient.is_known:
            factors["unknown"] = UNKNOWN_MULTIPLIER
            adjusted *= UNKNOWN_MULTIPLIER

        if ingredient.knowledge is not None:
            warnings.extend(self._additive_warnings(ingredient))

        return IngredientScore(
            ingredient=ingredient,
            base_score=base,
            adjusted_score=round(_clamp(adjusted), 2),
            factors=factors,
            warnings=warnings,
        )

    @staticmethod
    def _additive_warnings(ingredient: Ingredient) -> List[ScoreWarning]:
        entry = ingredient.knowledge
        label = f"{entry.name} ({entry.code})"
        warnings = []

        if entry.banned_everywhere:
            warnings.append(
                ScoreWarning(
                    message=f"{label} is not approved in any tracked jurisdiction",
                    severity=WarningSeverity.CRITICAL,
                    kind=WarningKind.BANNED_ADDITIVE,
                    ingredient=ingredient.name,
                )
            )
        else:
            for jurisdiction, status in sorted(entry.regulatory_status.items()):
                if not status.approved:
                    warnings.append(
                        ScoreWarning(
                            message=f"{label} is banned in the {jurisdiction.upper()}",
                            severity=WarningSeverity.HIGH,
                            kind=WarningKind.REGULATORY,
                            ingredient=ingredient.name,
                        )
                    )

        if entry.controversies:
            warnings.append(
                ScoreWarning(
                    message=f"{label}: {entry.controversies[0]}",
                    severity=WarningSeverity.LOW,
                    kind=WarningKind.CONTROVERSY,
                    ingredient=ingredient.name,
                )
            )

        for concern in entry.health_concerns[:2]:
            warnings.append(
                ScoreWarning(
                    message=f"{label} may be linked to {concern.lower()}",
                    severity=WarningSeverity.MEDIUM,
                    kind=WarningKind.HEALTH_CONCERN,
                    ingredient=ingredient.name,
                )
            )
        return warnings

    @staticmethod
    def _aggregate(mean: float, analysis: AdditiveAnalysis, category: ProductCategory) -> float:
        summary = analysis.additive_summary
        total = mean

        if summary.total_additives > MANY_ADDITIVES:
            total *= 0.9
        elif summary.total_additives > SEVERAL_ADDITIVES:
            total *= 0.95

        concerning = summary.safety_breakdown.concerning
        if concerning:
            total *= max(CONCERNING_FLOOR, 1 - CONCERNING_STEP * concerning)
        if summary.banned_additives:
            total *= BANNED_MULTIPLIER
        if summary.regulatory_issues:
            total *= REGULATORY_MULTIPLIER

        return total * PRODUCT_MULTIPLIERS[category]

    @staticmethod
    def _product_warnings(scored: List[IngredientScore], analysis: AdditiveAnalysis) -> List[ScoreWarning]:
        warnings = []
        total_additives = analysis.additive_summary.total_additives
        if total_additives > MANY_ADDITIVES:
            warnings.append(
                ScoreWarning(
                    message=f"Contains {total_additives} additives, which suggests heavy processing",
                    severity=WarningSeverity.MEDIUM,
                    kind=WarningKind.ADDITIVE_COUNT,
                )
            )

        unknown = [s.ingredient.name for s in scored if not s.ingredient.is_known]
        if unknown:
            warnings.append(
                ScoreWarning(
                    message=f"{len(unknown)} ingredient(s) could not be identified: {', '.join(unknown[:3])}",
                    severity=WarningSeverity.INFO,
                    kind=WarningKind.UNKNOWN_INGREDIENT,
                )
            )
        return warnings

    @staticmethod
    def main_concern(scored: IngredientScore) -> str:
        if "allergy" in scored.factors:
            return "Listed allergen"
        if scored.ingredient.hazard_level in (HazardLevel.HIGH, HazardLevel.DANGER):
            return "High hazard rating"
        if "sensitivity" in scored.factors:
            return "Listed sensitivity"
        if not scored.ingredient.is_known:
            return "Unidentified ingredient"
        return "General safety profile"

    def _breakdown(self, scored: List[IngredientScore], category: ProductCategory) -> ScoreBreakdown:
        distribution = {level.value: 0 for level in ScoreLevel if level != ScoreLevel.UNKNOWN}
        for s in scored:
            distribution[level_for_score(s.adjusted_score).value] += 1

        lowest = sorted(scored, key=lambda s: s.adjusted_score)[:TOP_CONCERNS]
        return ScoreBreakdown(
            category=category.value,
            total_ingredients=len(scored),
            known_ingredients=sum(1 for s in scored if s.ingredient.is_known),
            average_base_score=round(sum(s.base_score for s in scored) / len(scored), 2),
            average_adjusted_score=round(sum(s.adjusted_score for s in scored) / len(scored), 2),
            score_distribution=distribution,
            top_concerns=[
                TopConcern(ingredient=s.ingredient.name, score=s.adjusted_score, main_concern=self.main_concern(s))
                for s in lowest
            ],
        )
