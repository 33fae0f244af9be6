from typing import List, Dict, Optional
import logging

from domain.enums import SafetyTier, RecommendationType
from domain.schemas.ingredient_schemas import Ingredient, KnowledgeEntry
from domain.schemas.score_schemas import (
    AdditiveAnalysis,
    AdditiveSummary,
    AdditiveRef,
    SafetyBreakdown,
    Recommendation,
)
from services.knowledge_base import KnowledgeBase, hazard_for_score

logger = logging.getLogger("labeliq.additives")

SAFE_TIER_FLOOR = 70
MODERATE_TIER_FLOOR = 40
MANY_ADDITIVES = 10
GOOD_OVERALL_SCORE = 80

_RECOMMENDATION_ORDER = {
    RecommendationType.DANGER: 0,
    RecommendationType.WARNING: 1,
    RecommendationType.INFO: 2,
    RecommendationType.SUCCESS: 3,
}


def safety_tier(score: float) -> SafetyTier:
    if score >= SAFE_TIER_FLOOR:
        return SafetyTier.SAFE
    if score >= MODERATE_TIER_FLOOR:
        return SafetyTier.MODERATE
    return SafetyTier.CONCERNING


class AdditiveAnalysisService:
    """Additive-level analysis of an ingredient list against the knowledge base"""

    def __init__(self, knowledge_base: KnowledgeBase):
        self.kb = knowledge_base

    def resolve(self, ingredient: Ingredient) -> Optional[KnowledgeEntry]:
        """Find the knowledge base entry behind an ingredient, if any"""
        if ingredient.knowledge is not None:
            return ingredient.knowledge
        for candidate in (ingredient.name, ingredient.normalized_name, ingredient.id, *ingredient.synonyms):
            entry = self.kb.lookup(candidate)
            if entry:
                return entry
        return None

    def enhance(self, ingredient: Ingredient, entry: KnowledgeEntry) -> Ingredient:
        """Return a copy of the ingredient carrying the entry and its effective score"""
        score = self.kb.effective_score(entry)
        return ingredient.model_copy(
            update={
                "knowledge": entry,
                "is_known": True,
                "is_additive": True,
                "safety_score": score,
                "hazard_level": hazard_for_score(score),
                "category": entry.category,
            }
        )

    @staticmethod
    def empty_analysis(ingredients: Optional[List[Ingredient]] = None) -> AdditiveAnalysis:
        return AdditiveAnalysis(
            enhanced_ingredients=list(ingredients or []),
            additive_summary=AdditiveSummary(),
            recommendations=[],
            overall_additive_score=100,
        )

    def analyze_list(self, ingredients: List[Ingredient]) -> AdditiveAnalysis:
        """
        Analyze an ingredient list for additive concerns.

        Every ingredient that resolves against the knowledge base is enhanced
        with its entry and effective score; the rest pass through unchanged.
        Tiers and the overall additive score use the effective score.

        Args:
            ingredients: Parsed (and possibly enriched) ingredients

        Returns:
            AdditiveAnalysis with enhanced ingredients, summary and recommendations
        """
        if not ingredients:
            return self.empty_analysis()

        enhanced: List[Ingredient] = []
        by_category: Dict[str, int] = {}
        breakdown = SafetyBreakdown()
        regulatory_issues: List[AdditiveRef] = []
        controversial: List[AdditiveRef] = []
        banned: List[AdditiveRef] = []
        effective_scores: List[int] = []
        seen_codes = set()

        for ingredient in ingredients:
            entry = self.resolve(ingredient)
            if entry is None:
                enhanced.append(ingredient)
                continue

            enhanced.append(self.enhance(ingredient, entry))
            if entry.code in seen_codes:
                continue
            seen_codes.add(entry.code)

            score = self.kb.effective_score(entry)
            effective_scores.append(score)
            by_category[entry.category] = by_category.get(entry.category, 0) + 1

            tier = safety_tier(score)
            if tier == SafetyTier.SAFE:
                breakdown.safe += 1
            elif tier == SafetyTier.MODERATE:
                breakdown.moderate += 1
            else:
                breakdown.concerning += 1

            if entry.banned_everywhere:
                banned.append(AdditiveRef(code=entry.code, name=entry.name, issue="Not approved in any jurisdiction"))
            elif entry.has_regulatory_difference:
                issue = "Banned in EU" if not entry.approved_in("eu") else "Banned in US"
                regulatory_issues.append(AdditiveRef(code=entry.code, name=entry.name, issue=issue))

            if entry.is_controversial:
                controversial.append(
                    AdditiveRef(code=entry.code, name=entry.name, controversies=list(entry.controversies))
                )

        overall = round(sum(effective_scores) / len(effective_scores)) if effective_scores else 100
        summary = AdditiveSummary(
            total_additives=len(effective_scores),
            by_category=by_category,
            safety_breakdown=breakdown,
            regulatory_issues=regulatory_issues,
            controversial_additives=controversial,
            banned_additives=banned,
        )

        logger.debug(
            f"Additive analysis: {summary.total_additives} additives, overall={overall}, "
            f"concerning={breakdown.concerning}"
        )

        return AdditiveAnalysis(
            enhanced_ingredients=enhanced,
            additive_summary=summary,
            recommendations=self.recommendations(summary, overall),
            overall_additive_score=overall,
        )

    @staticmethod
    def recommendations(summary: AdditiveSummary, overall: int) -> List[Recommendation]:
        """Apply the recommendation rule table, most severe first"""
        recs: List[Recommendation] = []
        breakdown = summary.safety_breakdown

        if breakdown.concerning > 0:
            recs.append(
                Recommendation(
                    type=RecommendationType.DANGER,
                    title="Concerning Additives Detected",
                    message=f"This product contains {breakdown.concerning} additive(s) with significant health concerns.",
                )
            )
        if summary.banned_additives:
            names = ", ".join(a.name for a in summary.banned_additives)
            recs.append(
                Recommendation(
                    type=RecommendationType.WARNING,
                    title="Banned Additives",
                    message=f"Contains additives not approved in any tracked jurisdiction: {names}.",
                )
            )
        if summary.total_additives > MANY_ADDITIVES:
            recs.append(
                Recommendation(
                    type=RecommendationType.WARNING,
                    title="Highly Processed",
                    message=f"Contains {summary.total_additives} additives, which suggests heavy processing.",
                )
            )
        if summary.regulatory_issues:
            recs.append(
                Recommendation(
                    type=RecommendationType.WARNING,
                    title="Regulatory Differences",
                    message=f"{len(summary.regulatory_issues)} additive(s) are banned in some regions but allowed in others.",
                )
            )
        if summary.controversial_additives:
            recs.append(
                Recommendation(
                    type=RecommendationType.INFO,
                    title="Controversial Additives",
                    message=f"{len(summary.controversial_additives)} additive(s) have ongoing safety debates.",
                )
            )
        if summary.total_additives == 0:
            recs.append(
                Recommendation(
                    type=RecommendationType.SUCCESS,
                    title="No Additives Detected",
                    message="No regulated additives were found in this product.",
                )
            )
        elif overall >= GOOD_OVERALL_SCORE:
            recs.append(
                Recommendation(
                    type=RecommendationType.SUCCESS,
                    title="Good Additive Profile",
                    message="The additives in this product are generally considered safe.",
                )
            )

        return sorted(recs, key=lambda r: _RECOMMENDATION_ORDER[r.type])
