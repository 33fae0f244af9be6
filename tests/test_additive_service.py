"""
Tests for the additive analysis service.

Covers:
- Safety tiers on effective scores
- Regulatory, controversial and banned lists
- Recommendation rules and their ordering
"""

import pytest

from domain.enums import RecommendationType, SafetyTier
from domain.schemas.ingredient_schemas import KnowledgeEntry, RegulatoryStatus
from domain.schemas.score_schemas import AdditiveSummary, SafetyBreakdown
from services import AdditiveAnalysisService, KnowledgeBase
from services.additive_service import safety_tier
from test_fixtures import KB, make_ingredient, parser


@pytest.fixture
def additives() -> AdditiveAnalysisService:
    return AdditiveAnalysisService(KB)


@pytest.mark.parametrize(
    "score,tier",
    [(100, SafetyTier.SAFE), (70, SafetyTier.SAFE), (69, SafetyTier.MODERATE), (40, SafetyTier.MODERATE), (39, SafetyTier.CONCERNING)],
)
def test_safety_tier_boundaries(score, tier):
    assert safety_tier(score) == tier


def test_empty_list_has_no_additives(additives: AdditiveAnalysisService):
    analysis = additives.analyze_list([])

    assert analysis.overall_additive_score == 100
    assert analysis.additive_summary.total_additives == 0
    assert analysis.recommendations == []


def test_soda_additive_analysis(additives: AdditiveAnalysisService, parser):
    """
    Verifies:
    - Only knowledge base additives are counted
    - Red 40 is concerning and carries a regulatory issue
    - The overall score averages effective scores
    - Recommendations are ordered danger, warning, info
    """
    analysis = additives.analyze_list(parser.parse("Water, Sugar, Red 40, Citric Acid"))
    summary = analysis.additive_summary

    assert summary.total_additives == 1
    assert summary.by_category == {"coloring": 1}
    assert summary.safety_breakdown.concerning == 1
    assert [r.code for r in summary.regulatory_issues] == ["E129"]
    assert summary.regulatory_issues[0].issue == "Banned in US"
    assert [c.code for c in summary.controversial_additives] == ["E129"]
    assert analysis.overall_additive_score == 0

    types = [r.type for r in analysis.recommendations]
    assert types == [RecommendationType.DANGER, RecommendationType.WARNING, RecommendationType.INFO]


def test_eu_ban_is_reported(additives: AdditiveAnalysisService, parser):
    analysis = additives.analyze_list(parser.parse("Ingredients: Titanium Dioxide"))

    assert analysis.additive_summary.regulatory_issues[0].issue == "Banned in EU"


def test_duplicate_additives_counted_once(additives: AdditiveAnalysisService):
    """Two ingredients resolving to the same code count once but both are enhanced"""
    ingredients = [make_ingredient("MSG"), make_ingredient("Monosodium Glutamate")]
    analysis = additives.analyze_list(ingredients)

    assert analysis.additive_summary.total_additives == 1
    assert all(i.knowledge is not None for i in analysis.enhanced_ingredients)
    assert all(i.is_additive for i in analysis.enhanced_ingredients)


def test_enhance_uses_effective_score(additives: AdditiveAnalysisService):
    enhanced = additives.analyze_list([make_ingredient("Red 40")]).enhanced_ingredients[0]

    assert enhanced.safety_score == 0
    assert enhanced.is_known is True
    assert enhanced.category == "coloring"


def test_clean_additives_get_success_recommendation(additives: AdditiveAnalysisService):
    analysis = additives.analyze_list([make_ingredient("Ascorbic Acid"), make_ingredient("Guar Gum")])

    assert analysis.overall_additive_score >= 80
    assert [r.type for r in analysis.recommendations] == [RecommendationType.SUCCESS]
    assert analysis.recommendations[0].title == "Good Additive Profile"


def test_no_additives_recommendation(additives: AdditiveAnalysisService):
    analysis = additives.analyze_list([make_ingredient("Zorblax Extract")])

    assert analysis.additive_summary.total_additives == 0
    assert analysis.recommendations[0].title == "No Additives Detected"


def test_banned_everywhere_recommendation():
    entry = KnowledgeEntry(
        code="X1",
        name="Forbidden Dye",
        category="coloring",
        safety_score=60,
        regulatory_status={"eu": RegulatoryStatus(approved=False), "us": RegulatoryStatus(approved=False)},
    )
    service = AdditiveAnalysisService(KnowledgeBase([entry]))
    analysis = service.analyze_list([make_ingredient("Forbidden Dye")])

    assert [b.code for b in analysis.additive_summary.banned_additives] == ["X1"]
    assert analysis.additive_summary.regulatory_issues == []
    assert any(r.title == "Banned Additives" for r in analysis.recommendations)


def test_highly_processed_recommendation():
    summary = AdditiveSummary(total_additives=11, safety_breakdown=SafetyBreakdown(safe=11))
    recs = AdditiveAnalysisService.recommendations(summary, overall=85)

    assert recs[0].title == "Highly Processed"
    assert recs[-1].type == RecommendationType.SUCCESS
