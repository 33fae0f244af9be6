"""
Tests for the closed-enum dispatch tables.

Each table is checked for completeness when its module is imported; these
tests pin the same coverage so a new enum member without a table entry fails
here too.
"""

from domain.enums import (
    Capability,
    Collection,
    HazardLevel,
    ProductCategory,
    RiskLevel,
    ScoreLevel,
)
from services.analysis_service import RISK_SCORES
from services.local_analysis import LocalAnalysis
from services.orchestrator import FOLLOW_UP_CAPABILITIES, PRIMARY_CAPABILITIES
from services.scoring_service import CATEGORY_CONCERNS, HAZARD_MULTIPLIERS, PRODUCT_MULTIPLIERS, describe
from services.store_service import REPOSITORIES
from test_fixtures import KB


def test_every_enum_member_has_a_table_entry():
    assert set(HAZARD_MULTIPLIERS) == set(HazardLevel)
    assert set(CATEGORY_CONCERNS) == set(PRODUCT_MULTIPLIERS) == set(ProductCategory)
    assert set(RISK_SCORES) == set(RiskLevel)
    assert set(REPOSITORIES) == set(Collection)
    assert set(PRIMARY_CAPABILITIES) | set(FOLLOW_UP_CAPABILITIES) == set(Capability)


def test_every_score_level_has_a_description():
    for level in ScoreLevel:
        for category in ProductCategory:
            assert describe(level, category)


def test_local_fallback_handles_every_capability():
    fallback = LocalAnalysis(KB)

    for capability in Capability:
        fallback.fallback(capability, "Sodium Benzoate")
