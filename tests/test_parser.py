"""
Tests for the ingredient parser.

Covers:
- Section extraction (ingredient markers, allergen and nutrition noise)
- Fragment splitting and first-seen deduplication
- Lookup order: knowledge base additives, reference ingredients, extra lookups
- Unknown ingredients and garbled input
"""

import pytest

from app.exceptions import ParseFailure, StorageError
from domain.enums import HazardLevel
from services import IngredientParser
from test_fixtures import KB, LABELS, make_ingredient, parser


# =============================================================================
# SECTION EXTRACTION
# =============================================================================


def test_parse_plain_comma_list(parser: IngredientParser):
    """
    Verifies:
    - A marker-less comma list is treated as the ingredient section
    - Order of first appearance is preserved
    - Red 40 resolves to the E129 additive
    """
    ingredients = parser.parse(LABELS["soda"], "food")

    assert [i.name for i in ingredients] == ["Water", "Sugar", "Allura Red AC", "Citric Acid"]
    red = ingredients[2]
    assert red.id == "E129"
    assert red.is_additive is True
    assert red.knowledge is not None
    assert red.knowledge.has_regulatory_difference
    assert red.raw_text == "Red 40"


def test_parse_label_with_marker_and_noise(parser: IngredientParser):
    """
    Verifies:
    - Text before the ingredients marker (nutrition facts) is ignored
    - The allergen statement ends the section
    - Bracketed qualifiers are stripped before lookup
    """
    ingredients = parser.parse(LABELS["snack"], "food")
    names = [i.name for i in ingredients]

    assert names == [
        "Wheat Flour",
        "Sugar",
        "Vegetable Oil",
        "Sodium Chloride",
        "Sodium Benzoate",
        "Tartrazine",
    ]
    assert "Milk" not in names
    assert all(i.is_known for i in ingredients)


def test_parse_cosmetic_synonyms(parser: IngredientParser):
    """Aqua, SLS, parfum and methylparaben resolve through reference synonyms"""
    ingredients = parser.parse(LABELS["shampoo"], "cosmetic")

    assert [i.id for i in ingredients] == ["water", "sulfates", "fragrance", "parabens"]


def test_extract_section_raises_parse_failure_on_empty_marker(parser: IngredientParser):
    with pytest.raises(ParseFailure):
        parser.extract_section("Ingredients:")


def test_contains_percentage_does_not_end_section(parser: IngredientParser):
    """'Contains 2% or less of' is part of the list, not an allergen statement"""
    text = "Ingredients: Water, Sugar. Contains 2% or less of Citric Acid, Sodium Benzoate."
    names = [i.name for i in parser.parse(text)]

    assert "Citric Acid" in names
    assert "Sodium Benzoate" in names


# =============================================================================
# DEDUPLICATION AND EDGE CASES
# =============================================================================


def test_parse_deduplicates_by_normalized_name(parser: IngredientParser):
    """Water, Aqua and water collapse into one ingredient"""
    ingredients = parser.parse("Water, Aqua, water, Sugar")

    assert [i.name for i in ingredients] == ["Water", "Sugar"]
    keys = [i.normalized_name for i in ingredients]
    assert len(keys) == len(set(keys))


@pytest.mark.parametrize(
    "text",
    ["", "   ", "!!!@@@###", "Nutrition Facts\nCalories 250\nProtein 3g", None],
)
def test_parse_empty_or_garbled_returns_empty_list(parser: IngredientParser, text):
    assert parser.parse(text) == []


def test_bare_line_needs_marker_separator_or_base_token(parser: IngredientParser):
    """
    Verifies:
    - A lone unmarked line without a separator or base token is not a list
    - The same name after an ingredients marker is parsed
    - A base ingredient token alone is enough
    """
    assert parser.parse("Red 40") == []
    assert [i.id for i in parser.parse("Ingredients: Red 40")] == ["E129"]
    assert len(parser.parse("Citric Acid")) == 1


def test_unknown_ingredient_gets_neutral_defaults(parser: IngredientParser):
    """
    Verifies:
    - Unknown fragments become unknown_<slug> ingredients
    - Neutral safety score 50 and no hazard level
    """
    ingredients = parser.parse("Water, Zorblax Extract")
    unknown = ingredients[1]

    assert unknown.id == "unknown_zorblax_extract"
    assert unknown.name == "Zorblax Extract"
    assert unknown.is_known is False
    assert unknown.safety_score == 50
    assert unknown.hazard_level is None


def test_numbers_are_kept_for_numbered_additives(parser: IngredientParser):
    """Polysorbate 80 is an additive name; dropping the number would lose it"""
    ingredients = parser.parse("Polysorbate 80, Water")

    assert ingredients[0].id == "E433"


def test_additive_hazard_follows_effective_score(parser: IngredientParser):
    red = parser.parse("Ingredients: Red 40")[0]

    assert red.safety_score == KB.effective_score(red.knowledge)
    assert red.hazard_level == HazardLevel.DANGER


# =============================================================================
# EXTRA LOOKUPS
# =============================================================================


def test_extra_lookup_resolves_after_knowledge_base():
    """
    Verifies:
    - Extra lookups are consulted for names the knowledge base does not know
    - The product category is forwarded
    - Knowledge base matches never reach the extra lookup
    """
    seen = []

    def lookup(name, category):
        seen.append((name, category))
        if name == "zorblax extract":
            return make_ingredient("Zorblax Extract", 65, HazardLevel.LOW, "botanical", True)
        return None

    parser = IngredientParser(KB, extra_lookups=[lookup])
    ingredients = parser.parse("Water, Zorblax Extract", "cosmetic")

    assert ingredients[1].is_known is True
    assert ingredients[1].category == "botanical"
    assert ingredients[1].raw_text == "Zorblax Extract"
    assert ("zorblax extract", "cosmetic") in seen
    assert all(name != "water" for name, _ in seen)


def test_failing_extra_lookup_is_skipped():
    """A storage failure in an extra lookup leaves the ingredient unknown"""

    def broken(name, category):
        raise StorageError("cache offline")

    parser = IngredientParser(KB, extra_lookups=[broken])
    ingredients = parser.parse("Ingredients: Zorblax Extract")

    assert len(ingredients) == 1
    assert ingredients[0].is_known is False
