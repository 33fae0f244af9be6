"""
Ingredient parser - turns raw recognized label text into an ordered,
deduplicated list of candidate ingredients.
"""

from typing import Callable, Iterable, List, Optional
import logging
import re

from app.exceptions import LabelIQError, ParseFailure
from domain.schemas.ingredient_schemas import Ingredient
from services.knowledge_base import KnowledgeBase, normalize_name

logger = logging.getLogger("labeliq.parser")

ExtraLookup = Callable[[str, str], Optional[Ingredient]]

SEPARATORS = [",", ";", ":", "、", "，", "；", "\n", "."]
LINE_SEPARATORS = re.compile(r"[,;、，；]")
STOPWORDS = {"and", "or", "with", "contains", "may contain", "ingredients", "ingrédients", "inhaltsstoffe"}
MIN_FRAGMENT_LENGTH = 3

VARIANT_PREFIXES = ("sodium ", "calcium ", "potassium ", "mono", "di", "tri")
VARIANT_SUFFIXES = (" acid", " extract", " oil", " powder")

_CONTROL_CHARS = re.compile(r"[\x00-\x09\x0b-\x1f\x7f]")
_NOISE = re.compile(r"[^\w\s,;.:()\[\]%&'/\-、，；]")
_SPACES = re.compile(r"[ \t\u00a0]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")

INGREDIENT_MARKER = re.compile(
    r"\b(?:ingredients?|ingr[ée]dients?|inhaltsstoffe|ingredientes)\b\s*[:\-]?",
    re.IGNORECASE,
)
# Allergen disclosures start a line or a sentence; "contains 2% or less of" is not one.
ALLERGEN_MARKER = re.compile(
    r"(?:^|(?<=[.!]))[ \t]*(?:may\s+contain|contains|allergens?|allergy\s+advice)\b"
    r"(?!\s*(?:\d+(?:[.,]\d+)?\s*%|less\s+than))",
    re.IGNORECASE | re.MULTILINE,
)

NUTRITION_LINE = re.compile(
    r"\b(?:nutrition(?:al)?\s+(?:facts|information)|calories|kcal|kj|protein|"
    r"carbohydrates?|cholesterol|dietary\s+fib(?:er|re)|serving\s+size|daily\s+value|"
    r"(?:total\s+)?fat\s*\d|sugars?\s*\d|sodium\s*\d|per\s+100\s*(?:g|ml))\b"
    r"|\d+(?:[.,]\d+)?\s*(?:mg|g|kcal|%)(?:\s|$)",
    re.IGNORECASE,
)
STORAGE_LINE = re.compile(
    r"\b(?:store|keep\s+refrigerated|refrigerate|use\s+by|best\s+before|"
    r"consume\s+within|once\s+opened|keep\s+out\s+of\s+reach)\b",
    re.IGNORECASE,
)
BASE_INGREDIENT_TOKEN = re.compile(
    r"\b(?:water|sugar|salt|oil|flour|milk|egg|acid|sodium)s?\b", re.IGNORECASE
)

_BRACKETED = re.compile(r"\([^)]*\)|\[[^\]]*\]")
_PERCENTAGE = re.compile(r"\d+(?:[.,]\d+)?\s*%")
# "contains 2% or less of", "less than 1% of", leading conjunctions
_LEADING_QUALIFIER = re.compile(
    r"^\s*(?:(?:contains\s+)?(?:less\s+than\s+)?\d+(?:[.,]\d+)?\s*%\s*(?:or\s+less\s+)?of\s+|(?:and|or|with)\s+)",
    re.IGNORECASE,
)
_NUMERIC_TOKEN = re.compile(r"\b\d+(?:[.,]\d+)?\b")
_NAME_NOISE = re.compile(r"[^\w\s\-&']")


class IngredientParser:
    """
    Parses free-form ingredient text.

    Lookup order for every fragment is the knowledge base (additives, then
    reference ingredients) followed by the extra lookups in the order given,
    e.g. the persisted knowledge cache.
    """

    def __init__(self, knowledge_base: KnowledgeBase, extra_lookups: Iterable[ExtraLookup] = ()):
        self.kb = knowledge_base
        self.extra_lookups = list(extra_lookups)

    def parse(self, raw_text: str, category: str = "food") -> List[Ingredient]:
        """
        Parse raw recognized text into candidate ingredients.

        Never raises: empty or garbled input yields an empty list.

        Args:
            raw_text: Text recognized from a label
            category: Product category, forwarded to extra lookups

        Returns:
            Ingredients in first-seen order, unique by normalized name
        """
        try:
            section = self.extract_section(self.clean_text(raw_text or ""))
        except ParseFailure as e:
            logger.debug(f"No ingredient section: {e}")
            return []

        ingredients = []
        seen = set()
        for fragment in self.split_fragments(section):
            ingredient = self.normalize_fragment(fragment, category)
            if ingredient is None:
                continue
            key = ingredient.normalized_name
            if key in seen:
                continue
            seen.add(key)
            ingredients.append(ingredient)

        logger.debug(f"Parsed {len(ingredients)} ingredients ({category})")
        return ingredients

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def clean_text(text: str) -> str:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = _CONTROL_CHARS.sub(" ", text)
        text = _NOISE.sub(" ", text)
        text = _SPACES.sub(" ", text)
        text = _BLANK_LINES.sub("\n", text)
        return "\n".join(line.strip() for line in text.split("\n")).strip()

    def extract_section(self, text: str) -> str:
        """
        Locate the ingredient section of a label.

        Raises:
            ParseFailure: If nothing looks like an ingredient list
        """
        if not text:
            raise ParseFailure("Empty text")

        marker = INGREDIENT_MARKER.search(text)
        if marker:
            section = text[marker.end():]
            stop = ALLERGEN_MARKER.search(section)
            if stop:
                section = section[: stop.start()]
            if section.strip():
                return section.strip()
            raise ParseFailure("Ingredients marker without content")

        lines = []
        for line in text.split("\n"):
            if ALLERGEN_MARKER.match(line):
                continue
            if self.looks_like_ingredient_line(line):
                lines.append(line)
        if not lines:
            raise ParseFailure("No ingredient-like lines")
        return "\n".join(lines)

    @staticmethod
    def looks_like_ingredient_line(line: str) -> bool:
        line = line.strip()
        if len(line) < MIN_FRAGMENT_LENGTH:
            return False
        if NUTRITION_LINE.search(line) or STORAGE_LINE.search(line):
            return False
        return bool(LINE_SEPARATORS.search(line) or BASE_INGREDIENT_TOKEN.search(line))

    @staticmethod
    def split_fragments(section: str) -> List[str]:
        fragments = [section]
        for separator in SEPARATORS:
            split = []
            for fragment in fragments:
                split.extend(fragment.split(separator))
            fragments = split

        results = []
        for fragment in fragments:
            fragment = fragment.strip(" \t-")
            if len(fragment) < MIN_FRAGMENT_LENGTH:
                continue
            if normalize_name(fragment) in STOPWORDS:
                continue
            results.append(fragment)
        return results

    @staticmethod
    def clean_fragment(fragment: str, keep_numbers: bool) -> str:
        text = _LEADING_QUALIFIER.sub("", fragment)
        text = _BRACKETED.sub(" ", text)
        text = _PERCENTAGE.sub(" ", text)
        if not keep_numbers:
            text = _NUMERIC_TOKEN.sub(" ", text)
        text = _NAME_NOISE.sub(" ", text)
        return _SPACES.sub(" ", text).strip(" -")

    @staticmethod
    def generate_variations(name: str) -> List[str]:
        variations = [name]
        if name.endswith("s"):
            variations.append(name[:-1])
        else:
            variations.append(name + "s")
        for prefix in VARIANT_PREFIXES:
            if name.startswith(prefix) and len(name) > len(prefix):
                variations.append(name[len(prefix):].strip())
        for suffix in VARIANT_SUFFIXES:
            if name.endswith(suffix) and len(name) > len(suffix):
                variations.append(name[: -len(suffix)].strip())
        return list(dict.fromkeys(v for v in variations if v))

    def lookup_candidates(self, fragment: str) -> List[str]:
        with_numbers = normalize_name(self.clean_fragment(fragment, keep_numbers=True))
        without_numbers = normalize_name(self.clean_fragment(fragment, keep_numbers=False))
        exact = [c for c in dict.fromkeys([with_numbers, without_numbers]) if c]
        candidates = list(exact)
        for name in exact:
            candidates.extend(self.generate_variations(name))
        return list(dict.fromkeys(candidates))

    def normalize_fragment(self, fragment: str, category: str) -> Optional[Ingredient]:
        display = self.clean_fragment(fragment, keep_numbers=True)
        if len(display) < MIN_FRAGMENT_LENGTH:
            return None

        for candidate in self.lookup_candidates(fragment):
            found = self.kb.find_ingredient(candidate, raw_text=fragment)
            if found:
                return found
            for lookup in self.extra_lookups:
                try:
                    found = lookup(candidate, category)
                except LabelIQError as e:
                    logger.warning(f"Extra ingredient lookup failed for '{candidate}': {e}")
                    continue
                if found:
                    return found.model_copy(update={"raw_text": fragment})

        normalized = normalize_name(display)
        return Ingredient(
            id="unknown_" + re.sub(r"\s+", "_", normalized),
            name=display,
            normalized_name=normalized,
            category="unknown",
            is_known=False,
            safety_score=50,
            hazard_level=None,
            raw_text=fragment,
        )
