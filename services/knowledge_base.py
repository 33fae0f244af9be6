"""
Knowledge Base - bundled, read-only index of regulated additives and
reference base ingredients.

Lookups are case-insensitive by canonical code, name or any alias. The index
is built once from ``domain/data/knowledge_base.json`` and never mutated.
"""

from typing import Dict, Iterable, List, Optional, Any, Union
from pathlib import Path
import json
import logging
import re

from pydantic import ValidationError

from app.exceptions import KnowledgeBaseError
from domain.enums import HazardLevel
from domain.schemas.ingredient_schemas import (
    KnowledgeEntry,
    ReferenceIngredient,
    RegulatoryChange,
    Ingredient,
)

logger = logging.getLogger("labeliq.knowledge")

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "domain" / "data" / "knowledge_base.json"

# Effective score adjustments
BANNED_EVERYWHERE_CAP = 20
BANNED_SOMEWHERE_CAP = 40
CONTROVERSY_PENALTY = 5
HEALTH_CONCERN_PENALTY = 3

_HAZARD_BY_SCORE = (
    (80, HazardLevel.SAFE),
    (60, HazardLevel.LOW),
    (40, HazardLevel.MEDIUM),
    (20, HazardLevel.HIGH),
)

_WHITESPACE = re.compile(r"\s+")


def normalize_name(text: str) -> str:
    """Lowercase, collapse whitespace and strip surrounding punctuation"""
    if not text:
        return ""
    text = _WHITESPACE.sub(" ", str(text).lower())
    return text.strip(" .,;:!?*-_'\"")


def hazard_for_score(score: float) -> HazardLevel:
    for floor, level in _HAZARD_BY_SCORE:
        if score >= floor:
            return level
    return HazardLevel.DANGER


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


class KnowledgeBase:
    """Immutable additive and reference-ingredient index"""

    def __init__(
        self,
        additives: Iterable[KnowledgeEntry],
        reference_ingredients: Iterable[ReferenceIngredient] = (),
        regulatory_changes: Iterable[RegulatoryChange] = (),
        version: str = "unversioned",
    ):
        self.version = version
        self._additives: Dict[str, KnowledgeEntry] = {}
        self._additive_index: Dict[str, KnowledgeEntry] = {}
        self._reference_index: Dict[str, ReferenceIngredient] = {}
        self._owners: Dict[str, str] = {}
        self._changes = sorted(regulatory_changes, key=lambda c: c.date, reverse=True)

        for entry in additives:
            if entry.code in self._additives:
                raise KnowledgeBaseError(f"Duplicate additive code {entry.code}")
            self._additives[entry.code] = entry
            for key in (entry.code, entry.name, *entry.aliases):
                self._register(self._additive_index, key, entry, f"additive:{entry.code}")

        for ref in reference_ingredients:
            for key in (ref.id.replace("_", " "), ref.name, *ref.synonyms):
                self._register(self._reference_index, key, ref, f"reference:{ref.id}")

        logger.info(
            f"Knowledge base {self.version} loaded: {len(self._additives)} additives, "
            f"{len(self._reference_index)} reference keys"
        )

    def _register(self, index: Dict[str, Any], key: str, value: Any, owner: str) -> None:
        normalized = normalize_name(key)
        if not normalized:
            return
        current = self._owners.get(normalized)
        if current is not None and current != owner:
            raise KnowledgeBaseError(
                f"Alias '{key}' maps to both {current} and {owner}",
                details={"alias": normalized, "owners": [current, owner]},
            )
        self._owners[normalized] = owner
        index[normalized] = value

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "KnowledgeBase":
        """
        Load the bundled knowledge base.

        Args:
            path: Optional JSON file overriding the bundled data

        Returns:
            KnowledgeBase instance

        Raises:
            KnowledgeBaseError: If the file is missing, malformed or has alias collisions
        """
        data_path = Path(path) if path else DEFAULT_DATA_PATH
        try:
            with open(data_path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise KnowledgeBaseError(f"Cannot read knowledge base at {data_path}: {e}") from e

        try:
            additives = [KnowledgeEntry(**item) for item in raw.get("additives", [])]
            references = [ReferenceIngredient(**item) for item in raw.get("reference_ingredients", [])]
            changes = [RegulatoryChange(**item) for item in raw.get("regulatory_changes", [])]
        except ValidationError as e:
            raise KnowledgeBaseError(
                "Malformed knowledge base entry", details={"errors": e.errors()}
            ) from e

        return cls(additives, references, changes, version=raw.get("version", "unversioned"))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def additives(self) -> List[KnowledgeEntry]:
        return list(self._additives.values())

    def __len__(self) -> int:
        return len(self._additives)

    def lookup(self, identifier: Optional[str]) -> Optional[KnowledgeEntry]:
        """Look up an additive by code, name or alias"""
        if not identifier:
            return None
        return self._additive_index.get(normalize_name(identifier))

    def lookup_reference(self, name: Optional[str]) -> Optional[ReferenceIngredient]:
        if not name:
            return None
        return self._reference_index.get(normalize_name(name))

    def by_category(self, category: str) -> List[KnowledgeEntry]:
        category = normalize_name(category).replace(" ", "_")
        return sorted(
            (e for e in self._additives.values() if e.category == category),
            key=lambda e: e.code,
        )

    def controversial(self) -> List[KnowledgeEntry]:
        return sorted(
            (e for e in self._additives.values() if e.is_controversial),
            key=lambda e: e.safety_score,
        )

    def concerning(self, threshold: int = 50) -> List[KnowledgeEntry]:
        return sorted(
            (e for e in self._additives.values() if e.safety_score < threshold),
            key=lambda e: e.safety_score,
        )

    def regulatory_differences(self) -> List[Dict[str, Any]]:
        """Additives approved in one jurisdiction and not the other"""
        results = []
        for entry in self._additives.values():
            if not entry.has_regulatory_difference:
                continue
            approved = sorted(j for j, s in entry.regulatory_status.items() if s.approved)
            banned = sorted(j for j, s in entry.regulatory_status.items() if not s.approved)
            difference = (
                f"{', '.join(j.upper() for j in approved)} approved, "
                f"{', '.join(j.upper() for j in banned)} banned"
            )
            results.append({**entry.model_dump(), "difference": difference})
        return results

    def recent_regulatory_changes(self) -> List[RegulatoryChange]:
        return list(self._changes)

    # ------------------------------------------------------------------
    # Scoring helpers
    # ------------------------------------------------------------------

    def effective_score(self, entry: KnowledgeEntry) -> int:
        """
        Safety score adjusted for regulation and controversy.

        Capped at 20 when the additive is banned in every jurisdiction and
        at 40 when banned in at least one; each controversy costs 5 points
        and each health concern 3.
        """
        score = float(entry.safety_score)
        if entry.banned_everywhere:
            score = min(score, BANNED_EVERYWHERE_CAP)
        elif entry.has_regulatory_difference:
            score = min(score, BANNED_SOMEWHERE_CAP)
        score -= CONTROVERSY_PENALTY * len(entry.controversies)
        score -= HEALTH_CONCERN_PENALTY * len(entry.health_concerns)
        return int(round(_clamp(score)))

    def ingredient_from_additive(self, entry: KnowledgeEntry, raw_text: str = "") -> Ingredient:
        score = self.effective_score(entry)
        return Ingredient(
            id=entry.code,
            name=entry.name,
            normalized_name=normalize_name(entry.name),
            category=entry.category,
            is_known=True,
            safety_score=score,
            hazard_level=hazard_for_score(score),
            synonyms=list(dict.fromkeys([entry.code, *entry.aliases])),
            raw_text=raw_text,
            description=entry.function,
            is_additive=True,
            knowledge=entry,
        )

    @staticmethod
    def ingredient_from_reference(ref: ReferenceIngredient, raw_text: str = "") -> Ingredient:
        return Ingredient(
            id=ref.id,
            name=ref.name,
            normalized_name=normalize_name(ref.name),
            category=ref.category,
            is_known=True,
            safety_score=ref.safety_score,
            hazard_level=ref.hazard_level,
            synonyms=list(ref.synonyms),
            raw_text=raw_text,
            description=ref.description,
        )

    def find_ingredient(self, name: str, raw_text: str = "") -> Optional[Ingredient]:
        """Resolve a cleaned ingredient name, additives first, then reference ingredients"""
        entry = self.lookup(name)
        if entry:
            return self.ingredient_from_additive(entry, raw_text or name)
        ref = self.lookup_reference(name)
        if ref:
            return self.ingredient_from_reference(ref, raw_text or name)
        return None
