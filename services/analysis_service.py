"""
Analysis pipeline - parse, enrich, score and persist one product label.
"""

from typing import Dict, List, Optional
import asyncio
import logging

import anyio

from domain.enums import Capability, ProductCategory, ResolutionStatus, RiskLevel
from domain.schemas.ingredient_schemas import EnrichmentSummary, Ingredient
from domain.schemas.intelligence_schemas import Resolution
from domain.schemas.profile_schemas import UserProfile
from domain.schemas.scan_schemas import AnalysisResponse
from domain.schemas.score_schemas import AdditiveAnalysis
from services.additive_service import AdditiveAnalysisService
from services.knowledge_base import hazard_for_score, normalize_name
from services.orchestrator import SourceOrchestrator
from services.parser_service import IngredientParser
from services.scoring_service import ScoreEngine
from services.store_service import PersistentStore

logger = logging.getLogger("labeliq.analysis")

# Safety score assigned from a remotely resolved expert risk level
RISK_SCORES = {
    RiskLevel.HIGH: 30,
    RiskLevel.MODERATE: 55,
    RiskLevel.LOW: 75,
}

if set(RISK_SCORES) != set(RiskLevel):
    raise RuntimeError("Every risk level needs a safety score")

_BASICS_FIELDS = ("category", "description")


class IngredientAnalysisService:
    """Runs the full label pipeline"""

    def __init__(
        self,
        parser: IngredientParser,
        scorer: ScoreEngine,
        additives: AdditiveAnalysisService,
        store: PersistentStore,
        orchestrator: SourceOrchestrator,
        max_enriched: int = 10,
    ):
        self.parser = parser
        self.scorer = scorer
        self.additives = additives
        self.store = store
        self.orchestrator = orchestrator
        self.max_enriched = max_enriched

    async def analyze(
        self,
        text: str,
        category: ProductCategory = ProductCategory.FOOD,
        profile: Optional[UserProfile] = None,
        enrich: bool = True,
    ) -> AnalysisResponse:
        """
        Analyze raw label text and persist the result.

        Args:
            text: Recognized label text
            category: Product category
            profile: Profile override; the stored profile is used when None
            enrich: Whether unknown ingredients are sent to the orchestrator

        Returns:
            The persisted analysis

        Raises:
            StorageError: If the result could not be stored
        """
        ingredients = await anyio.to_thread.run_sync(self.parser.parse, text, category.value)
        logger.info(f"Parsed {len(ingredients)} ingredient(s) from {category.value} label")

        if enrich and ingredients:
            ingredients = await self.enrich(ingredients, category)

        if profile is None:
            profile = await anyio.to_thread.run_sync(self.store.get_user_profile)

        score = self.scorer.score(ingredients, category, profile)
        enhanced = score.additive_analysis.enhanced_ingredients or ingredients
        return await anyio.to_thread.run_sync(self.store.save_scan_result, category, enhanced, score)

    async def enrich(self, ingredients: List[Ingredient], category: ProductCategory) -> List[Ingredient]:
        """Enrich unknown ingredients concurrently, keeping input order"""
        unknown = [i for i in ingredients if not i.is_known][: self.max_enriched]
        if not unknown:
            return ingredients

        results = await asyncio.gather(
            *(self.enrich_ingredient(i, category) for i in unknown), return_exceptions=True
        )
        enriched: Dict[str, Ingredient] = {}
        for original, result in zip(unknown, results):
            if isinstance(result, BaseException):
                logger.warning(f"Enrichment of '{original.name}' failed: {result!r}")
                continue
            enriched[original.id] = result

        learned = [i for i in enriched.values() if i.is_known]
        if learned:
            await anyio.to_thread.run_sync(self.store.cache_ingredients, learned, category.value)

        return [enriched.get(i.id, i) for i in ingredients]

    async def enrich_ingredient(self, ingredient: Ingredient, category: ProductCategory) -> Ingredient:
        options = {"category": category.value}
        basics, expert = await asyncio.gather(
            self.orchestrator.resolve(Capability.INGREDIENT_BASICS, ingredient.name, options),
            self.orchestrator.resolve(Capability.EXPERT_ANALYSIS, ingredient.name, options),
        )

        update = {}
        if basics.status == ResolutionStatus.RESOLVED:
            update["is_known"] = True
            for field in _BASICS_FIELDS:
                if basics.data.get(field):
                    update[field] = basics.data[field]

        risk = self._risk_level(expert)
        if risk is not None and expert.status == ResolutionStatus.RESOLVED:
            update["safety_score"] = RISK_SCORES[risk]
            update["hazard_level"] = hazard_for_score(RISK_SCORES[risk])

        update["enrichment"] = EnrichmentSummary(
            status=expert.status.value,
            source=expert.source,
            confidence=expert.confidence,
            risk_level=risk.value if risk else None,
            fields=basics.data if basics.status == ResolutionStatus.RESOLVED else {},
        )
        return ingredient.model_copy(update=update)

    @staticmethod
    def _risk_level(resolution: Resolution) -> Optional[RiskLevel]:
        value = resolution.data.get("risk_level") if resolution.has_data else None
        try:
            return RiskLevel(value) if value else None
        except ValueError:
            logger.debug(f"Ignoring unknown risk level '{value}' from {resolution.source}")
            return None

    def analyze_additives(self, names: List[str], category: ProductCategory = ProductCategory.FOOD) -> AdditiveAnalysis:
        """Additive analysis of an explicit ingredient list, without persisting"""
        ingredients: List[Ingredient] = []
        seen = set()
        for name in names:
            ingredient = self.parser.normalize_fragment(name, category.value)
            if ingredient is None:
                continue
            key = normalize_name(ingredient.normalized_name)
            if key in seen:
                continue
            seen.add(key)
            ingredients.append(ingredient)
        return self.additives.analyze_list(ingredients)
