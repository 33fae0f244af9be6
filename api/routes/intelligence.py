"""Multi-source ingredient intelligence routes"""

from typing import List
import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_orchestrator
from domain.schemas.intelligence_schemas import IngredientIntelligence, SourceHealth
from services import SourceOrchestrator

router = APIRouter(tags=["Intelligence"])
logger = logging.getLogger("labeliq.api.intelligence")


@router.get("/ingredients/{name}/intelligence", response_model=IngredientIntelligence)
async def get_ingredient_intelligence(
    name: str,
    category: str = Query("unknown", description="Product category context"),
    orchestrator: SourceOrchestrator = Depends(get_orchestrator),
):
    """
    Merged basics, safety data, expert analysis, research and alternatives
    for one ingredient. Sources that fail are skipped; the local analysis
    answers when none respond.
    """
    return await orchestrator.get_ingredient_intelligence(name, category)


@router.get("/sources/health", response_model=List[SourceHealth])
def get_source_health(orchestrator: SourceOrchestrator = Depends(get_orchestrator)):
    """Failure counts and rate-limit usage of every registered source"""
    return orchestrator.source_health()
