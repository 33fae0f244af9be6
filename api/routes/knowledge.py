"""Additive knowledge base routes"""

from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_analysis, get_services
from app.context import ServiceContext
from app.exceptions import NotFoundError
from domain.schemas.ingredient_schemas import KnowledgeEntry, RegulatoryChange
from domain.schemas.scan_schemas import AdditiveListRequest
from domain.schemas.score_schemas import AdditiveAnalysis
from services import IngredientAnalysisService

router = APIRouter(prefix="/knowledge", tags=["Knowledge"])
logger = logging.getLogger("labeliq.api.knowledge")


@router.get("/additives/{identifier}", response_model=KnowledgeEntry)
def get_additive(identifier: str, services: ServiceContext = Depends(get_services)):
    """Look up an additive by code, name or alias (case-insensitive)"""
    entry = services.knowledge_base.lookup(identifier)
    if entry is None:
        raise NotFoundError(f"Additive '{identifier}' not found")
    return entry


@router.get("/categories/{category}", response_model=List[KnowledgeEntry])
def get_additives_by_category(category: str, services: ServiceContext = Depends(get_services)):
    """All additives of a category, e.g. `preservative` or `artificial color`"""
    return services.knowledge_base.by_category(category)


@router.get("/controversial", response_model=List[KnowledgeEntry])
def get_controversial_additives(services: ServiceContext = Depends(get_services)):
    """Additives with documented controversies, least safe first"""
    return services.knowledge_base.controversial()


@router.get("/concerning", response_model=List[KnowledgeEntry])
def get_concerning_additives(
    threshold: int = Query(50, ge=0, le=100),
    services: ServiceContext = Depends(get_services),
):
    """Additives whose safety score is below the threshold, least safe first"""
    return services.knowledge_base.concerning(threshold)


@router.get("/regulatory-differences", response_model=List[Dict[str, Any]])
def get_regulatory_differences(services: ServiceContext = Depends(get_services)):
    """Additives approved in some jurisdictions and banned in others"""
    return services.knowledge_base.regulatory_differences()


@router.get("/regulatory-changes", response_model=List[RegulatoryChange])
def get_regulatory_changes(services: ServiceContext = Depends(get_services)):
    """Recent regulatory changes, newest first"""
    return services.knowledge_base.recent_regulatory_changes()


@router.post("/analyze", response_model=AdditiveAnalysis)
def analyze_additives(
    request: AdditiveListRequest,
    analysis: IngredientAnalysisService = Depends(get_analysis),
):
    """Additive analysis of an explicit ingredient list (not persisted)"""
    return analysis.analyze_additives(request.ingredients, request.category)
