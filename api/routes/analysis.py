"""Label analysis routes"""

from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_analysis, get_store
from domain.enums import ProductCategory
from domain.schemas.scan_schemas import AnalyzeRequest, AnalysisResponse, AnalysisPage
from services import IngredientAnalysisService, PersistentStore

router = APIRouter(prefix="/analyses", tags=["Analyses"])
logger = logging.getLogger("labeliq.api.analysis")


@router.post("", response_model=AnalysisResponse, status_code=status.HTTP_201_CREATED)
async def analyze_label(
    request: AnalyzeRequest,
    analysis: IngredientAnalysisService = Depends(get_analysis),
):
    """
    Analyze recognized label text.

    The text is parsed into ingredients, unknown ingredients are enriched
    (unless `enrich` is false), the list is scored against the stored user
    profile (or the `profile` override) and the result is persisted.
    """
    return await analysis.analyze(
        request.text,
        category=request.category,
        profile=request.profile,
        enrich=request.enrich,
    )


@router.get("", response_model=AnalysisPage)
def list_analyses(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    category: Optional[ProductCategory] = Query(None),
    before: Optional[datetime] = Query(None, description="Only analyses older than this cursor"),
    before_id: Optional[str] = Query(None, description="Scan id of the cursor, breaks timestamp ties"),
    store: PersistentStore = Depends(get_store),
):
    """List stored analyses, newest first"""
    return store.list_scan_results(
        limit=limit,
        offset=offset,
        category=category.value if category else None,
        before=before,
        before_id=before_id,
    )


@router.get("/{scan_id}", response_model=AnalysisResponse)
def get_analysis_result(scan_id: str, store: PersistentStore = Depends(get_store)):
    """Get one stored analysis"""
    return store.get_scan_result(scan_id)


@router.delete("/{scan_id}")
def delete_analysis(scan_id: str, store: PersistentStore = Depends(get_store)):
    """Delete one stored analysis"""
    store.delete_scan_result(scan_id)
    return {"status": "ok", "removed": scan_id}
