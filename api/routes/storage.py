"""Storage maintenance routes"""

from typing import Dict, List
import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_store
from domain.enums import Collection
from domain.schemas.scan_schemas import RetentionPolicy, RetentionUpdate, StorageStats, SweepReport
from services import PersistentStore

router = APIRouter(prefix="/storage", tags=["Storage"])
logger = logging.getLogger("labeliq.api.storage")


@router.get("/stats", response_model=StorageStats)
def get_storage_stats(store: PersistentStore = Depends(get_store)):
    """Record counts, expired counts and sweep schedule per collection"""
    return store.storage_stats()


@router.post("/sweep", response_model=SweepReport)
def run_retention_sweep(
    force: bool = Query(True, description="Ignore the sweep interval"),
    store: PersistentStore = Depends(get_store),
):
    """Delete records older than their collection's retention period"""
    return store.sweep(force=force)


@router.get("/retention", response_model=List[RetentionPolicy])
def get_retention_policies(store: PersistentStore = Depends(get_store)):
    return store.list_retention_policies()


@router.put("/retention/{collection}", response_model=RetentionPolicy)
def update_retention_policy(
    collection: Collection,
    update: RetentionUpdate,
    store: PersistentStore = Depends(get_store),
):
    """Set the max age of a collection in days, or null to never expire"""
    return store.update_retention_policy(collection, update.max_age_days)


@router.delete("", response_model=Dict[str, int])
def clear_storage(store: PersistentStore = Depends(get_store)):
    """Remove every stored record"""
    return store.clear_storage()
