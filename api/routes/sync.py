"""Offline sync routes"""

from typing import Optional
import logging

import anyio
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_store
from domain.schemas.scan_schemas import ConnectivityUpdate, SyncReport, SyncStatus
from services import PersistentStore

router = APIRouter(prefix="/sync", tags=["Sync"])
logger = logging.getLogger("labeliq.api.sync")


class ConnectivityResponse(BaseModel):
    online: bool
    replay: Optional[SyncReport] = None


@router.get("/status", response_model=SyncStatus)
def get_sync_status(store: PersistentStore = Depends(get_store)):
    """Connectivity and number of queued offline writes"""
    return store.sync_status()


@router.put("/connectivity", response_model=ConnectivityResponse)
async def set_connectivity(update: ConnectivityUpdate, store: PersistentStore = Depends(get_store)):
    """Report connectivity; going back online replays the sync queue"""
    reconnected = store.connectivity.set_online(update.online)
    replay = None
    if reconnected:
        replay = await anyio.to_thread.run_sync(store.replay_sync_queue)
    return ConnectivityResponse(online=store.connectivity.is_online, replay=replay)


@router.post("/replay", response_model=SyncReport)
async def replay_sync_queue(store: PersistentStore = Depends(get_store)):
    """Deliver queued offline writes now"""
    return await anyio.to_thread.run_sync(store.replay_sync_queue)
