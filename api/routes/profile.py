"""User profile routes"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_store
from domain.schemas.profile_schemas import UserProfile
from services import PersistentStore

router = APIRouter(prefix="/profile", tags=["Profile"])
logger = logging.getLogger("labeliq.api.profile")


@router.get("", response_model=UserProfile)
def get_profile(store: PersistentStore = Depends(get_store)):
    """Get the stored user profile"""
    return store.get_user_profile()


@router.put("", response_model=UserProfile)
def update_profile(profile: UserProfile, store: PersistentStore = Depends(get_store)):
    """Replace the user profile (allergies, sensitivities, preferences)"""
    return store.save_user_profile(profile)
