"""Health check routes"""

from fastapi import APIRouter, Depends
import logging

from api.dependencies import get_services
from api.responses import HealthResponse
from app.context import ServiceContext

router = APIRouter(tags=["Health"])
logger = logging.getLogger("labeliq.api.health")


@router.get("/health-check", response_model=HealthResponse)
def health_check(services: ServiceContext = Depends(get_services)):
    """Basic health check endpoint"""
    return HealthResponse(
        status="ok",
        service=services.settings.app_name,
        version=services.settings.app_version,
        knowledge_base_version=services.knowledge_base.version,
        online=services.connectivity.is_online,
    )
