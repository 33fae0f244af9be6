"""
API dependencies for dependency injection
"""

from fastapi import Depends, Request

from app.context import ServiceContext
from services import IngredientAnalysisService, PersistentStore, SourceOrchestrator


def get_services(request: Request) -> ServiceContext:
    """
    Service context dependency for FastAPI routes.

    Usage:
        @router.get("/example")
        def example(services: ServiceContext = Depends(get_services)):
            # Use services.store, services.analysis, ...
            pass
    """
    return request.app.state.services


def get_store(services: ServiceContext = Depends(get_services)) -> PersistentStore:
    return services.store


def get_analysis(services: ServiceContext = Depends(get_services)) -> IngredientAnalysisService:
    return services.analysis


def get_orchestrator(services: ServiceContext = Depends(get_services)) -> SourceOrchestrator:
    return services.orchestrator
