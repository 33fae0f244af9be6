"""
Service context - every long-lived component, built once at startup and
attached to the FastAPI application state.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional
import logging

import httpx
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from adapters import SourceAdapter, build_default_adapters
from app.config import Settings
from domain.models import create_db_engine, create_session_factory
from services import (
    AdditiveAnalysisService,
    ConnectivityMonitor,
    HttpSyncTransport,
    IngredientAnalysisService,
    IngredientParser,
    KnowledgeBase,
    LocalAnalysis,
    PersistentStore,
    ScoreEngine,
    SourceOrchestrator,
)

logger = logging.getLogger("labeliq.context")


@dataclass
class ServiceContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    knowledge_base: KnowledgeBase
    connectivity: ConnectivityMonitor
    store: PersistentStore
    parser: IngredientParser
    additives: AdditiveAnalysisService
    scorer: ScoreEngine
    orchestrator: SourceOrchestrator
    analysis: IngredientAnalysisService
    http_client: Optional[httpx.AsyncClient] = field(default=None)

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
        self.engine.dispose()


def build_services(
    settings: Settings,
    engine: Optional[Engine] = None,
    knowledge_base: Optional[KnowledgeBase] = None,
    adapters: Optional[Iterable[SourceAdapter]] = None,
) -> ServiceContext:
    """
    Wire the service graph.

    Args:
        settings: Application settings
        engine: Engine to use instead of one built from ``database_url``
        knowledge_base: Preloaded knowledge base (the bundled one otherwise)
        adapters: Capability sources replacing the default remote adapters

    Raises:
        KnowledgeBaseError: If the bundled knowledge base is invalid
    """
    engine = engine or create_db_engine(settings.database_url, echo=settings.db_echo)
    session_factory = create_session_factory(engine)
    kb = knowledge_base if knowledge_base is not None else KnowledgeBase.load()

    connectivity = ConnectivityMonitor(settings.start_online)
    transport = (
        HttpSyncTransport(settings.sync_endpoint_url, timeout=settings.sync_timeout_sec)
        if settings.sync_endpoint_url
        else None
    )
    store = PersistentStore(session_factory, settings, connectivity=connectivity, transport=transport)

    parser = IngredientParser(kb, extra_lookups=[store.find_cached_ingredient])
    additives = AdditiveAnalysisService(kb)
    scorer = ScoreEngine(additives)

    http_client = None
    if adapters is None:
        if settings.remote_sources_enabled:
            http_client = httpx.AsyncClient(follow_redirects=True)
            adapters = build_default_adapters(settings, http_client)
        else:
            adapters = []
            logger.info("Remote capability sources disabled, using local analysis only")

    orchestrator = SourceOrchestrator(
        LocalAnalysis(kb),
        adapters,
        min_confidence=settings.source_min_confidence,
        cache_ttl_sec=settings.intelligence_cache_ttl_sec,
        intelligence_ttl_sec=settings.intelligence_cache_ttl_sec,
    )
    analysis = IngredientAnalysisService(
        parser,
        scorer,
        additives,
        store,
        orchestrator,
        max_enriched=settings.enrichment_max_ingredients,
    )

    logger.info(
        f"Services ready: {len(kb)} additives (knowledge base {kb.version}), "
        f"{len(orchestrator.source_health())} capability sources"
    )
    return ServiceContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        knowledge_base=kb,
        connectivity=connectivity,
        store=store,
        parser=parser,
        additives=additives,
        scorer=scorer,
        orchestrator=orchestrator,
        analysis=analysis,
        http_client=http_client,
    )
