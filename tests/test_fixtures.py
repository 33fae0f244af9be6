"""
Shared test fixtures and utilities for the LabelIQ test suite.

This module contains fake sources, fake clocks, factory helpers and the test
client setup that are reused across multiple test files to ensure consistency
and reduce duplication.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest

from adapters.base import RateLimit, SourceAdapter
from app.config import Settings
from app.exceptions import SourceUnavailable, SyncTransportError
from domain.enums import Capability, HazardLevel
from domain.models import create_db_engine, create_session_factory, init_database
from domain.schemas.ingredient_schemas import Ingredient
from domain.schemas.profile_schemas import ProfileCondition, UserProfile
from services import (
    AdditiveAnalysisService,
    ConnectivityMonitor,
    IngredientAnalysisService,
    IngredientParser,
    KnowledgeBase,
    LocalAnalysis,
    PersistentStore,
    ScoreEngine,
    SourceOrchestrator,
)
from services.knowledge_base import normalize_name

# Loaded once; the knowledge base is immutable
KB = KnowledgeBase.load()

# Realistic label texts
LABELS = {
    "soda": "Water, Sugar, Red 40, Citric Acid",
    "water": "Water, Citric Acid",
    "snack": (
        "Nutrition Facts\n"
        "Calories 250\n"
        "Ingredients: Wheat Flour, Sugar, Vegetable Oil (Sunflower Oil), Salt, "
        "Sodium Benzoate (Preservative), Yellow 5.\n"
        "Contains: Wheat, Milk.\n"
        "Store in a cool dry place."
    ),
    "shampoo": "Aqua, Sodium Lauryl Sulfate, Parfum, Methylparaben",
}


# ============================================================================
# Clocks
# ============================================================================


class FakeClock:
    """Settable clock returning naive UTC datetimes"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class FakeMonotonic:
    """Settable monotonic clock in seconds, for caches and rate limiters"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


# ============================================================================
# Fake capability sources
# ============================================================================


class FakeAdapter(SourceAdapter):
    """
    Configurable in-process source.

    Returns ``payload`` (a copy, with confidence), raises ``error`` or sleeps
    for ``delay`` seconds first. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        name: str,
        capability: Capability = Capability.INGREDIENT_BASICS,
        payload: Optional[Dict[str, Any]] = None,
        confidence: float = 0.9,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        priority: int = 1,
        timeout_ms: int = 1000,
        rate_limit: Optional[RateLimit] = None,
        configured: bool = True,
    ):
        super().__init__(client=None, priority=priority, timeout_ms=timeout_ms, rate_limit=rate_limit)
        self.name = name
        self.capability = capability
        self.payload = payload if payload is not None else {"source": name}
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.configured = configured
        self.calls: List[str] = []

    def is_configured(self) -> bool:
        return self.configured

    async def fetch(self, query: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {**self.payload, "confidence": self.confidence}


def failing_adapter(name: str, capability: Capability = Capability.INGREDIENT_BASICS, **kwargs) -> FakeAdapter:
    return FakeAdapter(name, capability, error=SourceUnavailable(name, f"{name} is down"), **kwargs)


# ============================================================================
# Fake sync transport
# ============================================================================


class RecordingTransport:
    """Sync transport that records deliveries and fails for selected item ids"""

    def __init__(self, fail_ids: Optional[set] = None, fail_all: bool = False):
        self.fail_ids = set(fail_ids or ())
        self.fail_all = fail_all
        self.sent: List[str] = []
        self.attempts: List[str] = []

    def send(self, item_id: str, item_type: str, payload: Dict[str, Any]) -> None:
        self.attempts.append(item_id)
        if self.fail_all or item_id in self.fail_ids:
            raise SyncTransportError(f"Endpoint rejected {item_id}")
        self.sent.append(item_id)


# ============================================================================
# Factories
# ============================================================================


def make_settings(**overrides) -> Settings:
    """Settings for an isolated in-memory store with remote sources disabled"""
    values = {
        "database_url": "sqlite://",
        "remote_sources_enabled": False,
        "sync_endpoint_url": None,
        "start_online": True,
    }
    values.update(overrides)
    return Settings(**values)


def make_store(
    clock: Optional[FakeClock] = None,
    online: bool = True,
    transport: Optional[RecordingTransport] = None,
    settings: Optional[Settings] = None,
) -> PersistentStore:
    """Fresh store over its own in-memory SQLite database"""
    settings = settings or make_settings()
    engine = create_db_engine("sqlite://")
    init_database(engine)
    return PersistentStore(
        create_session_factory(engine),
        settings,
        connectivity=ConnectivityMonitor(online),
        transport=transport,
        clock=clock or FakeClock(),
    )


def make_orchestrator(adapters=(), **kwargs) -> SourceOrchestrator:
    return SourceOrchestrator(LocalAnalysis(KB), adapters, **kwargs)


def make_pipeline(store: PersistentStore, adapters=()) -> IngredientAnalysisService:
    """Full analysis pipeline over the given store"""
    additives = AdditiveAnalysisService(KB)
    parser = IngredientParser(KB, extra_lookups=[store.find_cached_ingredient])
    return IngredientAnalysisService(
        parser,
        ScoreEngine(additives),
        additives,
        store,
        make_orchestrator(adapters),
    )


def make_ingredient(
    name: str = "Mystery Extract",
    safety_score: Optional[float] = 50,
    hazard_level: Optional[HazardLevel] = None,
    category: str = "unknown",
    is_known: bool = False,
    synonyms: Optional[List[str]] = None,
) -> Ingredient:
    """
    Create an ingredient for scoring tests.

    Example:
        >>> make_ingredient("Lavender Oil", 70, HazardLevel.LOW, "fragrance", True)
    """
    normalized = normalize_name(name)
    return Ingredient(
        id=normalized.replace(" ", "_"),
        name=name,
        normalized_name=normalized,
        category=category,
        is_known=is_known,
        safety_score=safety_score,
        hazard_level=hazard_level,
        synonyms=synonyms or [],
        raw_text=name,
    )


def make_profile(allergies=(), sensitivities=()) -> UserProfile:
    """Profile with allergies/sensitivities given as names or ProfileCondition"""

    def condition(value):
        return value if isinstance(value, ProfileCondition) else ProfileCondition(name=value)

    return UserProfile(
        allergies=[condition(a) for a in allergies],
        sensitivities=[condition(s) for s in sensitivities],
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def knowledge_base() -> KnowledgeBase:
    return KB


@pytest.fixture
def db_session():
    """Session over a fresh in-memory database with every table created"""
    engine = create_db_engine("sqlite://")
    init_database(engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> PersistentStore:
    return make_store(clock=clock)


@pytest.fixture
def parser() -> IngredientParser:
    return IngredientParser(KB)


@pytest.fixture
def engine() -> ScoreEngine:
    return ScoreEngine(AdditiveAnalysisService(KB))


@pytest.fixture
def client():
    """TestClient with the application lifespan (store init, default profile) running"""
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as test_client:
        yield test_client
