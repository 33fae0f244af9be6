"""
Source orchestrator - resolves enrichment requests against prioritized
capability sources with per-source timeouts, sliding-window rate limiting,
response caching and a local fallback when every source fails.
"""

from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple
from dataclasses import dataclass
from datetime import datetime
import asyncio
import hashlib
import json
import logging
import math
import time

from adapters.base import SourceAdapter
from app.exceptions import AllSourcesExhausted, SourceUnavailable
from domain.enums import AttemptOutcome, Capability, ResolutionStatus
from domain.schemas.intelligence_schemas import (
    IngredientIntelligence,
    Resolution,
    SourceAttempt,
    SourceHealth,
)
from services.knowledge_base import normalize_name
from services.local_analysis import LocalAnalysis
from services.rate_limiter import SlidingWindowRateLimiter
from services.ttl_cache import TTLCache

logger = logging.getLogger("labeliq.orchestrator")

DEFAULT_MIN_CONFIDENCE = 0.3
DEFAULT_CACHE_TTL_SEC = 3600

# Capabilities fetched concurrently, and those fetched once basics are known
PRIMARY_CAPABILITIES = (
    Capability.INGREDIENT_BASICS,
    Capability.SAFETY_DATA,
    Capability.EXPERT_ANALYSIS,
)
FOLLOW_UP_CAPABILITIES = (Capability.RESEARCH, Capability.ALTERNATIVES)

_FOLLOW_UP_FIELDS = {
    Capability.RESEARCH: "articles",
    Capability.ALTERNATIVES: "alternatives",
}

if set(PRIMARY_CAPABILITIES) | set(FOLLOW_UP_CAPABILITIES) != set(Capability):
    raise RuntimeError("Every capability must be fetched as primary or follow-up")
if set(_FOLLOW_UP_FIELDS) != set(FOLLOW_UP_CAPABILITIES):
    raise RuntimeError("Every follow-up capability needs an intelligence field")


@dataclass
class _HealthState:
    failures: int = 0
    last_failure: Optional[datetime] = None
    last_error: Optional[str] = None


def options_hash(options: Optional[Dict[str, Any]]) -> str:
    if not options:
        return ""
    encoded = json.dumps(options, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(encoded).hexdigest()[:16]


def normalize_payload(source: str, payload: Any) -> Tuple[Dict[str, Any], float]:
    """
    Split a source response into its fields and confidence.

    Raises:
        SourceUnavailable: If the response is not a mapping or its confidence
            is not a finite number
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise SourceUnavailable(source, f"{source} returned {type(payload).__name__}, expected an object")

    data = dict(payload)
    raw = data.pop("confidence", None)
    try:
        confidence = float(raw or 0.0)
    except (TypeError, ValueError):
        raise SourceUnavailable(source, f"{source} returned a non-numeric confidence: {raw!r}")
    if not math.isfinite(confidence):
        raise SourceUnavailable(source, f"{source} returned a non-finite confidence")
    return data, confidence


class SourceOrchestrator:
    """
    Failover chain per capability.

    ``resolve`` never raises. Identical concurrent requests share a single
    in-flight task; a caller that is cancelled leaves the task running so it
    still populates the cache.
    """

    def __init__(
        self,
        fallback: LocalAnalysis,
        adapters: Iterable[SourceAdapter] = (),
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        cache_ttl_sec: float = DEFAULT_CACHE_TTL_SEC,
        intelligence_ttl_sec: float = DEFAULT_CACHE_TTL_SEC,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.fallback = fallback
        self.min_confidence = min_confidence
        self.cache: TTLCache[Resolution] = cache if cache is not None else TTLCache(cache_ttl_sec)
        self.intelligence_cache: TTLCache[IngredientIntelligence] = TTLCache(intelligence_ttl_sec)
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self._sources: Dict[Capability, List[SourceAdapter]] = {c: [] for c in Capability}
        self._health: Dict[str, _HealthState] = {}
        self._inflight: Dict[Hashable, "asyncio.Task[Resolution]"] = {}

        for adapter in adapters:
            self.register(adapter)

    # ------------------------------------------------------------------
    # Registration and diagnostics
    # ------------------------------------------------------------------

    def register(self, adapter: SourceAdapter) -> None:
        chain = self._sources[adapter.capability]
        chain.append(adapter)
        chain.sort(key=lambda a: a.priority)
        self._health.setdefault(adapter.name, _HealthState())
        logger.debug(f"Registered {adapter!r}")

    def sources_for(self, capability: Capability) -> List[SourceAdapter]:
        return list(self._sources[capability])

    def source_health(self) -> List[SourceHealth]:
        report = []
        for capability, chain in self._sources.items():
            for adapter in chain:
                state = self._health.get(adapter.name, _HealthState())
                report.append(
                    SourceHealth(
                        source=adapter.name,
                        capability=capability,
                        priority=adapter.priority,
                        failures=state.failures,
                        last_failure=state.last_failure,
                        last_error=state.last_error,
                        calls_in_window=(
                            self.rate_limiter.calls_in_window(adapter.name, adapter.rate_limit)
                            if adapter.rate_limit
                            else 0
                        ),
                    )
                )
        return report

    def purge_caches(self) -> int:
        """Drop expired resolutions and intelligence, returning how many were removed"""
        return self.cache.purge() + self.intelligence_cache.purge()

    def _track_failure(self, source: str, error: str) -> None:
        state = self._health.setdefault(source, _HealthState())
        state.failures += 1
        state.last_failure = datetime.utcnow()
        state.last_error = error

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(capability: Capability, query: str, options: Optional[Dict[str, Any]] = None) -> Tuple[str, str, str]:
        return (capability.value, normalize_name(query), options_hash(options))

    async def resolve(
        self, capability: Capability, query: str, options: Optional[Dict[str, Any]] = None
    ) -> Resolution:
        """
        Resolve one capability for a query.

        Args:
            capability: What kind of data is requested
            query: Ingredient name
            options: Capability options, part of the cache key

        Returns:
            Resolution marked resolved, fallback or unresolved; never raises
        """
        key = self.cache_key(capability, query, options)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"from_cache": True})

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve_uncached(key, capability, query, options))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._discard_inflight(k, t))
        return await asyncio.shield(task)

    def _discard_inflight(self, key: Hashable, task: "asyncio.Task[Resolution]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve_uncached(
        self,
        key: Hashable,
        capability: Capability,
        query: str,
        options: Optional[Dict[str, Any]],
    ) -> Resolution:
        attempts: List[SourceAttempt] = []
        try:
            resolution = await self._try_sources(capability, query, options, attempts)
        except AllSourcesExhausted:
            logger.info(f"All {capability.value} sources exhausted for '{query}', using local fallback")
            resolution = self._local_fallback(capability, query, options, attempts)

        self.cache.set(key, resolution)
        return resolution

    async def _try_sources(
        self,
        capability: Capability,
        query: str,
        options: Optional[Dict[str, Any]],
        attempts: List[SourceAttempt],
    ) -> Resolution:
        for source in self._sources[capability]:
            if not source.is_configured():
                continue

            if source.rate_limit and not self.rate_limiter.try_acquire(source.name, source.rate_limit):
                logger.debug(f"{source.name} rate limited, skipping")
                attempts.append(SourceAttempt(source=source.name, outcome=AttemptOutcome.RATE_LIMITED))
                continue

            started = time.perf_counter()
            try:
                payload = await asyncio.wait_for(source.fetch(query, options), timeout=source.timeout_sec)
                data, confidence = normalize_payload(source.name, payload)
            except asyncio.TimeoutError:
                elapsed = (time.perf_counter() - started) * 1000
                error = f"timed out after {source.timeout_ms}ms"
                logger.info(f"{source.name} {error} for '{query}'")
                self._track_failure(source.name, error)
                attempts.append(
                    SourceAttempt(source=source.name, outcome=AttemptOutcome.TIMEOUT, elapsed_ms=elapsed, error=error)
                )
                continue
            except SourceUnavailable as e:
                elapsed = (time.perf_counter() - started) * 1000
                logger.info(f"{source.name} unavailable for '{query}': {e}")
                self._track_failure(source.name, str(e))
                attempts.append(
                    SourceAttempt(source=source.name, outcome=AttemptOutcome.ERROR, elapsed_ms=elapsed, error=str(e))
                )
                continue
            except Exception as e:
                elapsed = (time.perf_counter() - started) * 1000
                logger.warning(f"{source.name} failed unexpectedly for '{query}': {e!r}")
                self._track_failure(source.name, repr(e))
                attempts.append(
                    SourceAttempt(source=source.name, outcome=AttemptOutcome.ERROR, elapsed_ms=elapsed, error=repr(e))
                )
                continue

            elapsed = (time.perf_counter() - started) * 1000
            if confidence < self.min_confidence:
                logger.debug(f"{source.name} confidence {confidence:.2f} below threshold for '{query}'")
                attempts.append(
                    SourceAttempt(source=source.name, outcome=AttemptOutcome.LOW_CONFIDENCE, elapsed_ms=elapsed)
                )
                continue

            attempts.append(SourceAttempt(source=source.name, outcome=AttemptOutcome.SUCCESS, elapsed_ms=elapsed))
            return Resolution(
                capability=capability,
                query=query,
                status=ResolutionStatus.RESOLVED,
                source=source.name,
                confidence=confidence,
                data=data,
                attempts=attempts,
            )

        raise AllSourcesExhausted(details={"capability": capability.value, "query": query})

    def _local_fallback(
        self,
        capability: Capability,
        query: str,
        options: Optional[Dict[str, Any]],
        attempts: List[SourceAttempt],
    ) -> Resolution:
        data = self.fallback.fallback(capability, query, options)
        if data is None:
            return Resolution(
                capability=capability,
                query=query,
                status=ResolutionStatus.UNRESOLVED,
                attempts=attempts,
            )

        data = dict(data)
        confidence = float(data.pop("confidence", 0.0) or 0.0)
        return Resolution(
            capability=capability,
            query=query,
            status=ResolutionStatus.FALLBACK,
            source=data.get("source", "local"),
            confidence=confidence,
            data=data,
            attempts=attempts,
        )

    # ------------------------------------------------------------------
    # Multi-source intelligence
    # ------------------------------------------------------------------

    async def get_ingredient_intelligence(self, name: str, category: str = "unknown") -> IngredientIntelligence:
        """
        Merge basics, safety data and expert analysis for one ingredient.

        The three are resolved concurrently; a failed or unresolved branch is
        omitted. Research and alternatives are fetched only when basics are
        known. The merged result is cached.
        """
        key = ("intelligence", normalize_name(name), category)
        cached = self.intelligence_cache.get(key)
        if cached is not None:
            return cached

        options = {"category": category}
        primary = await asyncio.gather(
            *(self.resolve(c, name, options) for c in PRIMARY_CAPABILITIES),
            return_exceptions=True,
        )
        branches: Dict[Capability, Optional[Resolution]] = {}
        for capability, result in zip(PRIMARY_CAPABILITIES, primary):
            if isinstance(result, BaseException):
                logger.warning(f"{capability.value} branch failed for '{name}': {result!r}")
                branches[capability] = None
            else:
                branches[capability] = result if result.has_data else None

        follow_up: Dict[str, List[Dict[str, Any]]] = {"articles": [], "alternatives": []}
        if branches[Capability.INGREDIENT_BASICS] is not None:
            results = await asyncio.gather(
                *(self.resolve(c, name, options) for c in FOLLOW_UP_CAPABILITIES),
                return_exceptions=True,
            )
            for capability, result in zip(FOLLOW_UP_CAPABILITIES, results):
                field = _FOLLOW_UP_FIELDS[capability]
                if isinstance(result, BaseException):
                    logger.warning(f"{capability.value} branch failed for '{name}': {result!r}")
                    continue
                if result.has_data:
                    follow_up[field] = list(result.data.get(field, []))

        intelligence = IngredientIntelligence(
            name=name,
            category=category,
            basic_info=branches[Capability.INGREDIENT_BASICS],
            safety_data=branches[Capability.SAFETY_DATA],
            expert_analysis=branches[Capability.EXPERT_ANALYSIS],
            research=follow_up["articles"],
            alternatives=follow_up["alternatives"],
        )
        self.intelligence_cache.set(key, intelligence)
        return intelligence
