"""
Persistent store - offline-first storage of analyses, queued writes, learned
ingredient knowledge and profile settings, with retention sweeps and sync
queue replay.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
from contextlib import contextmanager
from datetime import datetime, timedelta
import logging
import threading
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.exceptions import NotFoundError, ServiceValidationError, StorageError, SyncTransportError
from domain.enums import Collection, ProductCategory, SyncItemType
from domain.schemas.ingredient_schemas import Ingredient
from domain.schemas.profile_schemas import UserProfile
from domain.schemas.scan_schemas import (
    AnalysisPage,
    AnalysisResponse,
    AnalysisSummary,
    CollectionStats,
    RetentionPolicy,
    StorageStats,
    SweepReport,
    SyncReport,
    SyncStatus,
)
from domain.schemas.score_schemas import ScoreResult
from repositories import (
    BaseRepository,
    KnowledgeCacheRepository,
    ProfileSettingsRepository,
    ScanResultRepository,
    SyncQueueRepository,
)
from services.connectivity import ConnectivityMonitor
from services.knowledge_base import normalize_name
from services.sync_transport import HttpSyncTransport

logger = logging.getLogger("labeliq.store")

PROFILE_KEY = "user_profile"
LAST_SWEEP_KEY = "last_retention_sweep"
RETENTION_OVERRIDES_KEY = "retention_policies"

REPOSITORIES = {
    Collection.SCAN_RESULTS: ScanResultRepository,
    Collection.SYNC_QUEUE: SyncQueueRepository,
    Collection.KNOWLEDGE_CACHE: KnowledgeCacheRepository,
    Collection.PROFILE_SETTINGS: ProfileSettingsRepository,
}

if set(REPOSITORIES) != set(Collection):
    raise RuntimeError("Every collection needs a repository")


def default_retention(settings: Settings) -> Dict[Collection, Optional[float]]:
    return {
        Collection.SCAN_RESULTS: settings.retention_scan_results_days,
        Collection.SYNC_QUEUE: settings.retention_sync_queue_days,
        Collection.KNOWLEDGE_CACHE: settings.retention_knowledge_cache_days,
        Collection.PROFILE_SETTINGS: settings.retention_profile_settings_days,
    }


class PersistentStore:
    """
    Collection-scoped store over SQLAlchemy repositories.

    Each operation opens its own session (one transaction per single-record
    write). Operations on the same collection, retention sweeps included, are
    serialized by a per-collection lock. Database failures surface as
    ``StorageError``; validation failures as ``ServiceValidationError``.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Settings,
        connectivity: Optional[ConnectivityMonitor] = None,
        transport: Optional[HttpSyncTransport] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._session_factory = session_factory
        self.settings = settings
        self.connectivity = connectivity or ConnectivityMonitor(settings.start_online)
        self.transport = transport
        self._clock = clock
        self._locks = {collection: threading.RLock() for collection in Collection}

    # ------------------------------------------------------------------
    # Generic collection access
    # ------------------------------------------------------------------

    @contextmanager
    def _repository(self, collection: Collection) -> Iterator[BaseRepository]:
        with self._locks[collection]:
            session = self._session_factory()
            try:
                yield REPOSITORIES[collection](session)
            except SQLAlchemyError as e:
                session.rollback()
                logger.exception(f"Storage operation on {collection.value} failed")
                raise StorageError(
                    f"Storage operation on {collection.value} failed",
                    details={"collection": collection.value},
                ) from e
            finally:
                session.close()

    def put(self, collection: Collection, key: str, values: Dict[str, Any]) -> Any:
        """Insert or overwrite one record; a missing timestamp is stamped with now"""
        values = dict(values)
        values.setdefault("timestamp", self._clock())
        with self._repository(collection) as repo:
            return repo.upsert(key, values)

    def get(self, collection: Collection, key: str) -> Any:
        with self._repository(collection) as repo:
            return repo.get_by_id(key)

    def query(
        self,
        collection: Collection,
        limit: int = 50,
        offset: int = 0,
        before: Optional[datetime] = None,
        before_key: Optional[str] = None,
        most_recent_first: bool = True,
        **filters: Any,
    ) -> List[Any]:
        if limit < 1:
            raise ServiceValidationError("limit must be positive", details={"limit": limit})
        if offset < 0:
            raise ServiceValidationError("offset must not be negative", details={"offset": offset})
        with self._repository(collection) as repo:
            return repo.query_page(
                limit=limit,
                offset=offset,
                before=before,
                before_key=before_key,
                most_recent_first=most_recent_first,
                **filters,
            )

    def delete(self, collection: Collection, key: str) -> bool:
        with self._repository(collection) as repo:
            return repo.delete(key)

    # ------------------------------------------------------------------
    # Scan results
    # ------------------------------------------------------------------

    def save_scan_result(
        self,
        category: ProductCategory,
        ingredients: List[Ingredient],
        score: ScoreResult,
        scan_id: Optional[str] = None,
    ) -> AnalysisResponse:
        """
        Persist one analysis.

        The record is stamped with the current time and marked synced when
        the service is online; offline writes are also queued for replay.

        Raises:
            ServiceValidationError: If the score is out of range
            StorageError: If the write fails
        """
        if not 0 <= score.score <= 100:
            raise ServiceValidationError(
                f"Score {score.score} out of range", details={"score": score.score}
            )

        online = self.connectivity.is_online
        analysis = AnalysisResponse(
            scan_id=scan_id or str(uuid.uuid4()),
            category=category,
            timestamp=self._clock(),
            synced=online,
            ingredients=ingredients,
            score=score,
        )
        payload = analysis.model_dump(mode="json")
        self.put(
            Collection.SCAN_RESULTS,
            analysis.scan_id,
            {
                "category": category.value,
                "timestamp": analysis.timestamp,
                "synced": online,
                "payload": payload,
            },
        )
        if not online:
            self.queue_for_sync(SyncItemType.SCAN_RESULT, analysis.scan_id, payload)

        logger.info(f"Saved scan {analysis.scan_id} ({category.value}, score={score.score}, synced={online})")
        return analysis

    def get_scan_result(self, scan_id: str) -> AnalysisResponse:
        record = self.get(Collection.SCAN_RESULTS, scan_id)
        if record is None:
            raise NotFoundError(f"Analysis {scan_id} not found")
        analysis = AnalysisResponse.model_validate(record.payload)
        return analysis.model_copy(update={"synced": record.synced})

    def list_scan_results(
        self,
        limit: int = 20,
        offset: int = 0,
        category: Optional[str] = None,
        before: Optional[datetime] = None,
        before_id: Optional[str] = None,
    ) -> AnalysisPage:
        """
        Page over stored analyses newest first.

        The cursor is the (timestamp, scan id) pair of the last item seen, so
        analyses sharing a timestamp across a page boundary are not skipped.
        """
        records = self.query(
            Collection.SCAN_RESULTS,
            limit=limit,
            offset=offset,
            before=before,
            before_key=before_id,
            category=category,
        )
        items = [
            AnalysisSummary(
                scan_id=r.scan_id,
                category=r.category,
                timestamp=r.timestamp,
                synced=r.synced,
                score=r.payload.get("score", {}).get("score", 0),
                level=r.payload.get("score", {}).get("level", "unknown"),
                ingredient_count=len(r.payload.get("ingredients", [])),
            )
            for r in records
        ]
        next_before, next_before_id = None, None
        if len(items) == limit:
            next_before, next_before_id = items[-1].timestamp, items[-1].scan_id
        return AnalysisPage(
            items=items,
            limit=limit,
            offset=offset,
            next_before=next_before,
            next_before_id=next_before_id,
        )

    def delete_scan_result(self, scan_id: str) -> None:
        if not self.delete(Collection.SCAN_RESULTS, scan_id):
            raise NotFoundError(f"Analysis {scan_id} not found")
        logger.info(f"Deleted scan {scan_id}")

    # ------------------------------------------------------------------
    # Knowledge cache
    # ------------------------------------------------------------------

    @staticmethod
    def knowledge_cache_key(name: str, category: str) -> str:
        return f"{category}:{normalize_name(name)}"

    def cache_ingredients(self, ingredients: List[Ingredient], category: str) -> int:
        """Store known ingredients for later lookups, returning how many were written"""
        written = 0
        for ingredient in ingredients:
            if not ingredient.is_known:
                continue
            self.put(
                Collection.KNOWLEDGE_CACHE,
                self.knowledge_cache_key(ingredient.normalized_name, category),
                {
                    "name": ingredient.normalized_name,
                    "category": category,
                    "payload": ingredient.model_dump(mode="json"),
                },
            )
            written += 1
        if written:
            logger.debug(f"Cached {written} ingredient(s) for {category}")
        return written

    def find_cached_ingredient(self, name: str, category: str = "food") -> Optional[Ingredient]:
        """Find a learned ingredient, preferring an entry of the same product category"""
        normalized = normalize_name(name)
        if not normalized:
            return None
        with self._repository(Collection.KNOWLEDGE_CACHE) as repo:
            record = repo.get_by_id(self.knowledge_cache_key(normalized, category))
            if record is None:
                record = repo.find_by_name(normalized)
        if record is None:
            return None
        return Ingredient.model_validate(record.payload)

    # ------------------------------------------------------------------
    # Profile and settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._repository(Collection.PROFILE_SETTINGS) as repo:
            return repo.get_value(key, default)

    def put_setting(self, key: str, value: Any) -> None:
        self.put(Collection.PROFILE_SETTINGS, key, {"value": value})

    def get_user_profile(self) -> UserProfile:
        stored = self.get_setting(PROFILE_KEY)
        if stored is None:
            return UserProfile()
        return UserProfile.model_validate(stored)

    def save_user_profile(self, profile: UserProfile) -> UserProfile:
        payload = profile.model_dump(mode="json")
        self.put_setting(PROFILE_KEY, payload)
        if not self.connectivity.is_online:
            self.queue_for_sync(SyncItemType.PROFILE, PROFILE_KEY, payload)
        logger.info("User profile saved")
        return profile

    def ensure_default_profile(self) -> bool:
        """Create the default profile if none is stored, returning True when created"""
        if self.get(Collection.PROFILE_SETTINGS, PROFILE_KEY) is not None:
            return False
        self.put_setting(PROFILE_KEY, UserProfile().model_dump(mode="json"))
        logger.info("Default user profile created")
        return True

    # ------------------------------------------------------------------
    # Sync queue
    # ------------------------------------------------------------------

    @staticmethod
    def sync_item_id(item_type: SyncItemType, key: str) -> str:
        return f"{item_type.value}:{key}"

    def queue_for_sync(self, item_type: SyncItemType, key: str, payload: Dict[str, Any]) -> str:
        item_id = self.sync_item_id(item_type, key)
        with self._repository(Collection.SYNC_QUEUE) as repo:
            repo.enqueue(item_id, item_type.value, payload, self._clock())
        logger.debug(f"Queued {item_id} for sync")
        return item_id

    def pending_sync_count(self) -> int:
        with self._repository(Collection.SYNC_QUEUE) as repo:
            return repo.count()

    def sync_status(self) -> SyncStatus:
        return SyncStatus(
            online=self.connectivity.is_online,
            pending=self.pending_sync_count(),
            endpoint_configured=self.transport is not None,
            max_retries=self.settings.sync_max_retries,
        )

    def replay_sync_queue(self, transport: Optional[HttpSyncTransport] = None) -> SyncReport:
        """
        Deliver queued offline writes in insertion order.

        The queue is snapshotted under the lock, items are sent without
        holding it, and outcomes are applied afterwards. Failed items have
        their retry counter incremented and are dropped at the cap.
        """
        transport = transport or self.transport
        if transport is None:
            return SyncReport(remaining=self.pending_sync_count(), skipped_reason="no sync endpoint configured")
        if not self.connectivity.is_online:
            return SyncReport(remaining=self.pending_sync_count(), skipped_reason="offline")

        with self._repository(Collection.SYNC_QUEUE) as repo:
            snapshot: List[Tuple[str, str, int, Dict[str, Any]]] = [
                (item.item_id, item.item_type, item.revision, item.payload) for item in repo.pending_in_order()
            ]

        outcomes: List[Tuple[str, str, int, Optional[str]]] = []
        for item_id, item_type, revision, payload in snapshot:
            try:
                transport.send(item_id, item_type, payload)
                outcomes.append((item_id, item_type, revision, None))
            except SyncTransportError as e:
                logger.info(f"Sync of {item_id} failed: {e}")
                outcomes.append((item_id, item_type, revision, str(e)))

        report = SyncReport(attempted=len(snapshot))
        synced_scans = []
        with self._repository(Collection.SYNC_QUEUE) as repo:
            for item_id, item_type, revision, error in outcomes:
                if error is None:
                    report.synced += 1
                    # Re-queued while in flight: the newer payload stays queued
                    if not repo.delete_revision(item_id, revision):
                        logger.debug(f"{item_id} changed during sync, keeping the newer payload")
                        continue
                    if item_type == SyncItemType.SCAN_RESULT.value:
                        synced_scans.append(item_id.split(":", 1)[1])
                    continue

                report.failed += 1
                retries = repo.record_failure(item_id, error, revision=revision)
                if retries is not None and retries >= self.settings.sync_max_retries:
                    repo.delete(item_id)
                    report.dropped += 1
                    logger.warning(f"Dropped {item_id} after {retries} failed sync attempts")
            report.remaining = repo.count()

        if synced_scans:
            with self._repository(Collection.SCAN_RESULTS) as repo:
                for scan_id in synced_scans:
                    repo.mark_synced(scan_id)

        logger.info(
            f"Sync replay: {report.synced} synced, {report.failed} failed, "
            f"{report.dropped} dropped, {report.remaining} remaining"
        )
        return report

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def retention_policies(self) -> Dict[Collection, Optional[float]]:
        """Effective max age in days per collection (None = never expire)"""
        policies = default_retention(self.settings)
        overrides = self.get_setting(RETENTION_OVERRIDES_KEY, {}) or {}
        for name, days in overrides.items():
            policies[Collection(name)] = days
        return policies

    def list_retention_policies(self) -> List[RetentionPolicy]:
        return [
            RetentionPolicy(collection=collection, max_age_days=days)
            for collection, days in self.retention_policies().items()
        ]

    def update_retention_policy(self, collection: Collection, max_age_days: Optional[float]) -> RetentionPolicy:
        """
        Change the max age of a collection.

        Raises:
            ServiceValidationError: If the period is not positive
        """
        if max_age_days is not None and max_age_days <= 0:
            raise ServiceValidationError(
                "Retention period must be positive, or null to never expire",
                details={"collection": collection.value, "max_age_days": max_age_days},
            )
        overrides = dict(self.get_setting(RETENTION_OVERRIDES_KEY, {}) or {})
        overrides[collection.value] = max_age_days
        self.put_setting(RETENTION_OVERRIDES_KEY, overrides)
        logger.info(f"Retention of {collection.value} set to {max_age_days} days")
        return RetentionPolicy(collection=collection, max_age_days=max_age_days)

    def last_sweep(self) -> Optional[datetime]:
        value = self.get_setting(LAST_SWEEP_KEY)
        return datetime.fromisoformat(value) if value else None

    def sweep_due(self, now: Optional[datetime] = None) -> bool:
        last = self.last_sweep()
        if last is None:
            return True
        now = now or self._clock()
        return now - last >= timedelta(hours=self.settings.retention_sweep_interval_hours)

    def sweep(self, now: Optional[datetime] = None, force: bool = False) -> SweepReport:
        """
        Delete records older than their collection's max age.

        Skipped when the previous sweep is more recent than the sweep
        interval, unless forced.
        """
        now = now or self._clock()
        if not force and not self.sweep_due(now):
            return SweepReport(ran=False, swept_at=self.last_sweep())

        deleted: Dict[str, int] = {}
        for collection, days in self.retention_policies().items():
            if days is None:
                continue
            cutoff = now - timedelta(days=days)
            with self._repository(collection) as repo:
                deleted[collection.value] = repo.delete_older_than(cutoff)

        self.put_setting(LAST_SWEEP_KEY, now.isoformat())
        total = sum(deleted.values())
        if total:
            logger.info(f"Retention sweep removed {total} record(s): {deleted}")
        else:
            logger.debug("Retention sweep found nothing to remove")
        return SweepReport(ran=True, swept_at=now, deleted=deleted)

    def storage_stats(self, now: Optional[datetime] = None) -> StorageStats:
        now = now or self._clock()
        collections: Dict[str, CollectionStats] = {}
        for collection, days in self.retention_policies().items():
            with self._repository(collection) as repo:
                total = repo.count()
                expired = repo.count_older_than(now - timedelta(days=days)) if days is not None else 0
            collections[collection.value] = CollectionStats(total=total, expired=expired, retention_days=days)

        last = self.last_sweep()
        next_cleanup = last + timedelta(hours=self.settings.retention_sweep_interval_hours) if last else None
        return StorageStats(collections=collections, last_cleanup=last, next_cleanup=next_cleanup)

    def clear_storage(self) -> Dict[str, int]:
        """Remove every record of every collection"""
        cleared = {}
        for collection in Collection:
            with self._repository(collection) as repo:
                cleared[collection.value] = repo.clear()
        logger.warning(f"Storage cleared: {cleared}")
        return cleared
