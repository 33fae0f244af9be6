"""
Tests for the repository classes over a real in-memory SQLite session.

Covers:
- BaseRepository upsert, paging, retention counts and clear
- ScanResultRepository listing and sync marking
- SyncQueueRepository ordering, deduplication and retry counting
- KnowledgeCacheRepository name lookup
- ProfileSettingsRepository values
"""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from repositories import (
    KnowledgeCacheRepository,
    ProfileSettingsRepository,
    ScanResultRepository,
    SyncQueueRepository,
)
from test_fixtures import db_session

T0 = datetime(2025, 1, 1, 12, 0, 0)


def _scan(repo: ScanResultRepository, scan_id: str, minutes: int = 0, category: str = "food", synced: bool = True):
    return repo.upsert(
        scan_id,
        {
            "category": category,
            "timestamp": T0 + timedelta(minutes=minutes),
            "synced": synced,
            "payload": {"score": {"score": 50}},
        },
    )


# =============================================================================
# BASE REPOSITORY
# =============================================================================


def test_upsert_inserts_then_overwrites(db_session: Session):
    """
    Verifies:
    - upsert() creates a record under the given key
    - A second upsert() overwrites columns in place
    """
    repo = ProfileSettingsRepository(db_session)

    repo.upsert("theme", {"value": "light", "timestamp": T0})
    repo.upsert("theme", {"value": "dark", "timestamp": T0 + timedelta(hours=1)})

    assert repo.count() == 1
    assert repo.get_value("theme") == "dark"
    assert repo.get_by_id("theme").timestamp == T0 + timedelta(hours=1)


def test_query_page_orders_by_time_then_key(db_session: Session):
    repo = ScanResultRepository(db_session)
    _scan(repo, "b", minutes=0)
    _scan(repo, "a", minutes=0)
    _scan(repo, "c", minutes=5)

    newest = repo.query_page(limit=10)
    oldest = repo.query_page(limit=10, most_recent_first=False)

    assert [s.scan_id for s in newest] == ["c", "b", "a"]
    assert [s.scan_id for s in oldest] == ["a", "b", "c"]
    assert [s.scan_id for s in repo.query_page(limit=1, offset=1)] == ["b"]


def test_query_page_before_cursor_and_filters(db_session: Session):
    repo = ScanResultRepository(db_session)
    _scan(repo, "old", minutes=0, category="cosmetic")
    _scan(repo, "mid", minutes=1, category="food")
    _scan(repo, "new", minutes=2, category="food")

    page = repo.query_page(before=T0 + timedelta(minutes=2))
    food = repo.query_page(category="food")

    assert [s.scan_id for s in page] == ["mid", "old"]
    assert [s.scan_id for s in food] == ["new", "mid"]


def test_query_page_composite_cursor(db_session: Session):
    """A (timestamp, key) cursor keeps smaller keys at the same timestamp"""
    repo = ScanResultRepository(db_session)
    _scan(repo, "a", minutes=0)
    _scan(repo, "b", minutes=1)
    _scan(repo, "c", minutes=1)
    _scan(repo, "d", minutes=1)

    page = repo.query_page(before=T0 + timedelta(minutes=1), before_key="c")

    assert [s.scan_id for s in page] == ["b", "a"]


def test_retention_counts_and_delete(db_session: Session):
    repo = ScanResultRepository(db_session)
    for i in range(3):
        _scan(repo, f"s{i}", minutes=i * 10)

    cutoff = T0 + timedelta(minutes=15)

    assert repo.count_older_than(cutoff) == 2
    assert repo.delete_older_than(cutoff) == 2
    assert [s.scan_id for s in repo.query_page()] == ["s2"]
    assert repo.clear() == 1
    assert repo.count() == 0


def test_delete_missing_key_returns_false(db_session: Session):
    repo = ScanResultRepository(db_session)

    assert repo.delete("missing") is False
    assert repo.get_by_id("missing") is None


# =============================================================================
# SCAN RESULTS
# =============================================================================


def test_mark_synced(db_session: Session):
    repo = ScanResultRepository(db_session)
    _scan(repo, "offline", synced=False)

    assert repo.mark_synced("offline") is True
    assert repo.get_by_id("offline").synced is True
    assert repo.mark_synced("missing") is False


# =============================================================================
# SYNC QUEUE
# =============================================================================


def test_sync_queue_keeps_insertion_order(db_session: Session):
    """Items replay in insertion order even when timestamps disagree"""
    repo = SyncQueueRepository(db_session)
    repo.enqueue("scan_result:2", "scan_result", {"n": 2}, T0 + timedelta(minutes=5))
    repo.enqueue("scan_result:1", "scan_result", {"n": 1}, T0)

    assert [i.item_id for i in repo.pending_in_order()] == ["scan_result:2", "scan_result:1"]
    assert len(repo.pending_in_order(limit=1)) == 1


def test_sync_queue_enqueue_replaces_payload(db_session: Session):
    repo = SyncQueueRepository(db_session)
    repo.enqueue("profile:user_profile", "profile", {"v": 1}, T0)
    repo.enqueue("profile:user_profile", "profile", {"v": 2}, T0 + timedelta(minutes=1))

    items = repo.pending_in_order()
    assert len(items) == 1
    assert items[0].payload == {"v": 2}


def test_sync_queue_record_failure(db_session: Session):
    repo = SyncQueueRepository(db_session)
    repo.enqueue("scan_result:1", "scan_result", {}, T0)

    assert repo.record_failure("scan_result:1", "HTTP 500") == 1
    assert repo.record_failure("scan_result:1", "HTTP 502") == 2
    assert repo.get_by_id("scan_result:1").last_error == "HTTP 502"
    assert repo.record_failure("missing", "x") is None


def test_sync_queue_revision_guards_stale_outcomes(db_session: Session):
    """
    Verifies:
    - Re-enqueueing bumps the revision and resets the retry budget
    - Outcomes recorded against an older revision leave the item alone
    """
    repo = SyncQueueRepository(db_session)
    repo.enqueue("profile:user_profile", "profile", {"v": 1}, T0)
    repo.record_failure("profile:user_profile", "HTTP 500", revision=0)
    repo.enqueue("profile:user_profile", "profile", {"v": 2}, T0)

    item = repo.get_by_id("profile:user_profile")
    assert (item.revision, item.retries, item.last_error) == (1, 0, None)

    assert repo.record_failure("profile:user_profile", "HTTP 500", revision=0) is None
    assert repo.delete_revision("profile:user_profile", 0) is False
    assert repo.get_by_id("profile:user_profile").retries == 0

    assert repo.delete_revision("profile:user_profile", 1) is True
    assert repo.count() == 0


# =============================================================================
# KNOWLEDGE CACHE AND SETTINGS
# =============================================================================


def test_knowledge_cache_find_by_name_returns_newest(db_session: Session):
    repo = KnowledgeCacheRepository(db_session)
    repo.upsert("food:zorblax", {"name": "zorblax", "category": "food", "payload": {"v": 1}, "timestamp": T0})
    repo.upsert(
        "cosmetic:zorblax",
        {"name": "zorblax", "category": "cosmetic", "payload": {"v": 2}, "timestamp": T0 + timedelta(days=1)},
    )

    assert repo.find_by_name("zorblax").cache_key == "cosmetic:zorblax"
    assert repo.find_by_name("quux") is None


def test_profile_settings_default_value(db_session: Session):
    repo = ProfileSettingsRepository(db_session)

    assert repo.get_value("missing") is None
    assert repo.get_value("missing", {"a": 1}) == {"a": 1}
