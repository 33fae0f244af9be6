"""
Tests for the HTTP API through FastAPI's TestClient.

The application lifespan runs for real against the throwaway SQLite database
configured in conftest.py, with remote sources disabled. Storage is cleared
before every test.
"""

import asyncio
from contextlib import suppress

import pytest

from domain.enums import Capability
from services.ttl_cache import TTLCache
from test_fixtures import LABELS, FakeMonotonic, client, make_orchestrator, make_store


@pytest.fixture
def api(client):
    client.delete("/storage")
    client.put("/sync/connectivity", json={"online": True})
    return client


def _assert_error(response, status_code: int, code: str = None):
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert "timestamp" in body
    if code is not None:
        assert body["error"]["code"] == code
    return body["error"]


# =============================================================================
# HEALTH
# =============================================================================


def test_health_check(api):
    response = api.get("/health-check")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "LabelIQ"
    assert data["knowledge_base_version"] == "2025.04"
    assert data["online"] is True
    assert "X-Request-ID" in response.headers


# =============================================================================
# ANALYSES
# =============================================================================


def test_analyze_label_and_read_it_back(api):
    """
    Verifies:
    - POST /analyses returns 201 with the persisted analysis
    - The analysis can be fetched, listed and deleted
    """
    response = api.post("/analyses", json={"text": LABELS["soda"], "category": "food"})
    assert response.status_code == 201

    created = response.json()
    assert created["score"]["score"] == 41.9
    assert created["score"]["level"] == "fair"
    assert [i["name"] for i in created["ingredients"]] == ["Water", "Sugar", "Allura Red AC", "Citric Acid"]
    assert created["synced"] is True

    scan_id = created["scan_id"]
    fetched = api.get(f"/analyses/{scan_id}")
    assert fetched.status_code == 200
    assert fetched.json()["score"]["score"] == 41.9

    listing = api.get("/analyses").json()
    assert [item["scan_id"] for item in listing["items"]] == [scan_id]
    assert listing["items"][0]["ingredient_count"] == 4

    deleted = api.delete(f"/analyses/{scan_id}")
    assert deleted.status_code == 200
    assert deleted.json()["removed"] == scan_id
    _assert_error(api.get(f"/analyses/{scan_id}"), 404, "NOT_FOUND")


def test_analyze_with_profile_override(api):
    response = api.post(
        "/analyses",
        json={"text": "Milk, Sugar", "profile": {"allergies": [{"name": "milk"}]}},
    )

    assert response.status_code == 201
    assert response.json()["score"]["warnings"][0]["kind"] == "allergen"


def test_list_analyses_filters_by_category(api):
    api.post("/analyses", json={"text": LABELS["shampoo"], "category": "cosmetic"})
    api.post("/analyses", json={"text": LABELS["water"], "category": "food"})

    items = api.get("/analyses", params={"category": "cosmetic"}).json()["items"]

    assert len(items) == 1
    assert items[0]["category"] == "cosmetic"


def test_list_analyses_follows_cursor(api):
    """Following next_before and next_before_id visits every analysis once"""
    created = {api.post("/analyses", json={"text": LABELS["water"]}).json()["scan_id"] for _ in range(3)}

    first = api.get("/analyses", params={"limit": 2}).json()
    assert first["next_before_id"] == first["items"][-1]["scan_id"]

    second = api.get(
        "/analyses",
        params={"limit": 2, "before": first["next_before"], "before_id": first["next_before_id"]},
    ).json()
    seen = [item["scan_id"] for item in first["items"] + second["items"]]

    assert sorted(seen) == sorted(created)
    assert second["next_before_id"] is None


def test_analyze_rejects_invalid_category(api):
    error = _assert_error(api.post("/analyses", json={"text": "Water", "category": "toys"}), 422, "VALIDATION_ERROR")

    assert error["details"]


def test_analyze_requires_text(api):
    _assert_error(api.post("/analyses", json={"category": "food"}), 422)


def test_list_analyses_rejects_bad_limit(api):
    _assert_error(api.get("/analyses", params={"limit": 0}), 422)


def test_delete_missing_analysis_is_404(api):
    _assert_error(api.delete("/analyses/missing"), 404)


# =============================================================================
# KNOWLEDGE
# =============================================================================


def test_get_additive_by_alias(api):
    response = api.get("/knowledge/additives/red 40")

    assert response.status_code == 200
    assert response.json()["code"] == "E129"


def test_get_unknown_additive_is_404(api):
    _assert_error(api.get("/knowledge/additives/zorblax"), 404, "NOT_FOUND")


def test_knowledge_listings(api):
    assert [e["code"] for e in api.get("/knowledge/categories/sweetener").json()] == ["E950", "E951"]
    assert api.get("/knowledge/controversial").json()
    assert {e["code"] for e in api.get("/knowledge/concerning", params={"threshold": 20}).json()} == {"E171", "E129", "E320"}
    assert "E129" in {d["code"] for d in api.get("/knowledge/regulatory-differences").json()}
    assert api.get("/knowledge/regulatory-changes").json()[0]["date"] == "2025-04-22"


def test_concerning_threshold_is_validated(api):
    _assert_error(api.get("/knowledge/concerning", params={"threshold": 150}), 422)


def test_analyze_additive_list(api):
    response = api.post("/knowledge/analyze", json={"ingredients": ["Red 40", "E211", "Water"]})

    assert response.status_code == 200
    summary = response.json()["additive_summary"]
    assert summary["total_additives"] == 2
    assert api.get("/analyses").json()["items"] == []


def test_analyze_additive_list_requires_names(api):
    _assert_error(api.post("/knowledge/analyze", json={"ingredients": []}), 422)


# =============================================================================
# INTELLIGENCE
# =============================================================================


def test_ingredient_intelligence_uses_local_analysis(api):
    response = api.get("/ingredients/Sodium Benzoate/intelligence", params={"category": "food"})
    assert response.status_code == 200

    data = response.json()
    assert data["basic_info"]["status"] == "fallback"
    assert data["basic_info"]["data"]["name"] == "Sodium Benzoate"
    assert data["expert_analysis"]["status"] == "fallback"
    assert data["research"] == []


def test_source_health_without_remote_sources(api):
    response = api.get("/sources/health")

    assert response.status_code == 200
    assert response.json() == []


# =============================================================================
# PROFILE
# =============================================================================


def test_profile_round_trip(api):
    assert api.get("/profile").json()["allergies"] == []

    response = api.put(
        "/profile",
        json={"allergies": [{"name": "peanut", "severity": "severe"}], "sensitivities": [{"name": "fragrance"}]},
    )
    assert response.status_code == 200

    profile = api.get("/profile").json()
    assert profile["allergies"][0]["name"] == "peanut"
    assert profile["sensitivities"][0]["name"] == "fragrance"


def test_profile_rejects_empty_condition_name(api):
    _assert_error(api.put("/profile", json={"allergies": [{"name": ""}]}), 422)


# =============================================================================
# SYNC
# =============================================================================


def test_offline_analysis_is_queued(api):
    """
    Verifies:
    - Going offline makes new analyses unsynced and queued
    - Going back online triggers a replay, skipped without a sync endpoint
    """
    offline = api.put("/sync/connectivity", json={"online": False}).json()
    assert offline == {"online": False, "replay": None}

    created = api.post("/analyses", json={"text": LABELS["water"]}).json()
    assert created["synced"] is False

    status = api.get("/sync/status").json()
    assert status["online"] is False
    assert status["pending"] == 1
    assert status["endpoint_configured"] is False

    online = api.put("/sync/connectivity", json={"online": True}).json()
    assert online["online"] is True
    assert online["replay"]["skipped_reason"] == "no sync endpoint configured"
    assert online["replay"]["remaining"] == 1


def test_manual_replay_without_endpoint(api):
    report = api.post("/sync/replay").json()

    assert report["skipped_reason"] == "no sync endpoint configured"


# =============================================================================
# STORAGE
# =============================================================================


def test_storage_stats_and_sweep(api):
    api.post("/analyses", json={"text": LABELS["water"]})

    stats = api.get("/storage/stats").json()
    assert stats["collections"]["scan_results"]["total"] == 1
    assert stats["collections"]["scan_results"]["expired"] == 0

    report = api.post("/storage/sweep").json()
    assert report["ran"] is True
    assert report["deleted"]["scan_results"] == 0

    assert api.get("/storage/stats").json()["last_cleanup"] is not None


def test_retention_policies(api):
    policies = {p["collection"]: p["max_age_days"] for p in api.get("/storage/retention").json()}
    assert policies["scan_results"] == 90
    assert policies["profile_settings"] is None

    response = api.put("/storage/retention/knowledge_cache", json={"max_age_days": 14})
    assert response.status_code == 200
    assert response.json() == {"collection": "knowledge_cache", "max_age_days": 14}

    api.put("/storage/retention/knowledge_cache", json={"max_age_days": 30})


def test_retention_rejects_non_positive_days(api):
    _assert_error(api.put("/storage/retention/scan_results", json={"max_age_days": 0}), 400)


def test_retention_rejects_unknown_collection(api):
    _assert_error(api.put("/storage/retention/widgets", json={"max_age_days": 10}), 422)


def test_clear_storage(api):
    api.post("/analyses", json={"text": LABELS["water"]})

    cleared = api.delete("/storage").json()

    assert cleared["scan_results"] == 1
    assert api.get("/analyses").json()["items"] == []


# =============================================================================
# BACKGROUND MAINTENANCE
# =============================================================================


def test_retention_loop_purges_source_caches_and_sweeps():
    """
    Verifies:
    - Each interval purges expired orchestrator cache entries
    - Each interval runs the retention sweep
    """
    from main import retention_loop

    clock = FakeMonotonic()
    store = make_store()
    orchestrator = make_orchestrator(cache=TTLCache(60, clock=clock))

    async def run():
        await orchestrator.resolve(Capability.INGREDIENT_BASICS, "Sodium Benzoate")
        clock.advance(61)
        task = asyncio.create_task(retention_loop(store, orchestrator, 0.01))
        await asyncio.sleep(0.2)
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    asyncio.run(run())

    assert len(orchestrator.cache) == 0
    assert store.storage_stats().last_cleanup is not None
