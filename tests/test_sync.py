"""
Tests for connectivity tracking and the HTTP sync transport.
"""

import json

import httpx
import pytest

from app.exceptions import SyncTransportError
from domain.enums import SyncItemType
from services import ConnectivityMonitor, HttpSyncTransport
from test_fixtures import make_store


def test_connectivity_reports_only_reconnects():
    monitor = ConnectivityMonitor(start_online=True)

    assert monitor.set_online(True) is False
    assert monitor.set_online(False) is False
    assert monitor.is_online is False
    assert monitor.set_online(True) is True
    assert monitor.is_online is True


def test_transport_posts_item_envelope():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(202)

    transport = HttpSyncTransport(
        "https://sync.test/items", client=httpx.Client(transport=httpx.MockTransport(handler))
    )
    transport.send("scan_result:abc", "scan_result", {"score": 80})

    assert received[0].method == "POST"
    assert received[0].url == "https://sync.test/items"
    assert json.loads(received[0].content) == {"id": "scan_result:abc", "type": "scan_result", "payload": {"score": 80}}


@pytest.mark.parametrize("status", [400, 500, 503])
def test_transport_maps_rejections(status):
    transport = HttpSyncTransport(
        "https://sync.test/items",
        client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(status))),
    )

    with pytest.raises(SyncTransportError) as exc_info:
        transport.send("profile:user_profile", "profile", {})

    assert exc_info.value.details == {"status": status}


def test_transport_maps_connection_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    transport = HttpSyncTransport(
        "https://sync.test/items", client=httpx.Client(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(SyncTransportError):
        transport.send("profile:user_profile", "profile", {})


def test_replay_through_http_transport():
    """A store replaying through a real transport over a mock endpoint"""
    delivered = []

    def handler(request: httpx.Request) -> httpx.Response:
        delivered.append(request)
        return httpx.Response(200)

    transport = HttpSyncTransport(
        "https://sync.test/items", client=httpx.Client(transport=httpx.MockTransport(handler))
    )
    store = make_store(online=False, transport=transport)
    store.queue_for_sync(SyncItemType.PROFILE, "user_profile", {})

    store.connectivity.set_online(True)
    report = store.replay_sync_queue()

    assert report.synced == 1
    assert len(delivered) == 1
