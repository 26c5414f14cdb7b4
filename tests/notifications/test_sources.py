"""Tests for the HTTP notification source."""

from __future__ import annotations

from typing import List

import httpx
import pytest

from securewatch.errors import MutationRejected, TransientFetchError
from securewatch.notifications.sources import NotificationSourceClient
from tests.notifications.fakes import alert_record, server_record


def _client(handler, requests: List[httpx.Request], **kwargs) -> NotificationSourceClient:
    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return NotificationSourceClient(
        "http://securewatch.test/",
        transport=httpx.MockTransport(recording),
        **kwargs,
    )


@pytest.mark.asyncio()
async def test_fetch_notifications_sends_limit() -> None:
    requests: List[httpx.Request] = []
    client = _client(
        lambda request: httpx.Response(200, json={"notifications": [server_record(1)]}),
        requests,
    )

    records = await client.fetch_notifications(limit=20)

    assert records[0]["id"] == 1
    assert requests[0].method == "GET"
    assert requests[0].url.path == "/api/notifications"
    assert requests[0].url.params["limit"] == "20"
    assert "authorization" not in requests[0].headers


@pytest.mark.asyncio()
async def test_fetch_dashboard_alerts() -> None:
    requests: List[httpx.Request] = []
    client = _client(
        lambda request: httpx.Response(200, json={"alerts": [alert_record("critical_violations")]}),
        requests,
    )

    records = await client.fetch_dashboard_alerts()

    assert records[0]["id"] == "critical_violations"
    assert requests[0].url.path == "/api/dashboard/alerts"


@pytest.mark.asyncio()
async def test_bearer_token_is_sent() -> None:
    requests: List[httpx.Request] = []
    client = _client(
        lambda request: httpx.Response(200, json={"notifications": []}),
        requests,
        auth_token="s3cret",
    )

    await client.fetch_notifications(limit=5)

    assert requests[0].headers["authorization"] == "Bearer s3cret"


@pytest.mark.asyncio()
async def test_server_error_raises_transient_fetch_error() -> None:
    client = _client(lambda request: httpx.Response(500, json={"error": "boom"}), [])

    with pytest.raises(TransientFetchError) as excinfo:
        await client.fetch_notifications(limit=20)

    assert excinfo.value.status_code == 500
    assert excinfo.value.source == "notifications"


@pytest.mark.asyncio()
async def test_connection_error_raises_transient_fetch_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(refuse, [])

    with pytest.raises(TransientFetchError) as excinfo:
        await client.fetch_dashboard_alerts()

    assert excinfo.value.status_code is None


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json={"notifications": "nope"}),
        httpx.Response(200, json=[1, 2, 3]),
    ],
)
async def test_malformed_body_raises_transient_fetch_error(response: httpx.Response) -> None:
    client = _client(lambda request: response, [])

    with pytest.raises(TransientFetchError):
        await client.fetch_notifications(limit=20)


@pytest.mark.asyncio()
async def test_mutation_paths() -> None:
    requests: List[httpx.Request] = []
    client = _client(lambda request: httpx.Response(200, json={"success": True}), requests)

    await client.mark_notification_read("42")
    await client.mark_all_notifications_read()
    await client.delete_notification("42")

    assert [(r.method, r.url.path) for r in requests] == [
        ("PUT", "/api/notifications/42/read"),
        ("PUT", "/api/notifications/read-all"),
        ("DELETE", "/api/notifications/42"),
    ]


@pytest.mark.asyncio()
async def test_rejected_mutation_raises() -> None:
    client = _client(lambda request: httpx.Response(404, json={"error": "Notification not found"}), [])

    with pytest.raises(MutationRejected) as excinfo:
        await client.mark_notification_read("42")

    assert excinfo.value.operation == "mark_as_read"
    assert excinfo.value.notification_id == "42"
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio()
async def test_unreachable_mutation_raises() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(refuse, [])

    with pytest.raises(MutationRejected) as excinfo:
        await client.delete_notification("7")

    assert excinfo.value.operation == "remove_notification"
