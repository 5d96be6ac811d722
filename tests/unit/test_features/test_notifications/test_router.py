"""HTTP API tests for the notifications router."""

from __future__ import annotations

from uuid import uuid4

import pytest

BASE = "/api/v1/notifications"
HEADERS = {"X-User-ID": "seller-1"}


def notification(**overrides) -> dict:
    body = {
        "user_id": "seller-1",
        "type": "OFFER_RECEIVED",
        "title": "Nytt bud på din annons",
        "message": "Du har fått ett bud på 250 000 SEK",
        "data": {"offerId": "o-42", "listingId": "l-7", "amount": 250000},
        "priority": "HIGH",
        "channels": ["IN_APP", "EMAIL"],
    }
    body.update(overrides)
    return body


class TestSendEndpoint:
    async def test_send_returns_dispatch_result(self, client, email_transport):
        response = await client.post(f"{BASE}/", json=notification())

        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "DISPATCHING"
        assert [(o["channel"], o["succeeded"]) for o in body["outcomes"]] == [("IN_APP", True), ("EMAIL", True)]
        assert email_transport.sent[0][1] == "email-template-offer_received-sv"

    async def test_invalid_body_is_problem_json(self, client):
        response = await client.post(f"{BASE}/", json=notification(channels=[], priority="CRITICAL"))

        assert response.status_code == 422
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["type"] == "validation-error"
        assert {e["field"] for e in body["errors"]} == {"body.channels", "body.priority"}

    async def test_batch_reports_per_item(self, client):
        response = await client.post(
            f"{BASE}/batch",
            json={"requests": [notification(), notification(type="NOT_A_TYPE"), notification(channels=["SMS"])]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == 2
        assert body["failed"] == 1
        failed = body["results"][1]
        assert failed["result"] is None
        assert failed["error"]["status"] == 422
        assert failed["error"]["type"] == "validation-error"
        assert body["results"][2]["result"]["state"] == "SUPPRESSED"

    async def test_empty_batch_is_rejected(self, client):
        response = await client.post(f"{BASE}/batch", json={"requests": []})

        assert response.status_code == 422


class TestFeedEndpoints:
    async def test_list_and_unread_count(self, client):
        for _ in range(3):
            await client.post(f"{BASE}/", json=notification(channels=["IN_APP"]))

        listing = await client.get(f"{BASE}/", params={"page": 1, "page_size": 2}, headers=HEADERS)
        unread = await client.get(f"{BASE}/unread-count", headers=HEADERS)

        assert listing.status_code == 200
        page = listing.json()
        assert page["total_count"] == 3
        assert page["unread_count"] == 3
        assert len(page["records"]) == 2
        assert unread.json() == {"unread_count": 3}

    async def test_list_filters_by_type(self, client):
        await client.post(f"{BASE}/", json=notification(channels=["IN_APP"]))
        await client.post(f"{BASE}/", json=notification(type="NEWSLETTER", channels=["IN_APP"]))

        response = await client.get(f"{BASE}/", params={"types": "NEWSLETTER"}, headers=HEADERS)

        assert [r["type"] for r in response.json()["records"]] == ["NEWSLETTER"]

    async def test_missing_user_header(self, client):
        response = await client.get(f"{BASE}/unread-count")

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "header.x-user-id"

    async def test_blank_user_header_is_rejected(self, client):
        response = await client.get(f"{BASE}/unread-count", headers={"X-User-ID": "   "})

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "header.x-user-id"

    async def test_page_size_limit(self, client):
        response = await client.get(f"{BASE}/", params={"page_size": 500}, headers=HEADERS)

        assert response.status_code == 422

    async def test_mark_as_read(self, client):
        created = (await client.post(f"{BASE}/", json=notification(channels=["IN_APP"]))).json()

        first = await client.post(f"{BASE}/{created['record_id']}/read", headers=HEADERS)
        second = await client.post(f"{BASE}/{created['record_id']}/read", headers=HEADERS)

        assert first.status_code == 200
        assert first.json()["read_at"] is not None
        assert second.json()["read_at"] == first.json()["read_at"]
        assert (await client.get(f"{BASE}/unread-count", headers=HEADERS)).json() == {"unread_count": 0}

    async def test_mark_as_read_not_found(self, client):
        response = await client.post(f"{BASE}/{uuid4()}/read", headers=HEADERS)

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["type"] == "notification-not-found"
        assert body["instance"].endswith("/read")


class TestPreferenceEndpoints:
    async def test_patch_then_get(self, client):
        response = await client.patch(
            f"{BASE}/preferences",
            json={
                "types": {
                    "NEWSLETTER": {"enabled": False},
                    "OFFER_RECEIVED": {
                        "channels": ["IN_APP", "SMS"],
                        "quiet_hours": {"start": "22:00", "end": "07:00", "timezone": "Europe/Stockholm"},
                    },
                },
            },
            headers=HEADERS,
        )
        assert response.status_code == 200

        stored = (await client.get(f"{BASE}/preferences", headers=HEADERS)).json()

        assert stored["types"]["NEWSLETTER"]["enabled"] is False
        assert stored["types"]["OFFER_RECEIVED"]["channels"] == ["IN_APP", "SMS"]
        assert stored["types"]["OFFER_RECEIVED"]["quiet_hours"]["start"] == "22:00"

    @pytest.mark.parametrize(
        "quiet_hours",
        [
            {"start": "25:00", "end": "07:00"},
            {"start": "22:00", "end": "07:00", "timezone": "Mars/Olympus_Mons"},
        ],
    )
    async def test_invalid_quiet_hours(self, client, quiet_hours):
        response = await client.patch(
            f"{BASE}/preferences",
            json={"types": {"NEWSLETTER": {"quiet_hours": quiet_hours}}},
            headers=HEADERS,
        )

        assert response.status_code == 422

    async def test_disabled_type_is_suppressed(self, client, email_transport):
        await client.patch(
            f"{BASE}/preferences",
            json={"types": {"OFFER_RECEIVED": {"enabled": False}}},
            headers=HEADERS,
        )

        body = (await client.post(f"{BASE}/", json=notification())).json()

        assert body["state"] == "SUPPRESSED"
        assert body["outcomes"] == []
        assert email_transport.sent == []


class TestSubscriptionEndpoints:
    async def test_push_subscription_lifecycle(self, client, subscription_store):
        endpoint = "https://fcm.googleapis.com/fcm/send/device-token"
        created = await client.post(
            f"{BASE}/push-subscriptions",
            json={
                "endpoint": endpoint,
                "keys": {"p256dh": "BPk3y", "auth": "s3cr3t"},
                "device_info": {"platform": "web", "user_agent": "Firefox"},
            },
            headers=HEADERS,
        )
        assert created.status_code == 201
        assert created.json()["user_id"] == "seller-1"

        removed = await client.request(
            "DELETE",
            f"{BASE}/push-subscriptions",
            json={"endpoint": endpoint},
            headers=HEADERS,
        )

        assert removed.status_code == 204
        assert await subscription_store.list_push("seller-1") == []

    async def test_webhook_secret_only_returned_on_create(self, client):
        created = await client.post(f"{BASE}/webhooks", json={"url": "https://hooks.example/n"}, headers=HEADERS)
        listed = await client.get(f"{BASE}/webhooks", headers=HEADERS)

        assert created.status_code == 201
        assert len(created.json()["secret"]) == 64
        assert [w["id"] for w in listed.json()] == [created.json()["id"]]
        assert "secret" not in listed.json()[0]

    async def test_webhook_delete_scoped_to_owner(self, client):
        created = await client.post(f"{BASE}/webhooks", json={"url": "https://hooks.example/n"}, headers=HEADERS)
        created = created.json()

        other = await client.delete(f"{BASE}/webhooks/{created['id']}", headers={"X-User-ID": "someone-else"})
        own = await client.delete(f"{BASE}/webhooks/{created['id']}", headers=HEADERS)

        assert other.status_code == 404
        assert own.status_code == 204

    async def test_webhook_short_secret_rejected(self, client):
        response = await client.post(
            f"{BASE}/webhooks",
            json={"url": "https://hooks.example/n", "secret": "short"},
            headers=HEADERS,
        )

        assert response.status_code == 422


class TestServiceAvailability:
    async def test_uninitialized_service_is_503(self):
        from httpx import ASGITransport, AsyncClient

        from notification_service.app.main import create_app

        application = create_app()
        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as ac:
            response = await ac.get(f"{BASE}/unread-count", headers=HEADERS)

        assert response.status_code == 503
        assert response.json()["type"] == "service-unavailable"

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
