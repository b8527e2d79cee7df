from unittest.mock import AsyncMock, patch

from app.config import settings
from app.models.enums import SubscriberStatus
from app.models.subscriber import Subscriber
from app.services.email_service import EmailService

from conftest import auth_headers


async def test_subscribe_once_then_already_subscribed(client):
    response = await client.post("/api/newsletter/subscribe", json={"email": "Fan@Example.com"})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Successfully subscribed to newsletter!"
    assert body["data"]["email"] == "fan@example.com"
    # SMTP is not configured under test, so nothing was actually mailed
    assert body["data"]["emails_sent"] == {"welcome": False, "notification": False}

    response = await client.post("/api/newsletter/subscribe", json={"email": "fan@example.com"})
    assert response.json()["message"] == "Email is already subscribed"
    assert await Subscriber.find_all().count() == 1


async def test_configured_smtp_sends_welcome_and_admin_notice(client, monkeypatch):
    monkeypatch.setattr(settings, "SENDER_EMAIL", "news@example.com")
    monkeypatch.setattr(settings, "SENDER_PASSWORD", "app-password")
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "editor@example.com")

    with patch.object(EmailService, "_send_blocking") as send:
        response = await client.post(
            "/api/newsletter/subscribe", json={"email": "reader@example.com"}
        )

    assert response.json()["data"]["emails_sent"] == {"welcome": True, "notification": True}
    recipients = sorted(call.args[0] for call in send.call_args_list)
    assert recipients == ["editor@example.com", "reader@example.com"]


async def test_failed_welcome_email_does_not_fail_subscription(client):
    with patch(
        "app.services.email_service.EmailService.send_newsletter_welcome",
        new_callable=AsyncMock,
        return_value=False,
    ), patch(
        "app.services.email_service.EmailService.send_new_subscriber_notification",
        new_callable=AsyncMock,
        return_value=True,
    ):
        response = await client.post(
            "/api/newsletter/subscribe", json={"email": "quiet@example.com"}
        )
    assert response.status_code == 200
    assert response.json()["data"]["emails_sent"] == {"welcome": False, "notification": True}


async def test_email_exception_is_reported_not_raised(client):
    with patch(
        "app.services.email_service.EmailService.send_new_subscriber_notification",
        new_callable=AsyncMock,
        side_effect=RuntimeError("smtp down"),
    ):
        response = await client.post(
            "/api/newsletter/subscribe", json={"email": "loud@example.com"}
        )
    assert response.status_code == 200
    assert response.json()["data"]["emails_sent"]["notification"] is False


async def test_invalid_email_is_rejected(client):
    response = await client.post("/api/newsletter/subscribe", json={"email": "not-an-email"})
    assert response.status_code == 400


async def test_unsubscribe_is_idempotent_and_resubscribe_reactivates(client):
    await client.post("/api/newsletter/subscribe", json={"email": "back@example.com"})

    for _ in range(2):
        response = await client.post(
            "/api/newsletter/unsubscribe", json={"email": "back@example.com"}
        )
        assert response.status_code == 200

    stored = await Subscriber.find_one({"email": "back@example.com"})
    assert stored.status == SubscriberStatus.UNSUBSCRIBED
    assert stored.unsubscribed_at is not None

    response = await client.post("/api/newsletter/subscribe", json={"email": "back@example.com"})
    assert response.json()["message"] == "Successfully subscribed to newsletter!"
    stored = await Subscriber.find_one({"email": "back@example.com"})
    assert stored.status == SubscriberStatus.ACTIVE
    assert stored.unsubscribed_at is None
    assert await Subscriber.find_all().count() == 1


async def test_unsubscribe_unknown_address(client):
    response = await client.post(
        "/api/newsletter/unsubscribe", json={"email": "nobody@example.com"}
    )
    assert response.status_code == 200


async def test_counts_and_health(client):
    for email in ("a@example.com", "b@example.com"):
        await client.post("/api/newsletter/subscribe", json={"email": email})
    await client.post("/api/newsletter/unsubscribe", json={"email": "a@example.com"})

    response = await client.get("/api/newsletter/subscribers/count")
    data = response.json()["data"]
    assert (data["total"], data["active"]) == (2, 1)

    response = await client.get("/api/newsletter/health")
    assert response.json()["stats"]["unsubscribed_count"] == 1


async def test_subscriber_list_is_admin_only(client, admin, reader):
    await client.post("/api/newsletter/subscribe", json={"email": "c@example.com"})

    response = await client.get("/api/newsletter/subscribers", headers=auth_headers(reader))
    assert response.status_code == 403

    response = await client.get(
        "/api/newsletter/subscribers",
        params={"status": "active"},
        headers=auth_headers(admin),
    )
    body = response.json()
    assert [s["email"] for s in body["data"]] == ["c@example.com"]
    assert body["pagination"]["total"] == 1
