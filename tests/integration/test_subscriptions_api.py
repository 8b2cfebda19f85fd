"""
HTTP-level tests for the subscription endpoints.

Runs the FastAPI app against a temporary SQLite database and the
recording dev email adapter (see conftest.client).
"""

import sqlite3

import httpx
import pytest
from fastapi.testclient import TestClient

from src.adapters.http_email import HttpEmailAdapter
from src.api import deps
from src.api.deps import get_settings
from src.api.main import app
from src.domain.identity import SubscriberEmail

VALID_FORM = {"name": "Ursula Le Guin", "email": "ursula_le_guin@gmail.com"}


def post_subscription(client, data):
    return client.post("/subscriptions", data=data)


class TestSubscribe:
    def test_valid_form_returns_200_and_persists(self, client, store, email_adapter):
        response = post_subscription(client, VALID_FORM)

        assert response.status_code == 200
        assert response.json()["success"] is True

        found = store.find_by_email(SubscriberEmail("ursula_le_guin@gmail.com"))
        assert found is not None
        subscriber, _ = found
        assert subscriber.name == "Ursula Le Guin"
        assert subscriber.status == "pending_confirmation"
        assert email_adapter.email_count == 1

    @pytest.mark.parametrize(
        "data,missing",
        [
            ({"name": "Ursula Le Guin"}, "email"),
            ({"email": "ursula_le_guin@gmail.com"}, "name"),
            ({}, "email"),
        ],
    )
    def test_missing_fields_return_400(self, client, data, missing):
        response = post_subscription(client, data)

        assert response.status_code == 400
        assert missing in response.json()["detail"]

    @pytest.mark.parametrize(
        "data",
        [
            {"name": "", "email": "ursula_le_guin@gmail.com"},
            {"name": "Ursula", "email": ""},
            {"name": "Ursula", "email": "definitely-not-an-email"},
            {"name": "Ursula", "email": "@smail.com"},
            {"name": "Ursula {Le} Guin", "email": "ursula_le_guin@gmail.com"},
        ],
    )
    def test_invalid_fields_return_400(self, client, store, email_adapter, data):
        response = post_subscription(client, data)

        assert response.status_code == 400
        assert store.count_subscribers() == 0
        assert email_adapter.email_count == 0

    def test_email_links_point_at_endpoints(self, client, email_adapter, last_token):
        post_subscription(client, VALID_FORM)

        email = email_adapter.get_last_email()
        assert email is not None
        assert email.recipient == "ursula_le_guin@gmail.com"
        token = last_token()
        assert f"http://testserver/subscriptions/confirm?subscription_token={token}" in (
            email.body_text
        )
        assert f"http://testserver/subscriptions/revoke?subscription_token={token}" in (
            email.body_html
        )

    def test_subscribing_twice_resends_same_token(
        self, client, store, email_adapter, last_token
    ):
        post_subscription(client, VALID_FORM)
        first_token = last_token()

        response = post_subscription(client, VALID_FORM)

        assert response.status_code == 200
        assert email_adapter.email_count == 2
        assert last_token() == first_token
        assert store.count_subscribers() == 1
        assert store.count_tokens() == 1

    def test_send_failure_returns_500_and_keeps_row(self, client, store, email_adapter):
        email_adapter.fail_sends = True

        response = post_subscription(client, VALID_FORM)

        assert response.status_code == 500
        # Internal causes are not exposed
        assert "Dev mode" not in response.text
        assert store.count_subscribers() == 1

    def test_store_failure_returns_500(self, client, db_path):
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE subscription_tokens")
        conn.commit()
        conn.close()

        response = post_subscription(client, VALID_FORM)

        assert response.status_code == 500


class TestConfirm:
    def test_without_token_returns_400(self, client):
        assert client.get("/subscriptions/confirm").status_code == 400

    def test_malformed_token_returns_400(self, client):
        response = client.get(
            "/subscriptions/confirm", params={"subscription_token": "not_a_valid_token"}
        )
        assert response.status_code == 400

    def test_unknown_token_returns_401(self, client):
        response = client.get("/subscriptions/confirm", params={"subscription_token": "Q" * 25})
        assert response.status_code == 401

    def test_confirm_link_confirms(self, client, store, last_token):
        post_subscription(client, VALID_FORM)
        token = last_token()

        response = client.get("/subscriptions/confirm", params={"subscription_token": token})

        assert response.status_code == 200
        assert response.json()["message"] == "Thanks for confirming your subscription!"
        conn = sqlite3.connect(store.db_path)
        status = conn.execute("SELECT status FROM subscriptions").fetchone()[0]
        conn.close()
        assert status == "confirmed"

    def test_confirm_is_idempotent(self, client, last_token):
        post_subscription(client, VALID_FORM)
        token = last_token()

        first = client.get("/subscriptions/confirm", params={"subscription_token": token})
        second = client.get("/subscriptions/confirm", params={"subscription_token": token})

        assert first.status_code == 200
        assert second.status_code == 200

    def test_resubscribe_after_confirm_keeps_confirmed(self, client, db_path, last_token):
        post_subscription(client, VALID_FORM)
        token = last_token()
        client.get("/subscriptions/confirm", params={"subscription_token": token})

        response = post_subscription(client, VALID_FORM)

        assert response.status_code == 200
        assert last_token() == token
        conn = sqlite3.connect(db_path)
        status = conn.execute("SELECT status FROM subscriptions").fetchone()[0]
        conn.close()
        assert status == "confirmed"


class TestRevoke:
    def test_without_token_returns_400(self, client):
        assert client.get("/subscriptions/revoke").status_code == 400

    def test_unknown_token_returns_401(self, client):
        response = client.get("/subscriptions/revoke", params={"subscription_token": "Q" * 25})
        assert response.status_code == 401

    def test_revoke_deletes_everything(self, client, store, last_token):
        post_subscription(client, VALID_FORM)
        token = last_token()

        response = client.get("/subscriptions/revoke", params={"subscription_token": token})

        assert response.status_code == 200
        assert response.json()["message"] == "You have been unsubscribed"
        assert store.count_subscribers() == 0
        assert store.count_tokens() == 0

    def test_token_unusable_after_revoke(self, client, last_token):
        post_subscription(client, VALID_FORM)
        token = last_token()
        client.get("/subscriptions/revoke", params={"subscription_token": token})

        revoke_again = client.get("/subscriptions/revoke", params={"subscription_token": token})
        confirm = client.get("/subscriptions/confirm", params={"subscription_token": token})

        assert revoke_again.status_code == 401
        assert confirm.status_code == 401


class TestEndToEnd:
    def test_full_lifecycle(self, client, store, last_token):
        alpha = {"name": "Alpha Centauri", "email": "alphacentauri@smail.com"}

        assert post_subscription(client, alpha).status_code == 200
        token = last_token()

        assert (
            client.get("/subscriptions/confirm", params={"subscription_token": token}).status_code
            == 200
        )
        assert (
            client.get("/subscriptions/revoke", params={"subscription_token": token}).status_code
            == 200
        )
        assert (
            client.get("/subscriptions/confirm", params={"subscription_token": token}).status_code
            == 401
        )

        # Starting over issues a brand new token
        assert post_subscription(client, alpha).status_code == 200
        assert last_token() != token
        assert store.count_subscribers() == 1


class TestApplicationStartup:
    def test_lifespan_migrates_configured_database(self, tmp_path, monkeypatch):
        db_file = tmp_path / "nested" / "service.db"
        monkeypatch.setenv("APP_ENVIRONMENT", "local")
        monkeypatch.setenv("APP_DATABASE__PATH", str(db_file))
        get_settings.cache_clear()

        try:
            with TestClient(app) as client:
                assert client.get("/health_check").status_code == 200
                health = client.get("/health")
                assert health.status_code == 200
                assert {c["name"] for c in health.json()["checks"]} == {"startup", "database"}
        finally:
            get_settings.cache_clear()

        assert db_file.exists()

    def test_shutdown_closes_email_client(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "local")
        monkeypatch.setenv("APP_DATABASE__PATH", str(tmp_path / "service.db"))
        get_settings.cache_clear()
        client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        )
        adapter = HttpEmailAdapter(
            base_url="https://email.test",
            sender=SubscriberEmail("sender@smail.com"),
            authorization_token="server-token",
            client=client,
        )
        monkeypatch.setattr(deps, "_gateway_instance", adapter)

        try:
            with TestClient(app) as test_client:
                assert test_client.get("/health_check").status_code == 200
                assert not client.is_closed
        finally:
            get_settings.cache_clear()

        assert client.is_closed
        assert deps._gateway_instance is None
