from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

import backend.main as backend_main
from backend.app.billing import BillingService, GatewayError, SubscriptionStatus
from backend.app.billing.gateway import StripeGateway
from backend.app.routes import billing as billing_routes
from backend.auth import SESSION_COOKIE_NAME, create_access_token


WEBHOOK_SECRET = "whsec_api_secret"


@pytest.fixture
def client():
    return TestClient(backend_main.app)


@pytest.fixture
def signed_in_client(client):
    client.cookies.set(
        SESSION_COOKIE_NAME,
        create_access_token(subject="user-1", email="parent@example.com"),
    )
    return client


@pytest.fixture
def use_service(monkeypatch):
    def _install(service):
        monkeypatch.setattr(billing_routes, "get_billing_service", lambda: service)
        return service

    return _install


def _stripe_backed_service(catalog, helpers, gateway):
    return BillingService(
        gateway=gateway,
        repository=helpers.repository_factory(),
        catalog=catalog,
        event_logger=helpers.logger_factory(),
    )


def test_checkout_returns_session_url(signed_in_client, use_service, billing_components):
    use_service(billing_components.service)

    response = signed_in_client.post(
        "/api/stripe/checkout",
        json={"priceId": "price_family_monthly", "quantity": 2},
    )

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/cs_test_1"}
    [session] = billing_components.gateway.checkout_sessions
    assert session["metadata"] == {"userId": "user-1"}
    assert session["customer_email"] == "parent@example.com"
    assert session["success_url"].startswith("http://testserver/dashboard?session_id=")


@pytest.mark.parametrize("body", [{"priceId": ""}, {}, None])
def test_checkout_without_price_is_bad_request(signed_in_client, use_service, billing_components, body):
    use_service(billing_components.service)

    response = signed_in_client.post("/api/stripe/checkout", json=body)

    assert response.status_code == 400
    assert response.json()["detail"] == "Price ID is required"
    assert billing_components.gateway.checkout_sessions == []


@pytest.mark.parametrize("body", [{"priceId": 123}, {"priceId": ["price_family_monthly"]}, {"priceId": None}])
def test_checkout_with_non_string_price_is_bad_request(signed_in_client, use_service, billing_components, body):
    use_service(billing_components.service)

    response = signed_in_client.post("/api/stripe/checkout", json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Price ID is required"}
    assert billing_components.gateway.checkout_sessions == []


@pytest.mark.parametrize("content", [b"{not json", b"[1, 2]", b"\"price_family_monthly\""])
def test_checkout_with_malformed_body_is_bad_request(signed_in_client, use_service, billing_components, content):
    use_service(billing_components.service)

    response = signed_in_client.post(
        "/api/stripe/checkout",
        content=content,
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid request body"}
    assert billing_components.gateway.checkout_sessions == []


@pytest.mark.parametrize("body", [{"priceId": "price_family_monthly"}, {"priceId": ""}])
def test_checkout_requires_authentication(client, use_service, billing_components, body):
    use_service(billing_components.service)

    response = client.post("/api/stripe/checkout", json=body)

    assert response.status_code == 401
    assert billing_components.gateway.checkout_sessions == []


def test_checkout_rejects_forged_session_cookie(client, use_service, billing_components):
    use_service(billing_components.service)
    client.cookies.set(SESSION_COOKIE_NAME, "not-a-token")

    response = client.post("/api/stripe/checkout", json={"priceId": "price_family_monthly"})

    assert response.status_code == 401


def test_checkout_without_stripe_key_is_unavailable(signed_in_client, use_service, catalog, billing_helpers):
    use_service(_stripe_backed_service(catalog, billing_helpers, StripeGateway(secret_key=None)))

    response = signed_in_client.post("/api/stripe/checkout", json={"priceId": "price_family_monthly"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Payment processing not configured"


def test_checkout_provider_failure_is_generic_error(signed_in_client, use_service, billing_components):
    def failing_checkout(**kwargs):
        raise GatewayError("Stripe checkout session creation failed: api_key sk_live_secret")

    billing_components.gateway.create_checkout_session = failing_checkout
    use_service(billing_components.service)

    response = signed_in_client.post("/api/stripe/checkout", json={"priceId": "price_family_monthly"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_portal_without_customer_is_not_found(signed_in_client, use_service, billing_components):
    use_service(billing_components.service)

    response = signed_in_client.get("/api/stripe/portal")

    assert response.status_code == 404
    assert response.json()["detail"] == "No subscription found. Please subscribe first."
    assert billing_components.gateway.created_customers == []


def test_portal_returns_session_url(signed_in_client, use_service, billing_components):
    billing_components.gateway.add_customer("parent@example.com", "cus_123")
    use_service(billing_components.service)

    response = signed_in_client.get("/api/stripe/portal")

    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/cus_123"}
    assert billing_components.gateway.portal_sessions[0]["return_url"] == "http://testserver/dashboard"


def test_portal_requires_authentication(client, use_service, billing_components):
    use_service(billing_components.service)

    assert client.get("/api/stripe/portal").status_code == 401


def test_subscriptions_lists_active_plans(signed_in_client, use_service, billing_components, billing_helpers):
    billing_components.gateway.add_customer("parent@example.com", "cus_123")
    billing_components.gateway.active_subscriptions["cus_123"] = [billing_helpers.subscription_payload()]
    use_service(billing_components.service)

    response = signed_in_client.get("/api/stripe/subscriptions")

    assert response.status_code == 200
    body = response.json()
    assert body["customerId"] == "cus_123"
    assert body["subscriptions"][0]["subscriptionId"] == "sub_123"
    assert body["subscriptions"][0]["plan"]["plan"] == "family"


def test_webhook_with_invalid_signature_changes_nothing(client, use_service, catalog, billing_helpers):
    service = use_service(
        _stripe_backed_service(
            catalog,
            billing_helpers,
            StripeGateway(secret_key="sk_test_123", webhook_secret=WEBHOOK_SECRET),
        )
    )
    body = json.dumps(
        billing_helpers.event_payload(
            "evt_1",
            "checkout.session.completed",
            {
                "id": "cs_test_1",
                "mode": "subscription",
                "subscription": "sub_123",
                "metadata": {"userId": "user-1"},
            },
        )
    ).encode("utf-8")

    response = client.post(
        "/api/stripe/webhook",
        content=body,
        headers={"stripe-signature": billing_helpers.sign_payload(body, "whsec_wrong")},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Webhook signature verification failed"
    assert service.repository.subscriptions == {}
    assert service.repository.processed_events == []


def test_webhook_without_signature_header_is_rejected(client, use_service, catalog, billing_helpers):
    use_service(
        _stripe_backed_service(
            catalog,
            billing_helpers,
            StripeGateway(secret_key="sk_test_123", webhook_secret=WEBHOOK_SECRET),
        )
    )

    response = client.post("/api/stripe/webhook", content=b"{}")

    assert response.status_code == 400


def test_webhook_without_secret_is_unavailable(client, use_service, catalog, billing_helpers):
    use_service(
        _stripe_backed_service(catalog, billing_helpers, StripeGateway(secret_key="sk_test_123"))
    )

    response = client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=x"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Stripe webhook not configured"


def test_webhook_redelivery_cancels_subscription_once(client, use_service, catalog, billing_helpers):
    service = use_service(
        _stripe_backed_service(
            catalog,
            billing_helpers,
            StripeGateway(secret_key="sk_test_123", webhook_secret=WEBHOOK_SECRET),
        )
    )
    body = json.dumps(
        billing_helpers.event_payload(
            "evt_deleted",
            "customer.subscription.deleted",
            billing_helpers.subscription_payload(),
        )
    ).encode("utf-8")

    for _ in range(2):
        response = client.post(
            "/api/stripe/webhook",
            content=body,
            headers={"stripe-signature": billing_helpers.sign_payload(body, WEBHOOK_SECRET)},
        )
        assert response.status_code == 200
        assert response.json() == {"received": True}

    assert list(service.repository.subscriptions) == ["sub_123"]
    assert service.repository.subscriptions["sub_123"].status == SubscriptionStatus.CANCELED
    assert service.repository.processed_events == ["evt_deleted"]


def test_webhook_checkout_completed_retrieves_subscription(client, use_service, catalog, billing_helpers):
    class RetrievingGateway(StripeGateway):
        def retrieve_subscription(self, subscription_id):
            return billing_helpers.subscription_payload(subscription_id, price_id="price_plus_monthly")

    service = use_service(
        _stripe_backed_service(
            catalog,
            billing_helpers,
            RetrievingGateway(secret_key="sk_test_123", webhook_secret=WEBHOOK_SECRET),
        )
    )
    body = json.dumps(
        billing_helpers.event_payload(
            "evt_checkout",
            "checkout.session.completed",
            {
                "id": "cs_test_1",
                "mode": "subscription",
                "subscription": "sub_plus",
                "metadata": {"userId": "user-1"},
            },
        )
    ).encode("utf-8")

    response = client.post(
        "/api/stripe/webhook",
        content=body,
        headers={"stripe-signature": billing_helpers.sign_payload(body, WEBHOOK_SECRET)},
    )

    assert response.status_code == 200
    stored = service.repository.subscriptions["sub_plus"]
    assert stored.user_id == "user-1"
    assert stored.seats_allowed == 6


def test_webhook_handler_failure_returns_server_error(client, use_service, catalog, billing_helpers):
    class BrokenGateway(StripeGateway):
        def retrieve_subscription(self, subscription_id):
            raise GatewayError("Stripe subscription retrieval failed")

    service = use_service(
        _stripe_backed_service(
            catalog,
            billing_helpers,
            BrokenGateway(secret_key="sk_test_123", webhook_secret=WEBHOOK_SECRET),
        )
    )
    body = json.dumps(
        billing_helpers.event_payload(
            "evt_checkout",
            "checkout.session.completed",
            {"mode": "subscription", "subscription": "sub_plus", "metadata": {"userId": "user-1"}},
        )
    ).encode("utf-8")

    response = client.post(
        "/api/stripe/webhook",
        content=body,
        headers={"stripe-signature": billing_helpers.sign_payload(body, WEBHOOK_SECRET)},
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "Webhook handler failed"
    assert service.repository.processed_events == []


def test_health_reports_integrations(client, monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["integrations"]["stripe"] is True
    assert response.json()["integrations"]["stripe_webhook"] is False
