from __future__ import annotations

import hashlib
import hmac
import json
import pathlib
import sys
import time
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence

import pytest


ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.billing import (  # noqa: E402
    BillingAuditEvent,
    BillingService,
    BillingWebhookEvent,
    PriceCatalog,
    SubscriptionRecord,
    SubscriptionStatus,
    WebhookVerificationError,
)


PRICE_IDS = {
    "PRICE_ESSENTIAL_MONTHLY": "price_essential_monthly",
    "PRICE_ESSENTIAL_ANNUAL": "price_essential_annual",
    "PRICE_FAMILY_MONTHLY": "price_family_monthly",
    "PRICE_FAMILY_ANNUAL": "price_family_annual",
    "PRICE_PLUS_MONTHLY": "price_plus_monthly",
    "PRICE_PLUS_ANNUAL": "price_plus_annual",
}


class InMemoryBillingRepository:
    def __init__(self) -> None:
        self.subscriptions: Dict[str, SubscriptionRecord] = {}
        self.processed_events: List[str] = []

    def upsert_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        existing = self.subscriptions.get(subscription.subscription_id)
        if existing is not None and subscription.user_id is None:
            subscription = subscription.model_copy(update={"user_id": existing.user_id})
        if existing is not None and existing.status == SubscriptionStatus.CANCELED:
            subscription = subscription.model_copy(update={"status": SubscriptionStatus.CANCELED})
        self.subscriptions[subscription.subscription_id] = subscription
        return subscription

    def get_subscription(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        return self.subscriptions.get(subscription_id)

    def find_user_id_for_customer(self, customer_id: str) -> Optional[str]:
        matches = [
            record
            for record in self.subscriptions.values()
            if record.customer_id == customer_id and record.user_id
        ]
        if not matches:
            return None
        return max(matches, key=lambda record: record.updated_at).user_id

    def list_subscriptions_for_user(self, user_id: str) -> List[SubscriptionRecord]:
        matches = [record for record in self.subscriptions.values() if record.user_id == user_id]
        return sorted(matches, key=lambda record: record.updated_at, reverse=True)

    def claim_webhook_event(self, event: BillingWebhookEvent) -> bool:
        if event.event_id in self.processed_events:
            return False
        self.processed_events.append(event.event_id)
        return True

    def release_webhook_event(self, event_id: str) -> None:
        self.processed_events.remove(event_id)


class FakePaymentGateway:
    def __init__(self) -> None:
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.created_customers: List[str] = []
        self.checkout_sessions: List[Dict[str, Any]] = []
        self.portal_sessions: List[Dict[str, Any]] = []
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.active_subscriptions: Dict[str, List[Dict[str, Any]]] = {}

    def add_customer(self, email: str, customer_id: str) -> None:
        self.customers[email] = {"id": customer_id, "email": email}

    def find_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.customers.get(email)

    def create_customer(self, email: str, name: Optional[str] = None) -> Dict[str, Any]:
        self.created_customers.append(email)
        customer = {"id": f"cus_{len(self.created_customers)}", "email": email}
        self.customers[email] = customer
        return customer

    def list_active_subscriptions(self, customer_id: str) -> List[Dict[str, Any]]:
        return list(self.active_subscriptions.get(customer_id, []))

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self.subscriptions[subscription_id]

    def create_checkout_session(
        self,
        *,
        line_items: Sequence[Dict[str, Any]],
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        session_id = f"cs_test_{len(self.checkout_sessions) + 1}"
        self.checkout_sessions.append(
            {
                "id": session_id,
                "line_items": list(line_items),
                "customer_email": customer_email,
                "metadata": dict(metadata),
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    def create_portal_session(self, *, customer_id: str, return_url: str) -> Dict[str, Any]:
        self.portal_sessions.append({"customer_id": customer_id, "return_url": return_url})
        return {"url": f"https://billing.stripe.test/{customer_id}"}

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if signature != "valid":
            raise WebhookVerificationError("Invalid signature")
        return json.loads(payload.decode("utf-8"))


class RecordingEventLogger:
    def __init__(self) -> None:
        self.events: List[BillingAuditEvent] = []

    def log(self, event: BillingAuditEvent) -> None:
        self.events.append(event)


def subscription_payload(
    subscription_id: str = "sub_123",
    *,
    customer_id: str = "cus_123",
    price_id: Optional[str] = "price_family_monthly",
    status: str = "active",
    quantity: int = 1,
    current_period_end: Optional[int] = 1767225600,
) -> Dict[str, Any]:
    item: Dict[str, Any] = {"id": "si_1", "quantity": quantity, "price": {"id": price_id}}
    payload: Dict[str, Any] = {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer_id,
        "status": status,
        "items": {"object": "list", "data": [item] if price_id else []},
    }
    if current_period_end is not None:
        payload["current_period_end"] = current_period_end
    return payload


def event_payload(event_id: str, event_type: str, data_object: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }


def sign_payload(payload: bytes, secret: str, *, timestamp: Optional[int] = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def catalog() -> PriceCatalog:
    return PriceCatalog.from_price_ids(PRICE_IDS)


@pytest.fixture
def billing_components(catalog):
    gateway = FakePaymentGateway()
    repository = InMemoryBillingRepository()
    event_logger = RecordingEventLogger()
    service = BillingService(
        gateway=gateway,
        repository=repository,
        catalog=catalog,
        event_logger=event_logger,
    )
    return SimpleNamespace(
        service=service,
        gateway=gateway,
        repository=repository,
        event_logger=event_logger,
    )


@pytest.fixture
def billing_helpers():
    return SimpleNamespace(
        subscription_payload=subscription_payload,
        event_payload=event_payload,
        sign_payload=sign_payload,
        repository_factory=InMemoryBillingRepository,
        logger_factory=RecordingEventLogger,
    )
