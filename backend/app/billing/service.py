"""Core service coordinating billing flows with Stripe."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .catalog import PriceCatalog
from .exceptions import WebhookVerificationError
from .models import (
    ActiveSubscription,
    AuthenticatedUser,
    BillingAuditEvent,
    BillingAuditEventType,
    BillingWebhookEvent,
    BillingWebhookEventType,
    CheckoutSession,
    SubscriptionRecord,
    SubscriptionStatus,
)

logger = logging.getLogger("billing")


class PaymentGateway(Protocol):
    """Operations the billing service needs from the payment provider."""

    def find_customer_by_email(self, email: str) -> Optional[Any]:
        ...

    def create_customer(self, email: str, name: Optional[str] = None) -> Any:
        ...

    def list_active_subscriptions(self, customer_id: str) -> List[Any]:
        ...

    def retrieve_subscription(self, subscription_id: str) -> Any:
        ...

    def create_checkout_session(
        self,
        *,
        line_items: Sequence[Dict[str, Any]],
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> Any:
        ...

    def create_portal_session(self, *, customer_id: str, return_url: str) -> Any:
        ...

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        ...


class BillingEventLogger(Protocol):
    """Captures structured billing audit events."""

    def log(self, event: BillingAuditEvent) -> None:
        ...


class BillingRepository(Protocol):
    """Persistence operations required by the billing service."""

    def upsert_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        ...

    def get_subscription(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        ...

    def find_user_id_for_customer(self, customer_id: str) -> Optional[str]:
        ...

    def list_subscriptions_for_user(self, user_id: str) -> List[SubscriptionRecord]:
        ...

    def claim_webhook_event(self, event: BillingWebhookEvent) -> bool:
        ...

    def release_webhook_event(self, event_id: str) -> None:
        ...


_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Item lookup that works for Stripe objects and plain dicts alike."""

    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, IndexError, TypeError):
        return default
    return default if value is None else value


def _as_id(value: Any) -> Optional[str]:
    # Expanded references arrive as objects, collapsed ones as bare ids.
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return _field(value, "id")


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass(**_dataclass_kwargs)
class BillingService:
    """Coordinates checkout, portal access and subscription reconciliation."""

    gateway: PaymentGateway
    repository: BillingRepository
    catalog: PriceCatalog
    event_logger: BillingEventLogger

    def create_checkout_session(
        self,
        *,
        user: AuthenticatedUser,
        price_id: Any,
        quantity: Optional[int],
        origin: str,
    ) -> CheckoutSession:
        if not isinstance(price_id, str) or not price_id.strip():
            raise ValueError("Price ID is required")
        if quantity is None:
            quantity = 1
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")

        session = self.gateway.create_checkout_session(
            line_items=[{"price": price_id.strip(), "quantity": quantity}],
            customer_email=user.email,
            metadata={"userId": user.id},
            success_url=f"{origin}/dashboard?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/pricing",
        )
        checkout = CheckoutSession(session_id=_field(session, "id", ""), url=_field(session, "url", ""))
        logger.info("Checkout session %s created for user %s", checkout.session_id, user.id)
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.CHECKOUT_STARTED,
                actor_id=user.id,
                metadata={"price_id": price_id.strip(), "session_id": checkout.session_id},
            )
        )
        return checkout

    def create_portal_session(self, *, user: AuthenticatedUser, origin: str) -> str:
        customer = self.gateway.find_customer_by_email(user.email)
        if customer is None:
            # Portal access requires a prior purchase; never create a customer here.
            raise LookupError("No subscription found. Please subscribe first.")

        session = self.gateway.create_portal_session(
            customer_id=_as_id(customer),
            return_url=f"{origin}/dashboard",
        )
        return _field(session, "url", "")

    def list_active_subscriptions(
        self,
        *,
        user: AuthenticatedUser,
    ) -> Tuple[Optional[str], List[ActiveSubscription]]:
        customer = self.gateway.find_customer_by_email(user.email)
        if customer is None:
            return None, []

        customer_id = _as_id(customer)
        summaries: List[ActiveSubscription] = []
        for subscription in self.gateway.list_active_subscriptions(customer_id):
            price_id, quantity, period_end = self._first_item_details(subscription)
            summaries.append(
                ActiveSubscription(
                    subscription_id=_field(subscription, "id"),
                    status=SubscriptionStatus(_field(subscription, "status", "active")),
                    quantity=quantity,
                    price_id=price_id,
                    current_period_end=_from_timestamp(
                        _field(subscription, "current_period_end", period_end)
                    ),
                    plan=self.catalog.resolve(price_id),
                )
            )
        return customer_id, summaries

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> BillingWebhookEvent:
        """Verify the raw request body and return the normalized event."""

        raw_event = self.gateway.verify_webhook(payload, signature)
        try:
            return BillingWebhookEvent.from_payload(raw_event)
        except ValueError as exc:
            raise WebhookVerificationError(str(exc)) from exc

    def handle_webhook(self, event: BillingWebhookEvent) -> Optional[SubscriptionRecord]:
        """Apply a verified webhook event; safe to call again with the same event."""

        log_context = {"stripe_event_id": event.event_id, "stripe_event_type": event.event_type}
        # The claim is held only if the handler succeeds.
        if not self.repository.claim_webhook_event(event):
            logger.info("Skipping already processed webhook event %s", event.event_id, extra=log_context)
            return None

        try:
            return self._dispatch(event, log_context)
        except Exception:
            self.repository.release_webhook_event(event.event_id)
            raise

    def _dispatch(self, event: BillingWebhookEvent, log_context: Dict[str, str]) -> Optional[SubscriptionRecord]:
        result: Optional[SubscriptionRecord] = None
        if event.event_type == BillingWebhookEventType.CHECKOUT_SESSION_COMPLETED.value:
            result = self._handle_checkout_completed(event.data_object)
        elif event.event_type == BillingWebhookEventType.SUBSCRIPTION_UPDATED.value:
            result = self._handle_subscription_updated(event.data_object)
        elif event.event_type == BillingWebhookEventType.SUBSCRIPTION_DELETED.value:
            result = self._handle_subscription_deleted(event.data_object)
        else:
            logger.info("Unhandled webhook event type %s (%s)", event.event_type, event.event_id, extra=log_context)
        return result

    def _handle_checkout_completed(self, session: Dict[str, Any]) -> Optional[SubscriptionRecord]:
        logger.info("Checkout completed: %s", _field(session, "id"))
        subscription_id = _as_id(_field(session, "subscription"))
        if _field(session, "mode") != "subscription" or not subscription_id:
            return None

        subscription = self.gateway.retrieve_subscription(subscription_id)
        metadata = _field(session, "metadata", {})
        user_id = _field(metadata, "userId")
        return self._reconcile(subscription, user_id=user_id)

    def _handle_subscription_updated(self, subscription: Dict[str, Any]) -> SubscriptionRecord:
        logger.info("Subscription updated: %s", _field(subscription, "id"))
        return self._reconcile(subscription)

    def _handle_subscription_deleted(self, subscription: Dict[str, Any]) -> SubscriptionRecord:
        logger.info("Subscription deleted: %s", _field(subscription, "id"))
        return self._reconcile(subscription, status=SubscriptionStatus.CANCELED)

    def _reconcile(
        self,
        subscription: Any,
        *,
        user_id: Optional[str] = None,
        status: Optional[SubscriptionStatus] = None,
    ) -> SubscriptionRecord:
        record = self._record_from_provider(subscription, user_id=user_id, status=status)
        persisted = self.repository.upsert_subscription(record)

        if persisted.status == SubscriptionStatus.CANCELED:
            audit_type = BillingAuditEventType.SUBSCRIPTION_CANCELED
        elif persisted.is_active:
            audit_type = BillingAuditEventType.SUBSCRIPTION_ACTIVATED
        else:
            audit_type = BillingAuditEventType.SUBSCRIPTION_UPDATED

        self.event_logger.log(
            BillingAuditEvent(
                event_type=audit_type,
                subscription_id=persisted.subscription_id,
                actor_id=persisted.user_id,
                metadata={"plan": persisted.plan.value, "status": persisted.status.value},
            )
        )
        return persisted

    def _record_from_provider(
        self,
        subscription: Any,
        *,
        user_id: Optional[str],
        status: Optional[SubscriptionStatus],
    ) -> SubscriptionRecord:
        subscription_id = _field(subscription, "id")
        customer_id = _as_id(_field(subscription, "customer"))
        if not subscription_id or not customer_id:
            raise ValueError("subscription payload is missing id or customer")

        price_id, quantity, item_period_end = self._first_item_details(subscription)
        plan = self.catalog.resolve(price_id)
        if status is None:
            status = SubscriptionStatus(_field(subscription, "status", SubscriptionStatus.INCOMPLETE.value))

        existing = self.repository.get_subscription(subscription_id)
        if existing is not None and existing.status == SubscriptionStatus.CANCELED:
            # Canceled is terminal; late or reordered updates must not revive it.
            if status != SubscriptionStatus.CANCELED:
                logger.info("Ignoring status %s for canceled subscription %s", status.value, subscription_id)
            status = SubscriptionStatus.CANCELED

        return SubscriptionRecord(
            subscription_id=subscription_id,
            customer_id=customer_id,
            plan=plan.plan,
            status=status,
            seats_allowed=plan.seats,
            quantity=quantity,
            price_id=price_id,
            current_period_end=_from_timestamp(
                _field(subscription, "current_period_end", item_period_end)
            ),
            user_id=self._correlate_user(existing, customer_id, user_id),
        )

    def _correlate_user(
        self,
        existing: Optional[SubscriptionRecord],
        customer_id: str,
        user_id: Optional[str],
    ) -> Optional[str]:
        if user_id:
            return user_id
        if existing is not None and existing.user_id:
            return existing.user_id
        return self.repository.find_user_id_for_customer(customer_id)

    @staticmethod
    def _first_item_details(subscription: Any) -> Tuple[Optional[str], int, Optional[int]]:
        items = _field(_field(subscription, "items", {}), "data", [])
        if not items:
            return None, 1, None
        first = items[0]
        price_id = _as_id(_field(first, "price"))
        quantity = int(_field(first, "quantity", 1)) or 1
        # Newer API versions report the billing period on the item.
        return price_id, quantity, _field(first, "current_period_end")


__all__ = [
    "BillingEventLogger",
    "BillingRepository",
    "BillingService",
    "PaymentGateway",
]
