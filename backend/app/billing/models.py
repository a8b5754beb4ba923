"""Domain models for the billing system."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanKey(str, Enum):
    """Plans a price id can resolve to."""

    FREE = "free"
    ESSENTIAL = "essential"
    FAMILY = "family"
    PLUS = "plus"


class BillingInterval(str, Enum):
    """Billing cadence bound to a price id."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    """Lifecycle state for subscriptions as reported by Stripe."""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class BillingWebhookEventType(str, Enum):
    """Stripe event types that change local subscription state."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


class PlanDescriptor(BaseModel):
    """Plan, seat allowance and cadence derived from a price id."""

    plan: PlanKey
    seats: int = Field(ge=1)
    billing: BillingInterval

    model_config = ConfigDict(frozen=True)


FREE_PLAN = PlanDescriptor(plan=PlanKey.FREE, seats=1, billing=BillingInterval.MONTHLY)


class AuthenticatedUser(BaseModel):
    """Identity of the caller, derived from a verified session token."""

    id: str
    email: str

    model_config = ConfigDict(frozen=True)


class CheckoutSession(BaseModel):
    """Hosted checkout session returned to the browser."""

    session_id: str
    url: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionRecord(BaseModel):
    """Local copy of a Stripe subscription, keyed by the Stripe subscription id."""

    subscription_id: str
    customer_id: str
    plan: PlanKey
    status: SubscriptionStatus
    seats_allowed: int = Field(default=1, ge=1)
    quantity: int = Field(default=1, ge=1)
    price_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    user_id: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_active(self) -> bool:
        return self.status in {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING}


class BillingWebhookEvent(BaseModel):
    """Verified webhook event as delivered by Stripe."""

    event_id: str
    event_type: str
    data_object: Dict[str, object] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def from_payload(cls, payload: Dict[str, object]) -> "BillingWebhookEvent":
        event_id = payload.get("id")
        event_type = payload.get("type")
        if not isinstance(event_id, str) or not isinstance(event_type, str):
            raise ValueError("webhook event is missing id or type")
        data = payload.get("data") or {}
        data_object = data.get("object") if isinstance(data, dict) else None
        return cls(
            event_id=event_id,
            event_type=event_type,
            data_object=data_object if isinstance(data_object, dict) else {},
        )


class BillingAuditEventType(str, Enum):
    """Audit categories for checkout and subscription changes."""

    CHECKOUT_STARTED = "checkout_started"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELED = "subscription_canceled"


class BillingAuditEvent(BaseModel):
    """Structured audit event emitted by billing flows."""

    event_type: BillingAuditEventType
    subscription_id: Optional[str] = None
    actor_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ActiveSubscription(BaseModel):
    """Summary of an active Stripe subscription for the signed-in customer."""

    subscription_id: str = Field(alias="subscriptionId")
    status: SubscriptionStatus
    quantity: int = 1
    price_id: Optional[str] = Field(default=None, alias="priceId")
    current_period_end: Optional[datetime] = Field(default=None, alias="currentPeriodEnd")
    plan: PlanDescriptor

    model_config = ConfigDict(populate_by_name=True, frozen=True)
