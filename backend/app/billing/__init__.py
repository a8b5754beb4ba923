"""Billing domain package providing Stripe checkout, portal and webhook flows."""

from .catalog import PLAN_SEATS, PRICE_BINDINGS, PriceCatalog
from .exceptions import BillingError, GatewayError, GatewayUnavailable, WebhookVerificationError
from .models import (
    FREE_PLAN,
    ActiveSubscription,
    AuthenticatedUser,
    BillingAuditEvent,
    BillingAuditEventType,
    BillingInterval,
    BillingWebhookEvent,
    BillingWebhookEventType,
    CheckoutSession,
    PlanDescriptor,
    PlanKey,
    SubscriptionRecord,
    SubscriptionStatus,
)
from .service import (
    BillingEventLogger,
    BillingRepository,
    BillingService,
    PaymentGateway,
)

__all__ = [
    "ActiveSubscription",
    "AuthenticatedUser",
    "BillingAuditEvent",
    "BillingAuditEventType",
    "BillingError",
    "BillingEventLogger",
    "BillingInterval",
    "BillingRepository",
    "BillingService",
    "BillingWebhookEvent",
    "BillingWebhookEventType",
    "CheckoutSession",
    "FREE_PLAN",
    "GatewayError",
    "GatewayUnavailable",
    "PLAN_SEATS",
    "PRICE_BINDINGS",
    "PaymentGateway",
    "PlanDescriptor",
    "PlanKey",
    "PriceCatalog",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "WebhookVerificationError",
]
