"""Errors raised by the billing integration."""
from __future__ import annotations


class BillingError(Exception):
    """Base class for billing failures."""


class GatewayUnavailable(BillingError):
    """The Stripe client cannot be used because credentials are missing."""


class GatewayError(BillingError):
    """Stripe rejected or failed a request."""


class WebhookVerificationError(BillingError):
    """An inbound webhook failed signature or payload verification."""


__all__ = ["BillingError", "GatewayError", "GatewayUnavailable", "WebhookVerificationError"]
