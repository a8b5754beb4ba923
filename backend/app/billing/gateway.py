"""Stripe payment gateway client."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import stripe

from .exceptions import GatewayError, GatewayUnavailable, WebhookVerificationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"


class StripeGateway:
    """Thin wrapper around the Stripe SDK.

    Every call passes the secret key explicitly instead of mutating the
    module-level ``stripe.api_key``, so several gateways can coexist in a
    process (tests, multiple accounts).
    """

    def __init__(
        self,
        *,
        secret_key: Optional[str],
        webhook_secret: Optional[str] = None,
        signature_tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._signature_tolerance = signature_tolerance

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    @property
    def webhook_configured(self) -> bool:
        return bool(self._secret_key and self._webhook_secret)

    def _api_key(self) -> str:
        if not self._secret_key:
            raise GatewayUnavailable("Payment processing not configured")
        return self._secret_key

    def find_customer_by_email(self, email: str) -> Optional[Any]:
        """Return the first customer whose email matches exactly, if any."""

        api_key = self._api_key()
        try:
            customers = stripe.Customer.list(email=email, limit=1, api_key=api_key)
        except stripe.StripeError as exc:
            raise GatewayError(f"Stripe customer lookup failed: {exc}") from exc
        data = customers["data"]
        return data[0] if data else None

    def create_customer(self, email: str, name: Optional[str] = None) -> Any:
        api_key = self._api_key()
        params: Dict[str, Any] = {"email": email}
        if name:
            params["name"] = name
        try:
            return stripe.Customer.create(api_key=api_key, **params)
        except stripe.StripeError as exc:
            raise GatewayError(f"Stripe customer creation failed: {exc}") from exc

    def list_active_subscriptions(self, customer_id: str) -> List[Any]:
        api_key = self._api_key()
        try:
            subscriptions = stripe.Subscription.list(
                customer=customer_id,
                status="active",
                api_key=api_key,
            )
        except stripe.StripeError as exc:
            raise GatewayError(f"Stripe subscription listing failed: {exc}") from exc
        return list(subscriptions["data"])

    def retrieve_subscription(self, subscription_id: str) -> Any:
        api_key = self._api_key()
        try:
            return stripe.Subscription.retrieve(
                subscription_id,
                expand=["items.data.price"],
                api_key=api_key,
            )
        except stripe.StripeError as exc:
            raise GatewayError(f"Stripe subscription retrieval failed: {exc}") from exc

    def create_checkout_session(
        self,
        *,
        line_items: Sequence[Dict[str, Any]],
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> Any:
        api_key = self._api_key()
        try:
            return stripe.checkout.Session.create(
                mode="subscription",
                payment_method_types=["card"],
                line_items=list(line_items),
                customer_email=customer_email,
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                api_key=api_key,
            )
        except stripe.StripeError as exc:
            raise GatewayError(f"Stripe checkout session creation failed: {exc}") from exc

    def create_portal_session(self, *, customer_id: str, return_url: str) -> Any:
        api_key = self._api_key()
        try:
            return stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
                api_key=api_key,
            )
        except stripe.StripeError as exc:
            raise GatewayError(f"Stripe portal session creation failed: {exc}") from exc

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the signature over the raw body and return the decoded event."""

        if not self.webhook_configured:
            raise GatewayUnavailable("Stripe webhook not configured")
        if not signature:
            raise WebhookVerificationError(f"Missing {SIGNATURE_HEADER} header")

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError("Webhook payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                text,
                signature,
                self._webhook_secret,
                self._signature_tolerance,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError(f"Invalid signature: {exc}") from exc

        try:
            event = json.loads(text)
        except json.JSONDecodeError as exc:
            raise WebhookVerificationError(f"Invalid payload: {exc}") from exc
        if not isinstance(event, dict):
            raise WebhookVerificationError("Invalid payload: expected a JSON object")
        return event


__all__ = ["SIGNATURE_HEADER", "StripeGateway"]
