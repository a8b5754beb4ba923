"""Application wiring for the billing service."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Tuple

from ..billing import BillingAuditEvent, BillingEventLogger, BillingService, PriceCatalog
from ..billing.gateway import StripeGateway
from ..billing.repository import PostgresBillingRepository
from ... import app_context


logger = logging.getLogger("billing")


class LoggingBillingEventLogger(BillingEventLogger):
    """Simple event logger forwarding billing audit events to logging."""

    def log(self, event: BillingAuditEvent) -> None:
        logger.info(
            "Billing event %s subscription=%s actor=%s metadata=%s",
            event.event_type.value,
            event.subscription_id,
            event.actor_id,
            event.metadata,
            extra={"billing_event": event.event_type.value, "subscription_id": event.subscription_id},
        )


def get_billing_service() -> BillingService:
    """Return the service for the current configuration, rebuilt when credentials change."""

    config = app_context.get_config()
    return _billing_service_for(
        config.stripe_secret_key,
        config.stripe_webhook_secret,
        tuple(sorted(config.price_ids.items())),
    )


@lru_cache(maxsize=4)
def _billing_service_for(
    secret_key: Optional[str],
    webhook_secret: Optional[str],
    price_ids: Tuple[Tuple[str, Optional[str]], ...],
) -> BillingService:
    if not secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; billing endpoints will respond 503")
    elif not webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhook endpoint will respond 503")

    gateway = StripeGateway(secret_key=secret_key, webhook_secret=webhook_secret)
    return BillingService(
        gateway=gateway,
        repository=PostgresBillingRepository(),
        catalog=PriceCatalog.from_price_ids(dict(price_ids)),
        event_logger=LoggingBillingEventLogger(),
    )


__all__ = ["get_billing_service", "LoggingBillingEventLogger"]
