"""Application wiring for entitlement lookups."""
from __future__ import annotations

from functools import lru_cache

from ..billing.repository import PostgresBillingRepository
from ..entitlements import EntitlementService


@lru_cache(maxsize=1)
def get_entitlement_service() -> EntitlementService:
    # Stateless; the repository opens a connection per call.
    return EntitlementService(PostgresBillingRepository())


__all__ = ["get_entitlement_service"]
