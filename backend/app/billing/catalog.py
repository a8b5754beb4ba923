"""Static catalog mapping Stripe price ids to plans."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from ..config import AppConfig
from .models import FREE_PLAN, BillingInterval, PlanDescriptor, PlanKey


PLAN_SEATS: Dict[PlanKey, int] = {
    PlanKey.FREE: 1,
    PlanKey.ESSENTIAL: 1,
    PlanKey.FAMILY: 4,
    PlanKey.PLUS: 6,
}

PRICE_BINDINGS: Dict[str, Tuple[PlanKey, BillingInterval]] = {
    "PRICE_ESSENTIAL_MONTHLY": (PlanKey.ESSENTIAL, BillingInterval.MONTHLY),
    "PRICE_ESSENTIAL_ANNUAL": (PlanKey.ESSENTIAL, BillingInterval.ANNUAL),
    "PRICE_FAMILY_MONTHLY": (PlanKey.FAMILY, BillingInterval.MONTHLY),
    "PRICE_FAMILY_ANNUAL": (PlanKey.FAMILY, BillingInterval.ANNUAL),
    "PRICE_PLUS_MONTHLY": (PlanKey.PLUS, BillingInterval.MONTHLY),
    "PRICE_PLUS_ANNUAL": (PlanKey.PLUS, BillingInterval.ANNUAL),
}


@dataclass(frozen=True)
class PriceCatalog:
    """Lookup table from price id to :class:`PlanDescriptor`."""

    plans: Mapping[str, PlanDescriptor] = field(default_factory=dict)

    @classmethod
    def from_price_ids(cls, price_ids: Mapping[str, Optional[str]]) -> "PriceCatalog":
        plans: Dict[str, PlanDescriptor] = {}
        for env_key, (plan_key, interval) in PRICE_BINDINGS.items():
            price_id = price_ids.get(env_key)
            if not price_id:
                continue
            plans[price_id] = PlanDescriptor(
                plan=plan_key,
                seats=PLAN_SEATS[plan_key],
                billing=interval,
            )
        return cls(plans=plans)

    @classmethod
    def from_config(cls, config: AppConfig) -> "PriceCatalog":
        return cls.from_price_ids(config.price_ids)

    def resolve(self, price_id: Optional[str]) -> PlanDescriptor:
        """Return the plan bound to ``price_id``, or the free plan when unknown."""

        if not price_id:
            return FREE_PLAN
        return self.plans.get(price_id, FREE_PLAN)

    def __contains__(self, price_id: object) -> bool:
        return price_id in self.plans


__all__ = ["PLAN_SEATS", "PRICE_BINDINGS", "PriceCatalog"]
