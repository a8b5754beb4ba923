"""API schemas for entitlement lookups."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import PlanKey, SubscriptionStatus
from ..entitlements import UserEntitlements


class EntitlementsResponse(BaseModel):
    plan: PlanKey
    plan_name: str = Field(alias="planName")
    status: SubscriptionStatus
    subscription_id: Optional[str] = Field(default=None, alias="subscriptionId")
    renews_at: Optional[datetime] = Field(default=None, alias="renewsAt")
    seats_allowed: int = Field(alias="seatsAllowed")
    subjects: List[str] = Field(default_factory=list)
    features: Dict[str, bool] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entitlements(cls, entitlements: UserEntitlements) -> "EntitlementsResponse":
        return cls(
            plan=entitlements.plan,
            plan_name=entitlements.plan_name,
            status=entitlements.status,
            subscription_id=entitlements.subscription_id,
            renews_at=entitlements.renews_at,
            seats_allowed=entitlements.seats_allowed,
            subjects=list(entitlements.subjects),
            features=dict(entitlements.features),
        )


class SubjectAccessResponse(BaseModel):
    subject: str
    allowed: bool


class FeatureAccessResponse(BaseModel):
    feature: str
    enabled: bool
