"""Domain models for plan feature entitlements."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..billing.models import PlanKey, SubscriptionStatus

FEATURE_NAMES: Tuple[str, ...] = (
    "multi_learner",
    "advanced_analytics",
    "offline_access",
    "priority_support",
    "custom_learning_paths",
    "api_access",
    "white_label",
)


@dataclass(frozen=True)
class FeatureBundle:
    """Feature switches, seat allowance and subjects granted by a plan."""

    multi_learner: bool = False
    advanced_analytics: bool = False
    offline_access: bool = False
    priority_support: bool = False
    custom_learning_paths: bool = False
    api_access: bool = False
    white_label: bool = False
    max_seats: int = 1
    subjects: Tuple[str, ...] = ()

    def has_feature(self, feature: str) -> bool:
        if feature not in FEATURE_NAMES:
            raise KeyError(f"Unknown feature: {feature}")
        return bool(getattr(self, feature))

    def to_flags(self) -> Dict[str, bool]:
        return {name: getattr(self, name) for name in FEATURE_NAMES}


class UserEntitlements(BaseModel):
    """Resolved plan and features for one user."""

    user_id: str
    plan: PlanKey
    plan_name: str
    status: SubscriptionStatus
    subscription_id: Optional[str] = None
    renews_at: Optional[datetime] = None
    seats_allowed: int = 1
    subjects: Tuple[str, ...] = ()
    features: Dict[str, bool]

    model_config = ConfigDict(frozen=True)


__all__ = ["FEATURE_NAMES", "FeatureBundle", "UserEntitlements"]
