"""Plan feature entitlements derived from mirrored subscriptions."""

from .catalog import PLAN_CATALOG, PlanDefinition, get_plan_definition
from .models import FEATURE_NAMES, FeatureBundle, UserEntitlements
from .service import EntitlementService, SubscriptionRepository

__all__ = [
    "PLAN_CATALOG",
    "FEATURE_NAMES",
    "EntitlementService",
    "FeatureBundle",
    "PlanDefinition",
    "SubscriptionRepository",
    "UserEntitlements",
    "get_plan_definition",
]
