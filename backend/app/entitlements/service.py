"""Resolves what a user's current plan entitles them to."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from ..billing.models import PlanKey, SubscriptionRecord, SubscriptionStatus
from .catalog import PlanDefinition, get_plan_definition
from .models import FeatureBundle, UserEntitlements

logger = logging.getLogger("billing")


class SubscriptionRepository(Protocol):
    """Read access to the subscription mirror maintained by webhooks."""

    def list_subscriptions_for_user(self, user_id: str) -> List[SubscriptionRecord]:
        ...


class EntitlementService:
    """Maps a user's newest current subscription onto the plan catalog.

    Users without an active, unexpired subscription fall back to the free
    plan. Lookups always read the repository so cancellations recorded by
    webhooks take effect on the next request.
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._subscription_repository = subscription_repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_active_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        now = self._clock()
        for subscription in self._subscription_repository.list_subscriptions_for_user(user_id):
            if not subscription.is_active:
                continue
            period_end = subscription.current_period_end
            if period_end is not None and period_end <= now:
                continue
            return subscription
        return None

    def get_plan(self, user_id: str) -> PlanDefinition:
        subscription = self.get_active_subscription(user_id)
        return get_plan_definition(subscription.plan if subscription else PlanKey.FREE)

    def get_features(self, user_id: str) -> FeatureBundle:
        return self.get_plan(user_id).bundle

    def has_feature(self, user_id: str, feature: str) -> bool:
        return self.get_features(user_id).has_feature(feature)

    def max_seats(self, user_id: str) -> int:
        return self.get_features(user_id).max_seats

    def can_access(self, user_id: str, subject: str) -> bool:
        return subject in self.get_features(user_id).subjects

    def can_add_learner(self, user_id: str, current_learners: int) -> bool:
        bundle = self.get_features(user_id)
        if not bundle.multi_learner:
            return False
        # The account holder always occupies one seat.
        return max(1, current_learners) < bundle.max_seats

    def get_entitlements(self, user_id: str) -> UserEntitlements:
        subscription = self.get_active_subscription(user_id)
        plan = get_plan_definition(subscription.plan if subscription else PlanKey.FREE)
        if subscription is None:
            logger.debug("No current subscription for user %s; using free plan", user_id)

        return UserEntitlements(
            user_id=user_id,
            plan=plan.key,
            plan_name=plan.display_name,
            status=subscription.status if subscription else SubscriptionStatus.ACTIVE,
            subscription_id=subscription.subscription_id if subscription else None,
            renews_at=subscription.current_period_end if subscription else None,
            seats_allowed=plan.bundle.max_seats,
            subjects=plan.bundle.subjects,
            features=plan.bundle.to_flags(),
        )


__all__ = ["EntitlementService", "SubscriptionRepository"]
