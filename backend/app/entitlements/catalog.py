"""Static mapping from plans to the features they unlock."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from ..billing.catalog import PLAN_SEATS
from ..billing.models import PlanKey
from ..content.models import SUBJECT_IDS
from .models import FeatureBundle


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a subscription plan and the bundle it grants."""

    key: PlanKey
    display_name: str
    bundle: FeatureBundle


CORE_SUBJECTS: Tuple[str, ...] = ("math", "reading")

FREE_BUNDLE = FeatureBundle(
    max_seats=PLAN_SEATS[PlanKey.FREE],
    subjects=CORE_SUBJECTS,
)

ESSENTIAL_BUNDLE = FeatureBundle(
    advanced_analytics=True,
    offline_access=True,
    priority_support=True,
    custom_learning_paths=True,
    max_seats=PLAN_SEATS[PlanKey.ESSENTIAL],
    subjects=SUBJECT_IDS,
)

FAMILY_BUNDLE = FeatureBundle(
    multi_learner=True,
    advanced_analytics=True,
    offline_access=True,
    priority_support=True,
    custom_learning_paths=True,
    max_seats=PLAN_SEATS[PlanKey.FAMILY],
    subjects=SUBJECT_IDS,
)

PLUS_BUNDLE = FeatureBundle(
    multi_learner=True,
    advanced_analytics=True,
    offline_access=True,
    priority_support=True,
    custom_learning_paths=True,
    api_access=True,
    white_label=True,
    max_seats=PLAN_SEATS[PlanKey.PLUS],
    subjects=SUBJECT_IDS,
)

PLAN_CATALOG: Dict[PlanKey, PlanDefinition] = {
    PlanKey.FREE: PlanDefinition(key=PlanKey.FREE, display_name="Free", bundle=FREE_BUNDLE),
    PlanKey.ESSENTIAL: PlanDefinition(key=PlanKey.ESSENTIAL, display_name="Essential", bundle=ESSENTIAL_BUNDLE),
    PlanKey.FAMILY: PlanDefinition(key=PlanKey.FAMILY, display_name="Family", bundle=FAMILY_BUNDLE),
    PlanKey.PLUS: PlanDefinition(key=PlanKey.PLUS, display_name="Plus", bundle=PLUS_BUNDLE),
}


def get_plan_definition(plan_key: PlanKey) -> PlanDefinition:
    try:
        return PLAN_CATALOG[plan_key]
    except KeyError as exc:
        raise KeyError(f"Unknown plan key: {plan_key}") from exc


__all__ = ["PLAN_CATALOG", "PlanDefinition", "get_plan_definition"]
