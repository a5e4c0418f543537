"""Static quota ceilings per plan tier."""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from src.core.exceptions import InvalidPlanError
from src.schemas.usage import PlanLimits


class PlanTier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


PLAN_LIMITS: Mapping[str, PlanLimits] = MappingProxyType(
    {
        PlanTier.FREE.value: PlanLimits(
            max_messages_per_month=100,
            max_ai_requests_per_month=50,
            max_storage_mb=10,
        ),
        PlanTier.BASIC.value: PlanLimits(
            max_messages_per_month=1_000,
            max_ai_requests_per_month=500,
            max_storage_mb=100,
        ),
        PlanTier.PREMIUM.value: PlanLimits(
            max_messages_per_month=10_000,
            max_ai_requests_per_month=5_000,
            max_storage_mb=1_000,
        ),
        PlanTier.ENTERPRISE.value: PlanLimits(
            max_messages_per_month=100_000,
            max_ai_requests_per_month=50_000,
            max_storage_mb=10_000,
        ),
    }
)


def get_plan_limits(plan: Optional[str]) -> PlanLimits:
    """Return the limits for ``plan``; unknown tiers raise instead of defaulting."""

    if isinstance(plan, PlanTier):
        plan = plan.value
    limits = PLAN_LIMITS.get(plan) if plan is not None else None
    if limits is None:
        raise InvalidPlanError(plan)
    return limits
