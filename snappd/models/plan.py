"""
Subscription plan domain model.
Closed set of plans and the upload policy attached to each.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from snappd.core import config
from snappd.core.exceptions import ValidationException


class Plan(str, Enum):
    """Subscription plans known to the upload engine."""
    FREE = "free"
    PRO = "pro"
    TEAM = "team"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Plan":
        """Parse a stored plan name; an absent plan means FREE."""
        if not value:
            return cls.FREE
        try:
            return cls(value.lower())
        except ValueError:
            raise ValidationException(f"Unknown plan: {value}")


class PlanPolicy:
    """Upload policy for a plan. ``None`` limits mean unmetered."""

    def __init__(self, monthly_upload_limit: Optional[int], artifact_ttl: Optional[timedelta]):
        self.monthly_upload_limit = monthly_upload_limit
        self.artifact_ttl = artifact_ttl

    @property
    def is_metered(self) -> bool:
        return self.monthly_upload_limit is not None

    def __repr__(self):
        return f"PlanPolicy(monthly_upload_limit={self.monthly_upload_limit}, artifact_ttl={self.artifact_ttl})"


def policy_for(plan: Plan) -> PlanPolicy:
    """Return the upload policy for a plan."""
    if plan is Plan.FREE:
        return PlanPolicy(
            monthly_upload_limit=config.settings.free_monthly_upload_limit,
            artifact_ttl=timedelta(days=config.settings.free_artifact_ttl_days)
        )
    if plan in (Plan.PRO, Plan.TEAM):
        return PlanPolicy(monthly_upload_limit=None, artifact_ttl=None)
    raise ValidationException(f"No policy defined for plan: {plan}")


class AccountPlan:
    """An account's plan as reported by the account collaborator."""

    def __init__(self, account_id: str, plan: Plan, downgraded_at: Optional[datetime] = None):
        self.account_id = account_id
        self.plan = plan
        self.downgraded_at = downgraded_at

    def __repr__(self):
        return f"AccountPlan(account_id={self.account_id}, plan={self.plan.value})"
