"""
Quota policy.
Pure functions for monthly allowance, quota windows and artifact expiration.
"""
from datetime import datetime, timezone
from typing import Optional
from snappd.models.plan import Plan, policy_for
from snappd.models.quota import QuotaSnapshot


def month_start(now: datetime) -> datetime:
    """First instant of ``now``'s calendar month in UTC."""
    now = _as_utc(now)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def next_reset(now: datetime) -> datetime:
    """First instant of the next calendar month in UTC."""
    start = month_start(now)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def quota_window(now: datetime, counted_from: Optional[datetime] = None) -> str:
    """
    Key of the quota window containing ``now``.

    The window is the UTC calendar month (``YYYY-MM``). When ``counted_from``
    (e.g. a plan downgrade) falls inside the same month, usage is counted from
    that instant only, so the key gets the timestamp as a suffix.

    Args:
        now: Current time
        counted_from: Optional instant usage counting restarts from

    Returns:
        Window key such as ``2026-10`` or ``2026-10#2026-10-12T08:30:00+00:00``
    """
    start = month_start(now)
    window = start.strftime("%Y-%m")
    if counted_from is not None:
        counted_from = _as_utc(counted_from)
        if start <= counted_from <= _as_utc(now):
            window = f"{window}#{counted_from.isoformat()}"
    return window


def check_quota(plan: Plan, used: int, now: Optional[datetime] = None) -> QuotaSnapshot:
    """
    Compute whether another artifact may be created this window.

    Args:
        plan: Account plan
        used: Artifacts already counted in the current window
        now: Current time, used for the reset timestamp

    Returns:
        QuotaSnapshot; limit and remaining are None for unmetered plans
    """
    now = now or datetime.now(timezone.utc)
    policy = policy_for(plan)
    resets_at = next_reset(now)

    if not policy.is_metered:
        return QuotaSnapshot(
            plan=plan,
            allowed=True,
            used=used,
            limit=None,
            remaining=None,
            resets_at=resets_at
        )

    limit = policy.monthly_upload_limit
    return QuotaSnapshot(
        plan=plan,
        allowed=used < limit,
        used=used,
        limit=limit,
        remaining=max(0, limit - used),
        resets_at=resets_at
    )


def compute_expiration(plan: Plan, created_at: datetime) -> Optional[datetime]:
    """Expiration stamped on a new artifact; None means it never expires."""
    ttl = policy_for(plan).artifact_ttl
    if ttl is None:
        return None
    return created_at + ttl


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
