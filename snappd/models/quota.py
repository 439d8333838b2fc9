"""
Quota domain models.
Usage counters for a quota window and the snapshot returned by a quota check.
"""
from datetime import datetime
from typing import Optional
from snappd.models.plan import Plan


class UsageRecord:
    """Artifacts created and bytes stored within one quota window."""

    def __init__(self, account_id: str, window: str, artifact_count: int = 0, bytes_stored: int = 0):
        self.account_id = account_id
        self.window = window
        self.artifact_count = artifact_count
        self.bytes_stored = bytes_stored

    def __repr__(self):
        return f"UsageRecord(account_id={self.account_id}, window={self.window}, artifact_count={self.artifact_count})"


class QuotaSnapshot:
    """Result of a quota check. ``limit`` and ``remaining`` are ``None`` when unmetered."""

    def __init__(
        self,
        plan: Plan,
        allowed: bool,
        used: int,
        limit: Optional[int],
        remaining: Optional[int],
        resets_at: datetime
    ):
        self.plan = plan
        self.allowed = allowed
        self.used = used
        self.limit = limit
        self.remaining = remaining
        self.resets_at = resets_at

    @property
    def is_unlimited(self) -> bool:
        return self.limit is None

    def __repr__(self):
        return f"QuotaSnapshot(plan={self.plan.value}, used={self.used}, limit={self.limit}, remaining={self.remaining})"
