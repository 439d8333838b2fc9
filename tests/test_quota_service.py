import pytest
from datetime import datetime, timedelta, timezone
from snappd.core.exceptions import ValidationException
from snappd.models.plan import Plan, policy_for
from snappd.services.quota_service import (
    check_quota,
    compute_expiration,
    month_start,
    next_reset,
    quota_window
)

NOW = datetime(2026, 10, 16, 14, 30, tzinfo=timezone.utc)


class TestCheckQuota:
    def test_free_plan_under_limit_is_allowed(self):
        snapshot = check_quota(Plan.FREE, 4, NOW)
        assert snapshot.allowed is True
        assert snapshot.limit == 10
        assert snapshot.used == 4
        assert snapshot.remaining == 6

    def test_free_plan_one_below_limit_is_allowed(self):
        snapshot = check_quota(Plan.FREE, 9, NOW)
        assert snapshot.allowed is True
        assert snapshot.remaining == 1

    def test_free_plan_at_limit_is_denied(self):
        snapshot = check_quota(Plan.FREE, 10, NOW)
        assert snapshot.allowed is False
        assert snapshot.remaining == 0

    def test_remaining_never_negative(self):
        snapshot = check_quota(Plan.FREE, 14, NOW)
        assert snapshot.allowed is False
        assert snapshot.remaining == 0

    @pytest.mark.parametrize("plan", [Plan.PRO, Plan.TEAM])
    def test_unmetered_plans_are_always_allowed(self, plan):
        snapshot = check_quota(plan, 10_000, NOW)
        assert snapshot.allowed is True
        assert snapshot.is_unlimited is True
        assert snapshot.limit is None
        assert snapshot.remaining is None

    def test_resets_at_next_month_boundary(self):
        snapshot = check_quota(Plan.FREE, 0, NOW)
        assert snapshot.resets_at == datetime(2026, 11, 1, tzinfo=timezone.utc)


class TestQuotaWindow:
    def test_window_is_utc_calendar_month(self):
        assert quota_window(NOW) == "2026-10"

    def test_window_uses_utc_not_local_offset(self):
        # 23:30 on Oct 31 at UTC-5 is already November in UTC
        local = datetime(2026, 10, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert quota_window(local) == "2026-11"

    def test_downgrade_in_current_month_starts_new_window(self):
        downgraded_at = datetime(2026, 10, 12, 8, 0, tzinfo=timezone.utc)
        window = quota_window(NOW, downgraded_at)
        assert window == "2026-10#2026-10-12T08:00:00+00:00"

    def test_downgrade_in_earlier_month_is_ignored(self):
        downgraded_at = datetime(2026, 9, 20, tzinfo=timezone.utc)
        assert quota_window(NOW, downgraded_at) == "2026-10"

    def test_naive_datetimes_are_treated_as_utc(self):
        assert quota_window(datetime(2026, 1, 5)) == "2026-01"

    def test_next_reset_rolls_over_year(self):
        december = datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)
        assert next_reset(december) == datetime(2027, 1, 1, tzinfo=timezone.utc)

    def test_month_start(self):
        assert month_start(NOW) == datetime(2026, 10, 1, tzinfo=timezone.utc)


class TestExpiration:
    def test_free_artifacts_expire_after_thirty_days(self):
        assert compute_expiration(Plan.FREE, NOW) == NOW + timedelta(days=30)

    @pytest.mark.parametrize("plan", [Plan.PRO, Plan.TEAM])
    def test_unmetered_artifacts_never_expire(self, plan):
        assert compute_expiration(plan, NOW) is None


class TestPlan:
    def test_parse_missing_plan_is_free(self):
        assert Plan.parse(None) is Plan.FREE
        assert Plan.parse("") is Plan.FREE

    def test_parse_is_case_insensitive(self):
        assert Plan.parse("PRO") is Plan.PRO

    def test_parse_unknown_plan_raises(self):
        with pytest.raises(ValidationException, match="Unknown plan"):
            Plan.parse("enterprise")

    def test_policy_for_free_is_metered(self):
        policy = policy_for(Plan.FREE)
        assert policy.is_metered is True
        assert policy.monthly_upload_limit == 10
        assert policy.artifact_ttl == timedelta(days=30)
