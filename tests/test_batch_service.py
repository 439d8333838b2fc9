"""
Unit tests for BatchUploadService.
"""
from datetime import datetime, timezone
from unittest.mock import patch
import pytest
from fakes import (
    FakeAccountRepository,
    FakeArtifactStore,
    FakeObjectStore,
    FakeSessionRepository,
    FakeUsageCounter
)
from snappd.core.exceptions import (
    BatchValidationException,
    DynamoDBException,
    QuotaExceededException,
    ValidationException
)
from snappd.models.plan import Plan
from snappd.services.batch_service import BatchUploadService
from snappd.services.quota_service import quota_window
from snappd.services.upload_session_service import UploadSessionService

ACCOUNT = "acct-1"
MB = 1024 * 1024


def make_files(count, mime_type="image/png"):
    return [
        {"filename": f"shot-{i}.png", "file_size": MB, "mime_type": mime_type}
        for i in range(count)
    ]


class TestBatchUploadService:
    @pytest.fixture
    def usage(self):
        return FakeUsageCounter()

    @pytest.fixture
    def accounts(self):
        return FakeAccountRepository()

    @pytest.fixture
    def sessions(self):
        return FakeSessionRepository()

    @pytest.fixture
    def session_service(self, sessions, usage, accounts):
        return UploadSessionService(
            session_repository=sessions,
            artifact_repository=FakeArtifactStore(),
            usage_repository=usage,
            account_repository=accounts,
            s3_repository=FakeObjectStore()
        )

    @pytest.fixture
    def batch_service(self, session_service):
        return BatchUploadService(upload_session_service=session_service)

    def set_used(self, usage, used):
        usage.set_usage(ACCOUNT, quota_window(datetime.now(timezone.utc)), used)

    def test_all_files_accepted(self, batch_service, sessions):
        result = batch_service.submit_batch(ACCOUNT, make_files(4))

        assert result.partial_success is False
        assert result.warning is None
        assert result.requested_count == 4
        assert result.accepted_count == 4
        assert result.success_count == 4
        assert result.failed_count == 0
        assert result.dropped == []
        assert [r.index for r in result.results] == [0, 1, 2, 3]
        assert all(r.status == "ready" and r.upload is not None for r in result.results)
        assert len(sessions.sessions) == 4
        assert result.quota.used == 4
        assert result.quota.remaining == 6

    def test_batch_capped_to_remaining(self, batch_service, usage, sessions):
        self.set_used(usage, 7)

        result = batch_service.submit_batch(ACCOUNT, make_files(8))

        assert result.partial_success is True
        assert result.success_count <= 3
        assert result.accepted_count == 3
        assert [r.filename for r in result.results] == ["shot-0.png", "shot-1.png", "shot-2.png"]
        assert [d.index for d in result.dropped] == [3, 4, 5, 6, 7]
        assert all("Monthly upload limit" in d.reason for d in result.dropped)
        assert "Only 3 of 8 files were accepted" in result.warning
        assert "5 files were dropped" in result.warning
        assert len(sessions.sessions) == 3
        assert result.quota.used == 10
        assert result.quota.remaining == 0

    def test_batch_denied_when_no_quota(self, batch_service, usage, sessions):
        self.set_used(usage, 10)

        with pytest.raises(QuotaExceededException) as exc_info:
            batch_service.submit_batch(ACCOUNT, make_files(2))

        assert exc_info.value.snapshot.remaining == 0
        assert sessions.sessions == {}

    def test_unmetered_batch_is_not_capped(self, batch_service, usage, accounts):
        accounts.set_plan(ACCOUNT, Plan.PRO)
        self.set_used(usage, 500)

        result = batch_service.submit_batch(ACCOUNT, make_files(12))

        assert result.success_count == 12
        assert result.partial_success is False
        assert result.quota.limit == "unlimited"

    def test_empty_batch_rejected(self, batch_service):
        with pytest.raises(ValidationException, match="at least one file"):
            batch_service.submit_batch(ACCOUNT, [])

    def test_oversized_batch_rejected_not_truncated(self, batch_service, sessions):
        with pytest.raises(ValidationException, match="exceeds the maximum of 50"):
            batch_service.submit_batch(ACCOUNT, make_files(51))
        assert sessions.sessions == {}

    def test_invalid_file_rejects_whole_batch(self, batch_service, sessions):
        files = make_files(3)
        files[1]["mime_type"] = "application/zip"
        files[2]["file_size"] = 50 * MB

        with pytest.raises(BatchValidationException) as exc_info:
            batch_service.submit_batch(ACCOUNT, files)

        assert [e["index"] for e in exc_info.value.errors] == [1, 2]
        assert sessions.sessions == {}

    def test_dropped_files_are_not_validated(self, batch_service, usage):
        self.set_used(usage, 8)
        files = make_files(4)
        files[3]["mime_type"] = "application/zip"

        result = batch_service.submit_batch(ACCOUNT, files)

        assert result.success_count == 2
        assert [d.filename for d in result.dropped] == ["shot-2.png", "shot-3.png"]

    def test_one_failure_does_not_abort_siblings(self, batch_service, session_service, sessions):
        original_create = sessions.create

        def flaky_create(session):
            if session.filename == "shot-1.png":
                raise DynamoDBException("Failed to create upload session: throttled")
            return original_create(session)

        with patch.object(sessions, "create", side_effect=flaky_create):
            result = batch_service.submit_batch(ACCOUNT, make_files(4))

        assert result.success_count == 3
        assert result.failed_count == 1
        assert result.partial_success is True
        failed = result.results[1]
        assert failed.status == "failed"
        assert failed.retryable is True
        assert "throttled" in failed.error
        assert [r.status for r in result.results] == ["ready", "failed", "ready", "ready"]
        assert result.quota.used == 3

    def test_unexpected_error_reported_per_file(self, batch_service, sessions):
        original_create = sessions.create

        def broken_create(session):
            if session.filename == "shot-2.png":
                raise ValueError("password cannot be longer than 72 bytes")
            return original_create(session)

        with patch.object(sessions, "create", side_effect=broken_create):
            result = batch_service.submit_batch(ACCOUNT, make_files(3))

        assert [r.status for r in result.results] == ["ready", "ready", "failed"]
        failed = result.results[2]
        assert failed.retryable is False
        assert failed.error == "An unexpected error occurred"
        assert result.success_count == 2
        assert result.partial_success is True
        assert len(sessions.sessions) == 2
