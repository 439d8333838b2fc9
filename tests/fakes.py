"""
Thread-safe in-memory fakes of the storage collaborators.
Used where tests need real concurrency, which moto does not make atomic.
"""
import copy
import threading
from datetime import datetime, timedelta, timezone
from snappd.core.exceptions import DynamoDBException, SessionStateConflictException
from snappd.models.plan import AccountPlan, Plan
from snappd.models.quota import UsageRecord
from snappd.models.upload_session import SessionStatus
from snappd.repositories.db_repository import ArtifactStore, UsageCounter


class FakeArtifactStore(ArtifactStore):
    def __init__(self):
        self._lock = threading.Lock()
        self.by_hash = {}
        self.by_short_id = {}
        self.insert_calls = 0

    def insert_if_absent(self, artifact):
        with self._lock:
            self.insert_calls += 1
            key = (artifact.account_id, artifact.content_hash)
            if key in self.by_hash:
                return self.by_hash[key], False
            if artifact.short_id in self.by_short_id:
                raise DynamoDBException(f"Short ID '{artifact.short_id}' is already reserved")
            self.by_hash[key] = artifact
            self.by_short_id[artifact.short_id] = artifact
            return artifact, True

    def find_by_hash(self, account_id, content_hash):
        with self._lock:
            return self.by_hash.get((account_id, content_hash))

    def find_by_short_id(self, short_id):
        with self._lock:
            return self.by_short_id.get(short_id)

    def short_id_exists(self, short_id):
        with self._lock:
            return short_id in self.by_short_id


class FakeUsageCounter(UsageCounter):
    def __init__(self):
        self._lock = threading.Lock()
        self.counts = {}
        self.bytes = {}

    def set_usage(self, account_id, window, artifact_count, bytes_stored=0):
        with self._lock:
            self.counts[(account_id, window)] = artifact_count
            self.bytes[(account_id, window)] = bytes_stored

    def get_usage(self, account_id, window):
        with self._lock:
            return UsageRecord(
                account_id=account_id,
                window=window,
                artifact_count=self.counts.get((account_id, window), 0),
                bytes_stored=self.bytes.get((account_id, window), 0)
            )

    def try_consume(self, account_id, window, byte_size, limit):
        key = (account_id, window)
        with self._lock:
            count = self.counts.get(key, 0)
            if limit is not None and count >= limit:
                return False
            self.counts[key] = count + 1
            self.bytes[key] = self.bytes.get(key, 0) + byte_size
            return True

    def release(self, account_id, window, byte_size):
        key = (account_id, window)
        with self._lock:
            if self.counts.get(key, 0) > 0:
                self.counts[key] -= 1
                self.bytes[key] = self.bytes.get(key, 0) - byte_size


class FailingUsageCounter(FakeUsageCounter):
    """Usage counter whose increments fail with a storage error."""

    def __init__(self, failures: int = 1_000):
        super().__init__()
        self.failures = failures

    def try_consume(self, account_id, window, byte_size, limit):
        if self.failures > 0:
            self.failures -= 1
            raise DynamoDBException("Failed to increment usage: ProvisionedThroughputExceededException")
        return super().try_consume(account_id, window, byte_size, limit)


class FakeSessionRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self.sessions = {}

    def create(self, session):
        with self._lock:
            if session.session_id in self.sessions:
                raise DynamoDBException("Failed to create upload session: duplicate id")
            self.sessions[session.session_id] = copy.copy(session)

    def get_by_id(self, session_id):
        with self._lock:
            session = self.sessions.get(session_id)
            return copy.copy(session) if session else None

    def update(
        self,
        session_id,
        updates,
        expected_statuses=None,
        expected_retry_count=None,
        expected_claim=None,
        remove=()
    ):
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None:
                raise SessionStateConflictException(f"Upload session '{session_id}' changed state concurrently")
            if expected_statuses and session.status not in expected_statuses:
                raise SessionStateConflictException(f"Upload session '{session_id}' changed state concurrently")
            if expected_retry_count is not None and session.retry_count != expected_retry_count:
                raise SessionStateConflictException(f"Upload session '{session_id}' changed state concurrently")
            if expected_claim is not None and session.completion_claim != expected_claim:
                raise SessionStateConflictException(f"Upload session '{session_id}' changed state concurrently")
            for key, value in updates.items():
                setattr(session, key, value)
            for key in remove:
                setattr(session, key, None)
            session.updated_at = datetime.now(timezone.utc)

    def claim_completion(self, session_id, claim_id, claimed_at, stale_before):
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None or session.status not in (SessionStatus.PENDING, SessionStatus.UPLOADING):
                raise SessionStateConflictException(f"Upload session '{session_id}' is not available for completion")
            held_since = getattr(session, 'claimed_at', None)
            if session.completion_claim is not None and not (held_since is not None and held_since < stale_before):
                raise SessionStateConflictException(f"Upload session '{session_id}' is not available for completion")
            session.completion_claim = claim_id
            session.claimed_at = claimed_at
            session.updated_at = claimed_at

    def record_progress(self, session_id, bytes_uploaded):
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None or session.status not in (SessionStatus.PENDING, SessionStatus.UPLOADING):
                return False
            if session.bytes_uploaded > bytes_uploaded:
                return False
            session.status = SessionStatus.UPLOADING
            session.bytes_uploaded = bytes_uploaded
            return True


class FakeAccountRepository:
    def __init__(self, plans=None):
        self.plans = plans or {}

    def set_plan(self, account_id, plan: Plan, downgraded_at=None):
        self.plans[account_id] = AccountPlan(account_id, plan, downgraded_at)

    def get_plan(self, account_id):
        return self.plans.get(account_id) or AccountPlan(account_id=account_id, plan=Plan.FREE)


class FakeObjectStore:
    """Stands in for S3Repository without presigning anything."""

    def build_storage_path(self, account_id, session_id, mime_type):
        return f"{account_id}/2026/10/{session_id}.{mime_type.split('/')[-1]}"

    def create_upload_target(self, storage_path, mime_type):
        return {
            'upload_url': f"https://uploads.test/{storage_path}?signature=fake",
            'storage_path': storage_path,
            'expires_at': datetime.now(timezone.utc) + timedelta(hours=1)
        }

    def get_public_url(self, storage_path):
        return f"https://cdn.test/{storage_path}"
