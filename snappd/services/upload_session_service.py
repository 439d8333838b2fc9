"""
Upload Session Service.
Orchestrates an upload from intent to committed artifact: quota checks on
open, duplicate short-circuit, atomic quota consumption, short ID allocation
and bounded retries on completion.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from loguru import logger
from snappd.core import config
from snappd.core.exceptions import (
    AlreadyCompletedException,
    DynamoDBException,
    MaxRetriesExceededException,
    QuotaExceededException,
    SessionNotFoundException,
    SessionStateConflictException,
    ShortIdAllocationException,
    TransientStorageException
)
from snappd.models.artifact import Artifact
from snappd.models.plan import AccountPlan, policy_for
from snappd.models.quota import QuotaSnapshot
from snappd.models.upload_session import UploadSession, SessionStatus, SharingMode
from snappd.models.dto.upload_dto import (
    ArtifactResponse,
    QuotaResponse,
    UpgradePrompt,
    UploadCompleteResponse,
    UploadInitResponse,
    UploadProgressResponse,
    UploadTargetResponse,
    UsageResponse
)
from snappd.repositories.account_repository import AccountRepository
from snappd.repositories.artifact_repository import ArtifactRepository
from snappd.repositories.s3_repository import S3Repository
from snappd.repositories.upload_session_repository import UploadSessionRepository
from snappd.repositories.usage_repository import UsageRepository
from snappd.services.duplicate_detector import DuplicateDetector
from snappd.services.file_service import FileService
from snappd.services.quota_service import check_quota, compute_expiration, quota_window
from snappd.services.share_service import hash_share_password
from snappd.services.short_id_service import ShortIdAllocator

UPGRADE_MESSAGE = "Upgrade to Pro for unlimited uploads"
CLAIM_ATTRIBUTES = ('completion_claim', 'claimed_at')


def quota_exceeded_message(snapshot: QuotaSnapshot) -> str:
    return f"Monthly upload limit of {snapshot.limit} reached. {UPGRADE_MESSAGE}."


class UploadSessionService:
    """Service for upload session lifecycle operations."""

    def __init__(
        self,
        session_repository: UploadSessionRepository = None,
        artifact_repository: ArtifactRepository = None,
        usage_repository: UsageRepository = None,
        account_repository: AccountRepository = None,
        s3_repository: S3Repository = None,
        file_service: FileService = None,
        short_id_allocator: ShortIdAllocator = None
    ):
        self.session_repository = session_repository or UploadSessionRepository()
        self.artifact_repository = artifact_repository or ArtifactRepository()
        self.usage_repository = usage_repository or UsageRepository()
        self.account_repository = account_repository or AccountRepository()
        self.s3_repository = s3_repository or S3Repository()
        self.file_service = file_service or FileService()
        self.short_id_allocator = short_id_allocator or ShortIdAllocator()
        self.duplicate_detector = DuplicateDetector(self.artifact_repository)

    def begin_session(
        self,
        account_id: str,
        filename: str,
        file_size: int,
        mime_type: str,
        sharing_mode: str = SharingMode.PUBLIC,
        password: Optional[str] = None
    ) -> UploadInitResponse:
        """
        Open a pending upload session if the account has quota left.

        Args:
            account_id: Caller's account
            filename: Original filename
            file_size: Declared size in bytes
            mime_type: Declared MIME type
            sharing_mode: public, private or password
            password: Share password, required for password mode

        Returns:
            UploadInitResponse with the upload target and quota snapshot

        Raises:
            ValidationException: If the request fails static validation
            FileTooLargeException: If file_size exceeds the maximum
            QuotaExceededException: If the monthly allowance is used up
            DynamoDBException: If the session cannot be stored
            S3Exception: If no upload target can be issued
        """
        self.file_service.validate_upload(filename, file_size, mime_type, sharing_mode, password)

        account = self.account_repository.get_plan(account_id)
        snapshot = self.quota_snapshot(account)
        if not snapshot.allowed:
            logger.info("Quota exceeded for {}: {}/{}", account_id, snapshot.used, snapshot.limit)
            raise QuotaExceededException(quota_exceeded_message(snapshot), snapshot)

        return self.open_session(account_id, filename, file_size, mime_type, snapshot, sharing_mode, password)

    def open_session(
        self,
        account_id: str,
        filename: str,
        file_size: int,
        mime_type: str,
        snapshot: QuotaSnapshot,
        sharing_mode: str = SharingMode.PUBLIC,
        password: Optional[str] = None
    ) -> UploadInitResponse:
        """
        Persist a pending session without consulting quota.

        Callers are expected to have validated the request and checked quota.
        """
        session_id = str(uuid.uuid4())
        storage_path = self.s3_repository.build_storage_path(account_id, session_id, mime_type)
        target = self.s3_repository.create_upload_target(storage_path, mime_type)

        session = UploadSession(
            session_id=session_id,
            account_id=account_id,
            filename=filename,
            declared_byte_size=file_size,
            mime_type=mime_type,
            storage_path=storage_path,
            created_at=datetime.now(timezone.utc),
            sharing_mode=sharing_mode,
            password_hash=hash_share_password(password) if sharing_mode == SharingMode.PASSWORD else None
        )
        self.session_repository.create(session)
        logger.info("Opened upload session {} for {} ({} bytes)", session_id, account_id, file_size)

        return UploadInitResponse(
            session_id=session_id,
            status=session.status,
            upload=UploadTargetResponse(**target),
            quota=QuotaResponse.from_snapshot(snapshot)
        )

    def complete_session(
        self,
        account_id: str,
        session_id: str,
        content_hash: str,
        width: int,
        height: int
    ) -> UploadCompleteResponse:
        """
        Commit an uploaded file as an artifact.

        Content the account already uploaded resolves to the existing artifact
        without counting against quota again.

        Returns:
            UploadCompleteResponse; ``duplicate`` is True when an existing artifact was reused

        Raises:
            SessionNotFoundException: If the session is unknown or not the caller's
            AlreadyCompletedException: If the session was already completed
            MaxRetriesExceededException: If a failed session has no retries left
            QuotaExceededException: If the monthly allowance is used up
            ShortIdAllocationException: If no free short ID was found
            TransientStorageException: If storage failed or another request is
                completing the same session; carries retry guidance
        """
        session = self._get_owned_session(account_id, session_id)
        max_retries = config.settings.max_upload_retries

        if session.status == SessionStatus.COMPLETED:
            raise AlreadyCompletedException("Upload session already completed")
        if session.status == SessionStatus.FAILED:
            self._begin_retry(session, max_retries)
        self._claim_completion(session, max_retries)

        try:
            existing = self.duplicate_detector.find_existing(account_id, content_hash)
        except DynamoDBException as e:
            raise self._fail_transient(session, e, max_retries)

        if existing:
            self._mark_completed(session, existing)
            logger.info("Session {} resolved to existing artifact {}", session_id, existing.artifact_id)
            return self._completion_response(session, existing, duplicate=True)

        account = self.account_repository.get_plan(account_id)
        now = datetime.now(timezone.utc)
        window = quota_window(now, account.downgraded_at)
        policy = policy_for(account.plan)

        try:
            consumed = self.usage_repository.try_consume(
                account_id, window, session.declared_byte_size, policy.monthly_upload_limit
            )
        except DynamoDBException as e:
            raise self._fail_transient(session, e, max_retries)

        if not consumed:
            snapshot = self.quota_snapshot(account, now)
            message = quota_exceeded_message(snapshot)
            self._mark_failed(session, message)
            logger.info("Completion of {} denied by quota: {}/{}", session_id, snapshot.used, snapshot.limit)
            raise QuotaExceededException(message, snapshot)

        try:
            short_id = self.short_id_allocator.allocate(self.artifact_repository.short_id_exists)
            artifact = Artifact(
                artifact_id=str(uuid.uuid4()),
                short_id=short_id,
                account_id=account_id,
                content_hash=content_hash,
                byte_size=session.declared_byte_size,
                width=width,
                height=height,
                mime_type=session.mime_type,
                storage_path=session.storage_path,
                original_filename=session.filename,
                created_at=now,
                expires_at=compute_expiration(account.plan, now),
                sharing_mode=session.sharing_mode,
                password_hash=session.password_hash
            )
            stored, created = self.artifact_repository.insert_if_absent(artifact)
        except ShortIdAllocationException as e:
            self._compensate_quota(account_id, window, session)
            self._mark_failed(session, e.message)
            logger.error("Short ID allocation exhausted for session {}", session_id)
            raise
        except DynamoDBException as e:
            self._compensate_quota(account_id, window, session)
            raise self._fail_transient(session, e, max_retries)

        if not created:
            # A concurrent completion committed the same content first
            self.usage_repository.release(account_id, window, session.declared_byte_size)

        self._mark_completed(session, stored)
        logger.info("Session {} committed artifact {} ({})", session_id, stored.artifact_id, stored.short_id)
        return self._completion_response(session, stored, duplicate=not created)

    def get_progress(self, account_id: str, session_id: str) -> UploadProgressResponse:
        """
        Read an upload session's progress.

        Raises:
            SessionNotFoundException: If the session is unknown or not the caller's
        """
        session = self._get_owned_session(account_id, session_id)

        return UploadProgressResponse(
            session_id=session.session_id,
            status=session.status,
            bytes_uploaded=session.bytes_uploaded,
            total_bytes=session.declared_byte_size,
            percentage=session.progress_percentage,
            retry_count=session.retry_count,
            error_message=session.error_message,
            artifact_id=session.resulting_artifact_id,
            created_at=session.created_at,
            updated_at=session.updated_at
        )

    def record_progress(self, session_id: str, bytes_uploaded: int) -> bool:
        """Record bytes received out-of-band; returns False if the session ignored it."""
        updated = self.session_repository.record_progress(session_id, bytes_uploaded)
        if not updated:
            logger.warning("Ignored progress report of {} bytes for session {}", bytes_uploaded, session_id)
        return updated

    def quota_snapshot(self, account: AccountPlan, now: Optional[datetime] = None) -> QuotaSnapshot:
        """Check quota for the account's current window."""
        now = now or datetime.now(timezone.utc)
        window = quota_window(now, account.downgraded_at)
        usage = self.usage_repository.get_usage(account.account_id, window)
        return check_quota(account.plan, usage.artifact_count, now)

    def get_usage(self, account_id: str) -> UsageResponse:
        """Usage for the account's current quota window, with an upgrade prompt."""
        account = self.account_repository.get_plan(account_id)
        now = datetime.now(timezone.utc)
        window = quota_window(now, account.downgraded_at)
        usage = self.usage_repository.get_usage(account_id, window)
        snapshot = check_quota(account.plan, usage.artifact_count, now)
        quota = QuotaResponse.from_snapshot(snapshot)

        if snapshot.is_unlimited:
            prompt = UpgradePrompt(show_prompt=False, message="You have unlimited uploads on your plan.")
        elif not snapshot.allowed:
            prompt = UpgradePrompt(
                show_prompt=True,
                message=f"You've used all {snapshot.limit} uploads this month. {UPGRADE_MESSAGE}!"
            )
        else:
            prompt = UpgradePrompt(
                show_prompt=snapshot.used * 100 >= snapshot.limit * 80,
                message=f"You've used {snapshot.used} of {snapshot.limit} uploads this month."
            )

        return UsageResponse(
            window=window,
            plan=account.plan.value,
            used=snapshot.used,
            limit=quota.limit,
            remaining=quota.remaining,
            bytes_stored=usage.bytes_stored,
            at_limit=not snapshot.allowed,
            resets_at=snapshot.resets_at,
            upgrade_prompt=prompt
        )

    def _get_owned_session(self, account_id: str, session_id: str) -> UploadSession:
        session = self.session_repository.get_by_id(session_id)
        if not session or session.account_id != account_id:
            raise SessionNotFoundException("Upload session not found or expired")
        return session

    def _begin_retry(self, session: UploadSession, max_retries: int) -> None:
        """Move a failed session back to uploading, consuming one retry."""
        if session.retry_count >= max_retries:
            raise MaxRetriesExceededException(
                "Upload session failed. Maximum retry attempts exceeded. Please start a new upload.",
                retry_count=session.retry_count,
                max_retries=max_retries
            )

        retry_count = session.retry_count + 1
        try:
            self.session_repository.update(
                session.session_id,
                {'status': SessionStatus.UPLOADING, 'retry_count': retry_count, 'error_message': None},
                expected_statuses=[SessionStatus.FAILED],
                expected_retry_count=session.retry_count
            )
        except SessionStateConflictException as e:
            raise TransientStorageException(
                "Upload session is being retried by another request",
                retryable=True,
                retry_count=session.retry_count,
                max_retries=max_retries
            ) from e

        logger.info("Retrying session {} ({}/{})", session.session_id, retry_count, max_retries)
        session.status = SessionStatus.UPLOADING
        session.retry_count = retry_count
        session.error_message = None

    def _claim_completion(self, session: UploadSession, max_retries: int) -> None:
        """Take the session's completion claim before any quota or artifact work."""
        now = datetime.now(timezone.utc)
        claim_id = str(uuid.uuid4())
        stale_before = now - timedelta(seconds=config.settings.completion_claim_lease_seconds)

        try:
            self.session_repository.claim_completion(session.session_id, claim_id, now, stale_before)
        except SessionStateConflictException as e:
            current = self.session_repository.get_by_id(session.session_id)
            if current and current.status == SessionStatus.COMPLETED:
                raise AlreadyCompletedException("Upload session already completed") from e
            logger.info("Session {} is already being completed by another request", session.session_id)
            raise TransientStorageException(
                "Upload session is being completed by another request",
                retryable=True,
                retry_count=session.retry_count,
                max_retries=max_retries
            ) from e
        except DynamoDBException as e:
            logger.error("Could not claim session {}: {}", session.session_id, e.message)
            raise TransientStorageException(
                "Failed to complete upload. Please try again.",
                retryable=True,
                retry_count=session.retry_count,
                max_retries=max_retries
            ) from e

        session.completion_claim = claim_id

    def _mark_completed(self, session: UploadSession, artifact: Artifact) -> None:
        try:
            self.session_repository.update(
                session.session_id,
                {
                    'status': SessionStatus.COMPLETED,
                    'resulting_artifact_id': artifact.artifact_id,
                    'error_message': None
                },
                expected_statuses=[SessionStatus.PENDING, SessionStatus.UPLOADING],
                expected_claim=session.completion_claim,
                remove=CLAIM_ATTRIBUTES
            )
        except SessionStateConflictException as e:
            raise AlreadyCompletedException("Upload session already completed") from e

        session.status = SessionStatus.COMPLETED
        session.resulting_artifact_id = artifact.artifact_id
        session.error_message = None
        session.completion_claim = None

    def _mark_failed(self, session: UploadSession, message: str) -> None:
        """Flip the session to failed; the caller's error is what gets reported."""
        try:
            self.session_repository.update(
                session.session_id,
                {'status': SessionStatus.FAILED, 'error_message': message},
                expected_statuses=[SessionStatus.PENDING, SessionStatus.UPLOADING],
                expected_claim=session.completion_claim,
                remove=CLAIM_ATTRIBUTES
            )
        except SessionStateConflictException:
            logger.warning("Session {} left its in-flight state before it could be failed", session.session_id)
            return
        except DynamoDBException:
            logger.exception("Could not mark session {} as failed", session.session_id)
            return

        session.status = SessionStatus.FAILED
        session.error_message = message
        session.completion_claim = None

    def _fail_transient(
        self,
        session: UploadSession,
        error: DynamoDBException,
        max_retries: int
    ) -> TransientStorageException:
        logger.error("Storage error completing session {}: {}", session.session_id, error.message)
        self._mark_failed(session, error.message)
        return TransientStorageException(
            "Failed to complete upload. Please try again.",
            retryable=session.retry_count < max_retries,
            retry_count=session.retry_count,
            max_retries=max_retries
        )

    def _compensate_quota(self, account_id: str, window: str, session: UploadSession) -> None:
        """Give back consumed quota while another error is already propagating."""
        try:
            self.usage_repository.release(account_id, window, session.declared_byte_size)
        except DynamoDBException:
            logger.exception("Could not release quota for {} in {}", account_id, window)

    def _completion_response(
        self,
        session: UploadSession,
        artifact: Artifact,
        duplicate: bool
    ) -> UploadCompleteResponse:
        return UploadCompleteResponse(
            message="File already exists" if duplicate else "Upload completed successfully",
            session_id=session.session_id,
            duplicate=duplicate,
            artifact=ArtifactResponse(
                artifact_id=artifact.artifact_id,
                short_id=artifact.short_id,
                share_url=f"{config.settings.public_base_url}/{artifact.short_id}",
                storage_path=artifact.storage_path,
                sharing_mode=artifact.sharing_mode,
                width=artifact.width,
                height=artifact.height,
                byte_size=artifact.byte_size,
                created_at=artifact.created_at,
                expires_at=artifact.expires_at
            )
        )
