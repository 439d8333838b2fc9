"""
Batch Upload Service.
Fans a multi-file upload request out over the upload session service with
quota capping and partial-success aggregation.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List
from loguru import logger
from snappd.core import config
from snappd.core.exceptions import (
    BatchValidationException,
    DynamoDBException,
    QuotaExceededException,
    S3Exception,
    SnappdException,
    ValidationException
)
from snappd.models.dto.upload_dto import (
    BatchFileResult,
    BatchUploadResponse,
    DroppedFile,
    QuotaResponse
)
from snappd.models.quota import QuotaSnapshot
from snappd.services.quota_service import check_quota
from snappd.services.upload_session_service import UploadSessionService, quota_exceeded_message


class BatchUploadService:
    """Service for batch upload requests."""

    def __init__(self, upload_session_service: UploadSessionService = None, max_workers: int = None):
        self.upload_session_service = upload_session_service or UploadSessionService()
        self.max_workers = max_workers or config.settings.batch_max_workers

    def submit_batch(self, account_id: str, files: List[dict]) -> BatchUploadResponse:
        """
        Open one upload session per file.

        The quota is read once. When it covers fewer files than requested the
        batch is capped to the first ``remaining`` files and the rest are
        reported as dropped. Each accepted file is then opened independently,
        so one file failing does not affect its siblings.

        Args:
            account_id: Caller's account
            files: Upload requests with filename, file_size, mime_type and
                optional sharing_mode/password, in submission order

        Returns:
            BatchUploadResponse with per-file results and the projected quota

        Raises:
            ValidationException: If the batch is empty or too large
            QuotaExceededException: If no upload is allowed at all
            BatchValidationException: If any accepted file fails validation
        """
        max_batch_size = config.settings.max_batch_size
        if not files:
            raise ValidationException("Batch must contain at least one file")
        if len(files) > max_batch_size:
            raise ValidationException(
                f"Batch of {len(files)} files exceeds the maximum of {max_batch_size}"
            )

        account = self.upload_session_service.account_repository.get_plan(account_id)
        now = datetime.now(timezone.utc)
        snapshot = self.upload_session_service.quota_snapshot(account, now)
        if not snapshot.allowed:
            raise QuotaExceededException(quota_exceeded_message(snapshot), snapshot)

        accepted = list(files)
        dropped = []
        warning = None
        if not snapshot.is_unlimited and snapshot.remaining < len(files):
            accepted = files[:snapshot.remaining]
            reason = f"Monthly upload limit reached ({snapshot.limit} per month)"
            dropped = [
                DroppedFile(index=index, filename=file.get('filename') or "", reason=reason)
                for index, file in enumerate(files[snapshot.remaining:], start=snapshot.remaining)
            ]
            warning = (
                f"Only {len(accepted)} of {len(files)} files were accepted. "
                f"{len(dropped)} files were dropped because only {snapshot.remaining} "
                f"uploads remain this month."
            )
            logger.info("Batch for {} capped to {} of {} files", account_id, len(accepted), len(files))

        errors = self.upload_session_service.file_service.validate_batch(accepted)
        if errors:
            raise BatchValidationException(
                f"{len(errors)} of {len(accepted)} files failed validation", errors
            )

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(accepted))) as executor:
            futures = [
                executor.submit(self._open_one, account_id, index, file, snapshot)
                for index, file in enumerate(accepted)
            ]
            results = [future.result() for future in futures]

        success_count = sum(1 for result in results if result.status == "ready")
        failed_count = len(results) - success_count
        quota = check_quota(account.plan, snapshot.used + success_count, now)

        logger.info(
            "Batch for {}: {} ready, {} failed, {} dropped",
            account_id, success_count, failed_count, len(dropped)
        )
        return BatchUploadResponse(
            partial_success=bool(dropped) or failed_count > 0,
            warning=warning,
            requested_count=len(files),
            accepted_count=len(accepted),
            success_count=success_count,
            failed_count=failed_count,
            results=results,
            dropped=dropped,
            quota=QuotaResponse.from_snapshot(quota)
        )

    def _open_one(self, account_id: str, index: int, file: dict, snapshot: QuotaSnapshot) -> BatchFileResult:
        filename = file.get('filename')
        try:
            opened = self.upload_session_service.open_session(
                account_id=account_id,
                filename=filename,
                file_size=file.get('file_size'),
                mime_type=file.get('mime_type'),
                snapshot=snapshot,
                sharing_mode=file.get('sharing_mode') or "public",
                password=file.get('password')
            )
        except (DynamoDBException, S3Exception) as e:
            logger.warning("Batch file {} ({}) failed: {}", index, filename, e.message)
            return BatchFileResult(
                index=index, filename=filename, status="failed", error=e.message, retryable=True
            )
        except SnappdException as e:
            logger.warning("Batch file {} ({}) rejected: {}", index, filename, e.message)
            return BatchFileResult(
                index=index, filename=filename, status="failed", error=e.message, retryable=False
            )
        except Exception:
            logger.exception("Batch file {} ({}) failed unexpectedly", index, filename)
            return BatchFileResult(
                index=index, filename=filename, status="failed",
                error="An unexpected error occurred", retryable=False
            )

        return BatchFileResult(
            index=index,
            filename=filename,
            status="ready",
            session_id=opened.session_id,
            upload=opened.upload
        )
