"""
Dependency injection container for FastAPI.
Provides singleton-like behavior for services and repositories.
"""
from functools import lru_cache
from snappd.repositories.account_repository import AccountRepository
from snappd.repositories.artifact_repository import ArtifactRepository
from snappd.repositories.s3_repository import S3Repository
from snappd.repositories.upload_session_repository import UploadSessionRepository
from snappd.repositories.usage_repository import UsageRepository
from snappd.services.artifact_service import ArtifactService
from snappd.services.batch_service import BatchUploadService
from snappd.services.file_service import FileService
from snappd.services.short_id_service import ShortIdAllocator
from snappd.services.upload_session_service import UploadSessionService


@lru_cache()
def get_s3_repository() -> S3Repository:
    """Get S3Repository singleton instance."""
    return S3Repository()


@lru_cache()
def get_upload_session_repository() -> UploadSessionRepository:
    """Get UploadSessionRepository singleton instance."""
    return UploadSessionRepository()


@lru_cache()
def get_artifact_repository() -> ArtifactRepository:
    """Get ArtifactRepository singleton instance."""
    return ArtifactRepository()


@lru_cache()
def get_usage_repository() -> UsageRepository:
    """Get UsageRepository singleton instance."""
    return UsageRepository()


@lru_cache()
def get_account_repository() -> AccountRepository:
    """Get AccountRepository singleton instance."""
    return AccountRepository()


@lru_cache()
def get_file_service() -> FileService:
    """Get FileService singleton instance."""
    return FileService()


@lru_cache()
def get_upload_session_service() -> UploadSessionService:
    """Get UploadSessionService singleton instance with injected dependencies."""
    return UploadSessionService(
        session_repository=get_upload_session_repository(),
        artifact_repository=get_artifact_repository(),
        usage_repository=get_usage_repository(),
        account_repository=get_account_repository(),
        s3_repository=get_s3_repository(),
        file_service=get_file_service(),
        short_id_allocator=ShortIdAllocator()
    )


@lru_cache()
def get_batch_upload_service() -> BatchUploadService:
    """Get BatchUploadService singleton instance."""
    return BatchUploadService(upload_session_service=get_upload_session_service())


@lru_cache()
def get_artifact_service() -> ArtifactService:
    """Get ArtifactService singleton instance."""
    return ArtifactService(
        artifact_repository=get_artifact_repository(),
        s3_repository=get_s3_repository()
    )
