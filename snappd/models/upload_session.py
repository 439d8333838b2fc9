"""
Upload Session domain model.
Represents one upload attempt from intent to committed artifact.
"""
from datetime import datetime
from typing import Optional


class SessionStatus:
    """Upload session states."""
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (PENDING, UPLOADING, COMPLETED, FAILED)


class SharingMode:
    """Visibility of a committed artifact's short link."""
    PUBLIC = "public"
    PRIVATE = "private"
    PASSWORD = "password"

    ALL = (PUBLIC, PRIVATE, PASSWORD)


class UploadSession:
    """Domain model for upload session tracking."""

    def __init__(
        self,
        session_id: str,
        account_id: str,
        filename: str,
        declared_byte_size: int,
        mime_type: str,
        storage_path: str,
        created_at: datetime,
        status: str = SessionStatus.PENDING,
        retry_count: int = 0,
        bytes_uploaded: int = 0,
        error_message: Optional[str] = None,
        resulting_artifact_id: Optional[str] = None,
        sharing_mode: str = SharingMode.PUBLIC,
        password_hash: Optional[str] = None,
        completion_claim: Optional[str] = None,
        updated_at: Optional[datetime] = None
    ):
        self.session_id = session_id
        self.account_id = account_id
        self.filename = filename
        self.declared_byte_size = declared_byte_size
        self.mime_type = mime_type
        self.storage_path = storage_path
        self.created_at = created_at
        self.status = status
        self.retry_count = retry_count
        self.bytes_uploaded = bytes_uploaded
        self.error_message = error_message
        self.resulting_artifact_id = resulting_artifact_id
        self.sharing_mode = sharing_mode
        self.password_hash = password_hash
        # Set while one request holds the right to complete this session
        self.completion_claim = completion_claim
        self.updated_at = updated_at or created_at

    @property
    def progress_percentage(self) -> int:
        if self.declared_byte_size == 0:
            return 0
        return round(self.bytes_uploaded / self.declared_byte_size * 100)

    def __repr__(self):
        return f"UploadSession(session_id={self.session_id}, status={self.status}, retry_count={self.retry_count})"
