"""
Domain model for Artifact entity.
The committed result of a successful upload, addressed by its short ID.
"""
from datetime import datetime
from typing import Optional
from snappd.models.upload_session import SharingMode


class Artifact:
    """Domain model representing a committed upload."""

    def __init__(
        self,
        artifact_id: str,
        short_id: str,
        account_id: str,
        content_hash: str,
        byte_size: int,
        width: int,
        height: int,
        mime_type: str,
        storage_path: str,
        original_filename: str,
        created_at: datetime,
        expires_at: Optional[datetime] = None,
        sharing_mode: str = SharingMode.PUBLIC,
        password_hash: Optional[str] = None
    ):
        self.artifact_id = artifact_id
        self.short_id = short_id
        self.account_id = account_id
        self.content_hash = content_hash
        self.byte_size = byte_size
        self.width = width
        self.height = height
        self.mime_type = mime_type
        self.storage_path = storage_path
        self.original_filename = original_filename
        self.created_at = created_at
        self.expires_at = expires_at
        self.sharing_mode = sharing_mode
        self.password_hash = password_hash

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def __repr__(self):
        return f"Artifact(artifact_id={self.artifact_id}, short_id={self.short_id}, account_id={self.account_id})"
