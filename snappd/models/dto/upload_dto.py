"""
Data Transfer Objects for the upload API.
Defines request and response schemas for upload session endpoints.
"""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, Field, model_validator
from snappd.models.quota import QuotaSnapshot

UNLIMITED = "unlimited"


class QuotaResponse(BaseModel):
    """Quota snapshot; unmetered plans report limit and remaining as "unlimited"."""
    plan: str
    limit: Union[int, str]
    used: int
    remaining: Union[int, str]
    resets_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: QuotaSnapshot) -> "QuotaResponse":
        return cls(
            plan=snapshot.plan.value,
            limit=UNLIMITED if snapshot.limit is None else snapshot.limit,
            used=snapshot.used,
            remaining=UNLIMITED if snapshot.remaining is None else snapshot.remaining,
            resets_at=snapshot.resets_at
        )


class UploadFileRequest(BaseModel):
    """One file in an upload request."""
    filename: str = Field(..., description="Original filename")
    file_size: int = Field(..., alias="fileSize", description="Declared size in bytes")
    mime_type: str = Field(..., alias="mimeType", description="Declared MIME type")
    sharing_mode: str = Field(default="public", alias="sharingMode", description="public, private or password")
    password: Optional[str] = Field(default=None, description="Share password for password mode")

    class Config:
        populate_by_name = True


class UploadInitRequest(BaseModel):
    """Request schema for starting a single upload or a batch of uploads."""
    filename: Optional[str] = None
    file_size: Optional[int] = Field(default=None, alias="fileSize")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    sharing_mode: str = Field(default="public", alias="sharingMode")
    password: Optional[str] = None
    files: Optional[List[UploadFileRequest]] = Field(default=None, description="Batch of files")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_single_or_batch(self):
        if self.files is not None:
            return self
        if not self.filename or self.file_size is None or not self.mime_type:
            raise ValueError("Missing required fields: filename, file_size, mime_type")
        return self

    @property
    def is_batch(self) -> bool:
        return self.files is not None


class UploadTargetResponse(BaseModel):
    """Where and until when the client may upload the file bytes."""
    upload_url: str
    storage_path: str
    expires_at: datetime


class UploadInitResponse(BaseModel):
    """Response schema for a newly opened upload session."""
    session_id: str = Field(..., description="Upload session identifier")
    status: str = Field(..., description="Session status")
    upload: UploadTargetResponse
    quota: QuotaResponse


class UploadCompleteRequest(BaseModel):
    """Request schema for committing an uploaded file."""
    content_hash: str = Field(..., alias="contentHash", min_length=1, max_length=128, description="Hash of the uploaded bytes")
    width: int = Field(..., gt=0, description="Image width in pixels")
    height: int = Field(..., gt=0, description="Image height in pixels")

    class Config:
        populate_by_name = True


class ArtifactResponse(BaseModel):
    """Committed artifact as returned to its owner."""
    artifact_id: str
    short_id: str
    share_url: str
    storage_path: str
    sharing_mode: str
    width: int
    height: int
    byte_size: int
    created_at: datetime
    expires_at: Optional[datetime] = None


class UploadCompleteResponse(BaseModel):
    """Response schema for a completed upload session."""
    message: str
    session_id: str
    duplicate: bool = False
    artifact: ArtifactResponse


class UploadProgressResponse(BaseModel):
    """Response schema for upload session progress."""
    session_id: str
    status: str
    bytes_uploaded: int
    total_bytes: int
    percentage: int
    retry_count: int
    error_message: Optional[str] = None
    artifact_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BatchFileResult(BaseModel):
    """Outcome for one file of a batch."""
    index: int
    filename: str
    status: str = Field(..., description="ready or failed")
    session_id: Optional[str] = None
    upload: Optional[UploadTargetResponse] = None
    error: Optional[str] = None
    retryable: Optional[bool] = None


class DroppedFile(BaseModel):
    """File left out of a batch because of the quota cap."""
    index: int
    filename: str
    reason: str


class BatchUploadResponse(BaseModel):
    """Response schema for a batch upload request."""
    partial_success: bool
    warning: Optional[str] = None
    requested_count: int
    accepted_count: int
    success_count: int
    failed_count: int
    results: List[BatchFileResult]
    dropped: List[DroppedFile] = []
    quota: QuotaResponse


class UpgradePrompt(BaseModel):
    show_prompt: bool
    message: str


class UsageResponse(BaseModel):
    """Response schema for the current quota window's usage."""
    window: str
    plan: str
    used: int
    limit: Union[int, str]
    remaining: Union[int, str]
    bytes_stored: int
    at_limit: bool
    resets_at: datetime
    upgrade_prompt: UpgradePrompt
