"""
Data Transfer Objects for public short links.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ShareAccessRequest(BaseModel):
    """Request model for opening a password-protected share."""
    password: str = Field(..., min_length=1, description="Share password")


class PublicArtifactResponse(BaseModel):
    """Response schema for a resolved short link."""
    short_id: str
    url: str
    mime_type: str
    original_filename: str
    width: int
    height: int
    created_at: datetime
    expires_at: Optional[datetime] = None
