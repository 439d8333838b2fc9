"""
Upload API routes.
Handles HTTP endpoints for upload sessions, completion, progress and usage.
"""
from typing import Union
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from snappd.core.auth_dependencies import verify_token
from snappd.core.dependencies import get_batch_upload_service, get_upload_session_service
from snappd.models.dto.upload_dto import (
    BatchUploadResponse,
    UploadCompleteRequest,
    UploadCompleteResponse,
    UploadInitRequest,
    UploadInitResponse,
    UploadProgressResponse,
    UsageResponse
)
from snappd.services.batch_service import BatchUploadService
from snappd.services.upload_session_service import UploadSessionService

router = APIRouter(prefix="/v1/api")


@router.post(
    "/upload/init",
    tags=["Uploads"],
    response_model=Union[UploadInitResponse, BatchUploadResponse]
)
def init_upload(
    request: UploadInitRequest,
    upload_session_service: UploadSessionService = Depends(get_upload_session_service),
    batch_upload_service: BatchUploadService = Depends(get_batch_upload_service),
    account_id: str = Depends(verify_token)
):
    """
    Start an upload.

    Send a single file's metadata, or `files` for a batch. Each accepted file
    gets a presigned upload URL; the bytes go straight to storage.
    """
    if request.is_batch:
        files = [file.model_dump() for file in request.files]
        return batch_upload_service.submit_batch(account_id, files)

    return upload_session_service.begin_session(
        account_id=account_id,
        filename=request.filename,
        file_size=request.file_size,
        mime_type=request.mime_type,
        sharing_mode=request.sharing_mode,
        password=request.password
    )


@router.post(
    "/upload/{session_id}/complete",
    tags=["Uploads"],
    response_model=UploadCompleteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": UploadCompleteResponse, "description": "Existing artifact reused"}}
)
def complete_upload(
    session_id: str,
    request: UploadCompleteRequest,
    upload_session_service: UploadSessionService = Depends(get_upload_session_service),
    account_id: str = Depends(verify_token)
):
    """
    Commit an uploaded file.

    Returns 201 with the new artifact, or 200 with `duplicate: true` when the
    account already uploaded the same content.
    """
    result = upload_session_service.complete_session(
        account_id=account_id,
        session_id=session_id,
        content_hash=request.content_hash,
        width=request.width,
        height=request.height
    )
    if result.duplicate:
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))
    return result


@router.get("/upload/{session_id}/progress", tags=["Uploads"], response_model=UploadProgressResponse)
def get_upload_progress(
    session_id: str,
    upload_session_service: UploadSessionService = Depends(get_upload_session_service),
    account_id: str = Depends(verify_token)
):
    """Get the progress of an upload session."""
    return upload_session_service.get_progress(account_id, session_id)


@router.get("/usage", tags=["Usage"], response_model=UsageResponse)
def get_usage(
    upload_session_service: UploadSessionService = Depends(get_upload_session_service),
    account_id: str = Depends(verify_token)
):
    """Get this month's upload usage and limit."""
    return upload_session_service.get_usage(account_id)
