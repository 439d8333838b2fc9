"""
Global exception handler for the snappd upload API.
Provides centralized error handling for all API exceptions.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from snappd.models.dto.upload_dto import QuotaResponse
from .exceptions import (
    AlreadyCompletedException,
    ArtifactExpiredException,
    ArtifactNotFoundException,
    BatchValidationException,
    DynamoDBException,
    FileTooLargeException,
    MaxRetriesExceededException,
    QuotaExceededException,
    S3Exception,
    SessionNotFoundException,
    ShareAccessDeniedException,
    ShortIdAllocationException,
    TransientStorageException,
    ValidationException
)

UPGRADE_HINT = {"message": "Upgrade to Pro for unlimited uploads", "url": "/pricing"}


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"]
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation Error",
                "message": errors[0]["message"] if errors else "Invalid request",
                "errors": errors
            }
        )

    @app.exception_handler(BatchValidationException)
    async def handle_batch_validation_error(request: Request, exc: BatchValidationException):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation Error", "message": exc.message, "errors": exc.errors}
        )

    @app.exception_handler(FileTooLargeException)
    async def handle_file_too_large(request: Request, exc: FileTooLargeException):
        return JSONResponse(
            status_code=413,
            content={"error": "File Too Large", "message": exc.message, "max_size": exc.max_size}
        )

    @app.exception_handler(ValidationException)
    async def handle_validation_error(request: Request, exc: ValidationException):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation Error", "message": exc.message}
        )

    @app.exception_handler(QuotaExceededException)
    async def handle_quota_exceeded(request: Request, exc: QuotaExceededException):
        quota = QuotaResponse.from_snapshot(exc.snapshot)
        return JSONResponse(
            status_code=403,
            content={
                "error": "Quota Exceeded",
                "message": exc.message,
                "quota": quota.model_dump(mode="json"),
                "upgrade": UPGRADE_HINT
            }
        )

    @app.exception_handler(SessionNotFoundException)
    async def handle_session_not_found(request: Request, exc: SessionNotFoundException):
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "message": exc.message}
        )

    @app.exception_handler(ArtifactNotFoundException)
    async def handle_artifact_not_found(request: Request, exc: ArtifactNotFoundException):
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "message": exc.message}
        )

    @app.exception_handler(AlreadyCompletedException)
    async def handle_already_completed(request: Request, exc: AlreadyCompletedException):
        return JSONResponse(
            status_code=400,
            content={"error": "Already Completed", "message": exc.message}
        )

    @app.exception_handler(MaxRetriesExceededException)
    async def handle_max_retries(request: Request, exc: MaxRetriesExceededException):
        return JSONResponse(
            status_code=403,
            content={
                "error": "Max Retries Exceeded",
                "message": exc.message,
                "retryable": False,
                "retry_count": exc.retry_count,
                "max_retries": exc.max_retries
            }
        )

    @app.exception_handler(TransientStorageException)
    async def handle_transient_storage(request: Request, exc: TransientStorageException):
        return JSONResponse(
            status_code=500,
            content={
                "error": "Upload Failed",
                "message": exc.message,
                "retryable": exc.retryable,
                "retry_count": exc.retry_count,
                "max_retries": exc.max_retries
            }
        )

    @app.exception_handler(ShortIdAllocationException)
    async def handle_short_id_allocation(request: Request, exc: ShortIdAllocationException):
        logger.error("Short ID allocation failed: {}", exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Short ID Allocation Failed", "message": exc.message, "retryable": False}
        )

    @app.exception_handler(ShareAccessDeniedException)
    async def handle_share_access_denied(request: Request, exc: ShareAccessDeniedException):
        return JSONResponse(
            status_code=401,
            content={
                "error": "Unauthorized",
                "message": exc.message,
                "password_required": exc.password_required
            }
        )

    @app.exception_handler(ArtifactExpiredException)
    async def handle_artifact_expired(request: Request, exc: ArtifactExpiredException):
        return JSONResponse(
            status_code=410,
            content={"error": "Gone", "message": exc.message}
        )

    @app.exception_handler(S3Exception)
    async def handle_s3_error(request: Request, exc: S3Exception):
        logger.error("S3 error on {}: {}", request.url.path, exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Storage Error", "message": exc.message}
        )

    @app.exception_handler(DynamoDBException)
    async def handle_dynamodb_error(request: Request, exc: DynamoDBException):
        logger.error("DynamoDB error on {}: {}", request.url.path, exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Database Error", "message": exc.message}
        )

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {}", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "message": "An unexpected error occurred"}
        )
