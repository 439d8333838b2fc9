"""
Custom exceptions for the snappd upload API.
Provides specific error types for different failure scenarios.
"""
from typing import List, Optional


class SnappdException(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationException(SnappdException):
    """Raised when request data validation fails."""
    pass


class FileTooLargeException(ValidationException):
    """Raised when a declared file size exceeds the upload maximum."""
    def __init__(self, message: str, max_size: int):
        super().__init__(message)
        self.max_size = max_size


class BatchValidationException(ValidationException):
    """Raised when one or more files in a batch fail static validation."""
    def __init__(self, message: str, errors: List[dict]):
        super().__init__(message)
        self.errors = errors


class QuotaExceededException(SnappdException):
    """Raised when an account has no remaining upload allowance this month."""
    def __init__(self, message: str, snapshot):
        super().__init__(message)
        self.snapshot = snapshot


class SessionNotFoundException(SnappdException):
    """Raised when an upload session does not exist or belongs to another account."""
    pass


class AlreadyCompletedException(SnappdException):
    """Raised when completion is re-submitted for a finished session."""
    pass


class MaxRetriesExceededException(SnappdException):
    """Raised when a failed session has used all of its retries."""
    def __init__(self, message: str, retry_count: int, max_retries: int):
        super().__init__(message)
        self.retry_count = retry_count
        self.max_retries = max_retries


class TransientStorageException(SnappdException):
    """Raised when completion failed on a storage error the client may retry."""
    def __init__(self, message: str, retryable: bool, retry_count: int, max_retries: int):
        super().__init__(message)
        self.retryable = retryable
        self.retry_count = retry_count
        self.max_retries = max_retries


class ShortIdAllocationException(SnappdException):
    """Raised when no free short ID was found within the attempt budget."""
    pass


class SessionStateConflictException(SnappdException):
    """Raised when a conditional session transition loses a race."""
    pass


class ArtifactNotFoundException(SnappdException):
    """Raised when a short link does not resolve to a visible artifact."""
    pass


class ArtifactExpiredException(SnappdException):
    """Raised when a short link's artifact is past its expiration."""
    pass


class ShareAccessDeniedException(SnappdException):
    """Raised when a password-protected share is accessed without a valid password."""
    def __init__(self, message: str, password_required: bool = True):
        super().__init__(message)
        self.password_required = password_required


class S3Exception(SnappdException):
    """Raised when S3 operation fails."""
    pass


class DynamoDBException(SnappdException):
    """Raised when DynamoDB operation fails."""
    pass
