"""
File Service for upload request validation.
Static checks on declared filename, size, MIME type and sharing options.
"""
from typing import List, Optional
from snappd.core import config
from snappd.core.exceptions import FileTooLargeException, ValidationException
from snappd.models.upload_session import SharingMode


class FileService:
    """Service for upload validation operations."""

    MAX_FILENAME_LENGTH = 255

    def validate_upload(
        self,
        filename: str,
        file_size: int,
        mime_type: str,
        sharing_mode: str = SharingMode.PUBLIC,
        password: Optional[str] = None
    ) -> None:
        """
        Validate a single upload request before a session is opened.

        Raises:
            FileTooLargeException: If file_size exceeds the maximum
            ValidationException: If any other field is invalid
        """
        if not filename or not filename.strip():
            raise ValidationException("filename cannot be empty")
        if len(filename) > self.MAX_FILENAME_LENGTH:
            raise ValidationException(
                f"filename must be at most {self.MAX_FILENAME_LENGTH} characters"
            )

        if file_size is None or file_size <= 0:
            raise ValidationException("file_size must be a positive number of bytes")

        max_size = config.settings.max_file_size_bytes
        if file_size > max_size:
            raise FileTooLargeException(
                f"File size ({file_size / (1024 * 1024):.2f}MB) exceeds maximum allowed size "
                f"of {config.settings.max_file_size_mb}MB",
                max_size=max_size
            )

        allowed = config.settings.allowed_mime_types
        if mime_type not in allowed:
            raise ValidationException(
                f"Invalid file type '{mime_type}'. Allowed types: {', '.join(allowed)}"
            )

        self.validate_sharing(sharing_mode, password)

    def validate_sharing(self, sharing_mode: str, password: Optional[str]) -> None:
        """
        Validate sharing mode and the password it may require.

        Raises:
            ValidationException: If the mode is unknown or the password is unusable
        """
        if sharing_mode not in SharingMode.ALL:
            raise ValidationException(
                f"Invalid sharing_mode '{sharing_mode}'. Allowed: {', '.join(SharingMode.ALL)}"
            )
        if sharing_mode != SharingMode.PASSWORD:
            return

        if not password:
            raise ValidationException("Password required for password-protected sharing mode")
        min_length = config.settings.min_share_password_length
        if len(password) < min_length:
            raise ValidationException(f"Password must be at least {min_length} characters")
        # bcrypt only accepts up to 72 bytes
        if len(password.encode('utf-8')) > 72:
            raise ValidationException("Password must be at most 72 bytes")

    def validate_batch(self, files: List[dict]) -> List[dict]:
        """
        Validate every file in a batch.

        Args:
            files: Upload requests with filename, file_size, mime_type and
                optional sharing_mode/password

        Returns:
            Per-file errors as dicts with index, filename and message; empty when all pass
        """
        errors = []
        for index, file in enumerate(files):
            try:
                self.validate_upload(
                    filename=file.get('filename'),
                    file_size=file.get('file_size'),
                    mime_type=file.get('mime_type'),
                    sharing_mode=file.get('sharing_mode') or SharingMode.PUBLIC,
                    password=file.get('password')
                )
            except ValidationException as e:
                errors.append({
                    'index': index,
                    'filename': file.get('filename'),
                    'message': e.message
                })
        return errors
