"""
S3 Repository for image storage.
Issues presigned upload targets and builds public object URLs.
"""
from datetime import datetime, timedelta, timezone
import boto3
from botocore.exceptions import ClientError
from snappd.core import config
from snappd.core.exceptions import S3Exception


class S3Repository:
    """Repository for S3 file operations."""

    def __init__(self):
        self.s3_client = boto3.client('s3', region_name=config.settings.aws_region)
        self.bucket_name = config.settings.s3_bucket_name

    def create_upload_target(self, storage_path: str, mime_type: str) -> dict:
        """
        Create a time-boxed, write-capable URL for a direct client upload.

        Args:
            storage_path: Object key the client must upload to
            mime_type: Content type the upload must declare

        Returns:
            dict: upload_url, storage_path and expires_at

        Raises:
            S3Exception: If URL generation fails
        """
        expires_in = config.settings.upload_url_expiry_seconds
        try:
            upload_url = self.s3_client.generate_presigned_url(
                'put_object',
                Params={
                    'Bucket': self.bucket_name,
                    'Key': storage_path,
                    'ContentType': mime_type
                },
                ExpiresIn=expires_in
            )
        except ClientError as e:
            raise S3Exception(f"Failed to create upload URL: {str(e)}") from e
        except Exception as e:
            raise S3Exception(f"Unexpected error creating upload URL: {str(e)}") from e

        return {
            'upload_url': upload_url,
            'storage_path': storage_path,
            'expires_at': datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        }

    def build_storage_path(self, account_id: str, session_id: str, mime_type: str) -> str:
        """
        Build the object key for a session's upload.

        Format: {account_id}/{YYYY}/{MM}/{session_id}.{ext}
        """
        now = datetime.now(timezone.utc)
        extension = mime_type.split('/')[-1] or 'png'
        if extension == 'jpeg':
            extension = 'jpg'
        return f"{account_id}/{now.year}/{now.month:02d}/{session_id}.{extension}"

    def get_public_url(self, storage_path: str) -> str:
        """Public read URL for a stored object."""
        return f"https://{self.bucket_name}.s3.{config.settings.aws_region}.amazonaws.com/{storage_path}"
