"""
Core configuration for the snappd upload API.
Manages environment variables, AWS resource names and upload policy limits.
"""
import os
from typing import List
from loguru import logger
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # AWS Configuration
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "")
    upload_sessions_table_name: str = os.getenv("UPLOAD_SESSIONS_TABLE_NAME", "")
    artifacts_table_name: str = os.getenv("ARTIFACTS_TABLE_NAME", "")
    short_ids_table_name: str = os.getenv("SHORT_IDS_TABLE_NAME", "")
    usage_table_name: str = os.getenv("USAGE_TABLE_NAME", "")
    accounts_table_name: str = os.getenv("ACCOUNTS_TABLE_NAME", "")

    # API Configuration
    api_title: str = os.getenv("API_TITLE", "snappd Upload API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")

    # Upload Limits
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
    allowed_mime_types: List[str] = [
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/webp",
        "image/gif",
    ]
    max_batch_size: int = int(os.getenv("MAX_BATCH_SIZE", "50"))
    batch_max_workers: int = int(os.getenv("BATCH_MAX_WORKERS", "8"))
    max_upload_retries: int = int(os.getenv("MAX_UPLOAD_RETRIES", "3"))
    completion_claim_lease_seconds: int = int(os.getenv("COMPLETION_CLAIM_LEASE_SECONDS", "300"))
    upload_url_expiry_seconds: int = int(os.getenv("UPLOAD_URL_EXPIRY_SECONDS", "3600"))

    # Plan Policy
    free_monthly_upload_limit: int = int(os.getenv("FREE_MONTHLY_UPLOAD_LIMIT", "10"))
    free_artifact_ttl_days: int = int(os.getenv("FREE_ARTIFACT_TTL_DAYS", "30"))

    # Short IDs
    short_id_length: int = int(os.getenv("SHORT_ID_LENGTH", "6"))
    short_id_max_attempts: int = int(os.getenv("SHORT_ID_MAX_ATTEMPTS", "3"))

    # Sharing
    min_share_password_length: int = int(os.getenv("MIN_SHARE_PASSWORD_LENGTH", "8"))

    # Authentication
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def jwt_secret(self) -> str:
        """Get JWT secret from JWT_SECRET or Parameter Store."""
        explicit = os.getenv("JWT_SECRET")
        if explicit:
            return explicit
        try:
            from snappd.core.parameter_store import get_secret
            return get_secret("jwt-secret", self.environment, self.aws_region)
        except Exception as e:
            # Fallback for local dev or if parameter doesn't exist
            logger.warning("Using fallback JWT secret: {}", e)
            return "dev-secret-change-in-production"

    # Environment
    environment: str = os.getenv("ENVIRONMENT", "dev")

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
