"""
Unit tests for S3Repository.
Uses moto to mock AWS S3 service.
"""
from datetime import datetime, timezone
from unittest.mock import patch
import pytest
from botocore.exceptions import ClientError
from snappd.repositories.s3_repository import S3Repository
from snappd.core.exceptions import S3Exception


class TestS3Repository:
    """Test suite for S3Repository."""

    def test_create_upload_target_success(self, aws_resources):
        """Test a presigned PUT target is issued for the storage path."""
        repo = S3Repository()
        before = datetime.now(timezone.utc)

        target = repo.create_upload_target("acct-1/2026/10/abc.png", "image/png")

        assert target["storage_path"] == "acct-1/2026/10/abc.png"
        assert "test-bucket" in target["upload_url"]
        assert "acct-1/2026/10/abc.png" in target["upload_url"]
        assert "Signature" in target["upload_url"] or "X-Amz-Signature" in target["upload_url"]
        assert (target["expires_at"] - before).total_seconds() == pytest.approx(3600, abs=5)

    def test_create_upload_target_uses_configured_expiry(self, aws_resources, monkeypatch):
        from snappd.core import config
        monkeypatch.setenv("UPLOAD_URL_EXPIRY_SECONDS", "300")
        config.settings = config.Settings()
        repo = S3Repository()
        before = datetime.now(timezone.utc)

        target = repo.create_upload_target("acct-1/2026/10/abc.png", "image/png")

        assert (target["expires_at"] - before).total_seconds() == pytest.approx(300, abs=5)

    def test_create_upload_target_client_error(self, aws_resources):
        repo = S3Repository()
        error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")

        with patch.object(repo.s3_client, "generate_presigned_url", side_effect=error):
            with pytest.raises(S3Exception) as exc_info:
                repo.create_upload_target("acct-1/x.png", "image/png")
        assert "Failed to create upload URL" in str(exc_info.value)

    def test_build_storage_path_layout(self, aws_resources):
        repo = S3Repository()
        now = datetime.now(timezone.utc)

        path = repo.build_storage_path("acct-1", "session-1", "image/jpeg")

        assert path == f"acct-1/{now.year}/{now.month:02d}/session-1.jpg"

    def test_build_storage_path_keeps_webp_extension(self, aws_resources):
        repo = S3Repository()
        assert repo.build_storage_path("acct-1", "s", "image/webp").endswith("/s.webp")

    def test_get_public_url(self, aws_resources):
        repo = S3Repository()
        url = repo.get_public_url("acct-1/2026/10/abc.png")
        assert url == "https://test-bucket.s3.us-east-1.amazonaws.com/acct-1/2026/10/abc.png"
