"""
Unit tests for ArtifactService short link resolution.
"""
from datetime import datetime, timedelta, timezone
import pytest
from fakes import FakeArtifactStore, FakeObjectStore
from snappd.core.exceptions import (
    ArtifactExpiredException,
    ArtifactNotFoundException,
    ShareAccessDeniedException
)
from snappd.models.artifact import Artifact
from snappd.services.artifact_service import ArtifactService
from snappd.services.share_service import hash_share_password


def make_artifact(short_id="abc123", content_hash="hash-1", **overrides):
    now = datetime.now(timezone.utc)
    fields = dict(
        artifact_id=f"art-{short_id}",
        short_id=short_id,
        account_id="acct-1",
        content_hash=content_hash,
        byte_size=2048,
        width=1280,
        height=720,
        mime_type="image/png",
        storage_path=f"acct-1/2026/10/{short_id}.png",
        original_filename="shot.png",
        created_at=now,
        expires_at=now + timedelta(days=30)
    )
    fields.update(overrides)
    return Artifact(**fields)


class TestArtifactService:
    @pytest.fixture
    def store(self):
        return FakeArtifactStore()

    @pytest.fixture
    def service(self, store):
        return ArtifactService(artifact_repository=store, s3_repository=FakeObjectStore())

    def test_resolve_public_artifact(self, service, store):
        store.insert_if_absent(make_artifact())

        result = service.resolve_public("abc123")

        assert result.short_id == "abc123"
        assert result.url == "https://cdn.test/acct-1/2026/10/abc123.png"
        assert result.width == 1280
        assert result.original_filename == "shot.png"

    @pytest.mark.parametrize("short_id", ["abc", "abc!23", "abc1234"])
    def test_malformed_short_id_not_found(self, service, short_id):
        with pytest.raises(ArtifactNotFoundException):
            service.resolve_public(short_id)

    def test_unknown_short_id_not_found(self, service):
        with pytest.raises(ArtifactNotFoundException):
            service.resolve_public("zzzzzz")

    def test_private_artifact_looks_missing(self, service, store):
        store.insert_if_absent(make_artifact(sharing_mode="private"))

        with pytest.raises(ArtifactNotFoundException):
            service.resolve_public("abc123")

    def test_expired_artifact_is_gone(self, service, store):
        past = datetime.now(timezone.utc) - timedelta(days=31)
        store.insert_if_absent(make_artifact(created_at=past, expires_at=past + timedelta(days=30)))

        with pytest.raises(ArtifactExpiredException):
            service.resolve_public("abc123")

    def test_never_expiring_artifact(self, service, store):
        store.insert_if_absent(make_artifact(expires_at=None))

        assert service.resolve_public("abc123").expires_at is None

    def test_password_artifact_requires_password(self, service, store):
        store.insert_if_absent(make_artifact(
            sharing_mode="password",
            password_hash=hash_share_password("hunter2hunter2")
        ))

        with pytest.raises(ShareAccessDeniedException) as exc_info:
            service.resolve_public("abc123")
        assert exc_info.value.password_required is True

    def test_access_with_correct_password(self, service, store):
        store.insert_if_absent(make_artifact(
            sharing_mode="password",
            password_hash=hash_share_password("hunter2hunter2")
        ))

        result = service.access_with_password("abc123", "hunter2hunter2")

        assert result.short_id == "abc123"

    def test_access_with_wrong_password(self, service, store):
        store.insert_if_absent(make_artifact(
            sharing_mode="password",
            password_hash=hash_share_password("hunter2hunter2")
        ))

        with pytest.raises(ShareAccessDeniedException, match="Incorrect password"):
            service.access_with_password("abc123", "guess-guess")

    def test_access_public_artifact_ignores_password(self, service, store):
        store.insert_if_absent(make_artifact())

        assert service.access_with_password("abc123", "anything").short_id == "abc123"

    def test_access_expired_password_artifact_is_gone(self, service, store):
        past = datetime.now(timezone.utc) - timedelta(days=40)
        store.insert_if_absent(make_artifact(
            sharing_mode="password",
            password_hash=hash_share_password("hunter2hunter2"),
            created_at=past,
            expires_at=past + timedelta(days=30)
        ))

        with pytest.raises(ArtifactExpiredException):
            service.access_with_password("abc123", "hunter2hunter2")
