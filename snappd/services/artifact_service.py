"""
Artifact Service for public short links.
Resolves short IDs to shareable artifacts, enforcing sharing mode and expiry.
"""
from datetime import datetime, timezone
from loguru import logger
from snappd.core.exceptions import (
    ArtifactExpiredException,
    ArtifactNotFoundException,
    ShareAccessDeniedException
)
from snappd.models.artifact import Artifact
from snappd.models.upload_session import SharingMode
from snappd.models.dto.artifact_dto import PublicArtifactResponse
from snappd.repositories.artifact_repository import ArtifactRepository
from snappd.repositories.s3_repository import S3Repository
from snappd.services.share_service import verify_share_password
from snappd.services.short_id_service import is_valid_short_id


class ArtifactService:
    """Service for short link resolution."""

    def __init__(self, artifact_repository: ArtifactRepository = None, s3_repository: S3Repository = None):
        self.artifact_repository = artifact_repository or ArtifactRepository()
        self.s3_repository = s3_repository or S3Repository()

    def resolve_public(self, short_id: str) -> PublicArtifactResponse:
        """
        Resolve a short link for an anonymous viewer.

        Raises:
            ArtifactNotFoundException: If the ID is malformed, unknown or private
            ArtifactExpiredException: If the artifact is past its expiration
            ShareAccessDeniedException: If the share requires a password
        """
        artifact = self._load_visible(short_id)
        if artifact.sharing_mode == SharingMode.PASSWORD:
            raise ShareAccessDeniedException("This image is password protected")
        return self._to_response(artifact)

    def access_with_password(self, short_id: str, password: str) -> PublicArtifactResponse:
        """
        Resolve a password-protected short link.

        Links that are not password protected resolve as in ``resolve_public``.

        Raises:
            ArtifactNotFoundException: If the ID is malformed, unknown or private
            ArtifactExpiredException: If the artifact is past its expiration
            ShareAccessDeniedException: If the password does not match
        """
        artifact = self._load_visible(short_id)
        if artifact.sharing_mode == SharingMode.PASSWORD:
            if not verify_share_password(password, artifact.password_hash):
                logger.info("Rejected password for short link {}", short_id)
                raise ShareAccessDeniedException("Incorrect password")
        return self._to_response(artifact)

    def _load_visible(self, short_id: str) -> Artifact:
        if not is_valid_short_id(short_id):
            raise ArtifactNotFoundException("Image not found")

        artifact = self.artifact_repository.find_by_short_id(short_id)
        # Private artifacts are indistinguishable from missing ones
        if artifact is None or artifact.sharing_mode == SharingMode.PRIVATE:
            raise ArtifactNotFoundException("Image not found")

        if artifact.is_expired(datetime.now(timezone.utc)):
            raise ArtifactExpiredException("This image has expired")
        return artifact

    def _to_response(self, artifact: Artifact) -> PublicArtifactResponse:
        return PublicArtifactResponse(
            short_id=artifact.short_id,
            url=self.s3_repository.get_public_url(artifact.storage_path),
            mime_type=artifact.mime_type,
            original_filename=artifact.original_filename,
            width=artifact.width,
            height=artifact.height,
            created_at=artifact.created_at,
            expires_at=artifact.expires_at
        )
