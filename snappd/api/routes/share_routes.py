"""
Public short link routes.
No authentication: anyone holding a short link may resolve it.
"""
from fastapi import APIRouter, Depends
from snappd.core.dependencies import get_artifact_service
from snappd.models.dto.artifact_dto import PublicArtifactResponse, ShareAccessRequest
from snappd.services.artifact_service import ArtifactService

router = APIRouter(prefix="/v1/api", tags=["Share"])


@router.get("/s/{short_id}", response_model=PublicArtifactResponse)
def resolve_short_link(
    short_id: str,
    artifact_service: ArtifactService = Depends(get_artifact_service)
):
    """Resolve a short link to its image."""
    return artifact_service.resolve_public(short_id)


@router.post("/s/{short_id}/access", response_model=PublicArtifactResponse)
def access_protected_link(
    short_id: str,
    request: ShareAccessRequest,
    artifact_service: ArtifactService = Depends(get_artifact_service)
):
    """Unlock a password-protected short link."""
    return artifact_service.access_with_password(short_id, request.password)
