"""
Per-account duplicate detection by content hash.
"""
from typing import Optional
from snappd.models.artifact import Artifact
from snappd.repositories.db_repository import ArtifactStore


class DuplicateDetector:
    """Finds an account's existing artifact for a content hash.

    Lookups never cross accounts: identical bytes uploaded by two accounts
    produce two artifacts.
    """

    def __init__(self, artifact_store: ArtifactStore):
        self.artifact_store = artifact_store

    def find_existing(self, account_id: str, content_hash: str) -> Optional[Artifact]:
        return self.artifact_store.find_by_hash(account_id, content_hash)
