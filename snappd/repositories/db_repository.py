"""
Abstract base classes for database repositories.
Defines the storage contracts the upload engine depends on and the
per-thread DynamoDB table handle the repositories share.
"""
import threading
from abc import ABC, abstractmethod
from typing import Optional, Tuple
import boto3
from snappd.core import config
from snappd.models.artifact import Artifact
from snappd.models.quota import UsageRecord


class ArtifactStore(ABC):
    """Repository interface for committed artifacts and the short ID namespace."""

    @abstractmethod
    def insert_if_absent(self, artifact: Artifact) -> Tuple[Artifact, bool]:
        """
        Insert an artifact unless the account already owns one with the same hash.

        Returns the stored artifact and whether it was created by this call.
        """
        pass

    @abstractmethod
    def find_by_hash(self, account_id: str, content_hash: str) -> Optional[Artifact]:
        """Find an account's artifact by content hash."""
        pass

    @abstractmethod
    def find_by_short_id(self, short_id: str) -> Optional[Artifact]:
        """Find an artifact by its short ID."""
        pass

    @abstractmethod
    def short_id_exists(self, short_id: str) -> bool:
        """Check whether a short ID is already taken."""
        pass


class UsageCounter(ABC):
    """Repository interface for per-window quota counters."""

    @abstractmethod
    def get_usage(self, account_id: str, window: str) -> UsageRecord:
        """Read the usage counters for a quota window."""
        pass

    @abstractmethod
    def try_consume(self, account_id: str, window: str, byte_size: int, limit: Optional[int]) -> bool:
        """
        Atomically add one artifact and ``byte_size`` bytes to the window.

        The increment only happens while the artifact count is below ``limit``;
        returns False when the limit was already reached. ``None`` means unmetered.
        """
        pass

    @abstractmethod
    def release(self, account_id: str, window: str, byte_size: int) -> None:
        """Undo one previous successful ``try_consume``."""
        pass


class ThreadLocalTable:
    """
    DynamoDB Table handle that gives each thread its own boto3 resource.

    boto3 resources are not thread-safe, while repositories are shared
    singletons used from FastAPI's threadpool and the batch worker pool.
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self._local = threading.local()

    def get(self):
        table = getattr(self._local, 'table', None)
        if table is None:
            session = boto3.session.Session()
            dynamodb = session.resource('dynamodb', region_name=config.settings.aws_region)
            table = dynamodb.Table(self.table_name)
            self._local.table = table
        return table
