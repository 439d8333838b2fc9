"""
DynamoDB Repository for committed artifacts.
Artifacts are keyed by (account_id, content_hash); short IDs live in their own
table so the global namespace can be reserved with a conditional put.
"""
from datetime import datetime, timezone
from typing import Optional, Tuple
from botocore.exceptions import ClientError
from loguru import logger
from snappd.core import config
from snappd.core.exceptions import DynamoDBException
from snappd.models.artifact import Artifact
from snappd.repositories.db_repository import ArtifactStore, ThreadLocalTable


class ArtifactRepository(ArtifactStore):
    """Repository for artifact DynamoDB operations."""

    def __init__(self):
        self._table = ThreadLocalTable(config.settings.artifacts_table_name)
        self._short_id_table = ThreadLocalTable(config.settings.short_ids_table_name)

    @property
    def table(self):
        return self._table.get()

    @property
    def short_id_table(self):
        return self._short_id_table.get()

    def insert_if_absent(self, artifact: Artifact) -> Tuple[Artifact, bool]:
        """
        Reserve the artifact's short ID and insert the artifact record.

        If the account already owns an artifact with the same content hash the
        reservation is released and the existing artifact is returned.

        Args:
            artifact: Artifact domain model

        Returns:
            Tuple of (stored artifact, created)

        Raises:
            DynamoDBException: If the short ID is taken or a write fails
        """
        self._reserve_short_id(artifact)

        try:
            self.table.put_item(
                Item=self._artifact_to_item(artifact),
                ConditionExpression='attribute_not_exists(content_hash)'
            )
            return artifact, True

        except ClientError as e:
            if e.response['Error']['Code'] != 'ConditionalCheckFailedException':
                self._release_short_id(artifact.short_id)
                raise DynamoDBException(f"Failed to save artifact: {str(e)}") from e
        except Exception as e:
            self._release_short_id(artifact.short_id)
            raise DynamoDBException(f"Unexpected error saving artifact: {str(e)}") from e

        # Lost the race to a concurrent upload of the same content
        self._release_short_id(artifact.short_id)
        existing = self.find_by_hash(artifact.account_id, artifact.content_hash)
        if existing is None:
            raise DynamoDBException(
                f"Artifact for hash '{artifact.content_hash}' vanished during insert"
            )
        logger.info("Concurrent duplicate resolved to artifact {}", existing.artifact_id)
        return existing, False

    def find_by_hash(self, account_id: str, content_hash: str) -> Optional[Artifact]:
        """
        Find an account's artifact by content hash.

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.table.get_item(
                Key={'account_id': account_id, 'content_hash': content_hash},
                ConsistentRead=True
            )

            if 'Item' not in response:
                return None

            return self._item_to_artifact(response['Item'])

        except ClientError as e:
            raise DynamoDBException(f"Failed to query artifact: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error querying artifact: {str(e)}") from e

    def find_by_short_id(self, short_id: str) -> Optional[Artifact]:
        """
        Find an artifact through its short ID reservation.

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.short_id_table.get_item(Key={'short_id': short_id})
        except ClientError as e:
            raise DynamoDBException(f"Failed to query short ID: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error querying short ID: {str(e)}") from e

        if 'Item' not in response:
            return None

        reservation = response['Item']
        return self.find_by_hash(reservation['account_id'], reservation['content_hash'])

    def short_id_exists(self, short_id: str) -> bool:
        """
        Check whether a short ID is already reserved.

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.short_id_table.get_item(Key={'short_id': short_id})
            return 'Item' in response
        except ClientError as e:
            raise DynamoDBException(f"Failed to check short ID: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error checking short ID: {str(e)}") from e

    def _reserve_short_id(self, artifact: Artifact) -> None:
        """Claim the short ID for this artifact; fails if already claimed."""
        try:
            self.short_id_table.put_item(
                Item={
                    'short_id': artifact.short_id,
                    'account_id': artifact.account_id,
                    'content_hash': artifact.content_hash,
                    'artifact_id': artifact.artifact_id,
                    'reserved_at': datetime.now(timezone.utc).isoformat()
                },
                ConditionExpression='attribute_not_exists(short_id)'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise DynamoDBException(f"Short ID '{artifact.short_id}' is already reserved") from e
            raise DynamoDBException(f"Failed to reserve short ID: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error reserving short ID: {str(e)}") from e

    def _release_short_id(self, short_id: str) -> None:
        try:
            self.short_id_table.delete_item(Key={'short_id': short_id})
        except ClientError as e:
            raise DynamoDBException(f"Failed to release short ID: {str(e)}") from e

    def _artifact_to_item(self, artifact: Artifact) -> dict:
        """Convert Artifact domain model to DynamoDB item."""
        item = {
            'account_id': artifact.account_id,
            'content_hash': artifact.content_hash,
            'artifact_id': artifact.artifact_id,
            'short_id': artifact.short_id,
            'byte_size': artifact.byte_size,
            'width': artifact.width,
            'height': artifact.height,
            'mime_type': artifact.mime_type,
            'storage_path': artifact.storage_path,
            'original_filename': artifact.original_filename,
            'sharing_mode': artifact.sharing_mode,
            'created_at': artifact.created_at.isoformat()
        }
        if artifact.expires_at:
            item['expires_at'] = artifact.expires_at.isoformat()
        if artifact.password_hash:
            item['password_hash'] = artifact.password_hash
        return item

    def _item_to_artifact(self, item: dict) -> Artifact:
        """Convert DynamoDB item to Artifact domain model."""
        return Artifact(
            artifact_id=item['artifact_id'],
            short_id=item['short_id'],
            account_id=item['account_id'],
            content_hash=item['content_hash'],
            byte_size=int(item['byte_size']),
            width=int(item['width']),
            height=int(item['height']),
            mime_type=item['mime_type'],
            storage_path=item['storage_path'],
            original_filename=item['original_filename'],
            created_at=datetime.fromisoformat(item['created_at']),
            expires_at=datetime.fromisoformat(item['expires_at']) if item.get('expires_at') else None,
            sharing_mode=item.get('sharing_mode', 'public'),
            password_hash=item.get('password_hash')
        )
