"""
Usage Repository for quota counters.
One DynamoDB item per (account_id, window); increments are single conditional
updates so the limit check and the increment cannot interleave.
"""
from datetime import datetime, timezone
from typing import Optional
from botocore.exceptions import ClientError
from loguru import logger
from snappd.core import config
from snappd.core.exceptions import DynamoDBException
from snappd.models.quota import UsageRecord
from snappd.repositories.db_repository import ThreadLocalTable, UsageCounter


class UsageRepository(UsageCounter):
    """Repository for per-window usage counters in DynamoDB."""

    def __init__(self):
        self._table = ThreadLocalTable(config.settings.usage_table_name)

    @property
    def table(self):
        return self._table.get()

    def get_usage(self, account_id: str, window: str) -> UsageRecord:
        """
        Read usage counters for a quota window.

        Args:
            account_id: Account identifier
            window: Quota window key (see quota_service.quota_window)

        Returns:
            UsageRecord, zeroed when the window has no usage yet

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.table.get_item(
                Key={'account_id': account_id, 'window': window},
                ConsistentRead=True
            )
        except ClientError as e:
            raise DynamoDBException(f"Failed to read usage: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error reading usage: {str(e)}") from e

        item = response.get('Item')
        if not item:
            return UsageRecord(account_id=account_id, window=window)

        return UsageRecord(
            account_id=account_id,
            window=window,
            artifact_count=int(item.get('artifact_count', 0)),
            bytes_stored=int(item.get('bytes_stored', 0))
        )

    def try_consume(self, account_id: str, window: str, byte_size: int, limit: Optional[int]) -> bool:
        """
        Atomically count one artifact against the window.

        Returns:
            True if counted, False if the window was already at ``limit``

        Raises:
            DynamoDBException: If update fails
        """
        update_kwargs = {
            'Key': {'account_id': account_id, 'window': window},
            'UpdateExpression': "ADD artifact_count :one, bytes_stored :bytes SET updated_at = :now",
            'ExpressionAttributeValues': {
                ':one': 1,
                ':bytes': byte_size,
                ':now': datetime.now(timezone.utc).isoformat()
            }
        }
        if limit is not None:
            update_kwargs['ConditionExpression'] = "attribute_not_exists(artifact_count) OR artifact_count < :limit"
            update_kwargs['ExpressionAttributeValues'][':limit'] = limit

        try:
            self.table.update_item(**update_kwargs)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                return False
            raise DynamoDBException(f"Failed to increment usage: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error incrementing usage: {str(e)}") from e

    def release(self, account_id: str, window: str, byte_size: int) -> None:
        """
        Give back one artifact previously counted by ``try_consume``.

        Raises:
            DynamoDBException: If update fails
        """
        try:
            self.table.update_item(
                Key={'account_id': account_id, 'window': window},
                UpdateExpression="ADD artifact_count :minus_one, bytes_stored :minus_bytes SET updated_at = :now",
                ConditionExpression="artifact_count > :zero",
                ExpressionAttributeValues={
                    ':minus_one': -1,
                    ':minus_bytes': -byte_size,
                    ':zero': 0,
                    ':now': datetime.now(timezone.utc).isoformat()
                }
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning("Usage for {} in {} already at zero, nothing to release", account_id, window)
                return
            raise DynamoDBException(f"Failed to release usage: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error releasing usage: {str(e)}") from e
