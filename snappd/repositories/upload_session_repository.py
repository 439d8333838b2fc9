"""
Upload Session Repository for DynamoDB operations.
Persists upload sessions and applies conditional state transitions.
"""
from datetime import datetime, timezone
from typing import Optional, Sequence
from botocore.exceptions import ClientError
from snappd.core import config
from snappd.core.exceptions import DynamoDBException, SessionStateConflictException
from snappd.models.upload_session import UploadSession, SessionStatus
from snappd.repositories.db_repository import ThreadLocalTable


class UploadSessionRepository:
    """Repository for upload session DynamoDB operations."""

    def __init__(self):
        self._table = ThreadLocalTable(config.settings.upload_sessions_table_name)

    @property
    def table(self):
        return self._table.get()

    def create(self, session: UploadSession) -> None:
        """
        Create new upload session record.

        Args:
            session: UploadSession domain model

        Raises:
            DynamoDBException: If create operation fails or the id is taken
        """
        try:
            item = {
                'session_id': session.session_id,
                'account_id': session.account_id,
                'status': session.status,
                'filename': session.filename,
                'declared_byte_size': session.declared_byte_size,
                'mime_type': session.mime_type,
                'storage_path': session.storage_path,
                'sharing_mode': session.sharing_mode,
                'retry_count': session.retry_count,
                'bytes_uploaded': session.bytes_uploaded,
                'created_at': session.created_at.isoformat(),
                'updated_at': session.updated_at.isoformat()
            }

            if session.password_hash:
                item['password_hash'] = session.password_hash
            if session.error_message:
                item['error_message'] = session.error_message
            if session.resulting_artifact_id:
                item['resulting_artifact_id'] = session.resulting_artifact_id

            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(session_id)'
            )

        except ClientError as e:
            raise DynamoDBException(f"Failed to create upload session: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error creating upload session: {str(e)}") from e

    def get_by_id(self, session_id: str) -> Optional[UploadSession]:
        """
        Retrieve upload session by ID.

        Args:
            session_id: Session identifier

        Returns:
            UploadSession object or None if not found

        Raises:
            DynamoDBException: If query fails
        """
        try:
            response = self.table.get_item(Key={'session_id': session_id}, ConsistentRead=True)

            if 'Item' not in response:
                return None

            return self._item_to_session(response['Item'])

        except ClientError as e:
            raise DynamoDBException(f"Failed to get upload session: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error getting upload session: {str(e)}") from e

    def update(
        self,
        session_id: str,
        updates: dict,
        expected_statuses: Optional[Sequence[str]] = None,
        expected_retry_count: Optional[int] = None,
        expected_claim: Optional[str] = None,
        remove: Sequence[str] = ()
    ) -> None:
        """
        Update upload session fields, optionally guarded by the current state.

        Args:
            session_id: Session identifier
            updates: Dictionary of fields to update
            expected_statuses: Statuses the session must currently be in
            expected_retry_count: Retry count the session must currently have
            expected_claim: Completion claim the session must currently hold
            remove: Attributes to delete in the same update

        Raises:
            SessionStateConflictException: If the guard did not hold
            DynamoDBException: If update operation fails
        """
        updates = dict(updates)
        updates['updated_at'] = datetime.now(timezone.utc).isoformat()

        update_expression = "SET "
        expression_values = {}
        expression_names = {}

        for key, value in updates.items():
            update_expression += f"#{key} = :{key}, "
            expression_values[f":{key}"] = value
            expression_names[f"#{key}"] = key

        update_expression = update_expression.rstrip(", ")
        if remove:
            update_expression += " REMOVE " + ", ".join(remove)

        conditions = ["attribute_exists(session_id)"]
        if expected_statuses:
            expression_names['#current_status'] = 'status'
            status_terms = []
            for index, status in enumerate(expected_statuses):
                expression_values[f":expected_status_{index}"] = status
                status_terms.append(f"#current_status = :expected_status_{index}")
            conditions.append(f"({' OR '.join(status_terms)})")
        if expected_retry_count is not None:
            expression_names['#current_retry_count'] = 'retry_count'
            expression_values[':expected_retry_count'] = expected_retry_count
            conditions.append("#current_retry_count = :expected_retry_count")
        if expected_claim is not None:
            expression_names['#current_claim'] = 'completion_claim'
            expression_values[':expected_claim'] = expected_claim
            conditions.append("#current_claim = :expected_claim")

        try:
            self.table.update_item(
                Key={'session_id': session_id},
                UpdateExpression=update_expression,
                ConditionExpression=" AND ".join(conditions),
                ExpressionAttributeNames=expression_names,
                ExpressionAttributeValues=expression_values
            )

        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise SessionStateConflictException(
                    f"Upload session '{session_id}' changed state concurrently"
                ) from e
            raise DynamoDBException(f"Failed to update upload session: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error updating upload session: {str(e)}") from e

    def claim_completion(self, session_id: str, claim_id: str, claimed_at: datetime, stale_before: datetime) -> None:
        """
        Take the exclusive right to complete an in-flight session.

        A claim older than ``stale_before`` is treated as abandoned and can be
        taken over. The claim is dropped by the update that finishes the
        attempt (see ``update(..., expected_claim=..., remove=...)``).

        Raises:
            SessionStateConflictException: If the session is finished or already claimed
            DynamoDBException: If update operation fails
        """
        try:
            self.table.update_item(
                Key={'session_id': session_id},
                UpdateExpression="SET completion_claim = :claim, claimed_at = :claimed_at, updated_at = :claimed_at",
                ConditionExpression=(
                    "attribute_exists(session_id) "
                    "AND (#status = :pending OR #status = :uploading) "
                    "AND (attribute_not_exists(completion_claim) OR claimed_at < :stale_before)"
                ),
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues={
                    ':claim': claim_id,
                    ':claimed_at': claimed_at.isoformat(),
                    ':stale_before': stale_before.isoformat(),
                    ':pending': SessionStatus.PENDING,
                    ':uploading': SessionStatus.UPLOADING
                }
            )

        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise SessionStateConflictException(
                    f"Upload session '{session_id}' is not available for completion"
                ) from e
            raise DynamoDBException(f"Failed to claim upload session: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error claiming upload session: {str(e)}") from e

    def record_progress(self, session_id: str, bytes_uploaded: int) -> bool:
        """
        Record bytes received for an in-flight session.

        Moves ``pending`` sessions to ``uploading``. The byte count never
        decreases and finished sessions are left untouched.

        Returns:
            True if the session was updated, False if the guard rejected it

        Raises:
            DynamoDBException: If update operation fails
        """
        try:
            self.table.update_item(
                Key={'session_id': session_id},
                UpdateExpression="SET #status = :uploading, bytes_uploaded = :bytes, updated_at = :now",
                ConditionExpression=(
                    "attribute_exists(session_id) "
                    "AND (#status = :pending OR #status = :uploading) "
                    "AND bytes_uploaded <= :bytes"
                ),
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues={
                    ':uploading': SessionStatus.UPLOADING,
                    ':pending': SessionStatus.PENDING,
                    ':bytes': bytes_uploaded,
                    ':now': datetime.now(timezone.utc).isoformat()
                }
            )
            return True

        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                return False
            raise DynamoDBException(f"Failed to record upload progress: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error recording upload progress: {str(e)}") from e

    def _item_to_session(self, item: dict) -> UploadSession:
        """Convert DynamoDB item to UploadSession domain model."""
        return UploadSession(
            session_id=item['session_id'],
            account_id=item['account_id'],
            filename=item['filename'],
            declared_byte_size=int(item['declared_byte_size']),
            mime_type=item['mime_type'],
            storage_path=item['storage_path'],
            created_at=datetime.fromisoformat(item['created_at']),
            status=item['status'],
            retry_count=int(item.get('retry_count', 0)),
            bytes_uploaded=int(item.get('bytes_uploaded', 0)),
            error_message=item.get('error_message'),
            resulting_artifact_id=item.get('resulting_artifact_id'),
            sharing_mode=item.get('sharing_mode', 'public'),
            password_hash=item.get('password_hash'),
            completion_claim=item.get('completion_claim'),
            updated_at=datetime.fromisoformat(item['updated_at']) if item.get('updated_at') else None
        )
