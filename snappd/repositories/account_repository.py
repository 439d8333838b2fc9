"""
Account Repository for plan lookups.
Read-only view of the accounts table owned by the billing side.
"""
from datetime import datetime
from botocore.exceptions import ClientError
from snappd.core import config
from snappd.core.exceptions import DynamoDBException
from snappd.models.plan import AccountPlan, Plan
from snappd.repositories.db_repository import ThreadLocalTable


class AccountRepository:
    """Repository for account plan lookups in DynamoDB."""

    def __init__(self):
        self._table = ThreadLocalTable(config.settings.accounts_table_name)

    @property
    def table(self):
        return self._table.get()

    def get_plan(self, account_id: str) -> AccountPlan:
        """
        Look up an account's current plan.

        Accounts without a record are on the free plan.

        Raises:
            DynamoDBException: If query fails
            ValidationException: If the stored plan is unknown
        """
        try:
            response = self.table.get_item(Key={'account_id': account_id})
        except ClientError as e:
            raise DynamoDBException(f"Failed to get account plan: {str(e)}") from e
        except Exception as e:
            raise DynamoDBException(f"Unexpected error getting account plan: {str(e)}") from e

        item = response.get('Item')
        if not item:
            return AccountPlan(account_id=account_id, plan=Plan.FREE)

        downgraded_at = item.get('downgraded_at')
        return AccountPlan(
            account_id=account_id,
            plan=Plan.parse(item.get('plan')),
            downgraded_at=datetime.fromisoformat(downgraded_at) if downgraded_at else None
        )
