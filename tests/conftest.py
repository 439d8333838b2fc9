"""
Shared test fixtures and utilities.
"""
import os
import pytest
import jwt
import boto3
from datetime import datetime, timedelta, timezone
from moto import mock_aws

# Must be set before any boto3 client or settings object is created
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ["JWT_SECRET"] = "test-secret"

from snappd.core import config, dependencies  # noqa: E402

TEST_ENV = {
    "AWS_REGION": "us-east-1",
    "S3_BUCKET_NAME": "test-bucket",
    "UPLOAD_SESSIONS_TABLE_NAME": "UploadSessions-test",
    "ARTIFACTS_TABLE_NAME": "Artifacts-test",
    "SHORT_IDS_TABLE_NAME": "ShortIds-test",
    "USAGE_TABLE_NAME": "Usage-test",
    "ACCOUNTS_TABLE_NAME": "Accounts-test",
    "ENVIRONMENT": "test",
}


def create_tables(dynamodb):
    """Create every table the API uses, keyed as in production."""
    key_schemas = {
        "UploadSessions-test": [("session_id", "HASH")],
        "Artifacts-test": [("account_id", "HASH"), ("content_hash", "RANGE")],
        "ShortIds-test": [("short_id", "HASH")],
        "Usage-test": [("account_id", "HASH"), ("window", "RANGE")],
        "Accounts-test": [("account_id", "HASH")],
    }
    tables = {}
    for name, keys in key_schemas.items():
        tables[name] = dynamodb.create_table(
            TableName=name,
            KeySchema=[{"AttributeName": attr, "KeyType": kind} for attr, kind in keys],
            AttributeDefinitions=[{"AttributeName": attr, "AttributeType": "S"} for attr, _ in keys],
            BillingMode="PAY_PER_REQUEST"
        )
    return tables


def clear_dependency_caches():
    for factory in (
        dependencies.get_s3_repository,
        dependencies.get_upload_session_repository,
        dependencies.get_artifact_repository,
        dependencies.get_usage_repository,
        dependencies.get_account_repository,
        dependencies.get_file_service,
        dependencies.get_upload_session_service,
        dependencies.get_batch_upload_service,
        dependencies.get_artifact_service,
    ):
        factory.cache_clear()


@pytest.fixture
def setup_test_env(monkeypatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    config.settings = config.Settings()
    clear_dependency_caches()
    yield
    clear_dependency_caches()
    config.settings = config.Settings()


@pytest.fixture
def aws_resources(setup_test_env):
    """Mocked S3 bucket and DynamoDB tables."""
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="test-bucket")
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        tables = create_tables(dynamodb)
        yield s3, tables


def make_token(account_id: str = "acct-test", expires_in: timedelta = timedelta(hours=1)) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "exp": now + expires_in,
        "iat": now
    }
    return jwt.encode(payload, "test-secret", algorithm="HS256")


@pytest.fixture
def auth_headers():
    """Generate valid JWT token and return authorization headers."""
    return {"Authorization": f"Bearer {make_token()}"}
