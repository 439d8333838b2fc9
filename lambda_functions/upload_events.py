"""
Lambda function to record upload progress.
Triggered by S3 ObjectCreated events on the upload bucket.
"""
import json
import re
from typing import Optional
from urllib.parse import unquote_plus
from loguru import logger
from snappd.core import config
from snappd.core.exceptions import DynamoDBException
from snappd.core.logging import setup_logging
from snappd.services.upload_session_service import UploadSessionService

setup_logging(config.settings.log_level)

_UUID_PATTERN = re.compile(r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}')


def handler(event, context):
    """
    Lambda handler for S3 event processing.

    Args:
        event: S3 event containing bucket and object information
        context: Lambda context object

    Returns:
        dict: Status code and per-record outcome
    """
    upload_session_service = UploadSessionService()
    recorded, ignored = [], []

    try:
        for record in event['Records']:
            s3_key = unquote_plus(record['s3']['object']['key'])
            size = int(record['s3']['object'].get('size', 0))
            session_id = _extract_session_id(s3_key)

            if not session_id:
                logger.warning("No session ID in object key {}", s3_key)
                ignored.append(s3_key)
                continue

            if upload_session_service.record_progress(session_id, size):
                logger.info("Recorded {} bytes for session {}", size, session_id)
                recorded.append(session_id)
            else:
                ignored.append(s3_key)

    except DynamoDBException as e:
        logger.error("DynamoDB error recording progress: {}", e.message)
        return {
            'statusCode': 500,
            'body': json.dumps({
                'error': 'Database Error',
                'message': e.message
            })
        }

    return {
        'statusCode': 200,
        'body': json.dumps({
            'recorded': recorded,
            'ignored': ignored
        })
    }


def _extract_session_id(s3_key: str) -> Optional[str]:
    """
    Extract session_id from S3 key.
    Expected format: {account_id}/YYYY/MM/{session_id}.{ext}

    The account ID may itself be a UUID, so the last match wins.

    Args:
        s3_key: S3 object key

    Returns:
        session_id or None if not found
    """
    matches = _UUID_PATTERN.findall(s3_key)
    return matches[-1] if matches else None
