"""
AWS Systems Manager Parameter Store access for snappd secrets.
Parameters are scoped per deployment as /snappd/<environment>/<name>; values
are cached per process so warm Lambda invocations skip SSM.
"""
import boto3
from functools import lru_cache

PARAMETER_PREFIX = "/snappd"


def parameter_path(name: str, environment: str) -> str:
    """Full parameter name for an environment-scoped setting."""
    return f"{PARAMETER_PREFIX}/{environment}/{name.strip('/')}"


@lru_cache(maxsize=10)
def get_parameter(parameter_name: str, region: str = "us-east-1") -> str:
    ssm = boto3.client('ssm', region_name=region)
    response = ssm.get_parameter(Name=parameter_name, WithDecryption=True)
    return response['Parameter']['Value']


def get_secret(name: str, environment: str, region: str = "us-east-1") -> str:
    """
    Fetch a decrypted environment-scoped secret.

    Args:
        name: Secret name without prefix (e.g., jwt-secret)
        environment: Deployment stage (dev, staging, prod)
        region: AWS region

    Raises:
        botocore.exceptions.ClientError: If the parameter is missing or unreadable
    """
    return get_parameter(parameter_path(name, environment), region)
