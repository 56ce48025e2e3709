# lambdas/provision_account/parameter_store.py
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import SecretResolutionError


def get_secret(name: str, region: Optional[str] = None, ssm_client=None) -> str:
    """
    Fetches a SecureString from SSM Parameter Store and returns it decrypted.

    Args:
        name: The parameter name or path, e.g. '/f5/aip/api-key'.
        region: Region of the parameter store. Falls back to the boto3 default.
        ssm_client: Optional pre-built SSM client (used by tests).

    Raises:
        SecretResolutionError: If the lookup fails for any reason.
    """
    try:
        if ssm_client is None:
            ssm_client = boto3.client('ssm', region_name=region)
        response = ssm_client.get_parameter(Name=name, WithDecryption=True)
    except ClientError as e:
        raise SecretResolutionError(
            f"unable to read parameter '{name}': {e.response.get('Error', {}).get('Message', str(e))}"
        ) from e
    except BotoCoreError as e:
        raise SecretResolutionError(f"unable to read parameter '{name}': {e}") from e

    value = response.get('Parameter', {}).get('Value')
    if not value:
        raise SecretResolutionError(f"parameter '{name}' has no value")
    return value
