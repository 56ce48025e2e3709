# lambdas/provision_account/iam_provisioner.py
"""
Creates the F5 AIP sync role in the new account.

Steps run strictly in order (role, policy, attachment). If a later step fails,
whatever was already created stays in the account; nothing is rolled back and
the operator has to clean up by hand.
"""
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .artifacts import PolicyArtifacts
from .errors import IAMProvisioningError

SYNC_POLICY_NAME = "f5-aip-ec2-sync"
ROLE_DESCRIPTION = "F5 AIP EC2 Integration"


def _describe_error(e: Exception) -> str:
    if isinstance(e, ClientError):
        error = e.response.get('Error', {})
        return f"{error.get('Code', 'Unknown')}: {error.get('Message', str(e))}"
    return str(e)


def role_arn(account_id: str, role_name: str) -> str:
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def policy_arn(account_id: str, policy_name: str = SYNC_POLICY_NAME) -> str:
    return f"arn:aws:iam::{account_id}:policy/{policy_name}"


def assume_target_session(
    account_id: str,
    execution_role: str,
    region: Optional[str] = None,
    sts_client=None,
) -> boto3.Session:
    """
    Assumes the execution role in the target account and returns a boto3
    session carrying the temporary credentials.

    Raises:
        IAMProvisioningError: If sts:AssumeRole fails.
    """
    target_role_arn = role_arn(account_id, execution_role)
    try:
        if sts_client is None:
            sts_client = boto3.client('sts', region_name=region)
        assumed_role = sts_client.assume_role(
            RoleArn=target_role_arn,
            RoleSessionName=f"f5-aip-stacker-{account_id}",
        )
    except (ClientError, BotoCoreError) as e:
        raise IAMProvisioningError(f"unable to assume {target_role_arn}: {_describe_error(e)}") from e

    try:
        credentials = assumed_role['Credentials']
        return boto3.Session(
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials['SessionToken'],
            region_name=region,
        )
    except (KeyError, TypeError) as e:
        raise IAMProvisioningError(f"assume role response for {target_role_arn} has no usable credentials: missing {e}") from e


def provision_sync_role(
    iam_client,
    account_id: str,
    role_name: str,
    external_id: str,
    artifacts: PolicyArtifacts,
) -> str:
    """
    Creates the role F5 AIP assumes, the EC2 sync policy, and attaches one
    to the other.

    Args:
        iam_client: An IAM client for the target account.
        account_id: The target account ID.
        role_name: Name of the role to create.
        external_id: The F5 AIP external ID the trust policy must require.
        artifacts: Trust policy template and sync policy document.

    Returns:
        The ARN of the created role.

    Raises:
        IAMProvisioningError: Naming the step that failed.
    """
    try:
        iam_client.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=artifacts.render_trust_policy(external_id),
            Description=ROLE_DESCRIPTION,
        )
    except (ClientError, BotoCoreError) as e:
        raise IAMProvisioningError(f"unable to create role {role_name}: {_describe_error(e)}") from e
    print(f" -> Created role {role_name} in {account_id}")

    try:
        iam_client.create_policy(
            PolicyName=SYNC_POLICY_NAME,
            PolicyDocument=artifacts.sync_policy,
        )
    except (ClientError, BotoCoreError) as e:
        raise IAMProvisioningError(f"unable to create policy {SYNC_POLICY_NAME}: {_describe_error(e)}") from e
    print(f" -> Created policy {SYNC_POLICY_NAME} in {account_id}")

    try:
        iam_client.attach_role_policy(
            PolicyArn=policy_arn(account_id),
            RoleName=role_name,
        )
    except (ClientError, BotoCoreError) as e:
        raise IAMProvisioningError(
            f"unable to attach {SYNC_POLICY_NAME} to {role_name}: {_describe_error(e)}"
        ) from e
    print(f" -> Attached {SYNC_POLICY_NAME} to {role_name}")

    return role_arn(account_id, role_name)
