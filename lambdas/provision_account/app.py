# lambdas/provision_account/app.py
import json
from contextlib import contextmanager
from typing import Any, Dict, Optional

import requests

from .artifacts import load_policy_artifacts
from .config import load_config
from .errors import ProvisionerError
from .events import classify_event, describe
from .f5_client import setup_integration
from .iam_provisioner import assume_target_session, provision_sync_role


@contextmanager
def stage(failure_prefix: str):
    """Tags any ProvisionerError raised inside the block with the stage that failed."""
    try:
        yield
    except ProvisionerError as e:
        e.add_context(failure_prefix)
        print(f"❌ {e}")
        raise


def provision_new_account(
    event: Dict[str, Any],
    ssm_client=None,
    sts_client=None,
    iam_client=None,
    http_session: Optional[requests.Session] = None,
) -> Dict[str, str]:
    """
    Runs the whole workflow for one account-creation event. Every step feeds
    the next, so they run one after another and the first failure stops the run.

    The optional clients replace the ones built from the Lambda's own
    credentials; iam_client, when given, is used instead of assuming the
    execution role in the target account.
    """
    # --- 1. Which account was created? (no external calls before this succeeds)
    with stage("unable to get target account id"):
        account = classify_event(event)
    print(f"Processing {describe(account)}")

    # --- 2. Environment and API key
    with stage("unable to build config"):
        config = load_config(ssm_client=ssm_client).for_account(account.account_id)

    # --- 3. IAM documents shipped with the function
    with stage("unable to load policy artifacts"):
        artifacts = load_policy_artifacts(config.policy_dir)

    # --- 4. F5 AIP integration + EC2 sync; yields the external ID
    with stage("unable to setup integration"):
        registration = setup_integration(config, session=http_session)

    # --- 5. Role, policy and attachment in the target account
    with stage("unable to provision IAM role"):
        if iam_client is None:
            target_session = assume_target_session(
                config.target_account_id,
                config.target_account_execution_role,
                region=config.aws_region,
                sts_client=sts_client,
            )
            iam_client = target_session.client('iam')
        created_role_arn = provision_sync_role(
            iam_client,
            config.target_account_id,
            config.target_role_name,
            registration.external_id,
            artifacts,
        )

    print(
        f"✅ Successfully created TS Integration with EC2 Sync in TS org {config.org_id} "
        f"using ARN {created_role_arn}"
    )
    return {
        "org_id": config.org_id,
        "account_id": config.target_account_id,
        "integration_id": registration.integration_id,
        "role_arn": created_role_arn,
    }


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """
    EventBridge handler for Control Tower CreateManagedAccount and
    Organizations CreateAccountResult events.

    Errors are re-raised so the invocation is reported as failed, carrying a
    message that names the stage which broke. Nothing is rolled back.
    """
    print(f"Received event: {json.dumps(event)}")

    result = provision_new_account(event)

    return {
        "statusCode": 200,
        "body": json.dumps(result),
    }
