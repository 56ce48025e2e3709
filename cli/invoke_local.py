# cli/invoke_local.py
import os
import sys
import json
import argparse
import uuid
from datetime import datetime, timezone
from dotenv import load_dotenv

# Load F5_* and AWS_* variables from a .env file for local runs
load_dotenv()

# Allow `python cli/invoke_local.py` from the repository root
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "lambdas"))


def create_sample_event(account_id: str, source: str = "organizations", account_name: str = "sandbox") -> dict:
    """
    Builds an EventBridge event shaped like the one AWS sends when a new
    account finishes creation.
    """
    now = datetime.now(timezone.utc).isoformat()
    if source == "controltower":
        detail = {
            "eventSource": "controltower.amazonaws.com",
            "eventName": "CreateManagedAccount",
            "serviceEventDetails": {
                "createManagedAccountStatus": {
                    "organizationalUnit": {"organizationalUnitName": "Sandbox", "organizationalUnitId": "ou-abcd-12345678"},
                    "account": {"accountName": account_name, "accountId": account_id},
                    "state": "SUCCEEDED",
                    "message": "AWS Control Tower successfully created an enrolled account.",
                    "requestedTimestamp": now,
                    "completedTimestamp": now,
                }
            },
        }
        event_source = "aws.controltower"
    else:
        detail = {
            "eventSource": "organizations.amazonaws.com",
            "eventName": "CreateAccountResult",
            "serviceEventDetails": {
                "createAccountStatus": {
                    "id": f"car-{uuid.uuid4().hex}",
                    "state": "SUCCEEDED",
                    "accountName": account_name,
                    "accountId": account_id,
                    "requestedTimestamp": now,
                    "completedTimestamp": now,
                }
            },
        }
        event_source = "aws.organizations"

    detail.update({"eventVersion": "1.08", "eventTime": now, "awsRegion": "us-east-1", "eventType": "AwsServiceEvent"})
    return {
        "version": "0",
        "id": str(uuid.uuid4()),
        "detail-type": "AWS Service Event via CloudTrail",
        "source": event_source,
        "time": now,
        "region": "us-east-1",
        "resources": [],
        "detail": detail,
    }


def load_event(path: str) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Invoke the account provisioning Lambda locally with live AWS credentials.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--event", help="Path to an EventBridge event JSON file.")
    group.add_argument("--account-id", help="Build a sample event for this account ID.")
    parser.add_argument("--source", choices=["organizations", "controltower"], default="organizations",
                        help="Shape of the sample event built for --account-id.")
    parser.add_argument("--dry-run", action="store_true", help="Print the event without invoking the handler.")
    args = parser.parse_args(argv)

    event = load_event(args.event) if args.event else create_sample_event(args.account_id, args.source)

    if args.dry_run:
        print(json.dumps(event, indent=2))
        return 0

    from provision_account.app import handler
    from provision_account.errors import ProvisionerError

    try:
        result = handler(event, None)
    except ProvisionerError as e:
        print(f"\n❌ Invocation failed: {e}")
        return 1

    print("\n--- Lambda result ---")
    print(json.dumps(json.loads(result['body']), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
