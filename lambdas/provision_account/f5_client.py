# lambdas/provision_account/f5_client.py
"""
Client for the two F5 AIP (Threat Stack) API calls this Lambda needs:
registering an AWS integration and turning on EC2 sync for it.

Every request is Hawk-signed (SHA-256, payload hashed, org ID sent as 'ext').
Calls are single-shot: no retries, no idempotency key. A re-delivered event
therefore creates a second integration on the F5 side.
"""
import json
from typing import Callable, List, Optional

import requests
from mohawk import Sender
from mohawk.exc import HawkFail
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import Configuration
from .errors import VendorAPIError

RequestFactory = Callable[[str, str, bytes], requests.Request]


class HawkAuth(requests.auth.AuthBase):
    """Signs a prepared request with the F5 AIP user ID, API key and org ID."""

    def __init__(self, user_id: str, api_key: str, org_id: str):
        self.credentials = {'id': user_id, 'key': api_key, 'algorithm': 'sha256'}
        self.org_id = org_id

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        sender = Sender(
            self.credentials,
            r.url,
            r.method,
            content=r.body or b'',
            content_type=r.headers.get('Content-Type', ''),
            ext=self.org_id,
        )
        r.headers['Authorization'] = sender.request_header
        return r


def signed_request_factory(user_id: str, api_key: str, org_id: str) -> RequestFactory:
    """Returns a factory building Hawk-signed JSON requests for the F5 AIP API."""
    auth = HawkAuth(user_id, api_key, org_id)

    def build(method: str, url: str, body: bytes) -> requests.Request:
        return requests.Request(
            method,
            url,
            data=body,
            headers={'Content-Type': 'application/json', 'Accept': 'application/json'},
            auth=auth,
        )

    return build


class IntegrationRegistration(BaseModel):
    """What F5 AIP hands back for a new AWS integration."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    integration_id: str = Field(..., alias='id', min_length=1)
    external_id: str = Field(..., alias='externalId', min_length=1)
    arn: str = ""
    description: str = ""


def _send(session: Optional[requests.Session], request: requests.Request) -> requests.Response:
    if session is None:
        with requests.Session() as own_session:
            return _send(own_session, request)
    try:
        return session.send(session.prepare_request(request))
    except (requests.exceptions.RequestException, HawkFail) as e:
        raise VendorAPIError(None, "", f"request to {request.url} failed: {e}") from e


def register_integration(
    base_url: str,
    request_factory: RequestFactory,
    target_account_id: str,
    target_role_name: str,
    session: Optional[requests.Session] = None,
) -> IntegrationRegistration:
    """
    Creates an AWS integration pointing at the role we are about to create
    in the target account.

    Returns:
        The integration ID and the external ID the trust policy must require.

    Raises:
        VendorAPIError: On anything but HTTP 200 with a well-formed body.
    """
    payload = {
        "arn": f"arn:aws:iam::{target_account_id}:role/{target_role_name}",
        "description": f"AWS {target_account_id}",
    }
    request = request_factory("POST", f"{base_url}/v2/integrations/aws", json.dumps(payload).encode('utf-8'))
    response = _send(session, request)

    if response.status_code != 200:
        raise VendorAPIError(response.status_code, response.text)

    try:
        return IntegrationRegistration.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise VendorAPIError(
            response.status_code,
            response.text,
            f"unable to parse new integration response: {e}",
        ) from e


def enable_ec2_sync(
    base_url: str,
    request_factory: RequestFactory,
    integration_id: str,
    regions: List[str],
    session: Optional[requests.Session] = None,
) -> None:
    """
    Turns on EC2 sync for the given regions. F5 AIP answers 204 on success.

    Raises:
        VendorAPIError: On any other status.
    """
    payload = {"enabled": True, "regions": list(regions)}
    request = request_factory(
        "PUT",
        f"{base_url}/v2/integrations/aws/{integration_id}/ec2",
        json.dumps(payload).encode('utf-8'),
    )
    response = _send(session, request)

    if response.status_code != 204:
        raise VendorAPIError(response.status_code, response.text)


def setup_integration(config: Configuration, session: Optional[requests.Session] = None) -> IntegrationRegistration:
    """Registers the integration for config.target_account_id and enables EC2 sync on it."""
    if session is None:
        with requests.Session() as own_session:
            return setup_integration(config, session=own_session)

    request_factory = signed_request_factory(config.user_id, config.api_key, config.org_id)

    try:
        registration = register_integration(
            config.api_path,
            request_factory,
            config.target_account_id,
            config.target_role_name,
            session=session,
        )
    except VendorAPIError as e:
        raise e.add_context("unable to set up AWS integration")
    print(f" -> Registered F5 AIP integration {registration.integration_id} for account {config.target_account_id}")

    try:
        enable_ec2_sync(
            config.api_path,
            request_factory,
            registration.integration_id,
            config.ec2_sync_regions,
            session=session,
        )
    except VendorAPIError as e:
        raise e.add_context("unable to set up EC2 Sync")
    print(f" -> Enabled EC2 sync in {', '.join(config.ec2_sync_regions)}")

    return registration
