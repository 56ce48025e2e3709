# lambdas/provision_account/events.py
"""
EventBridge models for the two account-creation events we react to, and the
classifier that decides which one (if any) an incoming event is.

Control Tower and Organizations put the new account ID at different paths, so
each shape is its own model. The model is chosen by the
(eventSource, eventName) pair, never by which nested fields happen to exist.
"""
from typing import Any, Dict, List, Tuple, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .errors import UnrecognizedEventError

CONTROL_TOWER_SOURCE = "controltower.amazonaws.com"
ORGANIZATIONS_SOURCE = "organizations.amazonaws.com"


class _EventModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class UserIdentity(_EventModel):
    account_id: str = Field("", alias='accountId')
    invoked_by: str = Field("", alias='invokedBy')


class EventDetail(_EventModel):
    """The CloudTrail record EventBridge carries under 'detail'."""
    event_version: str = Field("", alias='eventVersion')
    user_identity: UserIdentity = Field(default_factory=UserIdentity, alias='userIdentity')
    event_time: str = Field("", alias='eventTime')
    event_source: str = Field("", alias='eventSource')
    event_name: str = Field("", alias='eventName')
    aws_region: str = Field("", alias='awsRegion')
    event_id: str = Field("", alias='eventID')
    event_type: str = Field("", alias='eventType')
    read_only: bool = Field(False, alias='readOnly')
    service_event_details: Dict[str, Any] = Field(default_factory=dict, alias='serviceEventDetails')


class EventBridgeEvent(_EventModel):
    version: str = ""
    id: str = ""
    detail_type: str = Field("", alias='detail-type')
    source: str = ""
    time: str = ""
    region: str = ""
    resources: List[str] = Field(default_factory=list)
    detail: EventDetail = Field(default_factory=EventDetail)


# Control Tower: serviceEventDetails.createManagedAccountStatus.account.accountId

class ControlTowerOrganizationalUnit(_EventModel):
    organizational_unit_name: str = Field("", alias='organizationalUnitName')
    organizational_unit_id: str = Field("", alias='organizationalUnitId')


class ControlTowerAccount(_EventModel):
    account_name: str = Field("", alias='accountName')
    account_id: str = Field(..., alias='accountId', min_length=1)


class ControlTowerAccountStatus(_EventModel):
    organizational_unit: ControlTowerOrganizationalUnit = Field(
        default_factory=ControlTowerOrganizationalUnit, alias='organizationalUnit'
    )
    account: ControlTowerAccount
    state: str = ""
    message: str = ""
    requested_timestamp: str = Field("", alias='requestedTimestamp')
    completed_timestamp: str = Field("", alias='completedTimestamp')


class ControlTowerAccountCreated(_EventModel):
    status: ControlTowerAccountStatus = Field(..., alias='createManagedAccountStatus')

    @property
    def account_id(self) -> str:
        return self.status.account.account_id

    @property
    def account_name(self) -> str:
        return self.status.account.account_name

    @property
    def state(self) -> str:
        return self.status.state


# Organizations: serviceEventDetails.createAccountStatus.accountId

class OrganizationsAccountStatus(_EventModel):
    id: str = ""
    state: str = ""
    account_name: str = Field("", alias='accountName')
    # CloudTrail has used both spellings for this key.
    account_id: str = Field(..., validation_alias=AliasChoices('accountId', 'AccountId'), min_length=1)
    requested_timestamp: str = Field("", alias='requestedTimestamp')
    completed_timestamp: str = Field("", alias='completedTimestamp')


class OrganizationsAccountCreated(_EventModel):
    status: OrganizationsAccountStatus = Field(..., alias='createAccountStatus')

    @property
    def account_id(self) -> str:
        return self.status.account_id

    @property
    def account_name(self) -> str:
        return self.status.account_name

    @property
    def state(self) -> str:
        return self.status.state


AccountCreated = Union[ControlTowerAccountCreated, OrganizationsAccountCreated]

EVENT_TYPES: Dict[Tuple[str, str], Type[_EventModel]] = {
    (CONTROL_TOWER_SOURCE, "CreateManagedAccount"): ControlTowerAccountCreated,
    (ORGANIZATIONS_SOURCE, "CreateAccountResult"): OrganizationsAccountCreated,
}


def classify_event(event: dict) -> AccountCreated:
    """
    Parses an EventBridge event into one of the supported account-creation shapes.

    Raises:
        UnrecognizedEventError: If the (eventSource, eventName) pair is not
            supported, or the matching payload carries no account ID.
    """
    try:
        envelope = EventBridgeEvent.model_validate(event)
    except ValidationError as e:
        raise UnrecognizedEventError(f"event is not an EventBridge CloudTrail event: {e}") from e

    key = (envelope.detail.event_source, envelope.detail.event_name)
    event_type = EVENT_TYPES.get(key)
    if event_type is None:
        raise UnrecognizedEventError(
            f"unknown EventSource/EventName: {key[0] or '<none>'}/{key[1] or '<none>'}"
        )

    try:
        return event_type.model_validate(envelope.detail.service_event_details)
    except ValidationError as e:
        raise UnrecognizedEventError(
            f"{key[0]}/{key[1]} event does not carry a new account ID"
        ) from e


def determine_account_id(event: dict) -> str:
    """Returns the ID of the account the event announces."""
    return classify_event(event).account_id


def describe(account: AccountCreated) -> str:
    """Short human-readable description used in progress output."""
    if isinstance(account, ControlTowerAccountCreated):
        ou = account.status.organizational_unit.organizational_unit_name or "unknown OU"
        return f"Control Tower account {account.account_id} ({account.account_name or 'unnamed'}) in {ou}, state {account.state or 'unknown'}"
    return f"Organizations account {account.account_id} ({account.account_name or 'unnamed'}), state {account.state or 'unknown'}"
