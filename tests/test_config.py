# tests/test_config.py
import os
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from lambdas.provision_account.config import DEFAULT_API_PATH, load_config
from lambdas.provision_account.errors import ConfigurationError, SecretResolutionError
from tests.sample_events import FULL_ENV, REQUIRED_VARS


def test_load_config_resolves_api_key_and_regions(ssm_client: MagicMock):
    env = {**FULL_ENV, "F5_EC2_REGIONS": "us-east-1, us-west-2,,eu-west-1 "}
    with patch.dict(os.environ, env, clear=True):
        config = load_config(ssm_client=ssm_client)

    ssm_client.get_parameter.assert_called_once_with(Name="/f5/aip/api-key", WithDecryption=True)
    assert config.api_key == "s3cr3t-key"
    assert config.ec2_sync_regions == ["us-east-1", "us-west-2", "eu-west-1"]
    assert config.target_account_execution_role == "AWSControlTowerExecution"
    assert config.target_role_name == "f5-aip-integration"
    assert config.org_id == "org-1234"
    assert config.user_id == "user-5678"
    assert config.api_path == "https://api.example.test"
    assert config.target_account_id == ""
    # The key never shows up in logs through the repr
    assert "s3cr3t-key" not in repr(config)


@pytest.mark.parametrize("api_path", [None, ""])
def test_api_path_defaults_to_production(ssm_client: MagicMock, api_path):
    env = dict(FULL_ENV)
    if api_path is None:
        del env["F5_API_PATH"]
    else:
        env["F5_API_PATH"] = api_path
    with patch.dict(os.environ, env, clear=True):
        config = load_config(ssm_client=ssm_client)
    assert config.api_path == DEFAULT_API_PATH


@pytest.mark.parametrize("missing", [
    ["F5_ORG_ID"],
    ["F5_EC2_REGIONS", "F5_USER_ID"],
    ["F5_TARGET_ACCOUNT_EXECUTION_ROLE", "F5_TARGET_ROLE_NAME", "F5_API_KEY_PATH"],
    REQUIRED_VARS,
])
def test_all_missing_variables_are_reported_together(ssm_client: MagicMock, missing):
    env = {k: v for k, v in FULL_ENV.items() if k not in missing}
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(ConfigurationError) as excinfo:
            load_config(ssm_client=ssm_client)

    assert sorted(excinfo.value.missing) == sorted(missing)
    message = str(excinfo.value)
    for name in REQUIRED_VARS:
        if name in missing:
            assert f"${name}" in message
        else:
            assert f"${name}" not in message
    # No secret lookup when the configuration is incomplete
    ssm_client.get_parameter.assert_not_called()


def test_empty_values_count_as_missing(ssm_client: MagicMock):
    env = {**FULL_ENV, "F5_USER_ID": "", "F5_EC2_REGIONS": " , "}
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(ConfigurationError) as excinfo:
            load_config(ssm_client=ssm_client)
    assert sorted(excinfo.value.missing) == ["F5_EC2_REGIONS", "F5_USER_ID"]


def test_secret_lookup_failure(ssm_client: MagicMock):
    ssm_client.get_parameter.side_effect = ClientError(
        {"Error": {"Code": "ParameterNotFound", "Message": "Parameter not found."}}, "GetParameter"
    )
    with patch.dict(os.environ, FULL_ENV, clear=True):
        with pytest.raises(SecretResolutionError) as excinfo:
            load_config(ssm_client=ssm_client)
    assert "/f5/aip/api-key" in str(excinfo.value)


def test_for_account_returns_a_bound_copy(ssm_client: MagicMock):
    with patch.dict(os.environ, FULL_ENV, clear=True):
        config = load_config(ssm_client=ssm_client)

    bound = config.for_account("111122223333")
    assert bound.target_account_id == "111122223333"
    assert config.target_account_id == ""
    with pytest.raises(Exception):
        config.target_account_id = "111122223333"


def test_variable_names_must_match_exactly(ssm_client: MagicMock):
    env = {name.lower(): value for name, value in FULL_ENV.items()}
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(ConfigurationError) as excinfo:
            load_config(ssm_client=ssm_client)
    assert sorted(excinfo.value.missing) == sorted(REQUIRED_VARS)
    ssm_client.get_parameter.assert_not_called()
