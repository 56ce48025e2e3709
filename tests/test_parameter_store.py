# tests/test_parameter_store.py
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from lambdas.provision_account.errors import SecretResolutionError
from lambdas.provision_account.parameter_store import get_secret


def test_get_secret_builds_client_for_region():
    with patch('lambdas.provision_account.parameter_store.boto3.client') as mock_boto_client:
        mock_ssm = MagicMock()
        mock_ssm.get_parameter.return_value = {"Parameter": {"Value": "decrypted"}}
        mock_boto_client.return_value = mock_ssm

        assert get_secret("/f5/aip/api-key", region="eu-west-1") == "decrypted"

    mock_boto_client.assert_called_once_with('ssm', region_name="eu-west-1")
    mock_ssm.get_parameter.assert_called_once_with(Name="/f5/aip/api-key", WithDecryption=True)


def test_network_failure_is_a_secret_resolution_error():
    ssm = MagicMock()
    ssm.get_parameter.side_effect = EndpointConnectionError(endpoint_url="https://ssm.us-east-1.amazonaws.com")
    with pytest.raises(SecretResolutionError):
        get_secret("/f5/aip/api-key", ssm_client=ssm)


def test_empty_value_is_rejected():
    ssm = MagicMock()
    ssm.get_parameter.return_value = {"Parameter": {"Value": ""}}
    with pytest.raises(SecretResolutionError):
        get_secret("/f5/aip/api-key", ssm_client=ssm)
