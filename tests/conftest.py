# tests/conftest.py
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def ssm_client() -> MagicMock:
    client = MagicMock()
    client.get_parameter.return_value = {"Parameter": {"Name": "/f5/aip/api-key", "Value": "s3cr3t-key"}}
    return client
