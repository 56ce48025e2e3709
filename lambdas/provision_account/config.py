# lambdas/provision_account/config.py
"""
Configuration for the account provisioning Lambda.

Environment variables are read in exactly one place, `load_config()`, and the
resulting immutable `Configuration` is passed explicitly down the call chain.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .parameter_store import get_secret

DEFAULT_API_PATH = "https://api.threatstack.com"
PACKAGE_DIR = Path(__file__).parent


class EnvSettings(BaseSettings):
    """
    Raw settings as they appear in the Lambda environment (or a local .env file).
    Required values must be present and non-empty.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore', case_sensitive=True)

    ec2_regions: str = Field(..., alias='F5_EC2_REGIONS', min_length=1)
    target_account_execution_role: str = Field(..., alias='F5_TARGET_ACCOUNT_EXECUTION_ROLE', min_length=1)
    target_role_name: str = Field(..., alias='F5_TARGET_ROLE_NAME', min_length=1)
    api_key_path: str = Field(..., alias='F5_API_KEY_PATH', min_length=1)
    org_id: str = Field(..., alias='F5_ORG_ID', min_length=1)
    user_id: str = Field(..., alias='F5_USER_ID', min_length=1)
    api_path: str = Field(DEFAULT_API_PATH, alias='F5_API_PATH')
    aws_region: Optional[str] = Field(None, alias='AWS_REGION')
    policy_dir: Optional[str] = Field(None, alias='F5_POLICY_DIR')

    @field_validator('ec2_regions')
    @classmethod
    def _has_a_region(cls, value: str) -> str:
        if not split_regions(value):
            raise ValueError("no regions listed")
        return value

    @field_validator('api_path', mode='before')
    @classmethod
    def _default_api_path(cls, value):
        # An empty F5_API_PATH means "use the production endpoint".
        return value or DEFAULT_API_PATH


class Configuration(BaseModel):
    """Immutable snapshot of everything one invocation needs."""
    model_config = ConfigDict(frozen=True)

    ec2_sync_regions: List[str]
    target_account_execution_role: str
    target_role_name: str
    api_path: str
    api_key: str = Field(repr=False)
    api_key_path: str
    org_id: str
    user_id: str
    aws_region: Optional[str] = None
    policy_dir: str = str(PACKAGE_DIR)
    target_account_id: str = ""

    def for_account(self, account_id: str) -> "Configuration":
        """Returns a copy bound to the account that was just created."""
        return self.model_copy(update={"target_account_id": account_id})


def split_regions(raw: str) -> List[str]:
    return [region.strip() for region in raw.split(",") if region.strip()]


def read_env_settings() -> EnvSettings:
    """
    Reads the environment, collecting every missing or empty variable into a
    single ConfigurationError.
    """
    try:
        return EnvSettings()
    except ValidationError as e:
        missing = []
        for error in e.errors():
            name = str(error['loc'][0]) if error.get('loc') else "unknown"
            if name not in missing:
                missing.append(name)
        raise ConfigurationError(missing) from e


def load_config(ssm_client=None) -> Configuration:
    """
    Builds the Configuration from the environment and resolves the F5 API key
    from SSM Parameter Store.

    Raises:
        ConfigurationError: Listing all missing required variables.
        SecretResolutionError: If the API key cannot be read.
    """
    env = read_env_settings()
    api_key = get_secret(env.api_key_path, region=env.aws_region, ssm_client=ssm_client)

    return Configuration(
        ec2_sync_regions=split_regions(env.ec2_regions),
        target_account_execution_role=env.target_account_execution_role,
        target_role_name=env.target_role_name,
        api_path=env.api_path.rstrip("/"),
        api_key=api_key,
        api_key_path=env.api_key_path,
        org_id=env.org_id,
        user_id=env.user_id,
        aws_region=env.aws_region,
        policy_dir=env.policy_dir or str(PACKAGE_DIR),
    )
