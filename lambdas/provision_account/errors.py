# lambdas/provision_account/errors.py
from typing import List, Optional


class ProvisionerError(Exception):
    """Base class for every failure that aborts an account provisioning run."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def add_context(self, prefix: str) -> "ProvisionerError":
        """Prefixes the message with the stage that failed, keeping the error type."""
        self.message = f"{prefix}: {self.message}"
        self.args = (self.message,)
        return self

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ProvisionerError):
    """One or more required environment variables are missing."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(", ".join(f"missing ${name}" for name in self.missing))


class SecretResolutionError(ProvisionerError):
    pass


class UnrecognizedEventError(ProvisionerError):
    pass


class ArtifactReadError(ProvisionerError):
    pass


class VendorAPIError(ProvisionerError):
    """
    Non-success answer from the F5 AIP API. The raw body is kept verbatim
    so an operator can read whatever the API sent back.
    """

    def __init__(self, status_code: Optional[int], body: str, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"got {status_code} from api, body: {body}")


class IAMProvisioningError(ProvisionerError):
    pass
