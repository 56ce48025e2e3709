# lambdas/provision_account/artifacts.py
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import ArtifactReadError

ASSUME_ROLE_POLICY_FILE = "assume_role_policy.json"
SYNC_POLICY_FILE = "sync_policy.json"
EXTERNAL_ID_PLACEHOLDER = "%s"


@dataclass(frozen=True)
class PolicyArtifacts:
    """
    The two IAM documents shipped alongside the function.
    The trust policy is a template with a single %s for the F5 external ID;
    the sync policy is used verbatim.
    """
    assume_role_template: str
    sync_policy: str

    def render_trust_policy(self, external_id: str) -> str:
        # JSON-escape the value; the placeholder already sits inside a string literal.
        return self.assume_role_template % json.dumps(external_id)[1:-1]


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding='utf-8')
    except OSError as e:
        raise ArtifactReadError(f"unable to read {path.name}: {e}") from e


def load_policy_artifacts(directory: Union[str, Path]) -> PolicyArtifacts:
    """
    Reads both policy documents from `directory`.

    Raises:
        ArtifactReadError: If a file is unreadable or the trust template does
            not contain exactly one external ID placeholder.
    """
    directory = Path(directory)
    assume_role_template = _read(directory / ASSUME_ROLE_POLICY_FILE)
    sync_policy = _read(directory / SYNC_POLICY_FILE)

    placeholders = assume_role_template.count(EXTERNAL_ID_PLACEHOLDER)
    if placeholders != 1 or assume_role_template.count("%") != 1:
        raise ArtifactReadError(
            f"{ASSUME_ROLE_POLICY_FILE} must contain exactly one {EXTERNAL_ID_PLACEHOLDER} placeholder "
            f"and no other '%', found {placeholders} placeholder(s)"
        )

    return PolicyArtifacts(assume_role_template=assume_role_template, sync_policy=sync_policy)
