"""Lab instance identity.

Every resource name of one lab instance is derived from a short random
suffix so repeated or concurrent deployments never collide.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 6
NAME_BASE = "akslab"
STATE_ROOT = Path(".lab")


def generate_suffix(length: int = SUFFIX_LENGTH) -> str:
    """Random lowercase alphanumeric suffix (36**6 ~ 2.2e9 combinations)."""
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class LabInstance:
    suffix: str
    name_prefix: str
    resource_group: str

    @classmethod
    def create(cls, suffix: Optional[str] = None) -> "LabInstance":
        suffix = suffix or generate_suffix()
        prefix = f"{NAME_BASE}{suffix}"
        return cls(suffix=suffix, name_prefix=prefix, resource_group=f"rg-{prefix}")

    @classmethod
    def from_prefix(cls, name_prefix: str) -> "LabInstance":
        if not name_prefix.startswith(NAME_BASE) or len(name_prefix) == len(NAME_BASE):
            raise ValueError(f"Not a lab name prefix: {name_prefix}")
        return cls(
            suffix=name_prefix[len(NAME_BASE):],
            name_prefix=name_prefix,
            resource_group=f"rg-{name_prefix}",
        )

    @property
    def rg_stack(self) -> str:
        return f"{self.name_prefix}-rg"

    @property
    def sub_stack(self) -> str:
        return f"{self.name_prefix}-sub"

    def state_dir(self, root: Path = STATE_ROOT) -> Path:
        return root / self.name_prefix

    # Computed defaults used when a deployment output is absent

    @property
    def default_cluster_name(self) -> str:
        return f"{self.name_prefix}-aks"

    @property
    def default_workspace_name(self) -> str:
        return f"{self.name_prefix}-law"

    @property
    def default_registry_login_server(self) -> str:
        return f"{self.name_prefix}acr.azurecr.io"

    @property
    def default_key_vault_name(self) -> str:
        return f"{self.name_prefix}-kv"
