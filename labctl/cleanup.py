"""Lab teardown.

Deleting the resource group removes every resource-group-scoped resource
(including the policy assignment). Custom policy definitions, the
initiative and the activity-log diagnostic setting live at subscription
scope and are deleted explicitly by name prefix. Defender pricing tiers are
subscription-wide settings and are left unchanged.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Callable, List

from .errors import CmdError
from .lab import STATE_ROOT, LabInstance
from .utils import az, az_json

logger = logging.getLogger(__name__)


def _names(doc: Any) -> List[str]:
    items = doc.get("value", []) if isinstance(doc, dict) else (doc or [])
    return [item["name"] if isinstance(item, dict) else str(item) for item in items]


def _custom_policy_query(prefix: str) -> str:
    return f"[?policyType=='Custom' && starts_with(name, '{prefix}-')].name"


def destroy_lab(
    lab: LabInstance,
    *,
    project_dir: Path,
    state_root: Path = STATE_ROOT,
    az_run: Callable[..., str] = az,
    az_query: Callable[[List[str]], Any] = az_json,
    out: Callable[[str], None] = print,
) -> List[str]:
    """Delete every lab resource; returns the names of removed subscription objects."""
    removed: List[str] = []
    prefix = lab.name_prefix

    out(f"Deleting resource group {lab.resource_group} (this can take several minutes)...")
    try:
        az_run(["group", "delete", "-n", lab.resource_group, "--yes"], echo=True)
    except CmdError as ex:
        if "ResourceGroupNotFound" not in str(ex):
            raise
        out("  Resource group already gone.")

    # Initiatives reference definitions, so they go first
    for name in _names(az_query(["policy", "set-definition", "list", "--query", _custom_policy_query(prefix)])):
        out(f"Deleting policy initiative {name}...")
        az_run(["policy", "set-definition", "delete", "--name", name])
        removed.append(name)
    for name in _names(az_query(["policy", "definition", "list", "--query", _custom_policy_query(prefix)])):
        out(f"Deleting policy definition {name}...")
        az_run(["policy", "definition", "delete", "--name", name])
        removed.append(name)

    settings = _names(az_query(["monitor", "diagnostic-settings", "subscription", "list"]))
    for name in (s for s in settings if s.startswith(f"{prefix}-")):
        out(f"Deleting subscription diagnostic setting {name}...")
        az_run(["monitor", "diagnostic-settings", "subscription", "delete", "--name", name, "--yes"])
        removed.append(name)

    for stack in (lab.rg_stack, lab.sub_stack):
        state_file = project_dir / f"terraform.{stack}.tfstate"
        if state_file.exists():
            state_file.unlink()
    shutil.rmtree(lab.state_dir(state_root), ignore_errors=True)

    out("Defender for Cloud pricing tiers are subscription-wide and were left unchanged.")
    logger.info("Removed subscription-scoped objects: %s", ", ".join(removed) or "none")
    return removed
