"""Deployment requests against Azure, carried out by the CDKTF CLI.

A deployment is one blocking ``cdktf deploy`` of a single stack. The
Terraform azurerm provider already polls Azure until each resource
settles, so a returned command means a terminal state was reached.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .errors import CmdError
from .utils import cdktf

logger = logging.getLogger(__name__)


class ProvisioningState(str, Enum):
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass(frozen=True)
class DeploymentResult:
    stack: str
    state: ProvisioningState
    outputs: Dict[str, Any] = field(default_factory=dict)
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is ProvisioningState.SUCCEEDED


@dataclass(frozen=True)
class StageOk:
    outputs: Dict[str, Any]


@dataclass(frozen=True)
class StageWarning:
    reason: str


# Outcome of a best-effort deployment
SubscriptionOutcome = Union[StageOk, StageWarning]


def write_vars_file(path: Path, params: Mapping[str, Any]) -> Path:
    """Write (or extend) the JSON parameter file read by the CDKTF app."""
    path.parent.mkdir(parents=True, exist_ok=True)
    merged: Dict[str, Any] = {}
    if path.exists():
        merged.update(json.loads(path.read_text(encoding="utf-8")))
    merged.update(params)
    path.write_text(json.dumps(merged, indent=2, sort_keys=True), encoding="utf-8")
    return path.resolve()


def _camel(key: str) -> str:
    if "_" not in key and "-" not in key:
        return key
    parts = key.replace("-", "_").split("_")
    return parts[0] + "".join(p[:1].upper() + p[1:] for p in parts[1:])


def read_stack_outputs(outputs_file: Path, stack: str) -> Dict[str, Any]:
    """Return the outputs of one stack from a ``--outputs-file`` document.

    Keys are returned as camelCase names regardless of how the CLI cased
    them, matching the output ids declared in the stacks.
    """
    if not outputs_file.exists():
        return {}
    doc = json.loads(outputs_file.read_text(encoding="utf-8"))
    raw = doc.get(stack, {})
    return {_camel(k): v for k, v in raw.items()}


class CdktfDeploymentProvider:
    """Deploys lab stacks with ``cdktf deploy`` from the infra project."""

    def __init__(
        self,
        project_dir: Path,
        env: Optional[Mapping[str, str]] = None,
        runner: Callable[..., str] = cdktf,
    ) -> None:
        self.project_dir = project_dir
        self.env = dict(env or {})
        self.runner = runner

    def _env(self, vars_file: Path) -> Dict[str, str]:
        return {**self.env, "TFVARS_FILE": str(vars_file)}

    def synth(self, vars_file: Path) -> None:
        self.runner(self.project_dir, ["synth"], env=self._env(vars_file))

    def deploy(self, stack: str, vars_file: Path, outputs_file: Path) -> DeploymentResult:
        args: List[str] = [
            "deploy",
            stack,
            "--auto-approve",
            "--outputs-file",
            str(outputs_file.resolve()),
            "--outputs-file-include-sensitive-outputs",
        ]
        logger.debug("Deployment %s: %s", stack, ProvisioningState.IN_PROGRESS.value)
        try:
            self.runner(self.project_dir, args, env=self._env(vars_file))
        except CmdError as ex:
            logger.debug("Deployment %s: %s", stack, ProvisioningState.FAILED.value)
            return DeploymentResult(stack=stack, state=ProvisioningState.FAILED, error=str(ex))
        outputs = read_stack_outputs(outputs_file, stack)
        return DeploymentResult(stack=stack, state=ProvisioningState.SUCCEEDED, outputs=outputs)
