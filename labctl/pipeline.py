"""The deployment pipeline.

Validate -> Deploy-RG -> Deploy-Sub (best effort) -> Configure -> Report.
Stages run strictly in sequence. A failed resource-group deployment raises
and stops everything after it; a failed subscription deployment comes back
as a ``StageWarning`` and the pipeline carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .configure import ConfigureReport, configure_cluster
from .errors import DeploymentFailed
from .lab import STATE_ROOT, LabInstance
from .params import DeploymentParameters
from .provider import (
    CdktfDeploymentProvider,
    StageOk,
    StageWarning,
    SubscriptionOutcome,
    write_vars_file,
)
from .report import render_summary
from .utils import resolve_with_fallback

logger = logging.getLogger(__name__)

VARS_FILE = "lab.tfvars.json"
RG_OUTPUTS_FILE = "outputs-rg.json"
SUB_OUTPUTS_FILE = "outputs-sub.json"

COMPLETED = "Deployment completed successfully"


@dataclass(frozen=True)
class PipelineResult:
    lab: LabInstance
    rg_outputs: Dict[str, Any]
    subscription: SubscriptionOutcome
    configure: ConfigureReport

    @property
    def degraded(self) -> bool:
        return isinstance(self.subscription, StageWarning) or not self.configure.complete


def section(title: str, out: Callable[[str], None] = print) -> None:
    out("")
    out(f"=== {title} ===")


def deploy_resource_group(
    params: DeploymentParameters,
    lab: LabInstance,
    provider: CdktfDeploymentProvider,
    state_dir: Path,
) -> Dict[str, Any]:
    """Deploy the resource-group stack; raise DeploymentFailed unless it succeeded."""
    vars_file = write_vars_file(state_dir / VARS_FILE, params.resource_group_parameters(lab))
    result = provider.deploy(lab.rg_stack, vars_file, state_dir / RG_OUTPUTS_FILE)
    if not result.succeeded:
        raise DeploymentFailed(
            "resource-group", lab.rg_stack, result.error or f"state {result.state.value}"
        )
    return result.outputs


def deploy_subscription(
    params: DeploymentParameters,
    lab: LabInstance,
    provider: CdktfDeploymentProvider,
    state_dir: Path,
    workspace_id: Optional[str],
) -> SubscriptionOutcome:
    """Deploy the subscription stack; failures become a StageWarning."""
    if not workspace_id:
        return StageWarning("the resource-group deployment reported no workspace id")
    try:
        vars_file = write_vars_file(
            state_dir / VARS_FILE, params.subscription_parameters(workspace_id)
        )
        result = provider.deploy(lab.sub_stack, vars_file, state_dir / SUB_OUTPUTS_FILE)
    except Exception as ex:  # noqa: BLE001 - best-effort stage, reported as a warning
        failure = DeploymentFailed("subscription", lab.sub_stack, str(ex))
        logger.warning("%s", failure)
        return StageWarning(str(failure))
    if not result.succeeded:
        failure = DeploymentFailed(
            "subscription", lab.sub_stack, result.error or f"state {result.state.value}"
        )
        logger.warning("%s", failure)
        return StageWarning(str(failure))
    return StageOk(result.outputs)


def run_pipeline(
    params: DeploymentParameters,
    lab: LabInstance,
    provider: CdktfDeploymentProvider,
    *,
    state_root: Path = STATE_ROOT,
    base_dir: Path = Path("."),
    configure: Callable[..., ConfigureReport] = configure_cluster,
    out: Callable[[str], None] = print,
) -> PipelineResult:
    state_dir = lab.state_dir(state_root)

    section("Deploying resource-group stack", out)
    out(f"Lab instance {lab.name_prefix} -> resource group {lab.resource_group} ({params.location})")
    rg_outputs = deploy_resource_group(params, lab, provider, state_dir)
    out("Resource-group deployment succeeded.")

    section("Deploying subscription-scope settings", out)
    subscription = deploy_subscription(
        params, lab, provider, state_dir, rg_outputs.get("workspaceId")
    )
    if isinstance(subscription, StageWarning):
        out(f"WARNING: {subscription.reason}")
        out("Continuing without subscription-scope settings.")
    else:
        out("Subscription-scope deployment succeeded.")

    section("Configuring cluster", out)
    cluster_name = resolve_with_fallback(
        rg_outputs.get("clusterName"), default=lab.default_cluster_name
    )
    resource_group = resolve_with_fallback(
        rg_outputs.get("resourceGroupName"), default=lab.resource_group
    )
    configure_report = configure(resource_group, cluster_name, base_dir=base_dir, out=out)

    section("Summary", out)
    for line in render_summary(lab, params, rg_outputs, subscription, configure_report):
        out(line)
    out("")
    out(COMPLETED)

    return PipelineResult(
        lab=lab,
        rg_outputs=rg_outputs,
        subscription=subscription,
        configure=configure_report,
    )
