"""Deployment summary formatting. Pure functions; nothing here raises."""

from __future__ import annotations

from typing import Any, List, Mapping

from .configure import ConfigureReport
from .lab import LabInstance
from .params import DeploymentParameters
from .provider import StageOk, SubscriptionOutcome
from .utils import resolve_with_fallback

NOT_AVAILABLE = "not available"


def portal_activity_url(tenant_id: str, subscription_id: str, resource_group: str) -> str:
    """Activity log of the lab resource group in the Azure portal."""
    return (
        f"https://portal.azure.com/#@{tenant_id}/resource/subscriptions/{subscription_id}"
        f"/resourceGroups/{resource_group}/eventlogs"
    )


def _output(outputs: Mapping[str, Any], key: str, default: str) -> str:
    return str(resolve_with_fallback(outputs.get(key), default=default))


def render_summary(
    lab: LabInstance,
    params: DeploymentParameters,
    rg_outputs: Mapping[str, Any],
    subscription: SubscriptionOutcome,
    configure: ConfigureReport,
) -> List[str]:
    cluster = _output(rg_outputs, "clusterName", lab.default_cluster_name)
    resource_group = _output(rg_outputs, "resourceGroupName", lab.resource_group)
    registry = _output(rg_outputs, "registryLoginServer", lab.default_registry_login_server)
    sub_outputs = subscription.outputs if isinstance(subscription, StageOk) else {}

    lines = [
        f"Lab instance:        {lab.name_prefix}",
        f"Subscription:        {params.subscription_id}",
        f"Resource group:      {resource_group}",
        f"Location:            {params.location}",
        f"AKS cluster:         {cluster}",
        f"API server FQDN:     {_output(rg_outputs, 'clusterFqdn', NOT_AVAILABLE)}",
        f"Authorized range:    {params.authorized_ip_range}",
        f"Log Analytics:       {_output(rg_outputs, 'workspaceName', lab.default_workspace_name)}",
        f"Container registry:  {registry}",
        f"Key Vault:           {_output(rg_outputs, 'keyVaultName', lab.default_key_vault_name)}",
        f"Key Vault URI:       {_output(rg_outputs, 'keyVaultUri', NOT_AVAILABLE)}",
        f"Defender plans:      {_output(sub_outputs, 'defenderPlans', NOT_AVAILABLE)}",
        f"Activity log export: {_output(sub_outputs, 'activityLogSetting', NOT_AVAILABLE)}",
    ]

    if configure.credentials_ok:
        applied = sum(1 for m in configure.manifests if m.status == "applied")
        lines.append(f"Manifests applied:   {applied}/{len(configure.manifests)}")
    else:
        lines.append(f"Manifests applied:   {NOT_AVAILABLE} (credentials not configured)")

    lines.append("")
    lines.append("Next steps:")
    if configure.follow_up:
        lines.append("  Finish cluster configuration manually:")
        lines.extend(f"    {cmd}" for cmd in configure.follow_up)
    lines.extend(
        [
            f"  az aks get-credentials -g {resource_group} -n {cluster} --overwrite-existing",
            "  kubelogin convert-kubeconfig -l azurecli",
            "  kubectl get nodes",
            f"  az acr login -n {registry.split('.', 1)[0]}",
            f"  aks-lab destroy --name-prefix {lab.name_prefix}",
        ]
    )
    return lines
