"""
Diagnostics module.

Routes control-plane and audit logs of the cluster, Key Vault and registry
to the Log Analytics workspace, and collects Container Insights telemetry
through a data collection rule associated with the cluster.
"""

from __future__ import annotations

from typing import Dict, List

from constructs import Construct

from cdktf_cdktf_provider_azurerm.monitor_data_collection_rule import (
    MonitorDataCollectionRule,
)
from cdktf_cdktf_provider_azurerm.monitor_data_collection_rule_association import (
    MonitorDataCollectionRuleAssociation,
)
from cdktf_cdktf_provider_azurerm.monitor_diagnostic_setting import (
    MonitorDiagnosticSetting,
)

from iac_types import LabInfrastructureConfig

AKS_LOG_CATEGORIES = [
    "kube-apiserver",
    "kube-audit-admin",
    "kube-controller-manager",
    "guard",
]
KEY_VAULT_LOG_CATEGORIES = ["AuditEvent"]
REGISTRY_LOG_CATEGORIES = ["ContainerRegistryLoginEvents", "ContainerRegistryRepositoryEvents"]

CONTAINER_INSIGHTS_STREAMS = ["Microsoft-ContainerInsights-Group-Default"]


def _diagnostic_setting(
    scope: Construct,
    construct_id: str,
    name: str,
    target_id: str,
    workspace_id: str,
    categories: List[str],
) -> MonitorDiagnosticSetting:
    return MonitorDiagnosticSetting(
        scope,
        construct_id,
        name=name,
        target_resource_id=target_id,
        log_analytics_workspace_id=workspace_id,
        enabled_log=[{"category": c} for c in categories],
    )


def provision_diagnostics(
    *,
    scope: Construct,
    cfg: LabInfrastructureConfig,
    workspace_id: str,
    targets: Dict[str, str],
) -> List[MonitorDiagnosticSetting]:
    """Create one diagnostic setting per target resource id.

    ``targets`` maps ``aks``, ``key_vault`` and ``registry`` to resource ids.
    """
    categories = {
        "aks": AKS_LOG_CATEGORIES,
        "key_vault": KEY_VAULT_LOG_CATEGORIES,
        "registry": REGISTRY_LOG_CATEGORIES,
    }
    settings = []
    for key, target_id in targets.items():
        settings.append(
            _diagnostic_setting(
                scope,
                f"diag-{key}",
                name=f"{cfg.name_prefix}-{key.replace('_', '-')}-diag",
                target_id=target_id,
                workspace_id=workspace_id,
                categories=categories[key],
            )
        )
    return settings


def provision_workload_telemetry(
    *,
    scope: Construct,
    cfg: LabInfrastructureConfig,
    rg_name: str,
    workspace_id: str,
    cluster_id: str,
) -> MonitorDataCollectionRule:
    """Container Insights data collection rule bound to the cluster."""
    rule = MonitorDataCollectionRule(
        scope,
        "containerInsightsDcr",
        name=f"{cfg.name_prefix}-ci-dcr",
        location=cfg.location,
        resource_group_name=rg_name,
        kind="Linux",
        destinations={
            "log_analytics": [
                {"name": "ciworkspace", "workspace_resource_id": workspace_id}
            ]
        },
        data_flow=[
            {"streams": CONTAINER_INSIGHTS_STREAMS, "destinations": ["ciworkspace"]}
        ],
        data_sources={
            "extension": [
                {
                    "name": "ContainerInsightsExtension",
                    "extension_name": "ContainerInsights",
                    "streams": CONTAINER_INSIGHTS_STREAMS,
                    "extension_json": '{"dataCollectionSettings":{"interval":"1m","namespaceFilteringMode":"Off"}}',
                }
            ]
        },
        tags=cfg.tags,
    )
    MonitorDataCollectionRuleAssociation(
        scope,
        "containerInsightsDcrAssoc",
        name="ContainerInsightsExtension",
        target_resource_id=cluster_id,
        data_collection_rule_id=rule.id,
    )
    return rule
