"""
Sentinel module.

Onboards the workspace to Microsoft Sentinel and, when solutions are
enabled, adds the lab's scheduled analytics rules for AKS activity.
"""

from __future__ import annotations

from typing import List, Tuple

from constructs import Construct

from cdktf_cdktf_provider_azurerm.sentinel_alert_rule_scheduled import (
    SentinelAlertRuleScheduled,
)
from cdktf_cdktf_provider_azurerm.sentinel_log_analytics_workspace_onboarding import (
    SentinelLogAnalyticsWorkspaceOnboarding,
)

from iac_types import LabInfrastructureConfig

# (key, display name, severity, tactics, query)
LAB_ANALYTICS_RULES: List[Tuple[str, str, str, List[str], str]] = [
    (
        "aks-admin-credentials",
        "AKS cluster admin credentials listed",
        "Medium",
        ["CredentialAccess"],
        "AzureActivity\n"
        "| where OperationNameValue =~ "
        "'MICROSOFT.CONTAINERSERVICE/MANAGEDCLUSTERS/LISTCLUSTERADMINCREDENTIAL/ACTION'\n"
        "| where ActivityStatusValue =~ 'Success'",
    ),
    (
        "aks-privileged-pod",
        "Privileged container created in AKS",
        "High",
        ["PrivilegeEscalation"],
        "AzureDiagnostics\n"
        "| where Category == 'kube-audit-admin'\n"
        "| extend req = parse_json(log_s)\n"
        "| where req.verb == 'create' and req.objectRef.resource == 'pods'\n"
        "| where tostring(req.requestObject.spec.containers) contains '\"privileged\":true'",
    ),
]


def provision_sentinel(
    *, scope: Construct, cfg: LabInfrastructureConfig, workspace_id: str
) -> SentinelLogAnalyticsWorkspaceOnboarding:
    onboarding = SentinelLogAnalyticsWorkspaceOnboarding(
        scope, "sentinelOnboarding", workspace_id=workspace_id
    )
    if not cfg.sentinel_config.enable_solutions:
        return onboarding

    for key, display_name, severity, tactics, query in LAB_ANALYTICS_RULES:
        SentinelAlertRuleScheduled(
            scope,
            f"sentinelRule-{key}",
            name=f"{cfg.name_prefix}-{key}",
            log_analytics_workspace_id=onboarding.workspace_id,
            display_name=display_name,
            severity=severity,
            tactics=tactics,
            query=query,
            query_frequency="PT1H",
            query_period="PT1H",
            trigger_operator="GreaterThan",
            trigger_threshold=0,
        )
    return onboarding
