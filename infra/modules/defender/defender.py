"""
Subscription-scope module.

Defender for Cloud pricing tiers and activity-log routing. These resources
cannot live in the resource-group stack; they are deployed separately and
on a best-effort basis.
"""

from __future__ import annotations

from typing import List

from constructs import Construct

from cdktf_cdktf_provider_azurerm.monitor_diagnostic_setting import (
    MonitorDiagnosticSetting,
)
from cdktf_cdktf_provider_azurerm.security_center_subscription_pricing import (
    SecurityCenterSubscriptionPricing,
)

from iac_types import SubscriptionConfig


def enabled_defender_plans(cfg: SubscriptionConfig) -> List[str]:
    plans = []
    if cfg.enable_defender_for_containers:
        plans.append("Containers")
    if cfg.enable_defender_for_key_vault:
        plans.append("KeyVaults")
    return plans


def provision_defender_pricing(
    *, scope: Construct, cfg: SubscriptionConfig
) -> List[SecurityCenterSubscriptionPricing]:
    """Enable the Standard tier for each toggled plan; untoggled plans are left as-is."""
    return [
        SecurityCenterSubscriptionPricing(
            scope,
            f"defender-{plan}",
            tier="Standard",
            resource_type=plan,
        )
        for plan in enabled_defender_plans(cfg)
    ]


def provision_activity_log(
    *, scope: Construct, cfg: SubscriptionConfig, subscription_id: str
) -> MonitorDiagnosticSetting:
    return MonitorDiagnosticSetting(
        scope,
        "activityLog",
        name=f"{cfg.name_prefix}-activity-log",
        target_resource_id=subscription_id,
        log_analytics_workspace_id=cfg.log_analytics_workspace_id,
        enabled_log=[{"category": c} for c in cfg.activity_log_categories],
    )
