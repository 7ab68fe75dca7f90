"""
Log Analytics module.

Creates the workspace every diagnostic setting and Sentinel point at.
"""

from __future__ import annotations

from constructs import Construct

from cdktf_cdktf_provider_azurerm.log_analytics_workspace import LogAnalyticsWorkspace

from iac_types import LabInfrastructureConfig


def provision_log_analytics(
    *, scope: Construct, cfg: LabInfrastructureConfig, rg_name: str
) -> LogAnalyticsWorkspace:
    law_cfg = cfg.log_analytics_config
    return LogAnalyticsWorkspace(
        scope,
        "logAnalytics",
        name=law_cfg.workspace_name,
        location=cfg.location,
        resource_group_name=rg_name,
        sku=law_cfg.sku,
        retention_in_days=law_cfg.retention_days,
        tags=cfg.tags,
    )
