"""
Container registry module.

Creates a Premium ACR with the admin user disabled; pulls are granted to
the cluster's kubelet identity by the AKS module.
"""

from __future__ import annotations

from constructs import Construct

from cdktf_cdktf_provider_azurerm.container_registry import ContainerRegistry

from iac_types import LabInfrastructureConfig


def provision_registry(
    *, scope: Construct, cfg: LabInfrastructureConfig, rg_name: str
) -> ContainerRegistry:
    acr_cfg = cfg.registry_config
    return ContainerRegistry(
        scope,
        "registry",
        name=acr_cfg.registry_name,
        location=cfg.location,
        resource_group_name=rg_name,
        sku=acr_cfg.sku,
        admin_enabled=False,
        public_network_access_enabled=True,
        anonymous_pull_enabled=False,
        tags=cfg.tags,
    )
