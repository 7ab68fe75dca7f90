"""
AKS module.

Creates an Entra ID-integrated AKS cluster whose API server is reachable
only from the authorized IP ranges, with a system pool, an optional user
pool, and the AcrPull binding for its kubelet identity.
"""

from __future__ import annotations

from typing import Any, Dict

from constructs import Construct

from cdktf_cdktf_provider_azurerm.kubernetes_cluster import KubernetesCluster
from cdktf_cdktf_provider_azurerm.kubernetes_cluster_node_pool import (
    KubernetesClusterNodePool,
)
from cdktf_cdktf_provider_azurerm.role_assignment import RoleAssignment

from iac_types import LabInfrastructureConfig


def provision_aks(
    *,
    scope: Construct,
    cfg: LabInfrastructureConfig,
    rg_name: str,
    subnet_system,
    subnet_user,
    workspace_id: str,
    registry_id: str,
) -> KubernetesCluster:
    """Provision AKS using settings from cfg and return the cluster."""
    aks_cfg = cfg.aks_config

    optional: Dict[str, Any] = {}
    if aks_cfg.enable_defender:
        optional["microsoft_defender"] = {"log_analytics_workspace_id": workspace_id}

    aks = KubernetesCluster(
        scope,
        "aks",
        name=aks_cfg.cluster_name,
        location=cfg.location,
        resource_group_name=rg_name,
        dns_prefix=f"{aks_cfg.cluster_name}-dns",
        kubernetes_version=aks_cfg.kubernetes_version,
        default_node_pool={
            "name": "system",
            "vm_size": aks_cfg.system_vm_size,
            "node_count": aks_cfg.system_node_count,
            "vnet_subnet_id": subnet_system.id,
            "type": "VirtualMachineScaleSets",
            "only_critical_addons_enabled": True,
            "zones": ["1", "2", "3"],
        },
        identity={"type": "SystemAssigned"},
        api_server_access_profile={
            "authorized_ip_ranges": aks_cfg.authorized_ip_ranges,
        },
        azure_active_directory_role_based_access_control={
            "admin_group_object_ids": aks_cfg.admin_group_object_ids,
            "azure_rbac_enabled": True,
        },
        local_account_disabled=True,
        role_based_access_control_enabled=True,
        azure_policy_enabled=aks_cfg.enable_azure_policy,
        oms_agent={
            "log_analytics_workspace_id": workspace_id,
            "msi_auth_for_monitoring_enabled": True,
        },
        key_vault_secrets_provider={"secret_rotation_enabled": True},
        network_profile={
            "network_plugin": aks_cfg.network_plugin,
            "network_policy": aks_cfg.network_policy,
            "load_balancer_sku": "standard",
            "service_cidr": "10.96.0.0/16",
            "dns_service_ip": "10.96.0.10",
        },
        tags=cfg.tags,
        **optional,
    )

    for pool in aks_cfg.node_pools:
        KubernetesClusterNodePool(
            scope,
            f"aksPool-{pool.name}",
            kubernetes_cluster_id=aks.id,
            name=pool.name,
            vm_size=pool.vm_size,
            node_count=pool.node_count,
            vnet_subnet_id=subnet_user.id,
            zones=pool.availability_zones,
            mode="User",
            orchestrator_version=aks_cfg.kubernetes_version,
            tags=cfg.tags,
        )

    RoleAssignment(
        scope,
        "aksAcrPull",
        scope=registry_id,
        role_definition_name="AcrPull",
        principal_id=aks.kubelet_identity.get(0).object_id,
        skip_service_principal_aad_check=True,
    )

    return aks
