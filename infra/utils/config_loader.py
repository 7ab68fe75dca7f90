"""
Config loader for lab parameter files -> typed config used by the CDKTF stacks.

Functional, pure helpers that parse the parameter file written by the
deployment CLI. Both a minimal subset of .tfvars syntax and .tfvars.json
are accepted. No external dependencies.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from iac_types import (
    AKSConfig,
    KeyVaultConfig,
    LabInfrastructureConfig,
    LogAnalyticsConfig,
    NodePoolConfig,
    NSGConfig,
    NSGRule,
    PolicyConfig,
    RegistryConfig,
    SentinelConfig,
    SubnetConfig,
    SubscriptionConfig,
    VNetConfig,
)

DEFAULT_VARS_FILE = "vars/lab.tfvars.json"

DEFAULT_VNET_CIDR = "10.40.0.0/16"
DEFAULT_SYSTEM_SUBNET_CIDR = "10.40.0.0/22"
DEFAULT_USER_SUBNET_CIDR = "10.40.4.0/22"

ACTIVITY_LOG_CATEGORIES = ["Administrative", "Security", "Policy", "Alert"]


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _parse_tfvars(content: str) -> Dict[str, Any]:
    """Very small tfvars parser for simple key = value pairs.

    Supports strings, integers, booleans on single lines.
    Lines starting with '#' are ignored. Keys prefixed with ``tag_``
    are collected into the ``tags`` map.
    """
    vars_map: Dict[str, Any] = {}
    tags: Dict[str, str] = {}
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        # Remove potential trailing comments
        if " #" in val:
            val = val.split(" #", 1)[0].strip()
        val = _strip_quotes(val)
        if key.startswith("tag_"):
            tags[key[len("tag_"):]] = val
            continue
        vars_map[key] = val
    if tags:
        vars_map["tags"] = tags
    return vars_map


def _parse_tfvars_json(content: str) -> Dict[str, Any]:
    loaded = json.loads(content)
    if not isinstance(loaded, dict):
        raise ValueError("tfvars JSON must contain an object at the top level")
    return loaded


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int value: {value}")
    try:
        return int(value)
    except (TypeError, ValueError) as ex:
        raise ValueError(f"Invalid int value: {value}") from ex


def _required(vars_map: Dict[str, Any], key: str) -> Any:
    if key not in vars_map or vars_map[key] in (None, ""):
        raise KeyError(f"Missing required var: {key}")
    return vars_map[key]


def _optional_str(vars_map: Dict[str, Any], key: str, default: str) -> str:
    value = vars_map.get(key)
    return str(value) if value not in (None, "") else default


def load_vars(*, repo_root: Path) -> Dict[str, Any]:
    # Use default if env var is missing or empty
    tfvars_file_env = os.getenv("TFVARS_FILE")
    tfvars_file = (
        tfvars_file_env
        if (tfvars_file_env and tfvars_file_env.strip())
        else DEFAULT_VARS_FILE
    )
    vars_path = (repo_root / tfvars_file).resolve()
    if not vars_path.exists():
        raise FileNotFoundError(f"tfvars file not found: {vars_path}")

    content = vars_path.read_text(encoding="utf-8")
    if vars_path.name.endswith(".json"):
        return _parse_tfvars_json(content)
    return _parse_tfvars(content)


def _build_names(prefix: str) -> Tuple[str, str, str, str, str]:
    vnet = f"{prefix}-vnet"
    law = f"{prefix}-law"
    kv = f"{prefix}-kv"
    # ACR names are alphanumeric only
    acr = f"{prefix}acr".replace("-", "")
    aks = f"{prefix}-aks"
    return vnet, law, kv, acr, aks


def _build_vnet_config(
    name: str,
    vnet_cidr: str,
    system_cidr: str,
    user_cidr: str,
) -> VNetConfig:
    subnets = {
        "system": SubnetConfig(
            name=f"{name}-aks-system",
            address_prefix=system_cidr,
            nsg_name=f"{name}-nsg-aks",
        ),
        "user": SubnetConfig(
            name=f"{name}-aks-user",
            address_prefix=user_cidr,
            nsg_name=f"{name}-nsg-aks",
        ),
    }
    allow_vnet_inbound = NSGRule(
        name="allow-vnet-inbound",
        priority=200,
        direction="Inbound",
        access="Allow",
        protocol="*",
        source="VirtualNetwork",
        destination="VirtualNetwork",
        source_port="*",
        destination_port="*",
    )
    allow_azure_lb = NSGRule(
        name="allow-azure-lb-inbound",
        priority=210,
        direction="Inbound",
        access="Allow",
        protocol="*",
        source="AzureLoadBalancer",
        destination="*",
        source_port="*",
        destination_port="*",
    )
    deny_internet_inbound = NSGRule(
        name="deny-internet-inbound",
        priority=4000,
        direction="Inbound",
        access="Deny",
        protocol="*",
        source="Internet",
        destination="*",
        source_port="*",
        destination_port="*",
    )
    nsgs = {
        "aks": NSGConfig(
            name=f"{name}-nsg-aks",
            rules=[allow_vnet_inbound, allow_azure_lb, deny_internet_inbound],
        ),
    }
    return VNetConfig(
        name=name,
        address_space=[vnet_cidr],
        subnets=subnets,
        network_security_groups=nsgs,
    )


def _build_aks_config(aks_name: str, vars_map: Dict[str, Any]) -> AKSConfig:
    version = vars_map.get("kubernetesVersion")
    user_vm_size = str(_required(vars_map, "userNodeVmSize"))
    user_count = _to_int(vars_map.get("userNodeCount", 1))
    node_pools: List[NodePoolConfig] = []
    if user_count > 0:
        node_pools.append(
            NodePoolConfig(
                name="user",
                vm_size=user_vm_size,
                node_count=user_count,
                availability_zones=["1", "2", "3"],
            )
        )
    return AKSConfig(
        cluster_name=aks_name,
        kubernetes_version=str(version) if version else None,
        system_vm_size=str(_required(vars_map, "systemNodeVmSize")),
        system_node_count=_to_int(vars_map.get("systemNodeCount", 1)),
        node_pools=node_pools,
        admin_group_object_ids=[str(_required(vars_map, "adminGroupObjectId"))],
        authorized_ip_ranges=[str(_required(vars_map, "authorizedIpRange"))],
        network_plugin="azure",
        network_policy=_optional_str(vars_map, "networkPolicy", "azure"),
        enable_azure_policy=_to_bool(vars_map.get("enableAzurePolicy", True)),
        enable_defender=_to_bool(vars_map.get("enableDefender", True)),
    )


def _build_policy_config(vars_map: Dict[str, Any], prefix: str) -> PolicyConfig:
    return PolicyConfig(
        enabled=_to_bool(vars_map.get("enableAzurePolicy", True)),
        initiative_name=f"{prefix}-baseline",
        assignment_name=f"{prefix}-baseline-assignment",
        required_tag=_optional_str(vars_map, "requiredTag", "lab"),
    )


def _build_tags(vars_map: Dict[str, Any], prefix: str) -> Dict[str, str]:
    raw = vars_map.get("tags") or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid tags value: {raw}")
    tags = {str(k): str(v) for k, v in raw.items()}
    tags.setdefault("lab", prefix)
    return tags


def load_lab_config(vars_map: Dict[str, Any]) -> LabInfrastructureConfig:
    """Build the resource-group stack config from a parsed parameter map."""
    prefix = str(_required(vars_map, "namePrefix"))
    location = str(_required(vars_map, "location"))
    rg_name = _optional_str(vars_map, "resourceGroupName", f"rg-{prefix}")

    vnet_name, law_name, kv_name, acr_name, aks_name = _build_names(prefix)

    vnet_cfg = _build_vnet_config(
        name=vnet_name,
        vnet_cidr=_optional_str(vars_map, "vnetCidr", DEFAULT_VNET_CIDR),
        system_cidr=_optional_str(
            vars_map, "systemSubnetCidr", DEFAULT_SYSTEM_SUBNET_CIDR
        ),
        user_cidr=_optional_str(vars_map, "userSubnetCidr", DEFAULT_USER_SUBNET_CIDR),
    )
    retention = _to_int(_required(vars_map, "logRetentionDays"))
    if not 30 <= retention <= 730:
        raise ValueError(f"logRetentionDays must be within 30..730, got {retention}")

    return LabInfrastructureConfig(
        name_prefix=prefix,
        resource_group_name=rg_name,
        location=location,
        vnet_config=vnet_cfg,
        log_analytics_config=LogAnalyticsConfig(
            workspace_name=law_name, retention_days=retention, sku="PerGB2018"
        ),
        registry_config=RegistryConfig(registry_name=acr_name, sku="Premium"),
        key_vault_config=KeyVaultConfig(
            vault_name=kv_name,
            sku="standard",
            soft_delete_retention_days=7,
            purge_protection_enabled=False,
        ),
        aks_config=_build_aks_config(aks_name=aks_name, vars_map=vars_map),
        sentinel_config=SentinelConfig(
            enable_solutions=_to_bool(vars_map.get("enableSentinelSolutions", True))
        ),
        policy_config=_build_policy_config(vars_map, prefix),
        tags=_build_tags(vars_map, prefix),
    )


def load_subscription_config(vars_map: Dict[str, Any]) -> Optional[SubscriptionConfig]:
    """Return the subscription stack config, or None before the workspace exists."""
    workspace_id = vars_map.get("logAnalyticsWorkspaceId")
    if not workspace_id:
        return None
    return SubscriptionConfig(
        name_prefix=str(_required(vars_map, "namePrefix")),
        location=str(_required(vars_map, "location")),
        log_analytics_workspace_id=str(workspace_id),
        enable_defender_for_containers=_to_bool(
            vars_map.get("enableDefenderForContainers", False)
        ),
        enable_defender_for_key_vault=_to_bool(
            vars_map.get("enableDefenderForKeyVault", False)
        ),
        activity_log_categories=list(ACTIVITY_LOG_CATEGORIES),
    )
