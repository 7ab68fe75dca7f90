from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class SubnetConfig:
    name: str
    address_prefix: str
    nsg_name: str


@dataclass(frozen=True)
class NSGRule:
    name: str
    priority: int
    direction: str  # Inbound or Outbound
    access: str  # Allow or Deny
    protocol: str  # Tcp/Udp/*
    source: str
    destination: str
    source_port: str
    destination_port: str


@dataclass(frozen=True)
class NSGConfig:
    name: str
    rules: List[NSGRule]


@dataclass(frozen=True)
class VNetConfig:
    name: str
    address_space: List[str]
    subnets: Dict[str, SubnetConfig]
    network_security_groups: Dict[str, NSGConfig]


@dataclass(frozen=True)
class NodePoolConfig:
    name: str
    vm_size: str
    node_count: int
    availability_zones: List[str]


@dataclass(frozen=True)
class AKSConfig:
    cluster_name: str
    kubernetes_version: Optional[str]  # None lets AKS pick the default
    system_vm_size: str
    system_node_count: int
    node_pools: List[NodePoolConfig]
    admin_group_object_ids: List[str]
    authorized_ip_ranges: List[str]
    network_plugin: str  # e.g., "azure"
    network_policy: str  # e.g., "azure" or "calico"
    enable_azure_policy: bool
    enable_defender: bool


@dataclass(frozen=True)
class LogAnalyticsConfig:
    workspace_name: str
    retention_days: int
    sku: str


@dataclass(frozen=True)
class RegistryConfig:
    registry_name: str
    sku: str


@dataclass(frozen=True)
class KeyVaultConfig:
    vault_name: str
    sku: str
    soft_delete_retention_days: int
    purge_protection_enabled: bool


@dataclass(frozen=True)
class SentinelConfig:
    enable_solutions: bool


@dataclass(frozen=True)
class PolicyConfig:
    enabled: bool
    initiative_name: str
    assignment_name: str
    required_tag: str


@dataclass(frozen=True)
class LabInfrastructureConfig:
    name_prefix: str
    resource_group_name: str
    location: str
    vnet_config: VNetConfig
    log_analytics_config: LogAnalyticsConfig
    registry_config: RegistryConfig
    key_vault_config: KeyVaultConfig
    aks_config: AKSConfig
    sentinel_config: SentinelConfig
    policy_config: PolicyConfig
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SubscriptionConfig:
    name_prefix: str
    location: str
    log_analytics_workspace_id: str
    enable_defender_for_containers: bool
    enable_defender_for_key_vault: bool
    activity_log_categories: List[str]
