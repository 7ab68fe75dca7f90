"""
Network module.

Creates the VNet, the AKS system/user subnets and the NSG guarding them.
"""

from __future__ import annotations

from typing import Tuple

from constructs import Construct

from cdktf_cdktf_provider_azurerm.virtual_network import VirtualNetwork
from cdktf_cdktf_provider_azurerm.subnet import Subnet
from cdktf_cdktf_provider_azurerm.network_security_group import NetworkSecurityGroup
from cdktf_cdktf_provider_azurerm.network_security_rule import NetworkSecurityRule
from cdktf_cdktf_provider_azurerm.subnet_network_security_group_association import (
    SubnetNetworkSecurityGroupAssociation,
)

from iac_types import LabInfrastructureConfig, NSGConfig


def _provision_nsg(
    scope: Construct, construct_id: str, nsg: NSGConfig, rg_name: str, location: str, tags
) -> NetworkSecurityGroup:
    group = NetworkSecurityGroup(
        scope,
        construct_id,
        name=nsg.name,
        location=location,
        resource_group_name=rg_name,
        tags=tags,
    )
    for rule in nsg.rules:
        NetworkSecurityRule(
            scope,
            f"{construct_id}-{rule.name}",
            name=rule.name,
            priority=rule.priority,
            direction=rule.direction,
            access=rule.access,
            protocol=rule.protocol,
            source_port_range=rule.source_port,
            destination_port_range=rule.destination_port,
            source_address_prefix=rule.source,
            destination_address_prefix=rule.destination,
            resource_group_name=rg_name,
            network_security_group_name=group.name,
        )
    return group


def provision_network(
    *, scope: Construct, cfg: LabInfrastructureConfig, rg_name: str
) -> Tuple[VirtualNetwork, Subnet, Subnet]:
    """Provision networking and return (vnet, subnet_system, subnet_user)."""
    vnet = VirtualNetwork(
        scope,
        "vnet",
        name=cfg.vnet_config.name,
        location=cfg.location,
        resource_group_name=rg_name,
        address_space=cfg.vnet_config.address_space,
        tags=cfg.tags,
    )

    nsg_aks = _provision_nsg(
        scope,
        "nsgAks",
        cfg.vnet_config.network_security_groups["aks"],
        rg_name,
        cfg.location,
        cfg.tags,
    )

    subnet_system = Subnet(
        scope,
        "subnetAksSystem",
        name=cfg.vnet_config.subnets["system"].name,
        resource_group_name=rg_name,
        virtual_network_name=vnet.name,
        address_prefixes=[cfg.vnet_config.subnets["system"].address_prefix],
        service_endpoints=["Microsoft.ContainerRegistry", "Microsoft.KeyVault"],
        depends_on=[vnet],
    )

    subnet_user = Subnet(
        scope,
        "subnetAksUser",
        name=cfg.vnet_config.subnets["user"].name,
        resource_group_name=rg_name,
        virtual_network_name=vnet.name,
        address_prefixes=[cfg.vnet_config.subnets["user"].address_prefix],
        service_endpoints=["Microsoft.ContainerRegistry", "Microsoft.KeyVault"],
        depends_on=[vnet],
    )

    SubnetNetworkSecurityGroupAssociation(
        scope, "subnetSystemNsgAssoc", subnet_id=subnet_system.id, network_security_group_id=nsg_aks.id
    )
    SubnetNetworkSecurityGroupAssociation(
        scope, "subnetUserNsgAssoc", subnet_id=subnet_user.id, network_security_group_id=nsg_aks.id
    )

    return vnet, subnet_system, subnet_user
