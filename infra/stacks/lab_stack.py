"""
Resource-group stack.

Creates the lab resource group and walks the module dependency graph
layer by layer. Each module builder receives only the outputs of the
modules it declares in the graph.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

from constructs import Construct
from cdktf import TerraformOutput, TerraformStack

from cdktf_cdktf_provider_azurerm.provider import AzurermProvider
from cdktf_cdktf_provider_azurerm.resource_group import ResourceGroup

from iac_types import LabInfrastructureConfig
from modules.aks.aks import provision_aks
from modules.diagnostics.diagnostics import (
    provision_diagnostics,
    provision_workload_telemetry,
)
from modules.keyvault.keyvault import provision_key_vault
from modules.loganalytics.loganalytics import provision_log_analytics
from modules.network.network import provision_network
from modules.policy.policy import provision_policy
from modules.registry.registry import provision_registry
from modules.sentinel.sentinel import provision_sentinel
from stacks.module_graph import LAB_MODULES, deployment_order, inputs_for

Outputs = Dict[str, Any]
Inputs = Mapping[str, Mapping[str, Any]]


class LabResourceGroupStack(TerraformStack):
    """TerraformStack holding every resource-group-scoped lab module."""

    def __init__(self, scope: Construct, id: str, config: LabInfrastructureConfig) -> None:
        super().__init__(scope, id)
        self.config = config

        AzurermProvider(self, "azurerm", features=[{}])

        self.rg = ResourceGroup(
            self,
            "rg",
            name=config.resource_group_name,
            location=config.location,
            tags=config.tags,
        )

        builders: Dict[str, Callable[[Inputs], Outputs]] = {
            "log_analytics": self._log_analytics,
            "network": self._network,
            "registry": self._registry,
            "key_vault": self._key_vault,
            "aks": self._aks,
            "diagnostics": self._diagnostics,
            "workload_telemetry": self._workload_telemetry,
            "sentinel": self._sentinel,
            "policy": self._policy,
        }

        produced: Dict[str, Outputs] = {}
        for module in deployment_order(LAB_MODULES):
            produced[module.name] = builders[module.name](inputs_for(module, produced))

        law = produced["log_analytics"]
        aks = produced["aks"]
        acr = produced["registry"]
        kv = produced["key_vault"]
        TerraformOutput(self, "resourceGroupName", value=self.rg.name)
        TerraformOutput(self, "clusterName", value=aks["name"])
        TerraformOutput(self, "clusterFqdn", value=aks["fqdn"])
        TerraformOutput(self, "workspaceName", value=law["name"])
        TerraformOutput(self, "workspaceId", value=law["id"])
        TerraformOutput(self, "registryLoginServer", value=acr["login_server"])
        TerraformOutput(self, "keyVaultName", value=kv["name"])
        TerraformOutput(self, "keyVaultUri", value=kv["uri"])

    # Foundation

    def _log_analytics(self, inputs: Inputs) -> Outputs:
        law = provision_log_analytics(scope=self, cfg=self.config, rg_name=self.rg.name)
        return {"id": law.id, "name": law.name}

    def _network(self, inputs: Inputs) -> Outputs:
        vnet, subnet_system, subnet_user = provision_network(
            scope=self, cfg=self.config, rg_name=self.rg.name
        )
        return {"vnet_id": vnet.id, "subnet_system": subnet_system, "subnet_user": subnet_user}

    def _registry(self, inputs: Inputs) -> Outputs:
        acr = provision_registry(scope=self, cfg=self.config, rg_name=self.rg.name)
        return {"id": acr.id, "login_server": acr.login_server}

    def _key_vault(self, inputs: Inputs) -> Outputs:
        kv, _tenant_id = provision_key_vault(scope=self, cfg=self.config, rg_name=self.rg.name)
        return {"id": kv.id, "name": kv.name, "uri": kv.vault_uri}

    # Compute

    def _aks(self, inputs: Inputs) -> Outputs:
        aks = provision_aks(
            scope=self,
            cfg=self.config,
            rg_name=self.rg.name,
            subnet_system=inputs["network"]["subnet_system"],
            subnet_user=inputs["network"]["subnet_user"],
            workspace_id=inputs["log_analytics"]["id"],
            registry_id=inputs["registry"]["id"],
        )
        return {"id": aks.id, "name": aks.name, "fqdn": aks.fqdn}

    # Monitoring

    def _diagnostics(self, inputs: Inputs) -> Outputs:
        provision_diagnostics(
            scope=self,
            cfg=self.config,
            workspace_id=inputs["log_analytics"]["id"],
            targets={
                "aks": inputs["aks"]["id"],
                "key_vault": inputs["key_vault"]["id"],
                "registry": inputs["registry"]["id"],
            },
        )
        return {}

    def _workload_telemetry(self, inputs: Inputs) -> Outputs:
        rule = provision_workload_telemetry(
            scope=self,
            cfg=self.config,
            rg_name=self.rg.name,
            workspace_id=inputs["log_analytics"]["id"],
            cluster_id=inputs["aks"]["id"],
        )
        return {"dcr_id": rule.id}

    def _sentinel(self, inputs: Inputs) -> Outputs:
        onboarding = provision_sentinel(
            scope=self, cfg=self.config, workspace_id=inputs["log_analytics"]["id"]
        )
        return {"workspace_id": onboarding.workspace_id}

    # Governance

    def _policy(self, inputs: Inputs) -> Outputs:
        assignment = provision_policy(
            scope=self, cfg=self.config, resource_group_id=self.rg.id
        )
        return {"assignment_id": assignment.id} if assignment is not None else {}
