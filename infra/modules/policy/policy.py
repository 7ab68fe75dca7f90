"""
Policy module.

Custom policy definitions and the initiative grouping them are created at
subscription scope; the initiative is then assigned to the lab resource
group. Terraform orders the three steps through the id references, and
explicit depends_on keeps the assignment after every definition.

Subscription-scoped definitions are not removed when the resource group
is deleted; teardown has to delete them by name.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from constructs import Construct

from cdktf_cdktf_provider_azurerm.policy_definition import PolicyDefinition
from cdktf_cdktf_provider_azurerm.policy_set_definition import PolicySetDefinition
from cdktf_cdktf_provider_azurerm.resource_group_policy_assignment import (
    ResourceGroupPolicyAssignment,
)

from iac_types import LabInfrastructureConfig


def _audit_when(*conditions: Dict[str, Any]) -> str:
    condition = conditions[0] if len(conditions) == 1 else {"allOf": list(conditions)}
    return json.dumps({"if": condition, "then": {"effect": "audit"}})


def lab_policy_rules(required_tag: str) -> Dict[str, Dict[str, str]]:
    """Definition key -> display name and JSON policy rule."""
    return {
        "require-lab-tag": {
            "display_name": f"Resources must carry the '{required_tag}' tag",
            "rule": _audit_when({"field": f"tags['{required_tag}']", "exists": "false"}),
        },
        "aks-authorized-ip-ranges": {
            "display_name": "AKS API server must restrict authorized IP ranges",
            "rule": _audit_when(
                {"field": "type", "equals": "Microsoft.ContainerService/managedClusters"},
                {
                    "count": {
                        "field": "Microsoft.ContainerService/managedClusters/apiServerAccessProfile.authorizedIPRanges[*]"
                    },
                    "equals": 0,
                },
            ),
        },
        "acr-admin-user-disabled": {
            "display_name": "Container registries must disable the admin user",
            "rule": _audit_when(
                {"field": "type", "equals": "Microsoft.ContainerRegistry/registries"},
                {
                    "field": "Microsoft.ContainerRegistry/registries/adminUserEnabled",
                    "equals": "true",
                },
            ),
        },
        "keyvault-rbac-authorization": {
            "display_name": "Key vaults must use RBAC authorization",
            "rule": _audit_when(
                {"field": "type", "equals": "Microsoft.KeyVault/vaults"},
                {
                    "field": "Microsoft.KeyVault/vaults/enableRbacAuthorization",
                    "notEquals": "true",
                },
            ),
        },
    }


def provision_policy(
    *, scope: Construct, cfg: LabInfrastructureConfig, resource_group_id: str
) -> Optional[ResourceGroupPolicyAssignment]:
    """Create definitions, the initiative and its assignment; None when disabled."""
    policy_cfg = cfg.policy_config
    if not policy_cfg.enabled:
        return None

    definitions: List[PolicyDefinition] = []
    for key, body in lab_policy_rules(policy_cfg.required_tag).items():
        definitions.append(
            PolicyDefinition(
                scope,
                f"policyDef-{key}",
                name=f"{cfg.name_prefix}-{key}",
                policy_type="Custom",
                mode="Indexed",
                display_name=body["display_name"],
                policy_rule=body["rule"],
                metadata=json.dumps({"category": "AKS Security Lab"}),
            )
        )

    initiative = PolicySetDefinition(
        scope,
        "policyInitiative",
        name=policy_cfg.initiative_name,
        policy_type="Custom",
        display_name=f"AKS security lab baseline ({cfg.name_prefix})",
        policy_definition_reference=[
            {"policy_definition_id": d.id, "reference_id": d.name} for d in definitions
        ],
        depends_on=definitions,
    )

    return ResourceGroupPolicyAssignment(
        scope,
        "policyAssignment",
        name=policy_cfg.assignment_name,
        resource_group_id=resource_group_id,
        policy_definition_id=initiative.id,
        display_name=f"AKS security lab baseline ({cfg.name_prefix})",
        depends_on=[initiative],
    )
