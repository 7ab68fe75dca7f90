"""
Key Vault module.

Creates Azure Key Vault with RBAC enabled.
"""

from __future__ import annotations

import os
from typing import Tuple

from constructs import Construct

from cdktf_cdktf_provider_azurerm.key_vault import KeyVault

from iac_types import LabInfrastructureConfig


def provision_key_vault(
    *, scope: Construct, cfg: LabInfrastructureConfig, rg_name: str
) -> Tuple[KeyVault, str]:
    """Provision Key Vault and return (vault, tenant_id)."""
    tenant_id = os.getenv("ARM_TENANT_ID")
    if not tenant_id:
        raise ValueError("ARM_TENANT_ID must be set for Key Vault tenant binding")
    kv_cfg = cfg.key_vault_config
    kv = KeyVault(
        scope,
        "keyVault",
        name=kv_cfg.vault_name,
        location=cfg.location,
        resource_group_name=rg_name,
        tenant_id=tenant_id,
        sku_name=kv_cfg.sku,
        soft_delete_retention_days=kv_cfg.soft_delete_retention_days,
        purge_protection_enabled=kv_cfg.purge_protection_enabled,
        rbac_authorization_enabled=True,
        public_network_access_enabled=True,
        network_acls={
            "bypass": "AzureServices",
            "default_action": "Deny",
            "ip_rules": cfg.aks_config.authorized_ip_ranges,
        },
        tags=cfg.tags,
    )
    return kv, tenant_id
