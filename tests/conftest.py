"""Shared fixtures: no test touches Azure, cdktf or kubectl."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from labctl.configure import ConfigureReport
from labctl.lab import LabInstance
from labctl.params import DeploymentParameters
from labctl.provider import DeploymentResult, ProvisioningState


class FakeProvider:
    """Records deploy calls and replays scripted results per stack."""

    def __init__(self, results: Optional[Dict[str, Any]] = None) -> None:
        self.results = results or {}
        self.calls: List[str] = []
        self.vars_snapshots: List[Dict[str, Any]] = []

    def deploy(self, stack: str, vars_file: Path, outputs_file: Path) -> DeploymentResult:
        self.calls.append(stack)
        self.vars_snapshots.append(json.loads(vars_file.read_text(encoding="utf-8")))
        result = self.results.get(stack)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return DeploymentResult(stack=stack, state=ProvisioningState.SUCCEEDED)
        return result


class FakeConfigure:
    def __init__(self, report: Optional[ConfigureReport] = None) -> None:
        self.calls: List[tuple] = []
        self.report = report or ConfigureReport(credentials_ok=True)

    def __call__(self, resource_group, cluster_name, **kwargs) -> ConfigureReport:
        self.calls.append((resource_group, cluster_name))
        return self.report


@pytest.fixture
def lab() -> LabInstance:
    return LabInstance.create("abc123")


@pytest.fixture
def params() -> DeploymentParameters:
    return DeploymentParameters(
        subscription_id="11111111-1111-1111-1111-111111111111",
        tenant_id="22222222-2222-2222-2222-222222222222",
        location="eastus",
        admin_group_object_id="33333333-3333-3333-3333-333333333333",
        authorized_ip="203.0.113.10",
        enable_defender=True,
    )


@pytest.fixture
def rg_outputs(lab) -> Dict[str, Any]:
    return {
        "resourceGroupName": lab.resource_group,
        "clusterName": f"{lab.name_prefix}-aks",
        "clusterFqdn": f"{lab.name_prefix}-aks-dns.hcp.eastus.azmk8s.io",
        "workspaceName": f"{lab.name_prefix}-law",
        "workspaceId": "/subscriptions/x/resourceGroups/y/providers/Microsoft.OperationalInsights/workspaces/z",
        "registryLoginServer": f"{lab.name_prefix}acr.azurecr.io",
        "keyVaultName": f"{lab.name_prefix}-kv",
        "keyVaultUri": f"https://{lab.name_prefix}-kv.vault.azure.net/",
    }


@pytest.fixture
def fake_configure() -> FakeConfigure:
    return FakeConfigure()
