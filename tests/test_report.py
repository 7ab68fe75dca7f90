"""Tests for the deployment summary."""

from pathlib import Path

from labctl.configure import APPLIED, FAILED, ConfigureReport, ManifestStatus
from labctl.provider import StageOk, StageWarning
from labctl.report import NOT_AVAILABLE, portal_activity_url, render_summary


def line_for(lines, label):
    return next(line for line in lines if line.startswith(label))


def test_outputs_are_reported(lab, params, rg_outputs):
    sub = StageOk({"defenderPlans": "Containers, KeyVaults", "activityLogSetting": "akslababc123-activity-log"})
    report = ConfigureReport(credentials_ok=True, manifests=[ManifestStatus(Path("a"), APPLIED)])
    lines = render_summary(lab, params, rg_outputs, sub, report)
    assert line_for(lines, "AKS cluster:").endswith("akslababc123-aks")
    assert line_for(lines, "Defender plans:").endswith("Containers, KeyVaults")
    assert line_for(lines, "Authorized range:").endswith("203.0.113.10/32")
    assert line_for(lines, "Manifests applied:").endswith("1/1")


def test_missing_outputs_use_computed_defaults(lab, params):
    lines = render_summary(lab, params, {}, StageWarning("denied"), ConfigureReport(True))
    assert line_for(lines, "AKS cluster:").endswith(lab.default_cluster_name)
    assert line_for(lines, "Resource group:").endswith(lab.resource_group)
    assert line_for(lines, "Container registry:").endswith(lab.default_registry_login_server)
    assert line_for(lines, "API server FQDN:").endswith(NOT_AVAILABLE)


def test_subscription_warning_reports_not_available(lab, params, rg_outputs):
    lines = render_summary(lab, params, rg_outputs, StageWarning("denied"), ConfigureReport(True))
    assert line_for(lines, "Defender plans:").endswith(NOT_AVAILABLE)
    assert line_for(lines, "Activity log export:").endswith(NOT_AVAILABLE)


def test_follow_up_commands_listed(lab, params, rg_outputs):
    report = ConfigureReport(
        credentials_ok=True,
        manifests=[ManifestStatus(Path("k8s/rbac.yaml"), FAILED, "forbidden")],
        follow_up=["kubectl apply -f k8s/rbac.yaml"],
    )
    lines = render_summary(lab, params, rg_outputs, StageOk({}), report)
    assert "    kubectl apply -f k8s/rbac.yaml" in lines
    assert f"  aks-lab destroy --name-prefix {lab.name_prefix}" in lines
    assert "  az acr login -n akslababc123acr" in lines


def test_credentials_not_configured(lab, params, rg_outputs):
    lines = render_summary(lab, params, rg_outputs, StageOk({}), ConfigureReport(False))
    assert NOT_AVAILABLE in line_for(lines, "Manifests applied:")


def test_portal_activity_url():
    url = portal_activity_url("tenant", "sub", "rg-akslababc123")
    assert url == (
        "https://portal.azure.com/#@tenant/resource/subscriptions/sub"
        "/resourceGroups/rg-akslababc123/eventlogs"
    )
