"""Post-deploy cluster configuration.

Binds kubectl to the new cluster and applies the lab manifests. Nothing
here is fatal: a credential failure skips the manifests and hands back the
command to run by hand, and each manifest is applied independently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Sequence

from .errors import CmdError, CredentialConfigurationFailed, ManifestApplyFailed
from .utils import convert_kubeconfig, get_aks_credentials, kubectl_apply

logger = logging.getLogger(__name__)

MANIFESTS: Sequence[Path] = (
    Path("k8s/namespaces.yaml"),
    Path("k8s/network-policies.yaml"),
    Path("k8s/rbac.yaml"),
    Path("k8s/workloads.yaml"),
)

APPLIED = "applied"
MISSING = "missing"
FAILED = "failed"


@dataclass(frozen=True)
class ManifestStatus:
    path: Path
    status: str
    detail: str = ""


@dataclass
class ConfigureReport:
    credentials_ok: bool
    manifests: List[ManifestStatus] = field(default_factory=list)
    follow_up: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.credentials_ok and all(m.status == APPLIED for m in self.manifests)


def credentials_command(resource_group: str, cluster_name: str) -> str:
    return (
        f"az aks get-credentials -g {resource_group} -n {cluster_name} --overwrite-existing"
        " && kubelogin convert-kubeconfig -l azurecli"
    )


def configure_credentials(
    resource_group: str,
    cluster_name: str,
    get_credentials: Callable[[str, str], None] = get_aks_credentials,
    convert: Callable[[], None] = convert_kubeconfig,
) -> None:
    try:
        get_credentials(resource_group, cluster_name)
        convert()
    except (CmdError, OSError) as ex:
        raise CredentialConfigurationFailed(str(ex)) from ex


def apply_manifest(path: Path, apply: Callable[[Path], str] = kubectl_apply) -> ManifestStatus:
    if not path.exists():
        return ManifestStatus(path, MISSING, "file not found")
    try:
        apply(path)
    except (CmdError, OSError) as ex:
        failure = ManifestApplyFailed(path, (str(ex).splitlines() or [repr(ex)])[0])
        return ManifestStatus(path, FAILED, str(failure))
    return ManifestStatus(path, APPLIED)


def configure_cluster(
    resource_group: str,
    cluster_name: str,
    *,
    base_dir: Path = Path("."),
    manifests: Sequence[Path] = MANIFESTS,
    get_credentials: Callable[[str, str], None] = get_aks_credentials,
    convert: Callable[[], None] = convert_kubeconfig,
    apply: Callable[[Path], str] = kubectl_apply,
    out: Callable[[str], None] = print,
) -> ConfigureReport:
    """Fetch credentials, then apply each manifest in order regardless of earlier failures."""
    out(f"Configuring kubectl for {resource_group}/{cluster_name}...")
    try:
        configure_credentials(resource_group, cluster_name, get_credentials, convert)
    except CredentialConfigurationFailed as ex:
        logger.warning("Credential configuration failed: %s", ex)
        out("  WARNING: could not configure cluster credentials; skipping manifests.")
        follow_up = [credentials_command(resource_group, cluster_name)]
        follow_up += [f"kubectl apply -f {m}" for m in manifests]
        return ConfigureReport(credentials_ok=False, follow_up=follow_up)

    report = ConfigureReport(credentials_ok=True)
    for manifest in manifests:
        status = apply_manifest(base_dir / manifest, apply)
        report.manifests.append(status)
        if status.status == APPLIED:
            out(f"  [ok]      {manifest}")
        else:
            logger.warning("Manifest %s %s: %s", manifest, status.status, status.detail)
            out(f"  [{status.status}] {manifest}: {status.detail}")
            if status.status == FAILED:
                report.follow_up.append(f"kubectl apply -f {manifest}")
    return report
