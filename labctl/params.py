"""Deployment parameter collection.

Every required value is resolved once, up front, through the same chain:
explicit flag, environment, interactive prompt, computed default. The
result is an immutable ``DeploymentParameters`` record that later stages
receive unchanged.
"""

from __future__ import annotations

import http.client
import ipaddress
import logging
import os
import re
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import MissingParameter
from .lab import LabInstance
from .utils import az_json, resolve_with_fallback

logger = logging.getLogger(__name__)

SUPPORTED_REGIONS = (
    "eastus",
    "eastus2",
    "centralus",
    "westus2",
    "westus3",
    "northeurope",
    "westeurope",
    "uksouth",
    "swedencentral",
    "australiaeast",
    "southeastasia",
    "japaneast",
)
DEFAULT_REGION = "eastus"

IP_ECHO_URL = "https://api.ipify.org"
IP_LOOKUP_TIMEOUT = 10

DEFAULT_TAGS = {"environment": "lab", "managedBy": "aks-lab"}

_GUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_TRUE = ("y", "yes", "true", "1")
_FALSE = ("n", "no", "false", "0")


def is_valid_ipv4(value: str) -> bool:
    """Dotted-quad IPv4 only; CIDR suffixes are rejected."""
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def is_valid_guid(value: str) -> bool:
    return bool(_GUID_RE.match(value))


def parse_bool(value: str) -> Optional[bool]:
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return None


def detect_public_ip(
    url: str = IP_ECHO_URL,
    timeout: float = IP_LOOKUP_TIMEOUT,
    opener: Callable[..., Any] = urllib.request.urlopen,
) -> Optional[str]:
    """Ask a public IP-echo endpoint for the caller's address; None on any failure."""
    try:
        with opener(url, timeout=timeout) as resp:
            body = resp.read().decode("utf-8", errors="replace").strip()
    except (
        urllib.error.URLError,
        http.client.HTTPException,
        TimeoutError,
        OSError,
        ValueError,
    ) as ex:
        logger.warning("Public IP lookup failed: %s", ex)
        return None
    if not is_valid_ipv4(body):
        logger.warning("Public IP lookup returned a malformed response: %r", body[:64])
        return None
    return body


def _list_enabled_accounts() -> List[Dict[str, Any]]:
    return az_json(["account", "list", "--query", "[?state=='Enabled']"]) or []


@dataclass(frozen=True)
class DeploymentParameters:
    subscription_id: str
    tenant_id: str
    location: str
    admin_group_object_id: str
    authorized_ip: str
    enable_defender: bool
    log_retention_days: int = 30
    kubernetes_version: str = ""
    system_node_vm_size: str = "Standard_D2s_v5"
    user_node_vm_size: str = "Standard_D4s_v5"
    enable_azure_policy: bool = True
    enable_sentinel_solutions: bool = True
    tags: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_TAGS))

    def __post_init__(self) -> None:
        # Read-only view so the record stays immutable
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @property
    def authorized_ip_range(self) -> str:
        return f"{self.authorized_ip}/32"

    def resource_group_parameters(self, lab: LabInstance) -> Dict[str, Any]:
        """Flat parameter map for the resource-group stack."""
        return {
            "namePrefix": lab.name_prefix,
            "resourceGroupName": lab.resource_group,
            "location": self.location,
            "adminGroupObjectId": self.admin_group_object_id,
            "authorizedIpRange": self.authorized_ip_range,
            "logRetentionDays": self.log_retention_days,
            "kubernetesVersion": self.kubernetes_version,
            "systemNodeVmSize": self.system_node_vm_size,
            "userNodeVmSize": self.user_node_vm_size,
            "enableDefender": self.enable_defender,
            "enableAzurePolicy": self.enable_azure_policy,
            "enableSentinelSolutions": self.enable_sentinel_solutions,
            "tags": {**self.tags, "lab": lab.name_prefix},
        }

    def subscription_parameters(self, workspace_id: str) -> Dict[str, Any]:
        return {
            "location": self.location,
            "logAnalyticsWorkspaceId": workspace_id,
            "enableDefenderForContainers": self.enable_defender,
            "enableDefenderForKeyVault": self.enable_defender,
        }

    def arm_env(self) -> Dict[str, str]:
        return {
            "ARM_SUBSCRIPTION_ID": self.subscription_id,
            "ARM_TENANT_ID": self.tenant_id,
        }


class ParameterCollector:
    """Resolves every deployment parameter, prompting only when allowed."""

    def __init__(
        self,
        *,
        interactive: bool = True,
        env: Optional[Mapping[str, str]] = None,
        prompt: Callable[[str], str] = input,
        list_accounts: Callable[[], List[Dict[str, Any]]] = _list_enabled_accounts,
        ip_lookup: Callable[[], Optional[str]] = detect_public_ip,
        out: Callable[[str], None] = print,
    ) -> None:
        self.interactive = interactive
        self.env = os.environ if env is None else env
        self.prompt = prompt
        self.list_accounts = list_accounts
        self.ip_lookup = ip_lookup
        self.out = out

    def collect(
        self,
        *,
        location: Optional[str] = None,
        admin_group_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        authorized_ip: Optional[str] = None,
        enable_defender: Optional[bool] = None,
    ) -> DeploymentParameters:
        sub_id, tenant_id = self._resolve_subscription(subscription_id)
        region = self._resolve_validated(
            "location",
            location,
            env_key="LAB_LOCATION",
            is_valid=lambda v: v in SUPPORTED_REGIONS,
            message=f"Azure region [{DEFAULT_REGION}]: ",
            error=f"Supported regions: {', '.join(SUPPORTED_REGIONS)}",
            normalize=lambda v: v.strip().lower(),
            default=DEFAULT_REGION,
        )
        group = self._resolve_validated(
            "admin_group_id",
            admin_group_id,
            env_key="LAB_ADMIN_GROUP_ID",
            is_valid=is_valid_guid,
            message="Entra ID admin group object id: ",
            error="Expected a GUID such as 00000000-0000-0000-0000-000000000000.",
        )
        ip = self._resolve_validated(
            "authorized_ip",
            authorized_ip,
            env_key="LAB_AUTHORIZED_IP",
            is_valid=is_valid_ipv4,
            message="Your public IPv4 address (API server allow-list): ",
            error="Expected an IPv4 address such as 203.0.113.10 (no CIDR suffix).",
            fallbacks=(self._lookup_ip,),
        )
        defender = self._resolve_defender(enable_defender)

        return DeploymentParameters(
            subscription_id=sub_id,
            tenant_id=tenant_id,
            location=region,
            admin_group_object_id=group,
            authorized_ip=ip,
            enable_defender=defender,
            log_retention_days=self._env_int("LAB_LOG_RETENTION_DAYS", 30, low=30, high=730),
            kubernetes_version=self.env.get("LAB_KUBERNETES_VERSION", ""),
            system_node_vm_size=self.env.get("LAB_SYSTEM_NODE_VM_SIZE") or "Standard_D2s_v5",
            user_node_vm_size=self.env.get("LAB_USER_NODE_VM_SIZE") or "Standard_D4s_v5",
            enable_azure_policy=self._env_bool("LAB_ENABLE_AZURE_POLICY", True),
            enable_sentinel_solutions=self._env_bool("LAB_ENABLE_SENTINEL_SOLUTIONS", True),
        )

    # Resolution helpers

    def _resolve_validated(
        self,
        name: str,
        explicit: Optional[str],
        *,
        env_key: str,
        is_valid: Callable[[str], bool],
        message: str,
        error: str,
        normalize: Callable[[str], str] = str.strip,
        default: Optional[str] = None,
        fallbacks: Tuple[Callable[[], Optional[str]], ...] = (),
    ) -> str:
        candidate = resolve_with_fallback(
            explicit, lambda: self.env.get(env_key), *fallbacks
        )
        if candidate is not None:
            candidate = normalize(candidate)
            if is_valid(candidate):
                return candidate
            self.out(f"  Invalid {name}: {candidate!r}. {error}")
            if not self.interactive:
                raise MissingParameter(name, f"invalid value {candidate!r}")
        return self._prompt_until_valid(name, message, is_valid, error, normalize, default)

    def _prompt_until_valid(
        self,
        name: str,
        message: str,
        is_valid: Callable[[str], bool],
        error: str,
        normalize: Callable[[str], str] = str.strip,
        default: Optional[str] = None,
    ) -> str:
        if not self.interactive:
            if default is not None:
                return default
            raise MissingParameter(name, "not supplied and prompting is disabled")
        while True:
            answer = normalize(self.prompt(message))
            if not answer:
                if default is not None:
                    return default
                raise MissingParameter(name)
            if is_valid(answer):
                return answer
            self.out(f"  Invalid {name}: {answer!r}. {error}")

    def _lookup_ip(self) -> Optional[str]:
        self.out("Detecting your public IP address...")
        ip = self.ip_lookup()
        if ip:
            self.out(f"  Detected {ip}")
        else:
            self.out("  Detection failed; falling back to manual entry.")
        return ip

    def _resolve_subscription(self, explicit: Optional[str]) -> Tuple[str, str]:
        wanted = resolve_with_fallback(explicit, lambda: self.env.get("AZURE_SUBSCRIPTION_ID"))
        accounts = self.list_accounts()
        if wanted:
            for acct in accounts:
                if wanted in (acct.get("id"), acct.get("name")):
                    return acct["id"], acct.get("tenantId", "")
            raise MissingParameter(
                "subscription_id", f"{wanted} is not visible to the signed-in account"
            )
        if not accounts:
            raise MissingParameter(
                "subscription_id", "no enabled subscriptions visible; run 'az login'"
            )
        if len(accounts) == 1:
            acct = accounts[0]
            self.out(f"Using subscription {acct.get('name')} ({acct['id']})")
            return acct["id"], acct.get("tenantId", "")
        if not self.interactive:
            raise MissingParameter(
                "subscription_id",
                f"{len(accounts)} subscriptions visible; pass --subscription-id",
            )

        self.out("Available subscriptions:")
        for i, acct in enumerate(accounts, start=1):
            marker = " (default)" if acct.get("isDefault") else ""
            self.out(f"  [{i}] {acct.get('name')} ({acct['id']}){marker}")
        choice = self._prompt_until_valid(
            "subscription_id",
            f"Select subscription [1-{len(accounts)}]: ",
            lambda v: v.isdigit() and 1 <= int(v) <= len(accounts),
            f"Enter a number between 1 and {len(accounts)}.",
        )
        acct = accounts[int(choice) - 1]
        return acct["id"], acct.get("tenantId", "")

    def _resolve_defender(self, explicit: Optional[bool]) -> bool:
        if explicit is not None:
            return explicit
        env_value = self.env.get("LAB_ENABLE_DEFENDER")
        if env_value:
            parsed = parse_bool(env_value)
            if parsed is not None:
                return parsed
            self.out(f"  Ignoring LAB_ENABLE_DEFENDER={env_value!r}: expected yes/no.")
        if not self.interactive:
            return True
        answer = self._prompt_until_valid(
            "enable_defender",
            "Enable Microsoft Defender for Containers and Key Vault? [Y/n]: ",
            lambda v: parse_bool(v) is not None,
            "Answer y or n.",
            default="y",
        )
        return bool(parse_bool(answer))

    def _env_bool(self, key: str, default: bool) -> bool:
        raw = self.env.get(key)
        if not raw:
            return default
        parsed = parse_bool(raw)
        if parsed is None:
            raise MissingParameter(key, f"expected a boolean, got {raw!r}")
        return parsed

    def _env_int(self, key: str, default: int, *, low: int, high: int) -> int:
        raw = self.env.get(key)
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError:
            raise MissingParameter(key, f"expected an integer, got {raw!r}") from None
        if not low <= value <= high:
            raise MissingParameter(key, f"must be within {low}..{high}, got {value}")
        return value
