"""Tests for parameter collection."""

import http.client
import urllib.error

import pytest

from labctl.errors import MissingParameter
from labctl.params import (
    DEFAULT_REGION,
    DeploymentParameters,
    ParameterCollector,
    detect_public_ip,
    is_valid_guid,
    is_valid_ipv4,
    parse_bool,
)

GROUP = "33333333-3333-3333-3333-333333333333"
SUB_A = {"id": "aaaaaaaa-0000-0000-0000-000000000001", "name": "Lab A", "tenantId": "t-a"}
SUB_B = {"id": "bbbbbbbb-0000-0000-0000-000000000002", "name": "Lab B", "tenantId": "t-b"}


def no_prompt(message):
    raise AssertionError(f"unexpected prompt: {message}")


def scripted(*answers):
    queue = list(answers)
    asked = []

    def prompt(message):
        asked.append(message)
        return queue.pop(0)

    prompt.asked = asked
    return prompt


def collector(prompt=no_prompt, *, interactive=True, env=None, accounts=(SUB_A,), ip=None):
    lines = []
    c = ParameterCollector(
        interactive=interactive,
        env=env or {},
        prompt=prompt,
        list_accounts=lambda: list(accounts),
        ip_lookup=lambda: ip,
        out=lines.append,
    )
    c.lines = lines
    return c


class FakeResponse:
    def __init__(self, body):
        self.body = body

    def read(self):
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TestValidators:
    @pytest.mark.parametrize("value", ["203.0.113.10", "0.0.0.0", "255.255.255.255"])
    def test_valid_ipv4(self, value):
        assert is_valid_ipv4(value)

    @pytest.mark.parametrize(
        "value", ["203.0.113.10/32", "10.0.0.0/8", "256.1.1.1", "2001:db8::1", "", "abc"]
    )
    def test_invalid_ipv4(self, value):
        assert not is_valid_ipv4(value)

    def test_guid(self):
        assert is_valid_guid(GROUP)
        assert not is_valid_guid("not-a-guid")

    def test_parse_bool(self):
        assert parse_bool(" Yes ") is True
        assert parse_bool("0") is False
        assert parse_bool("maybe") is None


class TestDetectPublicIp:
    def test_returns_address(self):
        opener = lambda url, timeout: FakeResponse(b"198.51.100.7\n")
        assert detect_public_ip(opener=opener) == "198.51.100.7"

    def test_network_failure_returns_none(self):
        def opener(url, timeout):
            raise urllib.error.URLError("unreachable")

        assert detect_public_ip(opener=opener) is None

    def test_timeout_returns_none(self):
        def opener(url, timeout):
            raise TimeoutError()

        assert detect_public_ip(opener=opener) is None

    def test_malformed_body_returns_none(self):
        opener = lambda url, timeout: FakeResponse(b"<html>rate limited</html>")
        assert detect_public_ip(opener=opener) is None

    def test_bad_status_line_returns_none(self):
        def opener(url, timeout):
            raise http.client.BadStatusLine("NOT-HTTP garbage")

        assert detect_public_ip(opener=opener) is None

    def test_incomplete_read_returns_none(self):
        class Truncated(FakeResponse):
            def read(self):
                raise http.client.IncompleteRead(b"203.0")

        assert detect_public_ip(opener=lambda url, timeout: Truncated(b"")) is None

    def test_garbled_reply_falls_back_to_prompt(self):
        def opener(url, timeout):
            raise http.client.BadStatusLine("NOT-HTTP garbage")

        prompt = scripted("203.0.113.10")
        c = ParameterCollector(
            interactive=True,
            env={},
            prompt=prompt,
            list_accounts=lambda: [SUB_A],
            ip_lookup=lambda: detect_public_ip(opener=opener),
            out=lambda line: None,
        )
        params = c.collect(location="eastus", admin_group_id=GROUP, enable_defender=True)
        assert params.authorized_ip == "203.0.113.10"
        assert len(prompt.asked) == 1


class TestExplicitValues:
    def test_explicit_values_never_prompt(self):
        c = collector(no_prompt)
        params = c.collect(
            location="westeurope",
            admin_group_id=GROUP,
            subscription_id=SUB_A["id"],
            authorized_ip="203.0.113.10",
            enable_defender=False,
        )
        assert params.location == "westeurope"
        assert params.admin_group_object_id == GROUP
        assert params.subscription_id == SUB_A["id"]
        assert params.tenant_id == "t-a"
        assert params.authorized_ip == "203.0.113.10"
        assert params.enable_defender is False

    def test_environment_fills_gaps(self):
        env = {
            "LAB_LOCATION": "uksouth",
            "LAB_ADMIN_GROUP_ID": GROUP,
            "LAB_AUTHORIZED_IP": "198.51.100.1",
            "LAB_ENABLE_DEFENDER": "no",
            "AZURE_SUBSCRIPTION_ID": "Lab B",
            "LAB_LOG_RETENTION_DAYS": "90",
        }
        params = collector(no_prompt, env=env, accounts=(SUB_A, SUB_B)).collect()
        assert params.location == "uksouth"
        assert params.subscription_id == SUB_B["id"]
        assert params.enable_defender is False
        assert params.log_retention_days == 90

    def test_explicit_beats_environment(self):
        env = {"LAB_LOCATION": "uksouth", "LAB_ADMIN_GROUP_ID": GROUP}
        params = collector(no_prompt, env=env).collect(
            location="eastus2", authorized_ip="203.0.113.10", enable_defender=True
        )
        assert params.location == "eastus2"


class TestPrompting:
    def test_invalid_ip_reprompts_until_valid(self):
        prompt = scripted("203.0.113.10/32", "999.1.1.1", "203.0.113.10")
        c = collector(prompt)
        params = c.collect(location="eastus", admin_group_id=GROUP, enable_defender=True)
        assert params.authorized_ip == "203.0.113.10"
        assert len(prompt.asked) == 3
        assert sum("Invalid authorized_ip" in line for line in c.lines) == 2

    def test_detected_ip_used_without_prompt(self):
        c = collector(no_prompt, ip="198.51.100.7")
        params = c.collect(location="eastus", admin_group_id=GROUP, enable_defender=True)
        assert params.authorized_ip == "198.51.100.7"

    def test_failed_detection_falls_back_to_prompt(self):
        prompt = scripted("203.0.113.10")
        c = collector(prompt, ip=None)
        params = c.collect(location="eastus", admin_group_id=GROUP, enable_defender=True)
        assert params.authorized_ip == "203.0.113.10"
        assert any("Detection failed" in line for line in c.lines)

    def test_unsupported_region_reprompts(self):
        prompt = scripted("mars-north", "WestUS2")
        params = collector(prompt).collect(
            admin_group_id=GROUP, authorized_ip="203.0.113.10", enable_defender=True
        )
        assert params.location == "westus2"

    def test_invalid_explicit_region_prompts(self):
        prompt = scripted("eastus")
        c = collector(prompt)
        params = c.collect(
            location="nowhere",
            admin_group_id=GROUP,
            authorized_ip="203.0.113.10",
            enable_defender=True,
        )
        assert params.location == "eastus"
        assert any("Invalid location" in line for line in c.lines)

    def test_empty_region_answer_uses_default(self):
        params = collector(scripted("")).collect(
            admin_group_id=GROUP, authorized_ip="203.0.113.10", enable_defender=True
        )
        assert params.location == DEFAULT_REGION

    def test_empty_required_answer_raises(self):
        with pytest.raises(MissingParameter):
            collector(scripted("")).collect(
                location="eastus", authorized_ip="203.0.113.10", enable_defender=True
            )

    def test_defender_prompt_defaults_to_yes(self):
        params = collector(scripted("")).collect(
            location="eastus", admin_group_id=GROUP, authorized_ip="203.0.113.10"
        )
        assert params.enable_defender is True


class TestNonInteractive:
    def test_missing_required_value_raises(self):
        c = collector(interactive=False)
        with pytest.raises(MissingParameter) as info:
            c.collect(location="eastus", authorized_ip="203.0.113.10")
        assert info.value.field == "admin_group_id"

    def test_invalid_value_raises_instead_of_prompting(self):
        c = collector(interactive=False)
        with pytest.raises(MissingParameter):
            c.collect(location="eastus", admin_group_id=GROUP, authorized_ip="10.0.0.0/24")

    def test_defaults_apply(self):
        params = collector(interactive=False).collect(
            admin_group_id=GROUP, authorized_ip="203.0.113.10"
        )
        assert params.location == DEFAULT_REGION
        assert params.enable_defender is True


class TestSubscription:
    def test_single_subscription_selected_automatically(self):
        c = collector(no_prompt, accounts=(SUB_A,))
        sub_id, tenant = c._resolve_subscription(None)
        assert (sub_id, tenant) == (SUB_A["id"], "t-a")

    def test_menu_selection(self):
        prompt = scripted("3", "2")
        c = collector(prompt, accounts=(SUB_A, SUB_B))
        assert c._resolve_subscription(None) == (SUB_B["id"], "t-b")
        assert any("[2] Lab B" in line for line in c.lines)

    def test_many_subscriptions_non_interactive(self):
        c = collector(interactive=False, accounts=(SUB_A, SUB_B))
        with pytest.raises(MissingParameter):
            c._resolve_subscription(None)

    def test_none_visible(self):
        with pytest.raises(MissingParameter, match="az login"):
            collector(accounts=())._resolve_subscription(None)

    def test_unknown_explicit_subscription(self):
        with pytest.raises(MissingParameter, match="not visible"):
            collector(accounts=(SUB_A,))._resolve_subscription("ffffffff")


class TestDeploymentParameters:
    def test_authorized_range_appends_host_mask(self, params):
        assert params.authorized_ip_range == "203.0.113.10/32"

    def test_record_is_immutable(self, params):
        with pytest.raises(AttributeError):
            params.location = "westus2"

    def test_tags_are_read_only(self, params):
        with pytest.raises(TypeError):
            params.tags["owner"] = "someone"

    def test_caller_tags_are_copied(self):
        tags = {"owner": "sec"}
        record = DeploymentParameters(
            subscription_id="s",
            tenant_id="t",
            location="eastus",
            admin_group_object_id=GROUP,
            authorized_ip="203.0.113.10",
            enable_defender=True,
            tags=tags,
        )
        tags["owner"] = "changed"
        assert record.tags["owner"] == "sec"

    def test_resource_group_parameters(self, params, lab):
        values = params.resource_group_parameters(lab)
        assert values["namePrefix"] == "akslababc123"
        assert values["resourceGroupName"] == "rg-akslababc123"
        assert values["authorizedIpRange"] == "203.0.113.10/32"
        assert values["tags"]["lab"] == "akslababc123"

    def test_subscription_parameters_follow_defender_choice(self, params):
        off = DeploymentParameters(**{**params.__dict__, "enable_defender": False})
        values = off.subscription_parameters("/ws/id")
        assert values["logAnalyticsWorkspaceId"] == "/ws/id"
        assert values["enableDefenderForContainers"] is False
