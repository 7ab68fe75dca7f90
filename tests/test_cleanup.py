"""Tests for lab teardown."""

import pytest

from labctl.cleanup import destroy_lab
from labctl.errors import CmdError


class FakeAz:
    def __init__(self, queries=None, group_error=None):
        self.queries = queries or {}
        self.group_error = group_error
        self.commands = []

    def run(self, args, echo=False):
        self.commands.append(args)
        if args[:2] == ["group", "delete"] and self.group_error:
            raise self.group_error
        return ""

    def query(self, args):
        return self.queries.get(tuple(args[:2]), [])


def destroy(lab, tmp_path, fake):
    return destroy_lab(
        lab,
        project_dir=tmp_path,
        state_root=tmp_path / ".lab",
        az_run=fake.run,
        az_query=fake.query,
        out=lambda line: None,
    )


def test_removes_group_then_policies_then_settings(lab, tmp_path):
    fake = FakeAz(
        {
            ("policy", "set-definition"): ["akslababc123-baseline"],
            ("policy", "definition"): ["akslababc123-require-lab-tag"],
            ("monitor", "diagnostic-settings"): {
                "value": [{"name": "akslababc123-activity-log"}, {"name": "corp-export"}]
            },
        }
    )
    removed = destroy(lab, tmp_path, fake)
    verbs = [" ".join(cmd[:3]) for cmd in fake.commands]
    assert verbs == [
        "group delete -n",
        "policy set-definition delete",
        "policy definition delete",
        "monitor diagnostic-settings subscription",
    ]
    assert removed == [
        "akslababc123-baseline",
        "akslababc123-require-lab-tag",
        "akslababc123-activity-log",
    ]


def test_missing_group_is_tolerated(lab, tmp_path):
    fake = FakeAz(group_error=CmdError("ResourceGroupNotFound"))
    assert destroy(lab, tmp_path, fake) == []


def test_other_group_errors_propagate(lab, tmp_path):
    fake = FakeAz(group_error=CmdError("AuthorizationFailed"))
    with pytest.raises(CmdError):
        destroy(lab, tmp_path, fake)


def test_local_state_removed(lab, tmp_path):
    state_file = tmp_path / f"terraform.{lab.rg_stack}.tfstate"
    state_file.write_text("{}", encoding="utf-8")
    state_dir = lab.state_dir(tmp_path / ".lab")
    state_dir.mkdir(parents=True)
    (state_dir / "lab.tfvars.json").write_text("{}", encoding="utf-8")

    destroy(lab, tmp_path, FakeAz())
    assert not state_file.exists()
    assert not state_dir.exists()
