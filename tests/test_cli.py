"""Tests for the command-line entry point."""

import pytest

from labctl import cli
from labctl.provider import DeploymentResult, ProvisioningState


def test_missing_tool_exits_with_error(monkeypatch, capsys, tmp_path):
    monkeypatch.setattr("labctl.utils.shutil.which", lambda tool: None)
    code = cli.main(["deploy", "--non-interactive", "--project-dir", str(tmp_path)])
    assert code == 1
    assert "Required tool not found on PATH: az" in capsys.readouterr().err


def test_missing_project_files(monkeypatch, capsys, tmp_path):
    monkeypatch.setattr("labctl.utils.shutil.which", lambda tool: f"/usr/bin/{tool}")
    code = cli.main(["deploy", "--non-interactive", "--project-dir", str(tmp_path)])
    assert code == 1
    assert "cdktf.json" in capsys.readouterr().err


def test_destroy_rejects_foreign_prefix(capsys):
    assert cli.main(["destroy", "--name-prefix", "prod-cluster", "--yes"]) == 1
    assert "Not a lab name prefix" in capsys.readouterr().err


def test_destroy_aborts_without_confirmation(monkeypatch, capsys):
    monkeypatch.setattr("labctl.utils.shutil.which", lambda tool: f"/usr/bin/{tool}")
    monkeypatch.setattr("builtins.input", lambda message: "no")
    called = []
    monkeypatch.setattr(cli, "destroy_lab", lambda *a, **kw: called.append(a))
    assert cli.main(["destroy", "--name-prefix", "akslababc123"]) == 0
    assert called == []
    assert "Aborted." in capsys.readouterr().out


def test_subcommand_required():
    with pytest.raises(SystemExit):
        cli.main([])


def test_failed_resource_group_deploy_exits_with_portal_pointer(
    monkeypatch, capsys, tmp_path, params
):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "ensure_tools", lambda tools: None)
    monkeypatch.setattr(cli, "ensure_files", lambda paths: None)
    monkeypatch.setattr(cli.ParameterCollector, "collect", lambda self, **kw: params)
    stacks = []

    def deploy(self, stack, vars_file, outputs_file):
        stacks.append(stack)
        return DeploymentResult(stack=stack, state=ProvisioningState.FAILED, error="quota exceeded")

    monkeypatch.setattr(cli.CdktfDeploymentProvider, "deploy", deploy)

    code = cli.main(["deploy", "--non-interactive", "--project-dir", str(tmp_path)])

    captured = capsys.readouterr()
    assert code == 1
    assert len(stacks) == 1 and stacks[0].endswith("-rg")
    assert "/eventlogs" in captured.err
    assert "quota exceeded" in captured.err
    assert "Deployment completed successfully" not in captured.out
