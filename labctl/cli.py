from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .cleanup import destroy_lab
from .errors import CmdError, DeploymentFailed
from .lab import LabInstance
from .params import DeploymentParameters, ParameterCollector
from .pipeline import VARS_FILE, run_pipeline, section
from .provider import CdktfDeploymentProvider, write_vars_file
from .report import portal_activity_url
from .utils import ensure_files, ensure_tools

REQUIRED_TOOLS = ("az", "cdktf", "terraform", "kubectl")


def _interactive(args: argparse.Namespace) -> bool:
    return not args.non_interactive and sys.stdin.isatty()


def _preflight(project: Path, tools=REQUIRED_TOOLS) -> None:
    section("Validating prerequisites")
    ensure_tools(tools)
    ensure_files([project / "cdktf.json", project / "main.py"])
    print("Tooling and project files present.")


def _collect(args: argparse.Namespace) -> DeploymentParameters:
    section("Collecting parameters")
    collector = ParameterCollector(interactive=_interactive(args))
    return collector.collect(
        location=args.location,
        admin_group_id=args.admin_group_id,
        subscription_id=args.subscription_id,
        authorized_ip=args.authorized_ip,
        enable_defender=args.enable_defender,
    )


def deploy(args: argparse.Namespace) -> None:
    project = Path(args.project_dir)
    _preflight(project)
    params = _collect(args)
    lab = LabInstance.create()
    provider = CdktfDeploymentProvider(project, env=params.arm_env())
    try:
        run_pipeline(params, lab, provider)
    except DeploymentFailed:
        print(
            "Inspect the failure in the resource group's activity log:\n  "
            + portal_activity_url(params.tenant_id, params.subscription_id, lab.resource_group),
            file=sys.stderr,
        )
        raise


def synth(args: argparse.Namespace) -> None:
    project = Path(args.project_dir)
    _preflight(project, tools=("az", "cdktf"))
    params = _collect(args)
    lab = LabInstance.create()
    vars_file = write_vars_file(
        lab.state_dir() / VARS_FILE, params.resource_group_parameters(lab)
    )
    print(f"Synthesizing CDKTF for {lab.name_prefix}...")
    CdktfDeploymentProvider(project, env=params.arm_env()).synth(vars_file)
    print(f"Synth completed; Terraform JSON under {project / 'cdktf.out'}.")


def destroy(args: argparse.Namespace) -> None:
    lab = LabInstance.from_prefix(args.name_prefix)
    ensure_tools(["az"])
    if not args.yes:
        answer = input(f"Type '{lab.name_prefix}' to delete this lab: ").strip()
        if answer != lab.name_prefix:
            print("Aborted.")
            return
    destroy_lab(lab, project_dir=Path(args.project_dir))
    print("Destroy completed.")


def _add_parameter_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--location", help="Azure region (prompted if omitted)")
    p.add_argument("--admin-group-id", help="Entra ID group granted cluster admin")
    p.add_argument("--subscription-id")
    p.add_argument(
        "--authorized-ip",
        help="Public IPv4 allowed to reach the API server (detected if omitted)",
    )
    p.add_argument(
        "--enable-defender",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable Defender for Containers and Key Vault",
    )
    p.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; fail on any parameter that cannot be resolved",
    )
    p.add_argument("--project-dir", default="infra")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="aks-lab", description="AKS security lab deployment CLI"
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("deploy", help="Deploy a new lab instance")
    _add_parameter_flags(d)
    d.set_defaults(func=deploy)

    s = sub.add_parser("synth", help="Synthesize Terraform JSON without deploying")
    _add_parameter_flags(s)
    s.set_defaults(func=synth)

    ds = sub.add_parser("destroy", help="Delete a lab instance and its subscription objects")
    ds.add_argument("--name-prefix", required=True, help="e.g. akslab1a2b3c")
    ds.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    ds.add_argument("--project-dir", default="infra")
    ds.set_defaults(func=destroy)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (CmdError, ValueError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
