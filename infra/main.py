"""
CDKTF entrypoint for the AKS security lab.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from cdktf import App, TerraformOutput

from stacks.azure_stack import stack_names, synth_config_json
from stacks.lab_stack import LabResourceGroupStack
from stacks.subscription_stack import LabSubscriptionStack
from utils.config_loader import load_lab_config, load_subscription_config, load_vars
from utils.validation import missing_env, format_missing_env_message


def main() -> None:
    repo_root = Path(__file__).resolve().parents[1]

    # Preflight: ensure required env vars are present before synthesizing
    required_env = ["ARM_SUBSCRIPTION_ID", "ARM_TENANT_ID"]
    missing = missing_env(env=os.environ, keys=required_env)
    if missing:
        msg = format_missing_env_message(missing)
        print(msg, file=sys.stderr)
        sys.exit(2)

    try:
        vars_map = load_vars(repo_root=repo_root)
        cfg = load_lab_config(vars_map)
        sub_cfg = load_subscription_config(vars_map)
    except (FileNotFoundError, KeyError, ValueError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)

    rg_stack_name, sub_stack_name = stack_names(cfg.name_prefix)

    app = App()
    try:
        rg_stack = LabResourceGroupStack(app, rg_stack_name, cfg)
        # The subscription stack exists only once the workspace id is known
        if sub_cfg is not None:
            LabSubscriptionStack(app, sub_stack_name, sub_cfg)
    except ValueError as ex:
        # Surface a concise, friendly message instead of a long traceback
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)

    # Surface a copy of the config used for traceability
    TerraformOutput(
        rg_stack, "configJson", value=json.dumps(synth_config_json(cfg), sort_keys=True)
    )

    try:
        app.synth()
    except Exception as ex:  # noqa: BLE001 - present actionable error
        print("Synthesis failed.", file=sys.stderr)
        print(str(ex), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
