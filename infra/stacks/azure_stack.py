"""
Azure stack config helpers.

Stack naming and diagnostics for the typed configs used by the CDKTF
stacks. The deployment CLI derives the same stack names from the prefix.
"""

from dataclasses import asdict
from typing import Any, Dict, Tuple

from iac_types import LabInfrastructureConfig


def stack_names(name_prefix: str) -> Tuple[str, str]:
    """Return (resource_group_stack, subscription_stack) for a lab prefix."""
    return f"{name_prefix}-rg", f"{name_prefix}-sub"


def synth_config_json(config: LabInfrastructureConfig) -> Dict[str, Any]:
    """Convert dataclasses to plain dict for diagnostics or outputs."""
    return asdict(config)
