"""
Preflight validation helpers.

Pure, minimal functions to validate required environment variables
and format actionable error messages for users.
"""

from __future__ import annotations

from typing import List, Mapping


def missing_env(env: Mapping[str, str], keys: List[str]) -> List[str]:
    """Return the list of keys missing in the provided environment mapping."""
    return [k for k in keys if not env.get(k)]


def format_missing_env_message(missing: List[str]) -> str:
    """Format a friendly, actionable message for missing env vars."""
    if not missing:
        return ""
    lines: List[str] = []
    lines.append("Preflight check failed: missing environment variables")
    lines.append("")
    lines.append("Missing:")
    for k in missing:
        lines.append(f"  - {k}")
    lines.append("")
    lines.append("These are exported by the deployment CLI. To run the app directly:")
    for k in missing:
        lines.append(f"  export {k}=<value>")
    lines.append("")
    lines.append("Or run the full pipeline: aks-lab deploy")
    return "\n".join(lines)
