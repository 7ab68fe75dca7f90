"""Error taxonomy for the deployment pipeline.

Fatal errors abort the remaining stages and are reported by the CLI with
exit code 1. ``CredentialConfigurationFailed`` and ``ManifestApplyFailed``
are raised and caught inside the post-deploy stage and only degrade it.
"""

from __future__ import annotations


class CmdError(Exception):
    pass


class MissingPrerequisiteTool(CmdError):
    def __init__(self, tool: str, hint: str = "") -> None:
        self.tool = tool
        msg = f"Required tool not found on PATH: {tool}"
        super().__init__(f"{msg}. {hint}" if hint else msg)


class MissingRequiredFile(CmdError):
    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Required file not found: {path}")


class MissingParameter(CmdError):
    def __init__(self, field: str, detail: str = "") -> None:
        self.field = field
        msg = f"Missing required parameter: {field}"
        super().__init__(f"{msg} ({detail})" if detail else msg)


class DeploymentFailed(CmdError):
    """A deployment reached a terminal state other than Succeeded."""

    def __init__(self, scope: str, stack: str, reason: str = "") -> None:
        self.scope = scope
        self.stack = stack
        self.reason = reason
        msg = f"{scope} deployment '{stack}' failed"
        super().__init__(f"{msg}: {reason}" if reason else msg)

    @property
    def fatal(self) -> bool:
        return self.scope == "resource-group"


class CredentialConfigurationFailed(CmdError):
    pass


class ManifestApplyFailed(CmdError):
    def __init__(self, path, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed to apply {path}: {reason}")
