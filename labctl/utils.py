from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, TypeVar, Union

from .errors import CmdError, MissingPrerequisiteTool, MissingRequiredFile

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOOL_HINTS = {
    "az": "Install the Azure CLI: https://aka.ms/installazurecli",
    "cdktf": "Install the CDKTF CLI: npm install --global cdktf-cli",
    "terraform": "Install Terraform: https://developer.hashicorp.com/terraform/install",
    "kubectl": "Install kubectl: az aks install-cli",
    "kubelogin": "Install kubelogin: az aks install-cli",
}


def run(
    cmd: List[str],
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    echo: bool = True,
) -> str:
    """Execute a command, stream both pipes, and return ONLY stdout text.

    Important: Some callers JSON-parse the return; never mix stderr into it.
    ``env`` entries are layered over the current process environment.
    """
    logger.info("Running: %s", " ".join(cmd))
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)
    proc = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=full_env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )

    stdout_buf: list[str] = []
    stderr_buf: list[str] = []

    def pump(pipe, tag: str) -> None:
        try:
            for line in iter(pipe.readline, ""):
                if not line:
                    continue
                line = line.rstrip()
                if echo:
                    print(line, flush=True)
                if tag == "stdout":
                    stdout_buf.append(line)
                else:
                    stderr_buf.append(line)
        finally:
            pipe.close()

    t_out = threading.Thread(target=pump, args=(proc.stdout, "stdout"), daemon=True)
    t_err = threading.Thread(target=pump, args=(proc.stderr, "stderr"), daemon=True)
    t_out.start()
    t_err.start()
    rc = proc.wait()
    t_out.join()
    t_err.join()

    out_text = "\n".join(stdout_buf).strip()
    if rc != 0:
        err_tail = "\n".join(stderr_buf[-20:])
        raise CmdError(
            f"Command failed ({rc}): {' '.join(cmd)}\nSTDOUT:\n{out_text}\nSTDERR:\n{err_tail}"
        )
    return out_text


def _resolve_az_exe() -> str:
    return "az.cmd" if os.name == "nt" else "az"


def az(args: List[str], echo: bool = False) -> str:
    return run([_resolve_az_exe(), *args], echo=echo)


def az_json(args: List[str]) -> Any:
    out = az([*args, "-o", "json"])
    return json.loads(out) if out else None


def cdktf(project_dir: Path, args: List[str], env: Optional[Mapping[str, str]] = None) -> str:
    return run(["cdktf", *args], cwd=str(project_dir), env=env)


def kubectl(args: List[str]) -> str:
    return run(["kubectl", *args])


def get_aks_credentials(resource_group: str, cluster_name: str) -> None:
    az(
        [
            "aks",
            "get-credentials",
            "-g",
            resource_group,
            "-n",
            cluster_name,
            "--overwrite-existing",
        ],
        echo=True,
    )


def convert_kubeconfig() -> None:
    # Entra ID clusters need the exec plugin to reuse the az login
    run(["kubelogin", "convert-kubeconfig", "-l", "azurecli"])


def kubectl_apply(path: Path) -> str:
    return kubectl(["apply", "-f", str(path)])


def ensure_tools(
    tools: Iterable[str], which: Optional[Callable[[str], Optional[str]]] = None
) -> None:
    which = which or shutil.which
    for tool in tools:
        if which(tool) is None:
            raise MissingPrerequisiteTool(tool, TOOL_HINTS.get(tool, ""))


def ensure_files(paths: Iterable[Path]) -> None:
    for p in paths:
        if not p.exists():
            raise MissingRequiredFile(p)


def resolve_with_fallback(
    *sources: Union[T, Callable[[], Optional[T]], None],
    default: Optional[T] = None,
) -> Optional[T]:
    """Return the first non-empty source, calling callables lazily.

    Sources are tried in order (explicit value, environment, interactive
    prompt, ...); ``default`` is returned when none resolves.
    """
    for source in sources:
        value = source() if callable(source) else source
        if value is not None and value != "":
            return value
    return default
