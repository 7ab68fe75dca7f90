"""
Module dependency graph for the resource-group stack.

Modules are grouped into four layers. A module may only consume the
outputs of modules in strictly earlier layers, which also rules out
cycles. The stack walks ``deployment_order`` and hands each module only
the outputs it declares in ``consumes``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Mapping, Tuple


class Layer(IntEnum):
    FOUNDATION = 0
    COMPUTE = 1
    MONITORING = 2
    GOVERNANCE = 3


@dataclass(frozen=True)
class ModuleSpec:
    name: str
    layer: Layer
    consumes: Tuple[str, ...] = ()


class GraphError(ValueError):
    pass


LAB_MODULES: Tuple[ModuleSpec, ...] = (
    ModuleSpec("log_analytics", Layer.FOUNDATION),
    ModuleSpec("network", Layer.FOUNDATION),
    ModuleSpec("registry", Layer.FOUNDATION),
    ModuleSpec("key_vault", Layer.FOUNDATION),
    # Cluster plus the AcrPull binding for its kubelet identity
    ModuleSpec("aks", Layer.COMPUTE, ("network", "log_analytics", "registry")),
    ModuleSpec(
        "diagnostics",
        Layer.MONITORING,
        ("log_analytics", "aks", "key_vault", "registry"),
    ),
    ModuleSpec("workload_telemetry", Layer.MONITORING, ("log_analytics", "aks")),
    ModuleSpec("sentinel", Layer.MONITORING, ("log_analytics",)),
    # Definitions -> initiative -> assignment, ordered inside the module
    ModuleSpec("policy", Layer.GOVERNANCE),
)


def validate_graph(modules: Iterable[ModuleSpec]) -> None:
    """Raise GraphError unless every edge points at a strictly earlier layer."""
    by_name: Dict[str, ModuleSpec] = {}
    for module in modules:
        if module.name in by_name:
            raise GraphError(f"Duplicate module: {module.name}")
        by_name[module.name] = module

    for module in by_name.values():
        for dep in module.consumes:
            upstream = by_name.get(dep)
            if upstream is None:
                raise GraphError(f"{module.name} consumes unknown module {dep}")
            if upstream.layer >= module.layer:
                raise GraphError(
                    f"{module.name} ({module.layer.name}) may not consume "
                    f"{dep} ({upstream.layer.name}): not an earlier layer"
                )


def deployment_order(modules: Iterable[ModuleSpec]) -> List[ModuleSpec]:
    """Validated modules sorted by layer, stable within a layer."""
    ordered = list(modules)
    validate_graph(ordered)
    return sorted(ordered, key=lambda m: m.layer)


def inputs_for(
    module: ModuleSpec, produced: Mapping[str, Mapping[str, Any]]
) -> Dict[str, Mapping[str, Any]]:
    """Select the upstream outputs a module declared, failing on gaps."""
    missing = [dep for dep in module.consumes if dep not in produced]
    if missing:
        raise GraphError(
            f"{module.name} scheduled before its inputs: {', '.join(missing)}"
        )
    return {dep: produced[dep] for dep in module.consumes}
