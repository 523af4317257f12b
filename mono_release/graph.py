"""Module graph utilities.

Provides topological sorting for determining build order in a workspace.
Modules must be processed in dependency order so that when module A depends
on module B, B's release version is known before A's descriptor is rewritten.
"""

from __future__ import annotations

from .errors import ValidationError
from .models import ModuleInfo


def topo_sort(modules: dict[str, ModuleInfo]) -> list[str]:
    """Topologically sort modules by their internal references.

    Uses Kahn's algorithm to produce a build order where parents and
    dependencies come before dependents. Modules with no pending references
    are taken alphabetically for deterministic output.

    Args:
        modules: Map of artifact id → ModuleInfo with deps list.

    Returns:
        List of artifact ids in build order (dependencies first).

    Raises:
        ValidationError: If a reference cycle is detected.
    """
    in_degree = {n: 0 for n in modules}
    reverse_deps: dict[str, list[str]] = {n: [] for n in modules}

    for name, info in modules.items():
        for dep in set(info.deps):
            # References to modules outside this map are already resolved
            if dep in modules and dep != name:
                in_degree[name] += 1
                reverse_deps[dep].append(name)

    queue = sorted(n for n, d in in_degree.items() if d == 0)
    order: list[str] = []

    while queue:
        node = queue.pop(0)
        order.append(node)
        for dependent in sorted(reverse_deps[node]):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(modules):
        remaining = sorted(set(modules) - set(order))
        summary = "Cannot release because the modules reference each other in a cycle"
        raise ValidationError(
            summary, [summary, *(f" * {name}" for name in remaining)]
        )

    return order
