"""Dependency ordering for resource addresses."""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING

from bitbucket_provisioner.engine.errors import DependencyCycleError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def topological_order(
    nodes: Iterable[str],
    dependencies: Mapping[str, Iterable[str]],
) -> list[str]:
    """Order *nodes* so every node comes after its dependencies.

    Ties are broken lexicographically, so the result is deterministic.
    Dependencies on addresses outside *nodes* are ignored.
    """
    node_set = set(nodes)
    pending: dict[str, set[str]] = {
        n: {d for d in dependencies.get(n, ()) if d in node_set and d != n} for n in node_set
    }
    dependents: dict[str, list[str]] = {n: [] for n in node_set}
    for node, deps in pending.items():
        for dep in deps:
            dependents[dep].append(node)

    ready = [n for n, deps in pending.items() if not deps]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for child in dependents[node]:
            pending[child].discard(node)
            if not pending[child]:
                heapq.heappush(ready, child)

    if len(order) != len(node_set):
        raise DependencyCycleError(sorted(node_set - set(order)))
    return order


def reverse_topological_order(
    nodes: Iterable[str],
    dependencies: Mapping[str, Iterable[str]],
) -> list[str]:
    """Dependents first; the order deletes must run in."""
    return topological_order(nodes, dependencies)[::-1]
