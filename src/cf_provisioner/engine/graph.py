"""Dependency ordering of resource addresses."""

from __future__ import annotations

import heapq
from collections import defaultdict
from collections.abc import Iterable, Mapping

from cf_provisioner.engine.errors import DependencyCycleError


def dependency_order(dependencies: Mapping[str, Iterable[str]]) -> list[str]:
    """Order the keys of *dependencies* so every node follows what it depends on.

    Edges to nodes outside the mapping are ignored. Among nodes that are
    ready at the same time the alphabetically first goes next, which keeps
    plans stable from run to run.
    """
    waiting_on = {
        node: {dep for dep in deps if dep in dependencies} for node, deps in dependencies.items()
    }
    dependents: defaultdict[str, list[str]] = defaultdict(list)
    for node, deps in waiting_on.items():
        for dep in deps:
            dependents[dep].append(node)

    ready = [node for node, deps in waiting_on.items() if not deps]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for dependent in dependents[node]:
            waiting_on[dependent].discard(node)
            if not waiting_on[dependent]:
                heapq.heappush(ready, dependent)

    if len(order) != len(waiting_on):
        raise DependencyCycleError(sorted(set(waiting_on) - set(order)))
    return order
