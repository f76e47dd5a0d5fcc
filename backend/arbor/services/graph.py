"""
Graph views of the task hierarchy using NetworkX.

This module handles:
- Building a parent -> child DiGraph from the flat tasks table
- Subtree (descendant) retrieval
- Auditing the stored hierarchy for cycles
"""

import uuid
import networkx as nx

from arbor.services.store import TaskStore


async def build_hierarchy_graph(
    store: TaskStore,
    tenant_id: uuid.UUID,
    project_id: uuid.UUID | None = None,
) -> nx.DiGraph:
    """
    Build a NetworkX DiGraph of the tenant's tasks, optionally one project.

    Returns a graph where:
    - Nodes are task IDs (with a ``name`` attribute)
    - Edges go from parent -> child
    """
    graph = nx.DiGraph()
    rows = await store.hierarchy_rows(tenant_id, project_id)

    for task_id, _parent_id, name in rows:
        graph.add_node(task_id, name=name)

    for task_id, parent_id, _name in rows:
        if parent_id is not None:
            graph.add_edge(parent_id, task_id)

    return graph


def get_descendants(graph: nx.DiGraph, root_task_id: uuid.UUID) -> set[uuid.UUID]:
    """All task IDs reachable from ``root_task_id`` through child edges."""
    if root_task_id not in graph:
        return set()
    return nx.descendants(graph, root_task_id)


def find_cycles(graph: nx.DiGraph) -> list[list[uuid.UUID]]:
    """
    Cycles present in the hierarchy.

    Each task has at most one parent, so every cycle is a simple loop and
    no node appears in more than one of them. Each loop is rotated to start
    at its smallest ID so results are stable.
    """
    cycles = []
    for cycle in nx.simple_cycles(graph):
        start = cycle.index(min(cycle))
        cycles.append(cycle[start:] + cycle[:start])
    return sorted(cycles)
