"""
Topological layering of fragments for diagram layout.

Uses Kahn's algorithm with a smallest-id-first queue so the same graph
always gets the same levels. A fragment's level is one more than the
deepest producer feeding it.

Cycles are not an error here: level is a layout hint, so fragments that
are never released from the queue keep whatever level they reached.
"""

from __future__ import annotations

import logging
from typing import Iterable

from planlens.graph.models import FragmentGraphEdge

logger = logging.getLogger(__name__)


def compute_levels(
    fragment_ids: Iterable[int],
    edges: Iterable[FragmentGraphEdge],
) -> dict[int, int]:
    """
    Assign each fragment a non-negative layer index.

    Edges with an endpoint outside `fragment_ids` are ignored. For every
    edge a -> b outside a cycle, level[b] >= level[a] + 1.
    """
    ids = sorted(set(fragment_ids))
    in_degree: dict[int, int] = {fid: 0 for fid in ids}
    outgoing: dict[int, list[int]] = {fid: [] for fid in ids}
    level: dict[int, int] = {fid: 0 for fid in ids}

    for edge in edges:
        if edge.from_fragment_id not in in_degree or edge.to_fragment_id not in in_degree:
            continue
        in_degree[edge.to_fragment_id] += 1
        outgoing[edge.from_fragment_id].append(edge.to_fragment_id)

    queue = sorted(fid for fid in ids if in_degree[fid] == 0)
    visited: set[int] = set()

    while queue:
        fragment_id = queue.pop(0)
        visited.add(fragment_id)
        next_level = level[fragment_id] + 1

        for child in outgoing[fragment_id]:
            level[child] = max(level[child], next_level)
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

        queue.sort()

    if len(visited) < len(ids):
        unvisited = [fid for fid in ids if fid not in visited]
        logger.debug("Fragments left in a cycle while leveling: %s", unvisited)
        for fragment_id in unvisited:
            level[fragment_id] = max(0, level[fragment_id])

    return level
